"""Azure Key Vault client wrapper (source store)."""
import logging
from typing import Optional

from azure.core.exceptions import AzureError
from azure.identity import ClientSecretCredential
from azure.keyvault.secrets import SecretClient

from .models import AzureSettings, Secret, SecretBatch

logger = logging.getLogger(__name__)


class SourceUnavailableError(Exception):
    """Raised when the source store cannot list its secrets."""
    pass


class AzureSecretReader:
    """Reads every secret visible to a service principal in one Key Vault."""

    def __init__(self, settings: AzureSettings, client: Optional[SecretClient] = None):
        self.settings = settings
        self._client = client

    @property
    def client(self) -> SecretClient:
        """
        Lazy-initialize client.

        Raises:
            SourceUnavailableError: If the credential or client cannot be built
        """
        if self._client is None:
            try:
                credential = ClientSecretCredential(
                    self.settings.tenant_id,
                    self.settings.client_id,
                    self.settings.client_secret,
                )
            except ValueError as e:
                raise SourceUnavailableError(f"Invalid Azure service principal credentials: {e}") from e
            self._client = SecretClient(
                vault_url=self.settings.url,
                credential=credential,
                connection_timeout=self.settings.timeout,
                read_timeout=self.settings.timeout,
            )
        return self._client

    def fetch_secret(self, name: str) -> str:
        """
        Fetch the current value of one secret.

        Raises:
            AzureError: If the fetch fails (auth, network, timeout, not found)
            ValueError: If the secret has no value (e.g. disabled)
        """
        secret = self.client.get_secret(name)
        if secret.value is None:
            raise ValueError("secret has no value (disabled or empty)")
        return secret.value

    def fetch_all(self) -> SecretBatch:
        """
        Enumerate and fetch all secrets.

        A failure to fetch one secret is recorded in the batch and enumeration
        continues. Each secret is attempted exactly once.

        Returns:
            SecretBatch with the secrets read and the read failures

        Raises:
            SourceUnavailableError: If listing the secrets fails
        """
        batch = SecretBatch()
        logger.info("Retrieving secrets from Azure Key Vault...")

        try:
            for properties in self.client.list_properties_of_secrets():
                name = properties.name
                try:
                    value = self.fetch_secret(name)
                except (AzureError, ValueError) as e:
                    batch.fail(name, str(e))
                    logger.warning(f"Failed to retrieve secret '{name}': {e}")
                    continue

                if batch.add(Secret(name=name, value=value)):
                    logger.info(f"Retrieved secret: {name}")
                else:
                    logger.warning(f"Duplicate secret name '{name}' in enumeration, keeping the first")
        except AzureError as e:
            raise SourceUnavailableError(
                f"Failed to list secrets in {self.settings.url}: {e}"
            ) from e

        logger.info(f"Total secrets retrieved from Azure Key Vault: {len(batch)}")
        return batch
