"""HashiCorp Vault KV v2 client wrapper (destination store)."""
import logging
from typing import Optional
from urllib.parse import quote

import requests

from .models import Secret, TransferOutcome, VaultSettings

logger = logging.getLogger(__name__)


def _is_success(status_code: int) -> bool:
    return 200 <= status_code < 300


class VaultSecretWriter:
    """
    Writes secrets to a Vault KV v2 mount over the HTTP API.

    Endpoints used:
        GET  v1/<mount>/metadata/<name>  existence probe (any 2xx = exists)
        POST v1/<mount>/data/<name>      create/update, body {"data": {"value": ...}}
    """

    def __init__(self, settings: VaultSettings, session: Optional[requests.Session] = None):
        self.settings = settings
        self._session = session

    @property
    def session(self) -> requests.Session:
        """Lazy-initialize the HTTP session."""
        if self._session is None:
            self._session = requests.Session()
            self._session.headers.update({"X-Vault-Token": self.settings.token or ""})
        return self._session

    def close(self) -> None:
        if self._session is not None:
            self._session.close()
            self._session = None

    def __enter__(self) -> "VaultSecretWriter":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    def _url(self, kind: str, name: str) -> str:
        # Address is normalized with a trailing slash by the config loader
        address = self.settings.address
        if not address.endswith("/"):
            address += "/"
        return f"{address}v1/{self.settings.mount_point}/{kind}/{quote(name, safe='')}"

    def probe(self, name: str) -> requests.Response:
        """Issue the metadata request used as the existence probe."""
        return self.session.get(self._url("metadata", name), timeout=self.settings.timeout)

    def secret_exists(self, name: str) -> bool:
        """
        Check whether a secret exists at the destination.

        Any non-success status counts as "does not exist", including auth
        errors and rate limiting.

        Raises:
            requests.RequestException: On network failure or timeout
        """
        return _is_success(self.probe(name).status_code)

    def write(self, secret: Secret) -> requests.Response:
        """Submit a create/update request for the secret."""
        payload = {"data": {"value": secret.value}}
        return self.session.post(
            self._url("data", secret.name),
            json=payload,
            timeout=self.settings.timeout,
        )

    def write_if_allowed(self, secret: Secret, overwrite: bool) -> TransferOutcome:
        """
        Write a secret unless it exists and overwrite is disabled.

        Args:
            secret: Secret to write
            overwrite: Whether an existing secret may be replaced

        Returns:
            TransferOutcome (never raises for request failures)
        """
        try:
            response = self.probe(secret.name)
        except requests.RequestException as e:
            return TransferOutcome.write_failed(secret.name, f"existence probe failed: {e}")

        exists = _is_success(response.status_code)
        if not exists and response.status_code != 404:
            # Probe failed for a reason other than absence
            if self.settings.strict_probe:
                return TransferOutcome.write_failed(
                    secret.name, f"existence probe returned {response.status_code}"
                )
            logger.warning(
                f"Existence probe for '{secret.name}' returned {response.status_code}, treating as absent"
            )

        if exists and not overwrite:
            return TransferOutcome.skipped_existing(secret.name)

        try:
            response = self.write(secret)
        except requests.RequestException as e:
            return TransferOutcome.write_failed(secret.name, str(e))

        if _is_success(response.status_code):
            return TransferOutcome.written(secret.name)
        return TransferOutcome.write_failed(
            secret.name, f"{response.status_code} {response.reason or ''}".strip()
        )
