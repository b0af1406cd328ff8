"""Workflow for one secret transfer pass from Azure Key Vault to Vault."""
import logging
import threading
from typing import Callable, Optional

from ..domains.azure_client import AzureSecretReader, SourceUnavailableError
from ..domains.config_loader import (
    ConfigError,
    validate_azure_credentials,
    validate_azure_url,
    validate_vault_address,
)
from ..domains.models import AzureSettings, PassSummary, SyncSettings, VaultSettings
from ..domains.vault_client import VaultSecretWriter

logger = logging.getLogger(__name__)

ReaderFactory = Callable[[AzureSettings], AzureSecretReader]
WriterFactory = Callable[[VaultSettings], VaultSecretWriter]


class SyncEngine:
    """
    Orchestrates a pass: read every source secret, then write each one as
    allowed by the overwrite policy.

    Secrets are processed strictly one at a time. A failure on one secret is
    recorded and the pass continues; only a bad address (before any I/O) or
    an unlistable source aborts the pass.
    """

    def __init__(
        self,
        reader_factory: ReaderFactory = AzureSecretReader,
        writer_factory: WriterFactory = VaultSecretWriter,
    ):
        self.reader_factory = reader_factory
        self.writer_factory = writer_factory

    def run_once(
        self,
        settings: SyncSettings,
        overwrite: Optional[bool] = None,
        cancel_event: Optional[threading.Event] = None,
    ) -> PassSummary:
        """
        Run a single transfer pass.

        Args:
            settings: Source and destination settings
            overwrite: Overrides settings.overwrite when given
            cancel_event: When set, stops the pass between two secrets

        Returns:
            PassSummary with one outcome per secret read or attempted
        """
        if overwrite is None:
            overwrite = settings.overwrite
        summary = PassSummary()

        try:
            validate_vault_address(settings.vault.address)
            validate_azure_url(settings.azure.url)
            validate_azure_credentials(settings.azure)
        except ConfigError as e:
            summary.aborted = str(e)
            logger.error(str(e))
            return summary

        reader = self.reader_factory(settings.azure)
        try:
            batch = reader.fetch_all()
        except SourceUnavailableError as e:
            summary.aborted = str(e)
            logger.error(str(e))
            return summary

        summary.retrieved = len(batch)
        for failure in batch.failures:
            summary.record(failure)

        writer = self.writer_factory(settings.vault)
        try:
            for secret in batch:
                if cancel_event is not None and cancel_event.is_set():
                    summary.cancelled = True
                    logger.warning("Sync pass cancelled, remaining secrets were not transferred")
                    break

                outcome = writer.write_if_allowed(secret, overwrite)
                summary.record(outcome)
                if outcome.is_failure:
                    logger.error(outcome.describe())
                else:
                    logger.info(outcome.describe())
        finally:
            writer.close()

        logger.info(summary.describe())
        return summary


def run_once(
    settings: SyncSettings,
    overwrite: Optional[bool] = None,
    cancel_event: Optional[threading.Event] = None,
) -> PassSummary:
    """Run a single pass with the default Azure reader and Vault writer."""
    return SyncEngine().run_once(settings, overwrite=overwrite, cancel_event=cancel_event)
