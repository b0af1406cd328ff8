"""Tests for the HashiCorp Vault writer."""
from unittest import mock

import pytest
import requests

from azure_vault_sync.sync.domains.models import OutcomeKind, Secret, VaultSettings
from azure_vault_sync.sync.domains.vault_client import VaultSecretWriter

from conftest import FakeVaultSession

VAULT = "http://vault.test:8200/"


@pytest.fixture
def vault_settings():
    return VaultSettings(address=VAULT, token="s.test-token")


class TestWriteDecision:
    """Existence check and overwrite policy."""

    @pytest.mark.parametrize("overwrite", [True, False])
    def test_absent_secret_is_always_written(self, vault_settings, overwrite):
        session = FakeVaultSession()
        writer = VaultSecretWriter(vault_settings, session=session)

        outcome = writer.write_if_allowed(Secret("db-pass", "s3cr3t"), overwrite=overwrite)

        assert outcome.kind is OutcomeKind.WRITTEN
        assert len(session.posts) == 1
        assert session.store["db-pass"] == "s3cr3t"

    def test_existing_secret_skipped_without_overwrite(self, vault_settings):
        session = FakeVaultSession(existing={"db-pass": "old"})
        writer = VaultSecretWriter(vault_settings, session=session)

        outcome = writer.write_if_allowed(Secret("db-pass", "new"), overwrite=False)

        assert outcome.kind is OutcomeKind.SKIPPED_EXISTING
        assert session.posts == []
        assert session.store["db-pass"] == "old"

    def test_existing_secret_written_with_overwrite(self, vault_settings):
        session = FakeVaultSession(existing={"db-pass": "old"})
        writer = VaultSecretWriter(vault_settings, session=session)

        outcome = writer.write_if_allowed(Secret("db-pass", "new"), overwrite=True)

        assert outcome.kind is OutcomeKind.WRITTEN
        assert len(session.posts) == 1
        assert session.store["db-pass"] == "new"

    def test_write_then_probe_reports_exists(self, vault_settings):
        writer = VaultSecretWriter(vault_settings, session=FakeVaultSession())

        writer.write_if_allowed(Secret("db-pass", "s3cr3t"), overwrite=True)

        assert writer.secret_exists("db-pass") is True

    def test_probe_error_status_is_treated_as_absent(self, vault_settings):
        """A 403 on the probe is indistinguishable from "not found" by default."""
        session = FakeVaultSession(probe_status=403)
        writer = VaultSecretWriter(vault_settings, session=session)

        outcome = writer.write_if_allowed(Secret("db-pass", "s3cr3t"), overwrite=False)

        assert outcome.kind is OutcomeKind.WRITTEN
        assert len(session.posts) == 1

    def test_strict_probe_refuses_to_write_on_probe_error(self, vault_settings):
        vault_settings.strict_probe = True
        session = FakeVaultSession(probe_status=429)
        writer = VaultSecretWriter(vault_settings, session=session)

        outcome = writer.write_if_allowed(Secret("db-pass", "s3cr3t"), overwrite=False)

        assert outcome.kind is OutcomeKind.WRITE_FAILED
        assert "429" in outcome.reason
        assert session.posts == []

    def test_strict_probe_still_writes_confirmed_absent(self, vault_settings):
        vault_settings.strict_probe = True
        session = FakeVaultSession()
        writer = VaultSecretWriter(vault_settings, session=session)

        outcome = writer.write_if_allowed(Secret("db-pass", "s3cr3t"), overwrite=False)

        assert outcome.kind is OutcomeKind.WRITTEN


class TestWriteFailures:
    """Failures are returned as outcomes, never raised."""

    def test_non_success_write_status(self, vault_settings):
        session = FakeVaultSession(write_status=403)
        writer = VaultSecretWriter(vault_settings, session=session)

        outcome = writer.write_if_allowed(Secret("db-pass", "s3cr3t"), overwrite=True)

        assert outcome.kind is OutcomeKind.WRITE_FAILED
        assert outcome.reason == "403 Forbidden"
        assert "db-pass" not in session.store

    def test_probe_network_error(self, vault_settings):
        session = FakeVaultSession(error=requests.ConnectionError("connection refused"))
        writer = VaultSecretWriter(vault_settings, session=session)

        outcome = writer.write_if_allowed(Secret("db-pass", "s3cr3t"), overwrite=True)

        assert outcome.kind is OutcomeKind.WRITE_FAILED
        assert "connection refused" in outcome.reason
        assert session.posts == []

    def test_write_timeout(self, vault_settings):
        session = mock.Mock()
        session.get.return_value = mock.Mock(status_code=404)
        session.post.side_effect = requests.Timeout("read timed out")
        writer = VaultSecretWriter(vault_settings, session=session)

        outcome = writer.write_if_allowed(Secret("db-pass", "s3cr3t"), overwrite=True)

        assert outcome.kind is OutcomeKind.WRITE_FAILED
        assert "timed out" in outcome.reason


class TestHttpRequests:
    """Request shape against the KV v2 HTTP API."""

    def test_probe_and_write_endpoints_and_payload(self, vault_settings):
        session = mock.Mock()
        session.get.return_value = mock.Mock(status_code=404)
        session.post.return_value = mock.Mock(status_code=200)
        writer = VaultSecretWriter(vault_settings, session=session)

        writer.write_if_allowed(Secret("db-pass", "s3cr3t"), overwrite=False)

        session.get.assert_called_once_with(f"{VAULT}v1/secret/metadata/db-pass", timeout=30.0)
        session.post.assert_called_once_with(
            f"{VAULT}v1/secret/data/db-pass",
            json={"data": {"value": "s3cr3t"}},
            timeout=30.0,
        )

    def test_custom_mount_point_and_missing_trailing_slash(self):
        settings = VaultSettings(address="http://vault.test:8200", token="t", mount_point="kv")
        session = mock.Mock()
        session.get.return_value = mock.Mock(status_code=200)
        writer = VaultSecretWriter(settings, session=session)

        assert writer.secret_exists("api-key") is True
        session.get.assert_called_once_with("http://vault.test:8200/v1/kv/metadata/api-key", timeout=30.0)

    def test_session_sends_vault_token_header(self, vault_settings):
        writer = VaultSecretWriter(vault_settings)

        assert writer.session.headers["X-Vault-Token"] == "s.test-token"
        writer.close()

    def test_context_manager_closes_session(self, vault_settings):
        session = FakeVaultSession()
        with VaultSecretWriter(vault_settings, session=session):
            pass

        assert session.closed is True
