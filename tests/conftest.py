"""Shared fakes for the Azure Key Vault and HashiCorp Vault collaborators."""
from types import SimpleNamespace

import pytest
from azure.core.exceptions import ResourceNotFoundError

from azure_vault_sync.sync.domains.config_loader import ENV_VARS
from azure_vault_sync.sync.domains.models import AzureSettings, SyncSettings, VaultSettings


class FakeResponse:
    def __init__(self, status_code, reason=""):
        self.status_code = status_code
        self.reason = reason


class FakeVaultSession:
    """In-memory stand-in for a requests.Session talking to Vault KV v2."""

    def __init__(self, existing=None, probe_status=None, write_status=204, error=None):
        self.store = dict(existing or {})
        self.probe_status = probe_status
        self.write_status = write_status
        self.error = error
        self.gets = []
        self.posts = []
        self.closed = False

    def get(self, url, timeout=None):
        self.gets.append(url)
        if self.error is not None:
            raise self.error
        if self.probe_status is not None:
            return FakeResponse(self.probe_status)
        name = url.rsplit("/", 1)[1]
        return FakeResponse(200 if name in self.store else 404, "" if name in self.store else "Not Found")

    def post(self, url, json=None, timeout=None):
        self.posts.append((url, json))
        if 200 <= self.write_status < 300:
            self.store[url.rsplit("/", 1)[1]] = json["data"]["value"]
            return FakeResponse(self.write_status)
        return FakeResponse(self.write_status, "Forbidden")

    def close(self):
        self.closed = True


class FakeKeyVaultClient:
    """Stand-in for azure.keyvault.secrets.SecretClient."""

    def __init__(self, secrets, failing=(), list_error=None, fail_list_after=None):
        # secrets: list of (name, value) pairs, duplicates allowed
        self.secrets = list(secrets)
        self.failing = set(failing)
        self.list_error = list_error
        self.fail_list_after = fail_list_after
        self.list_calls = 0
        self.gets = []

    def list_properties_of_secrets(self):
        self.list_calls += 1
        for index, (name, _value) in enumerate(self.secrets):
            if self.list_error is not None and self.fail_list_after == index:
                raise self.list_error
            yield SimpleNamespace(name=name)
        if self.list_error is not None and self.fail_list_after is None:
            raise self.list_error

    def get_secret(self, name):
        self.gets.append(name)
        if name in self.failing:
            raise ResourceNotFoundError(message=f"Secret {name} not found")
        value = next(value for secret_name, value in self.secrets if secret_name == name)
        return SimpleNamespace(name=name, value=value)


@pytest.fixture
def clean_env(monkeypatch):
    """Remove every environment variable the config loader reads."""
    for env_var in ENV_VARS.values():
        monkeypatch.delenv(env_var, raising=False)


@pytest.fixture
def settings():
    return SyncSettings(
        vault=VaultSettings(address="http://vault.test:8200/", token="s.test-token"),
        azure=AzureSettings(
            url="https://kv-test.vault.azure.net",
            tenant_id="tenant",
            client_id="client",
            client_secret="client-secret",
        ),
        overwrite=False,
    )
