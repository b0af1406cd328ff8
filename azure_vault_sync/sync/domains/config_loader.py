"""Configuration loader for azure-vault-sync.

Settings are merged from, lowest to highest precedence:
defaults, an optional YAML config file, environment variables, interactive
prompts and explicit overrides (CLI flags).
"""
import logging
import os
from datetime import datetime, time
from pathlib import Path
from typing import Any, Dict, Optional, Protocol
from urllib.parse import urlparse

import yaml

from .models import AzureSettings, SyncSettings, VaultSettings
from .preferences import get_preference

logger = logging.getLogger(__name__)

DEFAULT_VAULT_ADDRESS = "http://127.0.0.1:8200"

# Flat setting key -> environment variable
ENV_VARS = {
    "overwrite": "OVERWRITE",
    "vault_address": "VAULT_ADDR",
    "vault_token": "VAULT_TOKEN",
    "azure_key_vault_url": "AZURE_KEY_VAULT_URL",
    "azure_tenant_id": "AZURE_TENANT_ID",
    "azure_client_id": "AZURE_CLIENT_ID",
    "azure_client_secret": "AZURE_CLIENT_SECRET",
    "schedule_time": "SCHEDULE_TIME",
}

SCHEDULE_FORMATS = ("%H:%M", "%H:%M:%S")


class ConfigError(Exception):
    """Configuration error exception."""
    pass


class Prompter(Protocol):
    def ask(self, message: str, default: str = "") -> str: ...

    def ask_secret(self, message: str) -> str: ...


def default_config_path() -> Path:
    return Path.home() / ".config" / "azure-vault-sync" / "config.yml"


def parse_bool(value: Any) -> bool:
    """Parse "true"/"false" case-insensitively; anything else is False."""
    if isinstance(value, bool):
        return value
    if value is None:
        return False
    return str(value).strip().lower() == "true"


def parse_schedule_time(value: Any) -> Optional[time]:
    """
    Parse a daily run time.

    Args:
        value: "HH:mm" or "HH:mm:ss" (a datetime.time is returned unchanged)

    Returns:
        The time of day, or None if the value is empty or unparseable
    """
    if isinstance(value, time):
        return value
    if value is None:
        return None
    text = str(value).strip()
    if not text:
        return None
    for fmt in SCHEDULE_FORMATS:
        try:
            return datetime.strptime(text, fmt).time()
        except ValueError:
            continue
    return None


def normalize_vault_address(address: Optional[str]) -> str:
    address = (address or "").strip()
    if not address.endswith("/"):
        address += "/"
    return address


def normalize_azure_url(url: Optional[str]) -> str:
    url = (url or "").strip()
    if url and not url.lower().startswith("http"):
        url = "https://" + url
    return url.rstrip("/")


def validate_vault_address(address: str) -> None:
    """
    Raises:
        ConfigError: If the address is not an absolute http(s) URL
    """
    parsed = urlparse(address or "")
    if parsed.scheme not in ("http", "https") or not parsed.netloc:
        raise ConfigError(f"Invalid HashiCorp Vault Address provided: '{address}'")


def validate_azure_url(url: str) -> None:
    """
    Raises:
        ConfigError: If the Key Vault URL is empty
    """
    if not url or not url.strip():
        raise ConfigError("Azure Key Vault URL cannot be empty.")


def validate_azure_credentials(azure: AzureSettings) -> None:
    """
    Raises:
        ConfigError: If the tenant ID, client ID or client secret is empty
    """
    missing = [
        label
        for label, value in (
            ("tenant ID", azure.tenant_id),
            ("client ID", azure.client_id),
            ("client secret", azure.client_secret),
        )
        if not value or not value.strip()
    ]
    if missing:
        raise ConfigError(f"Azure {', '.join(missing)} cannot be empty.")


def _get_config_path(explicit: Optional[str] = None) -> Optional[str]:
    """
    Resolve the config file path.

    Priority order:
    1. Explicit path (--config)
    2. User preference (stored in ~/.config/azure-vault-sync/preferences.json)
    3. Default location: ~/.config/azure-vault-sync/config.yml

    Returns:
        Absolute path to the config file, or None when no file is configured

    Raises:
        ConfigError: If an explicit path does not exist
    """
    if explicit:
        path = Path(explicit).expanduser()
        if not path.is_file():
            raise ConfigError(f"Configuration file not found at: {path}")
        return str(path.resolve())

    config_path_pref = get_preference("config_path")
    if config_path_pref:
        path = Path(config_path_pref)
        if path.is_file():
            logger.debug(f"Using config from preference: {path}")
            return str(path)
        logger.warning(f"Config path from preference doesn't exist: {path}")

    default_config = default_config_path()
    if default_config.is_file():
        logger.debug(f"Using default config location: {default_config}")
        return str(default_config)

    return None


def _read_config_file(config_path: str) -> Dict[str, Any]:
    """
    Load the YAML config file into flat setting keys.

    Raises:
        ConfigError: If the file cannot be read or parsed
    """
    try:
        with open(config_path, 'r') as f:
            document = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ConfigError(f"Failed to parse YAML config at {config_path}: {e}")
    except OSError as e:
        raise ConfigError(f"Failed to read config file at {config_path}: {e}")

    if document is None:
        return {}
    if not isinstance(document, dict):
        raise ConfigError(f"Config file at {config_path} must contain a mapping")

    raw: Dict[str, Any] = {}
    for key in ("overwrite", "schedule_time"):
        if key in document:
            raw[key] = document[key]

    schedule_value = raw.get("schedule_time")
    if isinstance(schedule_value, int) and not isinstance(schedule_value, bool):
        # YAML 1.1 reads an unquoted H:MM as a base-60 integer (14:30 -> 870)
        hours, minutes = divmod(schedule_value, 60)
        raw["schedule_time"] = f"{hours:02d}:{minutes:02d}"

    for section, fields in (
        ("vault", ("address", "token", "mount_point", "timeout", "strict_probe")),
        ("azure", ("key_vault_url", "tenant_id", "client_id", "client_secret", "timeout")),
    ):
        values = document.get(section) or {}
        if not isinstance(values, dict):
            raise ConfigError(f"Section '{section}' in {config_path} must be a mapping")
        for field_name in fields:
            if field_name in values:
                raw[f"{section}_{field_name}"] = values[field_name]

    logger.debug(f"Configuration loaded from {config_path}")
    return raw


def _read_environment() -> Dict[str, Any]:
    return {
        key: os.environ[env_var]
        for key, env_var in ENV_VARS.items()
        if env_var in os.environ
    }


def _prompt_for_settings(raw: Dict[str, Any], prompter: Prompter) -> None:
    """Ask for every setting, offering the current value as default."""
    raw["overwrite"] = prompter.ask(
        "Do you want to enable overwrite? (true/false): ",
        str(parse_bool(raw.get("overwrite"))).lower(),
    )
    raw["vault_address"] = prompter.ask(
        "Enter HashiCorp Vault Address (e.g., http://127.0.0.1:8200): ",
        raw.get("vault_address") or DEFAULT_VAULT_ADDRESS,
    )
    raw["vault_token"] = prompter.ask_secret("Enter HashiCorp Vault Token: ") or raw.get("vault_token")
    raw["azure_key_vault_url"] = prompter.ask(
        "Enter Azure Key Vault URL (e.g., https://your-key-vault-name.vault.azure.net/): ",
        raw.get("azure_key_vault_url") or "",
    )
    raw["azure_tenant_id"] = prompter.ask("Enter Azure Tenant ID: ", raw.get("azure_tenant_id") or "")
    raw["azure_client_id"] = prompter.ask("Enter Azure Client ID: ", raw.get("azure_client_id") or "")
    raw["azure_client_secret"] = (
        prompter.ask_secret("Enter Azure Client Secret: ") or raw.get("azure_client_secret")
    )
    raw["schedule_time"] = prompter.ask(
        "Enter time (HH:mm) to redo the secret transfer (or leave empty to run once): ",
        raw.get("schedule_time") or "",
    )


def _as_float(raw: Dict[str, Any], key: str, default: float) -> float:
    value = raw.get(key)
    if value is None or value == "":
        return default
    try:
        timeout = float(value)
    except (TypeError, ValueError):
        raise ConfigError(f"'{key}' must be a number of seconds, got: {value!r}")
    if timeout <= 0:
        raise ConfigError(f"'{key}' must be positive, got: {value!r}")
    return timeout


def _str(raw: Dict[str, Any], key: str, default: str = "") -> str:
    value = raw.get(key)
    return default if value is None else str(value)


def build_settings(raw: Dict[str, Any]) -> SyncSettings:
    """
    Normalize flat raw values into SyncSettings.

    Addresses are normalized but not validated here: a bad address aborts
    the sync pass instead of the process.
    """
    schedule_value = raw.get("schedule_time")
    schedule_time = parse_schedule_time(schedule_value)
    if schedule_time is None and schedule_value not in (None, ""):
        logger.warning(f"Ignoring unparseable schedule time {schedule_value!r}, running once")

    vault = VaultSettings(
        address=normalize_vault_address(_str(raw, "vault_address", DEFAULT_VAULT_ADDRESS)),
        token=_str(raw, "vault_token"),
        mount_point=_str(raw, "vault_mount_point", "secret").strip("/") or "secret",
        timeout=_as_float(raw, "vault_timeout", 30.0),
        strict_probe=parse_bool(raw.get("vault_strict_probe")),
    )
    azure = AzureSettings(
        url=normalize_azure_url(_str(raw, "azure_key_vault_url")),
        tenant_id=_str(raw, "azure_tenant_id"),
        client_id=_str(raw, "azure_client_id"),
        client_secret=_str(raw, "azure_client_secret"),
        timeout=_as_float(raw, "azure_timeout", 30.0),
    )
    return SyncSettings(
        vault=vault,
        azure=azure,
        overwrite=parse_bool(raw.get("overwrite")),
        schedule_time=schedule_time,
    )


def load_settings(
    config_path: Optional[str] = None,
    prompter: Optional[Prompter] = None,
    overrides: Optional[Dict[str, Any]] = None,
) -> SyncSettings:
    """
    Load settings from all sources.

    Args:
        config_path: Explicit YAML config path (optional)
        prompter: When given, every setting is asked for interactively
        overrides: Flat setting values that win over every other source

    Returns:
        Normalized SyncSettings

    Raises:
        ConfigError: If the config file is invalid or a value cannot be parsed
    """
    raw: Dict[str, Any] = {}

    resolved_path = _get_config_path(config_path)
    if resolved_path:
        raw.update(_read_config_file(resolved_path))

    raw.update(_read_environment())

    if prompter is not None:
        _prompt_for_settings(raw, prompter)

    if overrides:
        raw.update({key: value for key, value in overrides.items() if value is not None})

    return build_settings(raw)
