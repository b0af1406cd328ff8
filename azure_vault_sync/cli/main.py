"""CLI entrypoint for azure-vault-sync."""
import sys
import argparse
import logging
import signal
import threading
from pathlib import Path

from .prompts import ConsolePrompter, is_interactive
from .validators import mask, validate_schedule_time

VERSION = "0.1.0"

# Configure logging to stderr; pass output is one line per secret
logging.basicConfig(
    level=logging.INFO,
    format="%(message)s",
    stream=sys.stderr
)
logger = logging.getLogger(__name__)


def _set_verbosity(args):
    root = logging.getLogger()
    if getattr(args, "verbose", False):
        root.setLevel(logging.DEBUG)
        for handler in root.handlers:
            handler.setFormatter(logging.Formatter("%(asctime)s %(levelname)s %(name)s: %(message)s"))
    elif getattr(args, "quiet", False):
        root.setLevel(logging.WARNING)
    else:
        root.setLevel(logging.INFO)
        # The Azure SDK logs every HTTP request at INFO
        logging.getLogger("azure").setLevel(logging.WARNING)


def _install_signal_handlers(stop_event):
    """Turn SIGINT/SIGTERM into a cooperative stop."""
    def _handle(signum, frame):
        logger.warning(f"Received {signal.Signals(signum).name}, stopping after the current secret...")
        stop_event.set()

    signal.signal(signal.SIGINT, _handle)
    signal.signal(signal.SIGTERM, _handle)


def _load(args):
    """Load settings for run/check-config, exiting 1 on configuration errors."""
    from azure_vault_sync.sync.domains.config_loader import ConfigError, load_settings

    prompter = None
    if getattr(args, "interactive", False):
        if not is_interactive():
            print("Error: --interactive requires a terminal", file=sys.stderr)
            sys.exit(2)
        prompter = ConsolePrompter()

    overrides = {}
    if getattr(args, "overwrite", False):
        overrides["overwrite"] = True
    if getattr(args, "schedule", None) is not None:
        overrides["schedule_time"] = args.schedule

    try:
        return load_settings(config_path=args.config, prompter=prompter, overrides=overrides)
    except ConfigError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)


def cmd_run(args):
    """Transfer secrets once, or daily at the scheduled time."""
    from azure_vault_sync.sync.workflows.scheduler import Scheduler
    from azure_vault_sync.sync.workflows.sync_engine import SyncEngine

    if args.schedule is not None:
        validate_schedule_time(args.schedule)

    settings = _load(args)

    stop_event = threading.Event()
    _install_signal_handlers(stop_event)

    engine = SyncEngine()
    scheduler = Scheduler(
        lambda: engine.run_once(settings, cancel_event=stop_event),
        time_of_day=settings.schedule_time,
    )
    summary = scheduler.run(stop_event)

    if summary is None:
        sys.exit(0)

    print(summary.describe())
    # Failed secrets do not change the exit code; only an aborted pass does
    sys.exit(0 if summary.ok else 1)


def cmd_check_config(args):
    """Load settings and show them with credentials masked."""
    from azure_vault_sync.sync.domains.config_loader import (
        ConfigError,
        validate_azure_credentials,
        validate_azure_url,
        validate_vault_address,
    )

    settings = _load(args)
    schedule = settings.schedule_time.strftime("%H:%M:%S") if settings.schedule_time else "(run once)"

    print("=== azure-vault-sync configuration ===\n")
    print(f"Overwrite:            {settings.overwrite}")
    print(f"Schedule:             {schedule}")
    print(f"Vault address:        {settings.vault.address}")
    print(f"Vault token:          {mask(settings.vault.token)}")
    print(f"Vault mount point:    {settings.vault.mount_point}")
    print(f"Vault strict probe:   {settings.vault.strict_probe}")
    print(f"Azure Key Vault URL:  {settings.azure.url or '(not set)'}")
    print(f"Azure tenant ID:      {settings.azure.tenant_id or '(not set)'}")
    print(f"Azure client ID:      {settings.azure.client_id or '(not set)'}")
    print(f"Azure client secret:  {mask(settings.azure.client_secret)}")

    errors = []
    for check, value in (
        (validate_vault_address, settings.vault.address),
        (validate_azure_url, settings.azure.url),
        (validate_azure_credentials, settings.azure),
    ):
        try:
            check(value)
        except ConfigError as e:
            errors.append(str(e))

    if errors:
        print("")
        for error in errors:
            print(f"Error: {error}", file=sys.stderr)
        sys.exit(1)

    print("\nSuccess: configuration is valid")


def cmd_version(args):
    """Show version information."""
    print(f"azure-vault-sync {VERSION}")


def cmd_config_set_path(args):
    """Set config file path preference."""
    from azure_vault_sync.sync.domains.preferences import set_preference

    config_path = Path(args.path).resolve()

    if not config_path.exists():
        print(f"Error: Config file does not exist: {config_path}", file=sys.stderr)
        sys.exit(1)

    if not config_path.is_file():
        print(f"Error: Path is not a file: {config_path}", file=sys.stderr)
        sys.exit(1)

    set_preference("config_path", str(config_path))
    print(f"Config path set to: {config_path}")


def cmd_config_show(args):
    """Show current config file path."""
    from azure_vault_sync.sync.domains.config_loader import default_config_path
    from azure_vault_sync.sync.domains.preferences import get_preference

    config_path_pref = get_preference("config_path")

    if config_path_pref:
        config_path = Path(config_path_pref)
        suffix = "" if config_path.exists() else " (file not found)"
        print(f"Config path: {config_path}{suffix}")
        print("Source: preference")
        return

    default_config = default_config_path()
    if default_config.exists():
        print(f"Config path: {default_config}")
        print("Source: default")
    else:
        print(f"Config path: {default_config}")
        print("Source: default (file not found, environment variables only)")


def cmd_config_clear(args):
    """Clear config path preference."""
    from azure_vault_sync.sync.domains.config_loader import default_config_path
    from azure_vault_sync.sync.domains.preferences import clear_preference

    clear_preference("config_path")
    print(f"Config path preference cleared. Will use default: {default_config_path()}")


def _add_settings_arguments(parser):
    parser.add_argument(
        "--config",
        help="Path to YAML config file (default: preference, then ~/.config/azure-vault-sync/config.yml)"
    )
    parser.add_argument(
        "-i", "--interactive",
        action="store_true",
        help="Prompt for every setting; the Vault token and client secret are read without echo"
    )


def main():
    """Main CLI entrypoint.

    Exit codes:
        0 - Success (individual secrets may still have failed)
        1 - Runtime errors (configuration error, aborted pass)
        2 - Usage errors (invalid arguments, invalid schedule format, etc.)
    """
    parser = argparse.ArgumentParser(
        prog="vaultsync",
        description="azure-vault-sync - migrate secrets from Azure Key Vault to HashiCorp Vault (KV v2)",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Exit codes:
  0 - Success (failed secrets are reported but do not fail the run)
  1 - Runtime error (configuration error, aborted pass)
  2 - Usage error (invalid arguments, invalid schedule format, etc.)

Environment variables:
  VAULT_ADDR, VAULT_TOKEN                 - HashiCorp Vault address and token
  AZURE_KEY_VAULT_URL                     - Azure Key Vault URL
  AZURE_TENANT_ID, AZURE_CLIENT_ID,
  AZURE_CLIENT_SECRET                     - Azure service principal
  OVERWRITE                               - true/false (default: false)
  SCHEDULE_TIME                           - HH:mm daily run time (empty: run once)

Configuration:
  Default location: ~/.config/azure-vault-sync/config.yml
  Custom path: Set with 'vaultsync config set-path <path>'
        """
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # run command
    run_parser = subparsers.add_parser(
        "run",
        help="Transfer secrets",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        description="""
Copy every secret from Azure Key Vault to HashiCorp Vault.

Existing secrets in Vault are skipped unless overwrite is enabled. With a
schedule time, the transfer repeats daily until interrupted (SIGINT/SIGTERM).
        """
    )
    _add_settings_arguments(run_parser)
    run_parser.add_argument(
        "--overwrite",
        action="store_true",
        help="Replace secrets that already exist in Vault"
    )
    run_parser.add_argument(
        "--schedule",
        metavar="HH:mm",
        help="Run daily at this time instead of once (empty string: run once)"
    )
    verbosity = run_parser.add_mutually_exclusive_group()
    verbosity.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    verbosity.add_argument("-q", "--quiet", action="store_true", help="Only log warnings and errors")

    # check-config command
    check_parser = subparsers.add_parser(
        "check-config",
        help="Validate and show settings",
        description="Load settings from all sources and show them with credentials masked"
    )
    _add_settings_arguments(check_parser)

    # version command
    _version_parser = subparsers.add_parser(
        "version",
        help="Show version information",
        description="Display the current version of azure-vault-sync"
    )

    # config command
    config_parser = subparsers.add_parser(
        "config",
        help="Configuration file management",
        description="Manage the azure-vault-sync config file location"
    )
    config_subparsers = config_parser.add_subparsers(dest="config_command")

    config_set_path_parser = config_subparsers.add_parser(
        "set-path",
        help="Set config file path",
        description="Store the config file path in ~/.config/azure-vault-sync/preferences.json"
    )
    config_set_path_parser.add_argument(
        "path",
        help="Path to config file"
    )

    _config_show_parser = config_subparsers.add_parser(
        "show",
        help="Show current config path",
        description="Display the config file path in use and its source (preference or default)"
    )

    _config_clear_parser = config_subparsers.add_parser(
        "clear",
        help="Clear config path preference",
        description="Remove the config path preference and fall back to the default location"
    )

    args = parser.parse_args()

    if not args.command:
        parser.print_help()
        sys.exit(2)

    _set_verbosity(args)

    try:
        if args.command == "run":
            cmd_run(args)
        elif args.command == "check-config":
            cmd_check_config(args)
        elif args.command == "version":
            cmd_version(args)
        elif args.command == "config":
            if args.config_command == "set-path":
                cmd_config_set_path(args)
            elif args.config_command == "show":
                cmd_config_show(args)
            elif args.config_command == "clear":
                cmd_config_clear(args)
            else:
                config_parser.print_help()
                sys.exit(2)
        else:
            parser.print_help()
            sys.exit(2)
    except KeyboardInterrupt:
        print("\nInterrupted", file=sys.stderr)
        sys.exit(1)
    except Exception as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
