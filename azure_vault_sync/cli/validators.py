"""Input validation for CLI arguments."""
import sys

from azure_vault_sync.sync.domains.config_loader import parse_schedule_time


def validate_schedule_time(value: str) -> None:
    """
    Validate a --schedule argument.

    An empty value is allowed and means "run once". Unlike a schedule read
    from config or the environment, a malformed value given on the command
    line is a usage error.

    Raises:
        SystemExit with code 2 if validation fails
    """
    if value is None or value.strip() == "":
        return

    if parse_schedule_time(value) is None:
        print(f"Error: Invalid schedule time '{value}'", file=sys.stderr)
        print("\nExpected a daily time of day: HH:mm or HH:mm:ss (24-hour clock)", file=sys.stderr)
        print("\nExamples:", file=sys.stderr)
        print("  ✓ 02:30", file=sys.stderr)
        print("  ✓ 23:15:00", file=sys.stderr)
        print("  ✗ 2:30pm", file=sys.stderr)
        print("  ✗ 25:00", file=sys.stderr)
        sys.exit(2)


def mask(value: str) -> str:
    """Mask a credential for display, keeping only its length visible."""
    if not value:
        return "(not set)"
    return "*" * min(len(value), 8)
