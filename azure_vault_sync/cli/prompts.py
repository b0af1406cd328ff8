"""Interactive prompts for collecting settings at startup."""
import getpass
import sys


class ConsolePrompter:
    """Reads plain values with input() and credentials without echo."""

    def ask(self, message: str, default: str = "") -> str:
        value = input(message).strip()
        return value or default

    def ask_secret(self, message: str) -> str:
        return getpass.getpass(message)


def is_interactive() -> bool:
    """True when both stdin and stdout are attached to a terminal."""
    return sys.stdin.isatty() and sys.stdout.isatty()
