"""Operator-facing console output."""

from datetime import datetime


def get_timestamp() -> str:
    """Return formatted timestamp for filenames (YYYYMMDD_HHMMSS)."""
    return datetime.now().strftime("%Y%m%d_%H%M%S")


def print_banner(title: str, char: str = "=", width: int = 60) -> None:
    print("\n" + char * width)
    print(title)
    print(char * width)


def print_section(title: str) -> None:
    """Print a visual section header for console output."""
    print(f"\n  --- {title} ---")
