"""Shared console, colours and message helpers for CLI commands."""

from rich.console import Console

from ...models import SyncMode

# Shared console instance for consistent CLI output formatting
console = Console()

COLOR_SUCCESS = "green"
COLOR_ERROR = "red"
COLOR_WARNING = "yellow"
COLOR_INFO = "cyan"

SYMBOL_SUCCESS = "✓"
SYMBOL_ERROR = "✗"

PREFIX_SUCCESS = f"[{COLOR_SUCCESS}]{SYMBOL_SUCCESS}[/{COLOR_SUCCESS}]"
PREFIX_ERROR = f"[{COLOR_ERROR}]{SYMBOL_ERROR}[/{COLOR_ERROR}]"

MODE_BANNERS = {
    SyncMode.DRY_RUN: f"[{COLOR_WARNING}]Running in DRY RUN mode - nothing will be written to Trakt[/{COLOR_WARNING}]",
    SyncMode.ADD_ONLY: f"[{COLOR_INFO}]Running in ADD-ONLY mode - nothing will be removed from Trakt[/{COLOR_INFO}]",
}


def print_mode_banner(mode: SyncMode) -> None:
    """Print a banner for modes that hold back writes."""
    banner = MODE_BANNERS.get(mode)
    if banner:
        console.print(f"{banner}\n")


def print_connection_test(service: str) -> None:
    """
    Print a sign in progress message.

    Args:
        service: Name of service being signed in to
    """
    console.print(f"[{COLOR_INFO}]Signing in to {service}…[/{COLOR_INFO}]")


def print_connection_success(service: str, details: str = "") -> None:
    """
    Print a sign in success message.

    Args:
        service: Name of service
        details: Optional additional details
    """
    message = f"{PREFIX_SUCCESS} Signed in to {service}"
    if details:
        message += f" ({details})"
    console.print(message)


def print_connection_failure(service: str, hint: str = "") -> None:
    """
    Print a sign in failure message.

    Args:
        service: Name of service
        hint: Optional hint for resolution
    """
    console.print(f"{PREFIX_ERROR} Failed to sign in to {service}")
    if hint:
        console.print(f"  [dim]{hint}[/dim]")


__all__ = [
    "console",
    "COLOR_SUCCESS",
    "COLOR_ERROR",
    "COLOR_WARNING",
    "COLOR_INFO",
    "PREFIX_SUCCESS",
    "PREFIX_ERROR",
    "print_mode_banner",
    "print_connection_test",
    "print_connection_success",
    "print_connection_failure",
]
