"""Rich-based terminal output utilities for envvault."""

from __future__ import annotations

from rich.console import Console

from envvault import SCRIPT_NAME, __version__

console = Console()
err_console = Console(stderr=True)


def print_error(message: str) -> None:
    """Print an error message to stderr."""
    err_console.print(f"[bold red]Error:[/bold red] {message}")


def print_success(message: str) -> None:
    """Print a success message."""
    console.print(f"[bold green]✓[/bold green] {message}")


def print_warning(message: str) -> None:
    """Print a warning message."""
    console.print(f"[bold yellow]Warning:[/bold yellow] {message}")


def print_info(message: str) -> None:
    """Print an informational message."""
    console.print(f"[blue]ℹ[/blue] {message}")


def print_header(message: str) -> None:
    """Print a section header."""
    console.print()
    console.print(f"[bold cyan]=== {message} ===[/bold cyan]")
    console.print()


def print_step(message: str) -> None:
    """Print a progress step."""
    console.print(f"[bold magenta]→[/bold magenta] {message}")


def show_version() -> None:
    """Print the program name and version."""
    console.print(f"{SCRIPT_NAME} {__version__}")


__all__ = [
    "console",
    "err_console",
    "print_error",
    "print_success",
    "print_warning",
    "print_info",
    "print_header",
    "print_step",
    "show_version",
]
