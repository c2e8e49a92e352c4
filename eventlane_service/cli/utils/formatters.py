"""Output formatting helpers for CLI commands."""

from datetime import datetime

import click


def success(message: str) -> None:
    """Print a success message in green."""
    click.secho(f"✓ {message}", fg="green")


def error(message: str) -> None:
    """Print an error message in red to stderr."""
    click.secho(f"✗ {message}", fg="red", err=True)


def warning(message: str) -> None:
    """Print a warning message in yellow."""
    click.secho(f"⚠ {message}", fg="yellow")


def info(message: str) -> None:
    """Print an info message in blue."""
    click.secho(f"ℹ {message}", fg="blue")


def header(message: str) -> None:
    click.secho(f"\n{message}", fg="cyan", bold=True)


def section(title: str) -> None:
    """Print a titled divider."""
    click.secho(f"\n{'-' * 48}", dim=True)
    click.secho(title, bold=True)
    click.secho("-" * 48, dim=True)


def field(label: str, value: object, indent: int = 2) -> None:
    """Print one ``label: value`` line, rendering datetimes and ``None``."""
    if value is None:
        rendered = "-"
    elif isinstance(value, datetime):
        rendered = value.strftime("%Y-%m-%d %H:%M:%S %Z").strip()
    else:
        rendered = str(value)
    click.echo(f"{' ' * indent}{label}: {rendered}")


def status_label(status: str) -> str:
    """Colour a delivery status for terminal output."""
    colours = {"success": "green", "failed": "red", "retrying": "yellow"}
    return click.style(status, fg=colours.get(status, "blue"))
