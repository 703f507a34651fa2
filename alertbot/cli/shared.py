"""Shared utilities for Alertbot CLI commands."""

import click
from rich.console import Console

console = Console()


def load_settings_or_exit():
    """Load settings, turning configuration errors into a clean CLI error."""
    from alertbot.config import load_settings

    try:
        return load_settings()
    except ValueError as e:
        raise click.ClickException(str(e))
