"""Alertbot CLI — command line interface."""

import click
from alertbot import __version__
from .shared import console


@click.group(invoke_without_command=True)
@click.version_option(version=__version__, prog_name="alertbot")
@click.pass_context
def cli(ctx):
    """Alertbot — Alertmanager notifications for Telegram"""
    if ctx.invoked_subcommand is None:
        _show_help()


def _show_help():
    """Show all available commands."""
    console.print(f"[bold]Alertbot v{__version__}[/bold] — Alertmanager notifications for Telegram\n")

    commands = [
        ("start", "Start the bot (Telegram polling + webhook receiver)"),
        ("status", "Show configuration and Alertmanager status"),
        ("chats", "List subscribed chats and their mutes"),
    ]
    for name, desc in commands:
        console.print(f"    [bold]alertbot {name:10s}[/bold] {desc}")
    console.print()
    console.print("[dim]Run 'alertbot <command> --help' for details on a specific command.[/dim]")


# Import all command modules (registers commands onto cli group)
from . import cmd_start  # noqa: E402, F401
from . import cmd_status  # noqa: E402, F401
from . import cmd_chats  # noqa: E402, F401


def main():
    """CLI entry point."""
    cli()
