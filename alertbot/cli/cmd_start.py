"""Start command."""

import asyncio
import logging

import click

from . import cli
from .shared import console, load_settings_or_exit


@cli.command()
@click.option("--debug", is_flag=True, help="Enable debug logging")
def start(debug):
    """Start Alertbot."""
    from alertbot.main import run, setup_logging

    settings = load_settings_or_exit()
    setup_logging(settings.log_file)
    if debug:
        logging.getLogger("alertbot").setLevel(logging.DEBUG)

    console.print("[bold blue]Starting Alertbot...[/bold blue]")
    try:
        asyncio.run(run(settings))
    except KeyboardInterrupt:
        pass
