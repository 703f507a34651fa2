"""Status command."""

import asyncio

from rich.table import Table

from . import cli
from .shared import console, load_settings_or_exit


@cli.command()
def status():
    """Show Alertbot configuration and Alertmanager status."""
    settings = load_settings_or_exit()

    async def _status():
        from alertbot import __version__
        from alertbot.alertmanager import AlertmanagerClient, since
        from alertbot.errors import BackendUnavailable

        table = Table(title=f"Alertbot Status v{__version__}", show_header=False, padding=(0, 2))
        table.add_column("Key", style="bold")
        table.add_column("Value")

        table.add_row("Revision", settings.revision)
        table.add_row("Admins", ", ".join(str(i) for i in sorted(settings.admin_ids)))
        table.add_row("Environments", ", ".join(settings.environment_universe))
        table.add_row("Projects", ", ".join(settings.project_universe))
        table.add_row("Store", settings.store)
        table.add_row("Webhook", f"http://{settings.listen_host}:{settings.listen_port}/")
        table.add_row("Telegram token", "[green]set[/green]" if settings.telegram_token else "[red]missing[/red]")

        try:
            am = await AlertmanagerClient(settings.alertmanager_url).get_status()
            table.add_row("Alertmanager", f"[green]{am.version}[/green] (up {since(am.uptime)})")
        except BackendUnavailable as e:
            table.add_row("Alertmanager", f"[red]Error: {e}[/red]")

        console.print(table)

    asyncio.run(_status())
