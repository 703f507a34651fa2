"""Chats command: inspect subscriptions in the store."""

import asyncio

from rich.table import Table

from . import cli
from .shared import console, load_settings_or_exit


def _join(values) -> str:
    return ", ".join(sorted(values)) or "[dim]-[/dim]"


@cli.command()
def chats():
    """List subscribed chats and their mutes."""
    settings = load_settings_or_exit()
    if settings.store == "memory":
        console.print("[yellow]The in-memory store keeps no subscriptions between runs.[/yellow]")
        return

    async def _chats():
        from alertbot.db.connection import close_db
        from alertbot.main import create_store
        from alertbot.subscriptions.store import SubscriptionStore

        try:
            store = SubscriptionStore(await create_store(settings))
            records = await store.list()
        except Exception as e:
            console.print(f"[red]Cannot read subscriptions: {e}[/red]")
            return
        finally:
            await close_db()

        table = Table(title=f"Subscribed chats ({len(records)})")
        table.add_column("Chat", style="bold")
        table.add_column("ID")
        table.add_column("Alerting environments")
        table.add_column("Muted environments", style="yellow")
        table.add_column("Alerting projects")
        table.add_column("Muted projects", style="yellow")

        for record in records:
            table.add_row(
                f"@{record.chat.display_name}",
                str(record.chat.id),
                _join(record.alert_environments),
                _join(record.muted_environments),
                _join(record.alert_projects),
                _join(record.muted_projects),
            )
        console.print(table)

    asyncio.run(_chats())
