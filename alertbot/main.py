"""Alertbot — Main entry point."""

import asyncio
import logging
from datetime import datetime, timezone
from typing import Optional

import uvicorn

from .alertmanager import AlertmanagerClient
from .commands.dispatcher import CommandDispatcher
from .communication.telegram import TelegramEndpoint
from .config import AlertbotSettings, load_settings
from .db.connection import close_db, init_db
from .db.kv import KVStore, MemoryKV, PostgresKV
from .relay import NotificationRelay
from .renderer import TemplateRenderer
from .subscriptions.store import SubscriptionStore
from .webhook import create_app

_log_format = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"

logger = logging.getLogger("alertbot")


def setup_logging(log_file: Optional[str] = None, level: int = logging.INFO):
    handlers = [logging.StreamHandler()]  # stderr (console)
    if log_file:
        handlers.append(logging.FileHandler(log_file, encoding="utf-8"))
    logging.basicConfig(level=level, format=_log_format, handlers=handlers)
    # httpx logs every Telegram poll at INFO
    logging.getLogger("httpx").setLevel(logging.WARNING)


async def create_store(settings: AlertbotSettings) -> KVStore:
    """Create the configured key-value backend. Failures here are fatal."""
    if settings.store == "memory":
        return MemoryKV()
    await init_db(settings.database_url)
    kv = PostgresKV()
    await kv.ensure_schema()
    return kv


async def run(settings: Optional[AlertbotSettings] = None):
    """Main run loop."""
    settings = settings or load_settings()
    start_time = datetime.now(timezone.utc)

    if not settings.telegram_token:
        raise ValueError("No Telegram bot token configured. Set ALERTBOT_TELEGRAM_TOKEN.")

    kv = await create_store(settings)
    store = SubscriptionStore(kv)
    endpoint = TelegramEndpoint(settings.telegram_token, settings.send_timeout, settings.queue_size)
    webhooks: asyncio.Queue = asyncio.Queue(maxsize=settings.queue_size)
    stop = asyncio.Event()
    tasks = []
    server = None

    try:
        await endpoint.start()

        renderer = TemplateRenderer(settings.template_dirs)
        dispatcher = CommandDispatcher(
            store=store,
            endpoint=endpoint,
            alertmanager=AlertmanagerClient(settings.alertmanager_url),
            render=renderer.render,
            admins=settings.admin_ids,
            environments=settings.environment_universe,
            projects=settings.project_universe,
            revision=settings.revision,
            start_time=start_time,
        )
        relay = NotificationRelay(store, endpoint, renderer.render, filter_muted=settings.filter_muted)

        server = uvicorn.Server(uvicorn.Config(
            create_app(webhooks),
            host=settings.listen_host,
            port=settings.listen_port,
            log_level="warning",
        ))

        tasks = [
            asyncio.create_task(dispatcher.run(endpoint.messages, stop), name="dispatcher"),
            asyncio.create_task(relay.run(webhooks, stop), name="relay"),
            asyncio.create_task(server.serve(), name="webhook-server"),
        ]
        logger.info(
            f"Alertbot is running. Webhooks on http://{settings.listen_host}:{settings.listen_port}/ "
            f"(environments: {settings.environment_universe}, projects: {settings.project_universe})"
        )

        # uvicorn exits on SIGINT/SIGTERM; any task ending stops the others
        done, _ = await asyncio.wait(tasks, return_when=asyncio.FIRST_COMPLETED)
        for task in done:
            if not task.cancelled() and task.exception() is not None:
                logger.critical(f"Task {task.get_name()} failed: {task.exception()}", exc_info=task.exception())

    finally:
        stop.set()
        if server:
            server.should_exit = True
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
        await endpoint.stop()
        await close_db()
        logger.info("Alertbot stopped.")


def main():
    """Entry point."""
    settings = load_settings()
    setup_logging(settings.log_file)
    asyncio.run(run(settings))


if __name__ == "__main__":
    main()
