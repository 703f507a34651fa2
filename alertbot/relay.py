"""Notification relay: fans Alertmanager webhook events out to subscribers.

Each event is rendered and truncated once, then sent sequentially to every
subscribed chat. A failed send is logged and delivery continues with the
next chat. There are no retries.
"""

import asyncio
import logging
from typing import Callable

from .communication.outbound import truncate_message
from .config import OTHER_CATEGORY
from .errors import AlertbotError
from .subscriptions.models import SubscriptionRecord
from .subscriptions.store import SubscriptionStore
from .worker import next_item

logger = logging.getLogger("alertbot.relay")


def wants_event(record: SubscriptionRecord, event: dict,
                environment_label: str = "environment", project_label: str = "project") -> bool:
    """Whether at least one alert of event is neither environment- nor project-muted.

    Label values outside the record's universes count as 'other'.
    """
    alerts = event.get("alerts") or []
    if not alerts:
        return True
    environments = record.environments
    projects = record.projects
    for alert in alerts:
        labels = alert.get("labels") or {}
        env = labels.get(environment_label) or OTHER_CATEGORY
        pr = labels.get(project_label) or OTHER_CATEGORY
        if env not in environments:
            env = OTHER_CATEGORY
        if pr not in projects:
            pr = OTHER_CATEGORY
        if env not in record.muted_environments and pr not in record.muted_projects:
            return True
    return False


class NotificationRelay:
    """Consumes webhook events and sends them to every subscribed chat.

    With ``filter_muted`` enabled, chats for which every alert of an event is
    muted are skipped. By default every subscriber gets every event.
    """

    def __init__(
        self,
        store: SubscriptionStore,
        endpoint,
        render: Callable[[dict], str],
        filter_muted: bool = False,
    ):
        self.store = store
        self.endpoint = endpoint
        self.render = render
        self.filter_muted = filter_muted

    async def run(self, events: asyncio.Queue, stop: asyncio.Event):
        """Relay events one at a time until stop is set."""
        logger.info("Notification relay started.")
        while True:
            event = await next_item(events, stop)
            if event is None:
                break
            try:
                await self.handle(event)
            except Exception as e:
                logger.error(f"Unexpected error relaying webhook event: {e}", exc_info=True)
        logger.info("Notification relay stopped.")

    async def handle(self, event: dict) -> int:
        """Deliver one event. Returns the number of chats it was sent to."""
        try:
            records = await self.store.list()
        except AlertbotError as e:
            logger.error(f"Failed to get chat list from store: {e}")
            return 0

        if self.filter_muted:
            records = [r for r in records if wants_event(r, event)]

        if not records:
            logger.debug("No subscribers for webhook event, skipping")
            return 0

        try:
            out = self.render(event)
        except Exception as e:
            logger.warning(f"Failed to template alerts: {e}")
            return 0
        text = truncate_message(out)

        sent = 0
        for record in records:
            try:
                await self.endpoint.send_message(record.chat, text, parse_mode="HTML")
                sent += 1
            except AlertbotError as e:
                logger.warning(f"Failed to send message to subscribed chat {record.chat.id}: {e}")

        logger.info(
            f"Relayed {event.get('status', '?')} event with {len(event.get('alerts') or [])} alert(s) "
            f"to {sent}/{len(records)} chat(s)"
        )
        return sent
