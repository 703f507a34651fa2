"""Subscription store: one record per chat in the key-value store.

Every mutation is a load-modify-store sequence without compare-and-swap.
Two concurrent mutations of the same chat can lose an update; callers must
serialize mutations (the command dispatcher processes one message at a time).
"""

import logging
from typing import Iterable

from ..db.kv import KVStore
from ..errors import NotFound
from .models import ChatIdentity, SubscriptionRecord

logger = logging.getLogger("alertbot.store")

CHATS_DIRECTORY = "telegram/chats"


def chat_key(chat: ChatIdentity) -> str:
    return f"{CHATS_DIRECTORY}/{chat.id}"


class SubscriptionStore:
    """Durable mapping from chat to SubscriptionRecord."""

    def __init__(self, kv: KVStore):
        self.kv = kv

    async def _load(self, chat: ChatIdentity) -> SubscriptionRecord:
        raw = await self.kv.get(chat_key(chat))
        return SubscriptionRecord.from_json(raw)

    async def _save(self, record: SubscriptionRecord):
        await self.kv.put(chat_key(record.chat), record.to_json())

    async def add_chat(self, chat: ChatIdentity, all_environments: Iterable[str], all_projects: Iterable[str]):
        """Create or overwrite the record for chat, alerting on everything."""
        record = SubscriptionRecord.new(chat, all_environments, all_projects)
        await self._save(record)
        logger.info(f"Chat {chat.id} ({chat.display_name}) subscribed")

    async def get_chat_info(self, chat: ChatIdentity) -> SubscriptionRecord:
        """Raises NotFound if the chat has no record."""
        return await self._load(chat)

    async def is_subscribed(self, chat: ChatIdentity) -> bool:
        try:
            await self.kv.get(chat_key(chat))
        except NotFound:
            return False
        return True

    async def remove_chat(self, chat: ChatIdentity):
        await self.kv.delete(chat_key(chat))
        logger.info(f"Chat {chat.id} ({chat.display_name}) unsubscribed")

    async def mute_environments(self, chat: ChatIdentity, to_mute: Iterable[str], all_environments: Iterable[str]):
        record = await self._load(chat)
        record.mute_environments(to_mute, all_environments)
        await self._save(record)

    async def unmute_environment(self, chat: ChatIdentity, name: str, all_environments: Iterable[str]):
        record = await self._load(chat)
        record.unmute_environment(name, all_environments)
        await self._save(record)

    async def mute_projects(self, chat: ChatIdentity, to_mute: Iterable[str], all_projects: Iterable[str]):
        record = await self._load(chat)
        record.mute_projects(to_mute, all_projects)
        await self._save(record)

    async def unmute_project(self, chat: ChatIdentity, name: str, all_projects: Iterable[str]):
        record = await self._load(chat)
        record.unmute_project(name, all_projects)
        await self._save(record)

    async def list(self) -> list[SubscriptionRecord]:
        """All records in store iteration order.

        The order depends on the backend; use it for display only.
        """
        pairs = await self.kv.list(CHATS_DIRECTORY)
        return [SubscriptionRecord.from_json(value) for _, value in pairs]

    async def muted_environments(self, chat: ChatIdentity) -> set[str]:
        return (await self._load(chat)).muted_environments

    async def muted_projects(self, chat: ChatIdentity) -> set[str]:
        return (await self._load(chat)).muted_projects
