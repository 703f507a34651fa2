"""Legacy category membership lists (category -> chats).

Older deployments stored one list of chats per environment and per project.
The record model in ``store.py`` is canonical; this index is kept so those
lists stay readable and can be migrated. Nothing in the relay path uses it.
"""

import logging

from ..db.kv import KVStore
from ..errors import NotFound
from .models import ChatIdentity, decode_chats, encode_chats

logger = logging.getLogger("alertbot.store")

ENVIRONMENTS_DIRECTORY = "telegram/environments"
PROJECTS_DIRECTORY = "telegram/projects"


def environment_key(name: str) -> str:
    return f"{ENVIRONMENTS_DIRECTORY}/{name}"


def project_key(name: str) -> str:
    return f"{PROJECTS_DIRECTORY}/{name}"


class MembershipIndex:
    """Ordered, de-duplicated chat lists keyed by category."""

    def __init__(self, kv: KVStore):
        self.kv = kv

    async def get_chats_for_category(self, category_key: str) -> list[ChatIdentity]:
        """Chats in insertion order; an unknown category yields []."""
        try:
            raw = await self.kv.get(category_key)
        except NotFound:
            return []
        return decode_chats(raw)

    async def add_user_to_category(self, chat: ChatIdentity, category_key: str):
        chats = await self.get_chats_for_category(category_key)
        # Dedup is by id only; a changed display name does not add an entry
        if any(c.id == chat.id for c in chats):
            return
        chats.append(chat)
        await self.kv.put(category_key, encode_chats(chats))
        logger.debug(f"Chat {chat.id} added to {category_key}")

    async def remove_user_from_category(self, chat: ChatIdentity, category_key: str):
        try:
            raw = await self.kv.get(category_key)
        except NotFound:
            return
        remaining = [c for c in decode_chats(raw) if c.id != chat.id]
        await self.kv.put(category_key, encode_chats(remaining))
        logger.debug(f"Chat {chat.id} removed from {category_key}")
