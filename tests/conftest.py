"""Pytest configuration and shared fixtures."""

import re

import pytest
from unittest.mock import AsyncMock, MagicMock

from alertbot.communication.telegram import InboundMessage
from alertbot.db.kv import MemoryKV
from alertbot.subscriptions.models import ChatIdentity
from alertbot.subscriptions.store import SubscriptionStore

ADMIN_ID = 1001
ENVIRONMENTS = ["env1", "env2", "env3", "other"]
PROJECTS = ["pr1", "pr2", "other"]


@pytest.fixture
def kv():
    """Fresh in-memory key-value store."""
    return MemoryKV()


@pytest.fixture
def store(kv):
    return SubscriptionStore(kv)


@pytest.fixture
def endpoint():
    """Messaging endpoint double recording every send."""
    ep = MagicMock()
    ep.username = "AlertBot"
    ep.send_message = AsyncMock()
    ep.send_typing = AsyncMock()
    return ep


@pytest.fixture
def make_message():
    """Factory for inbound messages from the admin in a private chat."""
    def _make(text: str, chat_id: int = 42, sender_id: int = ADMIN_ID, is_service: bool = False, **chat_kwargs):
        chat = ChatIdentity(id=chat_id, username=chat_kwargs.pop("username", "alice"), **chat_kwargs)
        return InboundMessage(
            chat=chat,
            sender_id=sender_id,
            sender_username="alice",
            sender_first_name="Alice",
            text=text,
            is_service=is_service,
        )
    return _make


def sent_texts(endpoint) -> list[str]:
    """Texts passed to endpoint.send_message, in call order."""
    return [c.args[1] for c in endpoint.send_message.await_args_list]


def assert_markdown_parses(text: str):
    """Telegram's legacy Markdown needs every entity marker paired or escaped."""
    outside_code = re.sub(r"(?<!\\)`[^`]*`", "", text)
    assert not re.search(r"(?<!\\)[_`\[]", outside_code), outside_code
    assert len(re.findall(r"(?<!\\)\*", outside_code)) % 2 == 0, outside_code
