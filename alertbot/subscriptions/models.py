"""Subscription data model and its JSON encoding."""

import json
from dataclasses import dataclass, field
from typing import Iterable, Optional

from ..errors import Corrupt

GROUP_CHAT_TYPES = ("group", "supergroup", "channel")


@dataclass(eq=False)
class ChatIdentity:
    """A Telegram chat. Two identities are equal when their ids are equal."""

    id: int
    type: str = "private"
    title: Optional[str] = None
    username: Optional[str] = None
    first_name: Optional[str] = None

    def __eq__(self, other):
        if not isinstance(other, ChatIdentity):
            return NotImplemented
        return self.id == other.id

    def __hash__(self):
        return hash(self.id)

    @property
    def is_group(self) -> bool:
        return self.type in GROUP_CHAT_TYPES

    @property
    def display_name(self) -> str:
        if self.is_group and self.title:
            return self.title
        return self.username or self.first_name or str(self.id)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "type": self.type,
            "title": self.title,
            "username": self.username,
            "first_name": self.first_name,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "ChatIdentity":
        return cls(
            id=int(data["id"]),
            type=data.get("type") or "private",
            title=data.get("title"),
            username=data.get("username"),
            first_name=data.get("first_name"),
        )


@dataclass
class SubscriptionRecord:
    """Per-chat subscription state.

    For each dimension the alerting and muted sets partition the universe
    the record was created with.
    """

    chat: ChatIdentity
    alert_environments: set[str] = field(default_factory=set)
    muted_environments: set[str] = field(default_factory=set)
    alert_projects: set[str] = field(default_factory=set)
    muted_projects: set[str] = field(default_factory=set)

    @classmethod
    def new(cls, chat: ChatIdentity, all_environments: Iterable[str], all_projects: Iterable[str]) -> "SubscriptionRecord":
        return cls(
            chat=chat,
            alert_environments=set(all_environments),
            alert_projects=set(all_projects),
        )

    def mute_environments(self, to_mute: Iterable[str], all_environments: Iterable[str]):
        _move(to_mute, set(all_environments), self.alert_environments, self.muted_environments)

    def unmute_environment(self, name: str, all_environments: Iterable[str]):
        _move([name], set(all_environments), self.muted_environments, self.alert_environments)

    def mute_projects(self, to_mute: Iterable[str], all_projects: Iterable[str]):
        _move(to_mute, set(all_projects), self.alert_projects, self.muted_projects)

    def unmute_project(self, name: str, all_projects: Iterable[str]):
        _move([name], set(all_projects), self.muted_projects, self.alert_projects)

    @property
    def environments(self) -> set[str]:
        """The environment universe this record partitions."""
        return self.alert_environments | self.muted_environments

    @property
    def projects(self) -> set[str]:
        return self.alert_projects | self.muted_projects

    def to_json(self) -> bytes:
        return json.dumps({
            "chat": self.chat.to_dict(),
            "alert_environments": sorted(self.alert_environments),
            "muted_environments": sorted(self.muted_environments),
            "alert_projects": sorted(self.alert_projects),
            "muted_projects": sorted(self.muted_projects),
        }).encode("utf-8")

    @classmethod
    def from_json(cls, raw: bytes) -> "SubscriptionRecord":
        try:
            data = json.loads(raw)
            return cls(
                chat=ChatIdentity.from_dict(data["chat"]),
                alert_environments=set(data.get("alert_environments") or []),
                muted_environments=set(data.get("muted_environments") or []),
                alert_projects=set(data.get("alert_projects") or []),
                muted_projects=set(data.get("muted_projects") or []),
            )
        except (ValueError, TypeError, KeyError) as e:
            raise Corrupt(f"undecodable subscription record: {e}") from e


def _move(names: Iterable[str], universe: set[str], source: set[str], target: set[str]):
    # Names outside the universe are ignored
    for name in names:
        if name in universe:
            source.discard(name)
            target.add(name)


def encode_chats(chats: list[ChatIdentity]) -> bytes:
    return json.dumps([c.to_dict() for c in chats]).encode("utf-8")


def decode_chats(raw: bytes) -> list[ChatIdentity]:
    try:
        return [ChatIdentity.from_dict(item) for item in json.loads(raw)]
    except (ValueError, TypeError, KeyError) as e:
        raise Corrupt(f"undecodable chat list: {e}") from e
