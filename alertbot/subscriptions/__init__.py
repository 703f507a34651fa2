"""Subscriber state: per-chat records and the legacy membership index."""

from .models import ChatIdentity, SubscriptionRecord
from .store import SubscriptionStore
from .membership import MembershipIndex, environment_key, project_key

__all__ = [
    "ChatIdentity",
    "SubscriptionRecord",
    "SubscriptionStore",
    "MembershipIndex",
    "environment_key",
    "project_key",
]
