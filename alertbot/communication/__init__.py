"""Communication with Telegram: inbound messages and outbound delivery."""

from .outbound import truncate_message, MAX_MESSAGE_LENGTH, SNIP_MARKER, TOO_LONG_MESSAGE

__all__ = [
    "truncate_message",
    "MAX_MESSAGE_LENGTH",
    "SNIP_MARKER",
    "TOO_LONG_MESSAGE",
]
