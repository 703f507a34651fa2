"""Outbound message processing before delivery to Telegram.

Telegram accepts at most 4096 characters per message. Rendered alert
messages are HTML, so a message is only ever cut at a blank line between
two alerts, never inside markup.
"""

import logging

logger = logging.getLogger("alertbot.outbound")

# ============================================================
# TRUNCATION
# ============================================================

MAX_MESSAGE_LENGTH = 4095
# 4080 + len(SNIP_MARKER) stays within MAX_MESSAGE_LENGTH
TRUNCATE_SEARCH_LIMIT = 4080
ALERT_SEPARATOR = "\n\n"
SNIP_MARKER = "\n<b>[SNIP]</b>"
TOO_LONG_MESSAGE = "Message is too long... can't send.."


def truncate_message(text: str) -> str:
    """Cut an oversized message after the last complete alert.

    Messages up to MAX_MESSAGE_LENGTH are returned unchanged. Longer ones
    are cut at the last blank line within the first TRUNCATE_SEARCH_LIMIT
    characters and get SNIP_MARKER appended. Without such a break the whole
    message is replaced by TOO_LONG_MESSAGE.
    """
    if len(text) <= MAX_MESSAGE_LENGTH:
        return text

    logger.warning(f"Message is {len(text)} chars, bigger than {MAX_MESSAGE_LENGTH}, truncating")
    i = text.rfind(ALERT_SEPARATOR, 0, TRUNCATE_SEARCH_LIMIT)
    if i > 1:
        return text[:i] + SNIP_MARKER

    logger.warning("Unable to find the end of the last alert, dropping message body")
    return TOO_LONG_MESSAGE


# ============================================================
# MARKDOWN
# ============================================================

# Telegram's legacy Markdown rejects a message with an unpaired entity marker
_MARKDOWN_SPECIALS = "_*`["


def escape_markdown(text) -> str:
    """Escape legacy Markdown entity markers in a value inserted into a reply."""
    text = str(text)
    for char in _MARKDOWN_SPECIALS:
        text = text.replace(char, "\\" + char)
    return text
