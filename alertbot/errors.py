"""Error taxonomy and user-facing error classification."""

import asyncio

import httpx


class AlertbotError(Exception):
    """Base class for all Alertbot errors."""


class NotFound(AlertbotError):
    """A record or key is absent from the store."""


class Corrupt(AlertbotError):
    """A persisted value could not be decoded."""


class BackendUnavailable(AlertbotError):
    """The store, Alertmanager or Telegram call failed."""


class TransportError(BackendUnavailable):
    """A Telegram API call failed or timed out."""


class Unauthorized(AlertbotError):
    """Message sender is not in the admin allow-list."""


class NoMatch(AlertbotError):
    """A mute command matched none of the accepted forms."""


def classify_error(e: Exception) -> str:
    """Classify any exception into a short message suitable for a chat reply."""
    if isinstance(e, NoMatch):
        return str(e)
    if isinstance(e, NotFound):
        return "This chat is not subscribed. Send /start first."
    if isinstance(e, Corrupt):
        return "Stored subscription data is unreadable. Check logs for details."
    if isinstance(e, TransportError):
        return "Telegram did not accept the request. Please try again."

    # httpx failures reach here only if a caller forgot to wrap them
    if isinstance(e, httpx.HTTPStatusError):
        code = e.response.status_code
        if 500 <= code < 600:
            return "Alertmanager is having server issues. Please try again later."
        return f"Alertmanager returned HTTP {code}."
    if isinstance(e, (httpx.ConnectError, httpx.ConnectTimeout)):
        return "Cannot connect to Alertmanager. Please check connectivity and try again."

    if isinstance(e, BackendUnavailable):
        return f"Backend unavailable: {e}"

    if isinstance(e, asyncio.TimeoutError):
        return "Request timed out. Please try again."

    type_name = type(e).__name__
    return f"Something went wrong ({type_name}). Check logs for details."
