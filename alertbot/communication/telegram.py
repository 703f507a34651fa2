"""Telegram messaging endpoint.

Wraps a python-telegram-bot Application: polls for updates and turns every
incoming message into an InboundMessage on ``messages``, and offers
send/typing calls bounded by a timeout.
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import Optional

from telegram import Update
from telegram.constants import ChatAction
from telegram.error import TelegramError
from telegram.ext import Application, ContextTypes, MessageHandler, filters

from ..errors import TransportError
from ..subscriptions.models import ChatIdentity

logger = logging.getLogger("alertbot.telegram")


@dataclass
class InboundMessage:
    """A message received from Telegram, stripped to what the bot needs."""

    chat: ChatIdentity
    sender_id: int
    sender_username: Optional[str]
    sender_first_name: Optional[str]
    text: str
    is_service: bool = False


def chat_identity(chat) -> ChatIdentity:
    """Convert a telegram.Chat into a ChatIdentity."""
    return ChatIdentity(
        id=chat.id,
        type=str(chat.type),
        title=chat.title,
        username=chat.username,
        first_name=chat.first_name,
    )


def inbound_message(update: Update) -> Optional[InboundMessage]:
    """Build an InboundMessage from an update, or None if it has no message."""
    message = update.effective_message
    if message is None or update.effective_chat is None:
        return None
    sender = update.effective_user
    return InboundMessage(
        chat=chat_identity(update.effective_chat),
        sender_id=sender.id if sender else 0,
        sender_username=sender.username if sender else None,
        sender_first_name=sender.first_name if sender else None,
        text=message.text or "",
        # joins, leaves, title changes, pins...
        is_service=bool(filters.StatusUpdate.ALL.check_update(update)),
    )


class TelegramEndpoint:
    """Send and receive Telegram messages."""

    def __init__(self, bot_token: str, send_timeout: float = 30.0, queue_size: int = 100):
        self.bot_token = bot_token
        self.send_timeout = send_timeout
        self.messages: asyncio.Queue = asyncio.Queue(maxsize=queue_size)
        self.app: Optional[Application] = None
        self.username: str = ""

    async def start(self):
        """Start polling Telegram. Raises if the token is rejected."""
        self.app = (
            Application.builder()
            .token(self.bot_token)
            .build()
        )
        self.app.add_handler(MessageHandler(filters.ALL, self._on_update))
        self.app.add_error_handler(self._handle_error)

        logger.info("Starting Telegram bot...")
        await self.app.initialize()
        self.username = self.app.bot.username or ""
        await self.app.start()
        await self.app.updater.start_polling(drop_pending_updates=True)
        logger.info(f"Telegram bot @{self.username} started.")

    async def stop(self):
        """Stop the Telegram bot."""
        if self.app:
            if self.app.updater and self.app.updater.running:
                await self.app.updater.stop()
            if self.app.running:
                await self.app.stop()
            await self.app.shutdown()
            logger.info("Telegram bot stopped.")

    async def _on_update(self, update: Update, context: ContextTypes.DEFAULT_TYPE):
        message = inbound_message(update)
        if message is None:
            return
        try:
            self.messages.put_nowait(message)
        except asyncio.QueueFull:
            logger.warning(f"Inbound queue full, dropping message from {message.sender_id}")

    async def _handle_error(self, update: object, context: ContextTypes.DEFAULT_TYPE):
        logger.error(f"Telegram error: {context.error}", exc_info=context.error)

    async def _call(self, what: str, coro):
        try:
            return await asyncio.wait_for(coro, timeout=self.send_timeout)
        except asyncio.TimeoutError as e:
            raise TransportError(f"{what} timed out after {self.send_timeout}s") from e
        except TelegramError as e:
            raise TransportError(f"{what} failed: {e}") from e

    async def send_message(self, chat: ChatIdentity, text: str, parse_mode: Optional[str] = None):
        """Send text to chat. Raises TransportError on failure."""
        await self._call(
            f"send_message to {chat.id}",
            self.app.bot.send_message(chat_id=chat.id, text=text, parse_mode=parse_mode),
        )

    async def send_typing(self, chat: ChatIdentity):
        await self._call(
            f"send_chat_action to {chat.id}",
            self.app.bot.send_chat_action(chat_id=chat.id, action=ChatAction.TYPING),
        )
