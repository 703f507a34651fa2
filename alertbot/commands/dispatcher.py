"""Command dispatch for messages sent to the bot.

Messages are processed strictly one at a time. The subscription store does
load-modify-store without compare-and-swap, so this loop must stay
sequential for mutations of the same chat not to race.
"""

import asyncio
import logging
from collections import Counter
from datetime import datetime, timezone
from enum import Enum
from typing import Awaitable, Callable, Optional

from ..alertmanager import AlertmanagerClient, alerts_event, silence_message, since
from ..communication.outbound import escape_markdown, truncate_message
from ..communication.telegram import InboundMessage
from ..errors import (
    AlertbotError,
    BackendUnavailable,
    NoMatch,
    NotFound,
    TransportError,
    Unauthorized,
    classify_error,
)
from ..subscriptions.store import SubscriptionStore
from ..worker import next_item
from .parser import parse_mute_command

logger = logging.getLogger("alertbot.dispatcher")


class Command(str, Enum):
    """Every command the bot understands. Tokens are case-sensitive."""

    START = "/start"
    STOP = "/stop"
    HELP = "/help"
    CHATS = "/chats"
    STATUS = "/status"
    ALERTS = "/alerts"
    SILENCES = "/silences"
    MUTE = "/mute"
    MUTE_DEL = "/mute_del"
    ENVIRONMENTS = "/environments"
    PROJECTS = "/projects"

    @classmethod
    def parse(cls, token: str) -> Optional["Command"]:
        try:
            return cls(token)
        except ValueError:
            return None


RESPONSE_START = "Hey, {name}! I will now keep you up to date!\n" + Command.HELP.value
RESPONSE_ALREADY_STARTED = "Hey, {name}! You are already subscribed. Your mutes are unchanged.\n" + Command.HELP.value
RESPONSE_STOP = "Alright, {name}! I won't talk to you again.\n" + Command.HELP.value
RESPONSE_INCOMPREHENSIBLE = "Sorry, I don't understand..."
RESPONSE_HELP = f"""
I'm a Prometheus AlertManager Bot for Telegram. I will notify you about alerts.
You can also ask me about my {Command.STATUS.value}, {Command.ALERTS.value} & {Command.SILENCES.value}

Available commands:
{Command.START.value} - Subscribe for alerts.
{Command.STOP.value} - Unsubscribe for alerts.
{Command.STATUS.value} - Print the current status.
{Command.ALERTS.value} - List all alerts.
{Command.SILENCES.value} - List all silences.
{Command.CHATS.value} - List all users and group chats that subscribed.
{Command.MUTE.value} - Mute environments and/or projects, e.g. {Command.MUTE.value} environment[dev],project[web]. Without arguments shows current mutes.
{Command.MUTE_DEL.value} - Delete mute, same syntax as {Command.MUTE.value}.
{Command.ENVIRONMENTS.value} - List all environments.
{Command.PROJECTS.value} - List all projects.
"""

Handler = Callable[[InboundMessage], Awaitable[None]]


def _command_arguments(text: str) -> str:
    parts = text.strip().split(maxsplit=1)
    return parts[1] if len(parts) > 1 else ""


def _names(values) -> str:
    return ", ".join(sorted(values)) if values else "none"


class CommandDispatcher:
    """Turns inbound messages into store mutations, queries and replies."""

    def __init__(
        self,
        store: SubscriptionStore,
        endpoint,
        alertmanager: AlertmanagerClient,
        render: Callable[[dict], str],
        admins: frozenset[int],
        environments: list[str],
        projects: list[str],
        revision: str = "unknown",
        start_time: Optional[datetime] = None,
    ):
        self.store = store
        self.endpoint = endpoint
        self.alertmanager = alertmanager
        self.render = render
        self.admins = frozenset(admins)
        self.environments = list(environments)
        self.projects = list(projects)
        self.revision = revision
        self.start_time = start_time or datetime.now(timezone.utc)
        self.counters: Counter = Counter()

        self._handlers: dict[Command, Handler] = {
            Command.START: self._cmd_start,
            Command.STOP: self._cmd_stop,
            Command.HELP: self._cmd_help,
            Command.CHATS: self._cmd_chats,
            Command.STATUS: self._cmd_status,
            Command.ALERTS: self._cmd_alerts,
            Command.SILENCES: self._cmd_silences,
            Command.MUTE: self._cmd_mute,
            Command.MUTE_DEL: self._cmd_mute_del,
            Command.ENVIRONMENTS: self._cmd_environments,
            Command.PROJECTS: self._cmd_projects,
        }
        missing = [c.value for c in Command if c not in self._handlers]
        if missing:
            raise RuntimeError(f"No handler for commands: {missing}")

        # init counters with 0
        for command in Command:
            self.counters[command.value] += 0

    def is_admin(self, user_id: int) -> bool:
        return user_id in self.admins

    def normalize(self, text: str) -> str:
        """Reduce message text to its command token: '/help@Bot foo' -> '/help'."""
        parts = text.split()
        token = parts[0] if parts else ""
        suffix = f"@{self.endpoint.username}" if self.endpoint.username else None
        if suffix and token.endswith(suffix):
            token = token[: -len(suffix)]
        return token

    async def run(self, messages: asyncio.Queue, stop: asyncio.Event):
        """Process inbound messages one at a time until stop is set."""
        logger.info("Command dispatcher started.")
        while True:
            message = await next_item(messages, stop)
            if message is None:
                break
            try:
                await self.process(message)
            except Unauthorized as e:
                logger.info(f"Dropped message from {message.sender_id} (@{message.sender_username}): {e}")
            except AlertbotError as e:
                logger.info(
                    f"Failed to process message from {message.sender_id} "
                    f"(@{message.sender_username}): {e}"
                )
            except Exception as e:
                logger.error(f"Unexpected error processing message: {e}", exc_info=True)
        logger.info("Command dispatcher stopped.")

    async def process(self, message: InboundMessage):
        """Handle one message.

        Raises:
            Unauthorized: sender is not an admin.
            TransportError: the typing indicator could not be sent.
        """
        if message.is_service:
            return

        if not self.is_admin(message.sender_id):
            self.counters["dropped"] += 1
            raise Unauthorized("dropped message from forbidden sender")

        await self.endpoint.send_typing(message.chat)

        token = self.normalize(message.text)
        logger.debug(f"Message received: {token}")

        command = Command.parse(token)
        if command is None:
            self.counters["incomprehensible"] += 1
            await self.endpoint.send_message(message.chat, RESPONSE_INCOMPREHENSIBLE)
            return

        self.counters[command.value] += 1
        try:
            await self._handlers[command](message)
        except Exception as e:
            logger.error(f"Command {command.value} failed for chat {message.chat.id}: {e}", exc_info=True)
            await self._reply_error(message, e)

    async def _reply_error(self, message: InboundMessage, error: Exception):
        try:
            await self.endpoint.send_message(message.chat, classify_error(error))
        except TransportError as e:
            logger.warning(f"Failed to send error reply to chat {message.chat.id}: {e}")

    async def _reply(self, message: InboundMessage, text: str, parse_mode: Optional[str] = None):
        await self.endpoint.send_message(message.chat, text, parse_mode=parse_mode)

    # ── Command handlers ─────────────────────────────────────

    async def _cmd_start(self, message: InboundMessage):
        name = message.sender_first_name or message.sender_username or str(message.sender_id)
        if await self.store.is_subscribed(message.chat):
            await self._reply(message, RESPONSE_ALREADY_STARTED.format(name=name))
            return

        await self.store.add_chat(message.chat, self.environments, self.projects)
        await self._reply(message, RESPONSE_START.format(name=name))
        logger.info(f"User subscribed: @{message.sender_username} ({message.sender_id})")

    async def _cmd_stop(self, message: InboundMessage):
        name = message.sender_first_name or message.sender_username or str(message.sender_id)
        await self.store.remove_chat(message.chat)
        await self._reply(message, RESPONSE_STOP.format(name=name))
        logger.info(f"User unsubscribed: @{message.sender_username} ({message.sender_id})")

    async def _cmd_help(self, message: InboundMessage):
        await self._reply(message, RESPONSE_HELP)

    async def _cmd_chats(self, message: InboundMessage):
        try:
            records = await self.store.list()
        except AlertbotError as e:
            logger.warning(f"Failed to list chats from chat store: {e}")
            await self._reply(message, "I can't list the subscribed chats.")
            return

        lines = [f"@{record.chat.display_name}" for record in records]
        await self._reply(message, "Currently these chats have subscribed:\n" + "\n".join(lines))

    async def _cmd_status(self, message: InboundMessage):
        try:
            status = await self.alertmanager.get_status()
        except BackendUnavailable as e:
            logger.warning(f"Failed to get status: {e}")
            await self._reply(message, f"failed to get status... {e}")
            return

        await self._reply(
            message,
            "*AlertManager*\nVersion: {}\nUptime: {}\n*AlertManager Bot*\nVersion: {}\nUptime: {}".format(
                escape_markdown(status.version),
                since(status.uptime),
                escape_markdown(self.revision),
                since(self.start_time),
            ),
            parse_mode="Markdown",
        )

    async def _cmd_alerts(self, message: InboundMessage):
        try:
            alerts = await self.alertmanager.list_alerts()
        except BackendUnavailable as e:
            await self._reply(message, f"failed to list alerts... {e}")
            return

        if not alerts:
            await self._reply(message, "No alerts right now! 🎉")
            return

        out = self.render(alerts_event(alerts))
        await self._reply(message, truncate_message(out), parse_mode="HTML")

    async def _cmd_silences(self, message: InboundMessage):
        try:
            silences = await self.alertmanager.list_silences()
        except BackendUnavailable as e:
            await self._reply(message, f"failed to list silences... {e}")
            return

        if not silences:
            await self._reply(message, "No silences right now.")
            return

        out = "\n\n".join(silence_message(s) for s in silences)
        await self._reply(message, out, parse_mode="Markdown")

    async def _cmd_mute(self, message: InboundMessage):
        chat = message.chat
        if not _command_arguments(message.text):
            await self._reply_current_mutes(message)
            return

        try:
            selection = parse_mute_command(message.text, self.environments, self.projects)
        except NoMatch as e:
            await self._reply(message, f"failed to parse mute command... {e}")
            return

        envs = selection.environments_to_mute(self.environments)
        prs = selection.projects_to_mute(self.projects)
        try:
            if envs:
                await self.store.mute_environments(chat, envs, self.environments)
            if prs:
                await self.store.mute_projects(chat, prs, self.projects)
        except NotFound:
            await self._reply(message, "This chat is not subscribed. Send /start first.")
            return

        await self._reply(
            message,
            f"Muted environments: {_names(envs)}\nMuted projects: {_names(prs)}",
        )

    async def _cmd_mute_del(self, message: InboundMessage):
        chat = message.chat
        try:
            selection = parse_mute_command(message.text, self.environments, self.projects)
        except NoMatch as e:
            await self._reply(message, f"failed to parse mute command... {e}")
            return

        try:
            record = await self.store.get_chat_info(chat)
        except NotFound:
            await self._reply(message, "This chat is not subscribed. Send /start first.")
            return

        # Only names that are currently muted move back
        envs = [e for e in selection.environments_to_mute(self.environments) if e in record.muted_environments]
        prs = [p for p in selection.projects_to_mute(self.projects) if p in record.muted_projects]
        for env in envs:
            await self.store.unmute_environment(chat, env, self.environments)
        for pr in prs:
            await self.store.unmute_project(chat, pr, self.projects)

        await self._reply(
            message,
            f"Unmuted environments: {_names(envs)}\nUnmuted projects: {_names(prs)}",
        )

    async def _reply_current_mutes(self, message: InboundMessage):
        try:
            envs = await self.store.muted_environments(message.chat)
            prs = await self.store.muted_projects(message.chat)
        except NotFound:
            await self._reply(message, "This chat is not subscribed. Send /start first.")
            return
        await self._reply(
            message,
            f"Muted environments: {_names(envs)}\nMuted projects: {_names(prs)}",
        )

    async def _cmd_environments(self, message: InboundMessage):
        await self._reply(message, f"The following environments are available: {', '.join(self.environments)}")

    async def _cmd_projects(self, message: InboundMessage):
        await self._reply(message, f"The following projects are available: {', '.join(self.projects)}")
