"""Rate-limited outbound queue to Telegram.

Telegram allows roughly 20 messages per minute per group, so every send
goes through one FIFO queue drained by a single worker that pauses
``send_interval`` seconds between sends. Each Council member posts with
their own bot when a token is configured; photos always go through the
main bot.
"""

import asyncio
import logging
from collections import deque
from dataclasses import dataclass
from typing import Awaitable, Callable, Optional

from telegram import Bot, LinkPreviewOptions
from telegram.error import BadRequest, TelegramError

from .formatting import MAX_MESSAGE_LENGTH, escape_html, split_message, truncate_caption
from .identities import IdentityResolver

logger = logging.getLogger("council_relay.dispatch")


@dataclass(frozen=True)
class OutboundMessage:
    text: str
    image_url: Optional[str] = None
    sender_id: Optional[str] = None   # Council bot id; None posts as the main bot


class DispatchQueue:
    """Serialized sender with fixed spacing between sends.

    Usage:
        queue = DispatchQueue(main_token, chat_id, identities)
        queue.enqueue(OutboundMessage("hello"))
        ...
        await queue.close()
    """

    def __init__(
        self,
        default_token: str,
        chat_id: str,
        identities: Optional[IdentityResolver] = None,
        send_interval: float = 0.4,
        warn_size: int = 50,
        bot_factory: Callable[[str], Bot] = Bot,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.default_token = default_token
        self.chat_id = chat_id
        self.identities = identities or IdentityResolver()
        self.send_interval = send_interval
        self.warn_size = warn_size
        self._bot_factory = bot_factory
        self._sleep = sleep
        self._bots: dict[str, Bot] = {}
        self._pending: deque[OutboundMessage] = deque()
        self._draining = False
        self._task: Optional[asyncio.Task] = None
        self._backlog_warned = False
        self.sent = 0
        self.failed = 0

    @property
    def pending(self) -> int:
        return len(self._pending)

    @property
    def draining(self) -> bool:
        return self._draining

    def enqueue(self, message: OutboundMessage):
        """Queue a message and make sure the worker is running. Never blocks."""
        if message.image_url or len(message.text) <= MAX_MESSAGE_LENGTH:
            self._pending.append(message)
        else:
            for chunk in split_message(message.text):
                self._pending.append(OutboundMessage(chunk, sender_id=message.sender_id))

        if len(self._pending) >= self.warn_size and not self._backlog_warned:
            self._backlog_warned = True
            logger.warning(f"Outbound backlog reached {len(self._pending)} messages")

        if not self._draining:
            self._draining = True
            self._task = asyncio.create_task(self._drain())

    def send_text(self, text: str, sender_id: Optional[str] = None):
        self.enqueue(OutboundMessage(text, sender_id=sender_id))

    async def join(self):
        """Wait until the current drain has emptied the queue."""
        while self._task is not None and not self._task.done():
            await self._task

    async def close(self):
        """Flush pending sends and shut down the bot clients."""
        await self.join()
        for bot in self._bots.values():
            try:
                await bot.shutdown()
            except Exception as e:
                logger.debug(f"Bot shutdown failed: {e}")
        self._bots.clear()

    async def _drain(self):
        try:
            while self._pending:
                message = self._pending.popleft()
                if len(self._pending) < self.warn_size:
                    self._backlog_warned = False
                try:
                    await self._deliver(message)
                except Exception as e:
                    self.failed += 1
                    logger.error(f"❌ Unexpected send failure: {type(e).__name__}: {e}", exc_info=True)
                await self._sleep(self.send_interval)
        finally:
            self._draining = False

    async def _get_bot(self, token: str) -> Bot:
        bot = self._bots.get(token)
        if bot is None:
            bot = self._bot_factory(token)
            await bot.initialize()
            self._bots[token] = bot
        return bot

    async def _deliver(self, message: OutboundMessage):
        if message.image_url:
            await self._deliver_photo(message)
            return

        token = self.identities.credential(message.sender_id) or self.default_token
        if await self._send_text(token, message.text):
            self.sent += 1
        else:
            self.failed += 1

    async def _send_text(self, token: str, text: str, escaped: bool = False) -> bool:
        try:
            bot = await self._get_bot(token)
            await bot.send_message(
                chat_id=self.chat_id,
                text=text,
                parse_mode="HTML",
                link_preview_options=LinkPreviewOptions(is_disabled=True),
            )
            return True
        except BadRequest as e:
            # Member content is sent as written; broken markup goes out escaped
            if not escaped and "can't parse entities" in e.message.lower():
                logger.warning("⚠️ TG rejected HTML, resending escaped")
                return await self._send_text(token, escape_html(text), escaped=True)
            logger.error(f"❌ TG send error: {e.message}")
            return False
        except TelegramError as e:
            logger.error(f"❌ TG send error: {e.message}")
            return False

    async def _deliver_photo(self, message: OutboundMessage):
        """Photos always go out through the main bot; fall back to text on failure."""
        try:
            bot = await self._get_bot(self.default_token)
            await bot.send_photo(
                chat_id=self.chat_id,
                photo=message.image_url,
                caption=truncate_caption(message.text),
                parse_mode="HTML",
            )
            self.sent += 1
            return
        except TelegramError as e:
            logger.warning(f"⚠️ Photo send failed ({e.message}), falling back to text")

        if await self._send_text(self.default_token, message.text):
            self.sent += 1
        else:
            self.failed += 1
