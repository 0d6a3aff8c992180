"""Telegram listener for user messages in the Council group."""

import asyncio
import logging
from typing import Optional

from telegram import Update
from telegram.ext import Application, ContextTypes, MessageHandler, filters

from .bridge import InboundMessage, ReplyBridge
from .ratelimit import RateLimiter

logger = logging.getLogger("council_relay.polling")


def to_inbound(update: Update, chat_id: str) -> Optional[InboundMessage]:
    """Map a Telegram update to an InboundMessage, or None if it is not for us.

    Only text messages in the Council group from humans are relayed;
    our own bots' posts come back through getUpdates too.
    """
    msg = update.message
    if not msg or not msg.text:
        return None
    if str(msg.chat.id) != str(chat_id):
        return None
    user = msg.from_user
    if user is None or user.is_bot:
        return None

    reply_to_username = None
    reply = msg.reply_to_message
    if reply and reply.from_user and reply.from_user.is_bot:
        reply_to_username = reply.from_user.username

    return InboundMessage(
        text=msg.text,
        username=user.first_name or user.username or "anon",
        user_id=user.id,
        reply_to_username=reply_to_username,
    )


class InboundListener:
    """Long-polls the main bot and hands user messages to the reply bridge."""

    def __init__(
        self,
        bot_token: str,
        chat_id: str,
        bridge: ReplyBridge,
        rate_limiter: Optional[RateLimiter] = None,
    ):
        self.bot_token = bot_token
        self.chat_id = chat_id
        self.bridge = bridge
        self.rate_limiter = rate_limiter or RateLimiter()
        self.app: Optional[Application] = None

    def _register_handlers(self):
        self.app.add_handler(MessageHandler(filters.TEXT, self._handle_message))
        self.app.add_error_handler(self._handle_error)

    async def start(self):
        """Start long polling."""
        self.app = (
            Application.builder()
            .token(self.bot_token)
            .concurrent_updates(16)
            .build()
        )
        self._register_handlers()

        logger.info("👂 Starting Telegram polling for user messages...")
        # Transient network timeouts on getMe shouldn't kill the relay
        for attempt in range(5):
            try:
                await self.app.initialize()
                break
            except Exception as e:
                if attempt < 4:
                    delay = [2, 5, 10, 15][attempt]
                    logger.warning(
                        f"Telegram init failed (attempt {attempt + 1}/5): "
                        f"{type(e).__name__}: {e}. Retrying in {delay}s..."
                    )
                    await asyncio.sleep(delay)
                else:
                    raise
        await self.app.start()
        await self.app.updater.start_polling(drop_pending_updates=True, allowed_updates=["message"])
        logger.info(f"   Backend: {self.bridge.backend_url}")
        logger.info(f"   Chat ID: {self.chat_id}")

    async def keep_started(self, retry_delay: float = 5.0):
        """Start polling, retrying until Telegram accepts. Runs as a background task."""
        while True:
            try:
                await self.start()
                return
            except Exception as e:
                logger.error(
                    f"❌ Telegram polling failed to start: {type(e).__name__}: {e}. "
                    f"Retrying in {retry_delay:.0f}s..."
                )
            try:
                await self.stop()
            except Exception as e:
                logger.debug(f"Cleanup after failed start: {e}")
            await asyncio.sleep(retry_delay)

    async def stop(self):
        if self.app is None:
            return
        if self.app.updater and self.app.updater.running:
            await self.app.updater.stop()
        if self.app.running:
            await self.app.stop()
        await self.app.shutdown()
        self.app = None
        logger.info("Telegram polling stopped.")

    async def handle_update(self, update: Update):
        inbound = to_inbound(update, self.chat_id)
        if inbound is None:
            return

        logger.info(f"💬 TG user {inbound.username}: {inbound.text[:60]}")
        if not self.rate_limiter.check(inbound.user_id):
            logger.info(f"⏳ Rate limited: {inbound.username}")
            return

        await self.bridge.handle_inbound(inbound)

    async def _handle_message(self, update: Update, context: ContextTypes.DEFAULT_TYPE):
        await self.handle_update(update)

    async def _handle_error(self, update: object, context: ContextTypes.DEFAULT_TYPE):
        logger.error(f"❌ Polling error: {context.error}", exc_info=context.error)
