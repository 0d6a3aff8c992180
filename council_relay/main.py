"""Council Relay — Main entry point."""

import asyncio
import logging
import os
from typing import Optional

from .bridge import ReplyBridge
from .config import ConfigError, RelaySettings, load_settings
from .dedup import Deduplicator
from .dispatch import DispatchQueue
from .identities import IdentityResolver
from .images import ImageResolver
from .polling import InboundListener
from .ratelimit import RateLimiter
from .router import EventRouter
from .stream import StreamClient

_log_format = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"

logger = logging.getLogger("council_relay")

STARTUP_MESSAGE = (
    "🏛️ <b>The Council is now live!</b>\n\n"
    "Bot discussions will be relayed here in real-time."
)


def setup_logging(log_file: str = "~/council-relay.log", level: int = logging.INFO):
    logging.basicConfig(
        level=level,
        format=_log_format,
        handlers=[
            logging.StreamHandler(),                                            # stderr (console)
            logging.FileHandler(os.path.expanduser(log_file), encoding="utf-8"),
        ],
    )
    # python-telegram-bot logs every getUpdates call at INFO through httpx
    logging.getLogger("httpx").setLevel(logging.WARNING)


class Relay:
    """Wires the relay components together from settings."""

    def __init__(self, settings: RelaySettings):
        self.settings = settings
        self.identities = IdentityResolver(settings)
        self.dedup = Deduplicator(
            trade_ttl=settings.trade_dedup_ttl,
            message_ttl=settings.message_dedup_ttl,
        )
        self.queue = DispatchQueue(
            settings.telegram_bot_token,
            settings.telegram_chat_id,
            self.identities,
            send_interval=settings.send_interval,
            warn_size=settings.queue_warn_size,
        )
        self.images = ImageResolver(chain=settings.image_chain, timeout=settings.http_timeout)
        self.router = EventRouter(
            self.queue, self.identities, self.dedup, self.images, chain=settings.image_chain,
        )
        self.stream = StreamClient(
            settings.ws_url,
            self.router.handle_raw,
            base_delay=settings.reconnect_base_delay,
            max_delay=settings.reconnect_max_delay,
        )

        self.bridge: Optional[ReplyBridge] = None
        self.listener: Optional[InboundListener] = None
        self._listener_task: Optional[asyncio.Task] = None
        if settings.backend_url:
            self.bridge = ReplyBridge(
                settings.backend_url,
                self.queue,
                self.identities,
                deduplicator=self.dedup,
                timeout=settings.backend_timeout,
            )
            self.listener = InboundListener(
                settings.telegram_bot_token,
                settings.telegram_chat_id,
                self.bridge,
                RateLimiter(settings.inbound_max_messages, settings.inbound_window_seconds),
            )

    async def run(self):
        logger.info("📡 Council Telegram Relay — forwarding live discussions to TG")
        logger.info(f"  Chat ID: {self.settings.telegram_chat_id}")
        logger.info(f"  WS URL:  {self.settings.ws_url}")

        self.queue.send_text(STARTUP_MESSAGE)

        # Polling comes up in the background; the stream never waits on it
        if self.listener:
            self._listener_task = asyncio.create_task(self.listener.keep_started())
        else:
            logger.warning("⚠️ BACKEND_URL not set, skipping Telegram polling")

        await self.stream.run()

    async def close(self):
        if self._listener_task and not self._listener_task.done():
            self._listener_task.cancel()
            try:
                await self._listener_task
            except asyncio.CancelledError:
                pass
        if self.listener:
            await self.listener.stop()
        await self.stream.drain()
        if self.bridge:
            await self.bridge.close()
        await self.images.close()
        await self.queue.close()
        logger.info(
            f"Relay stopped. events={dict(self.router.stats)} "
            f"sent={self.queue.sent} failed={self.queue.failed}"
        )


async def run(settings: Optional[RelaySettings] = None):
    """Main run loop."""
    settings = settings or load_settings()
    relay = Relay(settings)
    try:
        await relay.run()
    except KeyboardInterrupt:
        pass
    except Exception as e:
        logger.critical(f"Fatal error: {type(e).__name__}: {e}", exc_info=True)
    finally:
        await relay.close()


def main():
    """Entry point."""
    try:
        settings = load_settings()
    except ConfigError as e:
        setup_logging()
        logger.error(f"❌ {e}")
        raise SystemExit(1)

    setup_logging(settings.log_file)
    asyncio.run(run(settings))


if __name__ == "__main__":
    main()
