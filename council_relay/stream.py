"""Council WebSocket stream with automatic reconnect.

The connection is retried forever: after every close or transport error
the client waits ``min(base_delay * 2**attempt, max_delay)`` and tries
again. The attempt counter only resets once a connection is open.
"""

import asyncio
import enum
import logging
from typing import Awaitable, Callable

import websockets
from websockets.exceptions import WebSocketException

logger = logging.getLogger("council_relay.stream")


class ConnectionState(enum.Enum):
    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    CONNECTED = "connected"


def backoff_delay(attempt: int, base_delay: float = 1.0, max_delay: float = 30.0) -> float:
    """Exponential backoff delay for the given attempt, capped at max_delay."""
    # Past 2**64 the cap always wins; skip the big-int arithmetic.
    if attempt >= 64:
        return max_delay
    return min(base_delay * (2 ** attempt), max_delay)


class StreamClient:
    """Owns the WebSocket connection to the Council backend.

    Usage:
        client = StreamClient(url, on_message=router.handle_raw)
        await client.run()   # never returns on its own
    """

    def __init__(
        self,
        url: str,
        on_message: Callable[[str], Awaitable[None]],
        base_delay: float = 1.0,
        max_delay: float = 30.0,
        connector: Callable = websockets.connect,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        """Initialize stream client.

        Args:
            url: WebSocket URL of the Council event stream
            on_message: Async callback receiving each raw text frame.
                Runs in its own task so slow handlers never stall the stream.
            base_delay: First reconnect delay in seconds
            max_delay: Upper bound for the reconnect delay
            connector: ``websockets.connect``-compatible factory
            sleep: Awaitable sleep used for the reconnect wait
        """
        self.url = url
        self._on_message = on_message
        self.base_delay = base_delay
        self.max_delay = max_delay
        self._connector = connector
        self._sleep = sleep
        self.state = ConnectionState.DISCONNECTED
        self.reconnect_attempts = 0
        self._handler_tasks: set[asyncio.Task] = set()

    def next_delay(self) -> float:
        """Delay before the next reconnect; advances the attempt counter."""
        delay = backoff_delay(self.reconnect_attempts, self.base_delay, self.max_delay)
        self.reconnect_attempts += 1
        return delay

    async def run(self):
        """Connect and keep reconnecting until the task is cancelled."""
        while True:
            await self.connect()
            delay = self.next_delay()
            logger.info(
                f"🔄 Reconnecting in {delay:.0f}s (attempt {self.reconnect_attempts})..."
            )
            await self._sleep(delay)

    async def connect(self):
        """Run one connection until it closes. Never raises on transport errors."""
        logger.info(f"🔌 Connecting to {self.url}...")
        self.state = ConnectionState.CONNECTING
        try:
            async with self._connector(self.url) as ws:
                self.state = ConnectionState.CONNECTED
                self.reconnect_attempts = 0
                logger.info("✅ Connected to Council WebSocket")

                async for raw in ws:
                    self._dispatch(raw)

            logger.info("🔌 Disconnected")
        except (OSError, asyncio.TimeoutError, WebSocketException) as e:
            logger.error(f"❌ WS error: {type(e).__name__}: {e}")
        finally:
            self.state = ConnectionState.DISCONNECTED

    def _dispatch(self, raw):
        task = asyncio.create_task(self._handle(raw))
        self._handler_tasks.add(task)
        task.add_done_callback(self._handler_tasks.discard)

    async def _handle(self, raw):
        try:
            await self._on_message(raw)
        except Exception as e:
            logger.error(f"Error handling stream message: {type(e).__name__}: {e}", exc_info=True)

    async def drain(self):
        """Wait for in-flight message handlers to finish."""
        if self._handler_tasks:
            await asyncio.gather(*list(self._handler_tasks), return_exceptions=True)
