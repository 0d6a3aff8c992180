"""Time-windowed deduplication.

The Council stream re-broadcasts the same trade and chat line more than
once (reconnects, multiple backend workers). Keys are remembered for a
fixed TTL; expiry is lazy — an expired key reads as absent, and the
whole set is swept at most once per TTL so it cannot grow without bound.
"""

import logging
import time
from typing import Callable

logger = logging.getLogger("council_relay.dedup")

MESSAGE_KEY_PREFIX = 80


class WindowedKeySet:
    """Set of keys that each expire ``ttl`` seconds after insertion."""

    def __init__(self, ttl: float, clock: Callable[[], float] = time.monotonic):
        self.ttl = ttl
        self._clock = clock
        self._expiry: dict[str, float] = {}
        self._next_sweep = clock() + ttl

    def check_and_insert(self, key: str) -> bool:
        """Return True if the key is new (and remember it), False if seen."""
        now = self._clock()
        if now >= self._next_sweep:
            self._sweep(now)

        expires = self._expiry.get(key)
        if expires is not None and now < expires:
            return False

        self._expiry[key] = now + self.ttl
        return True

    def __contains__(self, key: str) -> bool:
        expires = self._expiry.get(key)
        return expires is not None and self._clock() < expires

    def __len__(self) -> int:
        now = self._clock()
        return sum(1 for expires in self._expiry.values() if now < expires)

    def _sweep(self, now: float):
        expired = [k for k, expires in self._expiry.items() if now >= expires]
        for key in expired:
            del self._expiry[key]
        self._next_sweep = now + self.ttl
        if expired:
            logger.debug(f"Swept {len(expired)} expired keys (ttl={self.ttl}s)")


def message_key(sender_id: str, content: str) -> str:
    return f"{sender_id}:{content[:MESSAGE_KEY_PREFIX]}"


class Deduplicator:
    """Trade and chat-message dedup windows. The two never share state."""

    def __init__(
        self,
        trade_ttl: float = 60.0,
        message_ttl: float = 30.0,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.trades = WindowedKeySet(trade_ttl, clock)
        self.messages = WindowedKeySet(message_ttl, clock)

    def is_new_trade(self, tx_hash: str) -> bool:
        if not tx_hash:
            return False
        return self.trades.check_and_insert(tx_hash)

    def is_new_message(self, sender_id: str, content: str) -> bool:
        return self.messages.check_and_insert(message_key(sender_id, content))
