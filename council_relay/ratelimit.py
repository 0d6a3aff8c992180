"""Inbound rate limiting per Telegram user.

Every forwarded user message costs a backend LLM call, so each user
gets a small sliding-window allowance (default: 3 messages per 60s).
"""

import logging
import time
from collections import defaultdict
from typing import Callable, Union

logger = logging.getLogger("council_relay.ratelimit")

UserId = Union[int, str]


class RateLimiter:
    """Sliding-window rate limiter keyed by user id."""

    def __init__(
        self,
        max_requests: int = 3,
        window_seconds: float = 60,
        clock: Callable[[], float] = time.monotonic,
    ):
        """Initialize rate limiter.

        Args:
            max_requests: Maximum requests allowed per window
            window_seconds: Time window in seconds
            clock: Monotonic time source
        """
        self.max_requests = max(1, max_requests)
        self.window = window_seconds
        self._clock = clock
        self._requests: dict[UserId, list[float]] = defaultdict(list)

    def _recent(self, user_id: UserId, now: float) -> list[float]:
        recent = [t for t in self._requests[user_id] if now - t < self.window]
        self._requests[user_id] = recent
        return recent

    def check(self, user_id: UserId) -> bool:
        """Record a request and return True, or return False if the user is at the limit."""
        now = self._clock()
        recent = self._recent(user_id, now)

        if len(recent) >= self.max_requests:
            remaining = int(self.window - (now - recent[0]))
            logger.info(f"Rate limit hit for user {user_id}: {remaining}s remaining")
            return False

        recent.append(now)
        return True

    def remaining(self, user_id: UserId) -> int:
        """Requests the user may still make in the current window."""
        return max(0, self.max_requests - len(self._recent(user_id, self._clock())))

    def reset_user(self, user_id: UserId):
        if user_id in self._requests:
            del self._requests[user_id]
            logger.debug(f"Rate limit reset for user {user_id}")
