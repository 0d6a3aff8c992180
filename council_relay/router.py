"""Event routing — stream events to outbound Telegram messages.

Filtering (known sender, ignore patterns, dedup, current-token check)
always happens before the first await in a handler, so concurrent
handler tasks never race on the dedup windows or the current token.
"""

import logging
import re
from collections import Counter
from typing import Optional

from .dedup import Deduplicator
from .dispatch import DispatchQueue, OutboundMessage
from .events import ChatMessage, Event, NewAsset, Trade, UnknownEvent, Verdict, decode_event
from .formatting import format_attributed, format_new_token, format_trade, format_verdict
from .identities import IdentityResolver
from .images import ImageResolver

logger = logging.getLogger("council_relay.router")


# ============================================================
# MESSAGE FILTERS
# ============================================================
# Trade-execution chatter the bots emit alongside real trade events.

IGNORED_PATTERNS = [
    re.compile(r"^got \d+", re.IGNORECASE),
    re.compile(r"^bought \d+", re.IGNORECASE),
    re.compile(r"^sold \d+", re.IGNORECASE),
    re.compile(r"wanted in but insufficient", re.IGNORECASE),
    re.compile(r"^insufficient balance", re.IGNORECASE),
    re.compile(r"^executing .* trade", re.IGNORECASE),
    re.compile(r"^trade confirmed", re.IGNORECASE),
    re.compile(r"^swapped \d+", re.IGNORECASE),
]


def should_ignore_message(content: str) -> bool:
    content = content.strip()
    return any(pattern.search(content) for pattern in IGNORED_PATTERNS)


class EventRouter:
    """Dispatches decoded events to the outbound queue."""

    def __init__(
        self,
        queue: DispatchQueue,
        identities: IdentityResolver,
        deduplicator: Optional[Deduplicator] = None,
        images: Optional[ImageResolver] = None,
        chain: str = "monad",
    ):
        self.queue = queue
        self.identities = identities
        self.dedup = deduplicator or Deduplicator()
        self.images = images
        self.chain = chain
        self.current_token_address: Optional[str] = None
        self.stats: Counter = Counter()
        self._handlers = {
            ChatMessage: self._handle_chat,
            NewAsset: self._handle_new_token,
            Trade: self._handle_trade,
            Verdict: self._handle_verdict,
        }

    async def handle_raw(self, raw):
        """Decode a raw stream frame and handle it."""
        await self.handle(decode_event(raw))

    async def handle(self, event: Event):
        handler = self._handlers.get(type(event))
        if handler is None:
            self._drop("unknown")
            if isinstance(event, UnknownEvent) and event.type is not None:
                logger.debug(f"Ignoring {event.type} event: {event.reason}")
            return
        await handler(event)

    def _drop(self, reason: str):
        self.stats[f"dropped.{reason}"] += 1

    def _emit(self, message: OutboundMessage):
        self.stats["dispatched"] += 1
        self.queue.enqueue(message)

    # ── Chat ─────────────────────────────────────────────────

    async def _handle_chat(self, event: ChatMessage):
        """Each bot posts as itself; bots without their own token are prefixed."""
        if not self.identities.is_known(event.sender_id):
            self._drop("unknown_sender")
            return
        if should_ignore_message(event.content):
            self._drop("ignored")
            return
        if not self.dedup.is_new_message(event.sender_id, event.content):
            self._drop("duplicate")
            return

        has_token = self.identities.credential(event.sender_id) is not None
        logger.info(
            f"📨 botId={event.sender_id} token={'YES' if has_token else 'NO'} "
            f"content={event.content[:30]}"
        )
        if has_token:
            self._emit(OutboundMessage(event.content, sender_id=event.sender_id))
        else:
            name = self.identities.display_name(event.sender_id)
            self._emit(OutboundMessage(format_attributed(name, event.content)))

    # ── New token ────────────────────────────────────────────

    async def _handle_new_token(self, event: NewAsset):
        if event.address == self.current_token_address:
            self._drop("same_token")
            return
        self.current_token_address = event.address

        text = format_new_token(event.payload, chain=self.chain)
        image_url = await self.images.resolve(event) if self.images else None

        if image_url:
            self._emit(OutboundMessage(text, image_url=image_url))
        else:
            self._emit(OutboundMessage(text))

    # ── Trade ────────────────────────────────────────────────

    async def _handle_trade(self, event: Trade):
        if not self.identities.is_known(event.sender_id):
            self._drop("unknown_sender")
            return
        if not self.dedup.is_new_trade(event.tx_hash):
            self._drop("duplicate")
            return
        self._emit(OutboundMessage(format_trade(event.payload)))

    # ── Verdict ──────────────────────────────────────────────

    async def _handle_verdict(self, event: Verdict):
        self._emit(OutboundMessage(format_verdict(event.payload)))
