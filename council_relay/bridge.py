"""Reply bridge — Telegram users talking back to the Council.

A user message is forwarded to the backend together with the Council
member it is aimed at (if any). The backend picks a member when no
target is given, generates the reply, and this bridge posts it to the
group as that member.

Target resolution order:
  1. explicit hint supplied by the caller
  2. @username or display-name mention in the text
  3. the member whose message is being replied to
  4. unresolved — backend decides
"""

import logging
from dataclasses import dataclass
from typing import Optional

import httpx

from .dedup import Deduplicator
from .dispatch import DispatchQueue, OutboundMessage
from .formatting import format_attributed
from .identities import IdentityResolver

logger = logging.getLogger("council_relay.bridge")

CHAT_ENDPOINT = "/api/telegram/chat"


@dataclass(frozen=True)
class InboundMessage:
    text: str
    username: str
    user_id: Optional[int] = None
    reply_to_username: Optional[str] = None   # set when replying to one of our bots
    target_hint: Optional[str] = None


@dataclass(frozen=True)
class BackendReply:
    bot_id: Optional[str]
    bot_name: str
    response: str


class ReplyBridge:
    """Forwards inbound user messages to the backend and posts the reply."""

    def __init__(
        self,
        backend_url: str,
        queue: DispatchQueue,
        identities: IdentityResolver,
        deduplicator: Optional[Deduplicator] = None,
        client: Optional[httpx.AsyncClient] = None,
        timeout: float = 60.0,
    ):
        self.backend_url = backend_url.rstrip("/")
        self.queue = queue
        self.identities = identities
        self.dedup = deduplicator
        self._client = client or httpx.AsyncClient(timeout=timeout)

    async def close(self):
        await self._client.aclose()

    def resolve_target(self, message: InboundMessage) -> Optional[str]:
        if message.target_hint and self.identities.is_known(message.target_hint):
            return message.target_hint
        target = self.identities.detect_mention(message.text)
        if target:
            return target
        return self.identities.from_username(message.reply_to_username)

    async def forward(self, text: str, username: str, target: Optional[str]) -> Optional[BackendReply]:
        """POST a user message to the backend. Returns None on any failure."""
        url = f"{self.backend_url}{CHAT_ENDPOINT}"
        logger.info(f"📤 Forwarding to backend: \"{text[:50]}...\" target={target or 'random'}")

        try:
            response = await self._client.post(
                url, json={"message": text, "username": username, "targetBotId": target},
            )
        except httpx.HTTPError as e:
            logger.error(f"❌ Failed to forward to backend: {type(e).__name__}: {e}")
            return None

        if response.is_error:
            logger.error(f"❌ Backend returned {response.status_code}: {response.text[:200]}")
            return None

        try:
            data = response.json()
        except ValueError:
            logger.error("❌ Backend returned malformed JSON")
            return None

        if not isinstance(data, dict) or not isinstance(data.get("response"), str) or not data["response"]:
            logger.warning("Backend reply has no response text")
            return None

        bot_id = data.get("botId") if isinstance(data.get("botId"), str) else target
        bot_name = data.get("botName") or (self.identities.display_name(bot_id) if bot_id else "Council")
        return BackendReply(bot_id=bot_id, bot_name=str(bot_name), response=data["response"])

    async def handle_inbound(self, message: InboundMessage) -> Optional[BackendReply]:
        target = self.resolve_target(message)
        reply = await self.forward(message.text, message.username, target)
        if reply is None:
            return None

        # The backend also broadcasts the reply on the event stream; whichever
        # copy arrives first is posted.
        if self.dedup is not None and self.identities.is_known(reply.bot_id):
            if not self.dedup.is_new_message(reply.bot_id, reply.response):
                logger.info(f"{reply.bot_name} reply already relayed from the stream")
                return reply

        credential = self.identities.credential(reply.bot_id)
        if credential:
            self.queue.enqueue(OutboundMessage(reply.response, sender_id=reply.bot_id))
        else:
            self.queue.enqueue(OutboundMessage(format_attributed(reply.bot_name, reply.response)))

        logger.info(f"✅ {reply.bot_name} replied to {message.username}")
        return reply
