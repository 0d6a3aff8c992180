"""Council stream events.

Raw stream frames are JSON objects with a ``type`` field. Field layout
varies by sender: values may sit at the top level or inside a ``data``
(or ``token`` / ``trade``) sub-object. ``decode_event`` resolves those
shapes once and produces one of the typed events below. Anything that
does not fit becomes an ``UnknownEvent`` and is dropped by the router.
"""

import json
import logging
from dataclasses import dataclass, field
from typing import Any, Optional, Union

logger = logging.getLogger("council_relay.events")


@dataclass(frozen=True)
class ChatMessage:
    sender_id: str
    content: str


@dataclass(frozen=True)
class NewAsset:
    address: str
    payload: dict = field(default_factory=dict, compare=False)

    @property
    def image(self) -> Optional[str]:
        image = self.payload.get("image")
        return image if isinstance(image, str) and image else None


@dataclass(frozen=True)
class Trade:
    sender_id: str
    tx_hash: str
    payload: dict = field(default_factory=dict, compare=False)


@dataclass(frozen=True)
class Verdict:
    payload: dict = field(default_factory=dict, compare=False)


@dataclass(frozen=True)
class UnknownEvent:
    type: Optional[str] = None
    reason: str = "unrecognized"


Event = Union[ChatMessage, NewAsset, Trade, Verdict, UnknownEvent]


def _text(value: Any) -> Optional[str]:
    """Non-empty string or None."""
    if isinstance(value, str) and value:
        return value
    return None


def _object(value: Any) -> Optional[dict]:
    return value if isinstance(value, dict) else None


def _decode_chat(msg: dict) -> Event:
    data = _object(msg.get("data")) or {}
    sender_id = _text(msg.get("botId")) or _text(data.get("botId"))
    content = _text(msg.get("content")) or _text(data.get("content")) or _text(data.get("message"))
    if not sender_id or not content:
        return UnknownEvent(msg.get("type"), "chat message without botId/content")
    return ChatMessage(sender_id=sender_id, content=content)


def _decode_token(msg: dict) -> Event:
    token = _object(msg.get("token")) or _object(msg.get("data"))
    if token is None:
        return UnknownEvent(msg.get("type"), "token event without payload")
    address = _text(token.get("address"))
    if not address:
        return UnknownEvent(msg.get("type"), "token event without address")
    return NewAsset(address=address, payload=token)


def _decode_trade(msg: dict) -> Event:
    trade = _object(msg.get("trade")) or _object(msg.get("data"))
    if trade is None:
        return UnknownEvent(msg.get("type"), "trade event without payload")
    sender_id = _text(trade.get("botId"))
    tx_hash = _text(trade.get("txHash"))
    if not sender_id or not tx_hash:
        return UnknownEvent(msg.get("type"), "trade without botId/txHash")
    return Trade(sender_id=sender_id, tx_hash=tx_hash, payload=trade)


def _decode_verdict(msg: dict) -> Event:
    return Verdict(payload=_object(msg.get("data")) or msg)


_DECODERS = {
    "message": _decode_chat,
    "chat": _decode_chat,
    "new_token": _decode_token,
    "token": _decode_token,
    "trade": _decode_trade,
    "verdict": _decode_verdict,
    "vote_result": _decode_verdict,
}


def decode_event(raw: Union[str, bytes, dict]) -> Event:
    """Decode a raw stream frame into a typed event.

    Never raises: malformed JSON, non-object frames and unknown types all
    decode to ``UnknownEvent``.
    """
    if isinstance(raw, (str, bytes, bytearray)):
        try:
            raw = json.loads(raw)
        except (ValueError, UnicodeDecodeError):
            return UnknownEvent(None, "invalid JSON")

    if not isinstance(raw, dict):
        return UnknownEvent(None, "frame is not an object")

    event_type = raw.get("type")
    if not isinstance(event_type, str):
        return UnknownEvent(None, "frame without type")
    decoder = _DECODERS.get(event_type)
    if decoder is None:
        return UnknownEvent(event_type)
    return decoder(raw)
