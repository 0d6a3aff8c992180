"""Telegram HTML templates for Council events.

Telegram supports a limited HTML subset:
  <b>bold</b>, <i>italic</i>, <code>inline code</code>, <a href="url">link</a>

Payload fields from the event stream are escaped before they land inside
a template. Member chat content may carry the same HTML subset and is
passed through as written.
"""

import html as _html
from typing import Optional

from .identities import IDENTITIES

SEPARATOR = "━━━━━━━━━━━━━━━━━━"

# Telegram limits
MAX_MESSAGE_LENGTH = 4096
MAX_CAPTION_LENGTH = 1024


def escape_html(text: str) -> str:
    """Escape HTML special characters in plain text segments."""
    return _html.escape(str(text), quote=False)


def _name(bot_id: str) -> str:
    identity = IDENTITIES.get(bot_id)
    return identity.name if identity else str(bot_id)


def _number(value) -> Optional[float]:
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def format_usd(n: float) -> str:
    if n >= 1_000_000:
        return f"${n / 1_000_000:.2f}M"
    if n >= 1_000:
        return f"${n / 1_000:.1f}K"
    return f"${n:.2f}"


# ============================================================
# NEW TOKEN
# ============================================================

def format_new_token(token: dict, chain: str = "monad") -> str:
    symbol = token.get("symbol") or "???"
    name = token.get("name") or "Unknown"
    address = token.get("address")

    price = _number(token.get("price"))
    mcap = _number(token.get("mcap"))
    liquidity = _number(token.get("liquidity"))
    change = _number(token.get("priceChange24h"))

    price_text = f"${price:.8f}" if price else "N/A"
    change_text = ""
    if change:
        change_text = f"{'🟢' if change >= 0 else '🔴'} {change:.1f}%"

    lines = [
        f"🔍 <b>New Token: ${escape_html(symbol)}</b>",
        SEPARATOR,
        f"<b>Name:</b> {escape_html(name)}",
        f"<b>Price:</b> {price_text} {change_text}".rstrip(),
        f"<b>MCap:</b> {format_usd(mcap) if mcap else 'N/A'}",
        f"<b>Liquidity:</b> {format_usd(liquidity) if liquidity else 'N/A'}",
        f"<b>Holders:</b> {token.get('holders') or 'N/A'}",
    ]
    if address:
        address = escape_html(address)
        lines.append(f"<b>CA:</b> <code>{address}</code>")
        lines.append("")
        lines.append(
            f'📈 <a href="https://dexscreener.com/{chain}/{address}">DexScreener</a>'
            f' · <a href="https://nad.fun/tokens/{address}">NadFun</a>'
        )
    lines.append("⏳ <i>The Council is now analyzing this token...</i>")
    return "\n".join(lines)


# ============================================================
# TRADE
# ============================================================

def format_trade(trade: dict) -> str:
    bot_name = _name(trade.get("botId", "?"))
    symbol = trade.get("tokenSymbol") or "???"
    amount_in = _number(trade.get("amountIn"))
    amount = f"{amount_in:.2f} MON" if amount_in else "?"
    side = "📉 SELL" if trade.get("side") == "sell" else "📈 BUY"

    lines = [
        f"{side} — <b>{escape_html(bot_name)}</b>",
        f"Token: <b>${escape_html(symbol)}</b>",
        f"Amount: {amount}",
    ]
    tx_hash = trade.get("txHash")
    if tx_hash:
        lines.append(f'🔗 <a href="https://monad.socialscan.io/tx/{escape_html(tx_hash)}">View TX</a>')
    return "\n".join(lines)


# ============================================================
# VERDICT
# ============================================================

def format_verdict(data: dict) -> str:
    verdict = str(data.get("verdict") or "unknown").upper()
    emoji = "✅" if verdict == "BUY" else "❌"
    token = data.get("token") if isinstance(data.get("token"), dict) else {}
    symbol = token.get("symbol") or data.get("tokenSymbol") or data.get("symbol") or "???"

    lines = [
        "",
        f"{emoji} <b>COUNCIL VERDICT: {escape_html(verdict)}</b> — ${escape_html(symbol)}",
        SEPARATOR,
    ]

    opinions = data.get("opinions") or data.get("votes")
    if isinstance(opinions, dict):
        for bot_id, opinion in opinions.items():
            lines.append(f"{escape_html(_name(bot_id))}: <b>{escape_html(str(opinion).upper())}</b>")

    return "\n".join(lines)


# ============================================================
# CHAT
# ============================================================

def format_attributed(name: str, content: str) -> str:
    """Chat line posted by the main bot on behalf of a member."""
    return f"<b>{escape_html(name)}:</b> {content}"


# ============================================================
# LENGTH LIMITS
# ============================================================

def truncate_caption(text: str, max_length: int = MAX_CAPTION_LENGTH) -> str:
    if len(text) <= max_length:
        return text
    return text[: max_length - 3] + "..."


def split_message(text: str, max_length: int = MAX_MESSAGE_LENGTH) -> list[str]:
    """Split a long message into chunks respecting Telegram's length limit.

    Tries to split at newlines first, then spaces, then hard-cuts.
    """
    if len(text) <= max_length:
        return [text]

    chunks = []
    remaining = text
    while len(remaining) > max_length:
        split_at = remaining.rfind("\n", 0, max_length)
        if split_at <= 0:
            split_at = remaining.rfind(" ", 0, max_length)
        if split_at <= 0:
            split_at = max_length
        chunks.append(remaining[:split_at])
        remaining = remaining[split_at:].lstrip()
    if remaining:
        chunks.append(remaining)
    return chunks
