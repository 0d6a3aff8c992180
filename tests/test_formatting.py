"""Tests for Telegram HTML templates."""

from council_relay.formatting import (
    escape_html,
    format_attributed,
    format_new_token,
    format_trade,
    format_usd,
    format_verdict,
    split_message,
    truncate_caption,
)


class TestHelpers:
    def test_escape_html(self):
        assert escape_html('<b>"a" & b</b>') == '&lt;b&gt;"a" &amp; b&lt;/b&gt;'

    def test_format_usd(self):
        assert format_usd(2_500_000) == "$2.50M"
        assert format_usd(12_345) == "$12.3K"
        assert format_usd(9.5) == "$9.50"

    def test_truncate_caption(self):
        assert truncate_caption("short") == "short"
        assert truncate_caption("x" * 20, max_length=10) == "xxxxxxx..."

    def test_split_prefers_newlines(self):
        chunks = split_message("aaaa\nbbbb\ncccc", max_length=10)
        assert chunks == ["aaaa\nbbbb", "cccc"]

    def test_split_hard_cut(self):
        assert split_message("x" * 25, max_length=10) == ["x" * 10, "x" * 10, "x" * 5]


class TestNewToken:
    def test_full_payload(self):
        text = format_new_token({
            "symbol": "PEPE", "name": "Pepe <3", "price": "0.00001234",
            "mcap": 1_200_000, "liquidity": 45_000, "holders": 321,
            "priceChange24h": -4.25, "address": "0x1",
        })
        assert "New Token: $PEPE" in text
        assert "Pepe &lt;3" in text
        assert "$0.00001234 🔴 -4.2%" in text or "$0.00001234 🔴 -4.3%" in text
        assert "$1.20M" in text
        assert "$45.0K" in text
        assert "<code>0x1</code>" in text
        assert "https://dexscreener.com/monad/0x1" in text

    def test_missing_fields(self):
        text = format_new_token({})
        assert "$???" in text
        assert "<b>MCap:</b> N/A" in text
        assert "CA:" not in text


class TestTrade:
    def test_buy(self):
        text = format_trade({"botId": "chad", "txHash": "0xabc", "amountIn": 1.5, "side": "buy", "tokenSymbol": "PEPE"})
        assert text.startswith("📈 BUY — <b>James</b>")
        assert "Amount: 1.50 MON" in text
        assert "https://monad.socialscan.io/tx/0xabc" in text

    def test_sell_unknown_bot(self):
        text = format_trade({"botId": "ghost", "side": "sell"})
        assert text.startswith("📉 SELL — <b>ghost</b>")
        assert "Amount: ?" in text
        assert "View TX" not in text


class TestVerdict:
    def test_buy_with_opinions(self):
        text = format_verdict({
            "verdict": "buy",
            "token": {"symbol": "PEPE"},
            "opinions": {"chad": "buy", "sterling": "pass"},
        })
        assert "✅ <b>COUNCIL VERDICT: BUY</b> — $PEPE" in text
        assert "James: <b>BUY</b>" in text
        assert "Harpal: <b>PASS</b>" in text

    def test_defaults(self):
        text = format_verdict({})
        assert "❌ <b>COUNCIL VERDICT: UNKNOWN</b> — $???" in text


class TestChat:
    def test_attributed(self):
        assert format_attributed("Keone", "<i>sharpe</i> is fine") == "<b>Keone:</b> <i>sharpe</i> is fine"

    def test_attributed_escapes_name(self):
        assert format_attributed("K<e>", "hi") == "<b>K&lt;e&gt;:</b> hi"
