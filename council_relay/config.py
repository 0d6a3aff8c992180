"""Council Relay configuration management."""

import logging
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings

logger = logging.getLogger("council_relay.config")


class ConfigError(RuntimeError):
    """Raised when required configuration is missing."""


class RelaySettings(BaseSettings):
    """Settings loaded from environment variables or .env file."""

    # Telegram — main bot posts system messages, photos and fallbacks
    telegram_bot_token: Optional[str] = Field(default=None, description="Main Telegram bot token")
    telegram_chat_id: Optional[str] = Field(default=None, description="Target group chat ID")

    # Council event stream
    ws_url: Optional[str] = Field(default=None, description="Council WebSocket URL")

    # Backend for user replies (reply bridge is disabled without it)
    backend_url: Optional[str] = Field(default=None, description="Council backend base URL")
    backend_timeout: float = Field(default=60.0, description="Timeout for backend reply requests")

    # Per-member bots
    james_bot_token: Optional[str] = Field(default=None, description="Telegram bot token for James")
    keone_bot_token: Optional[str] = Field(default=None, description="Telegram bot token for Keone")
    portdev_bot_token: Optional[str] = Field(default=None, description="Telegram bot token for Portdev")
    harpal_bot_token: Optional[str] = Field(default=None, description="Telegram bot token for Harpal")
    mike_bot_token: Optional[str] = Field(default=None, description="Telegram bot token for Mike")

    # Reconnect backoff
    reconnect_base_delay: float = Field(default=1.0, description="Initial reconnect delay (seconds)")
    reconnect_max_delay: float = Field(default=30.0, description="Reconnect delay cap (seconds)")

    # Outbound pacing (Telegram groups allow ~20 msg/min per bot)
    send_interval: float = Field(default=0.4, description="Delay between outbound sends (seconds)")
    queue_warn_size: int = Field(default=50, description="Log a warning when this many sends are pending")

    # Dedup windows
    trade_dedup_ttl: float = Field(default=60.0, description="Trade dedup window (seconds)")
    message_dedup_ttl: float = Field(default=30.0, description="Chat message dedup window (seconds)")

    # Image lookup
    http_timeout: float = Field(default=10.0, description="Timeout for provider/backend HTTP calls")
    image_chain: str = Field(default="monad", description="DexScreener chain id")

    # Inbound rate limit
    inbound_max_messages: int = Field(default=3, description="Max user messages per window")
    inbound_window_seconds: int = Field(default=60, description="Inbound rate limit window (seconds)")

    log_file: str = Field(default="~/council-relay.log", description="Log file path")

    model_config = {"env_file": ".env", "extra": "ignore"}


REQUIRED_SETTINGS = ("telegram_bot_token", "telegram_chat_id", "ws_url")


def load_settings(**overrides) -> RelaySettings:
    """Load settings from environment and validate the required ones.

    Raises:
        ConfigError: if TELEGRAM_BOT_TOKEN, TELEGRAM_CHAT_ID or WS_URL is missing.
    """
    settings = RelaySettings(**overrides)

    missing = [name.upper() for name in REQUIRED_SETTINGS if not getattr(settings, name)]
    if missing:
        raise ConfigError(f"Missing env vars. Need: {', '.join(missing)}")

    if settings.send_interval < 0.05:
        logger.warning(
            f"send_interval={settings.send_interval}s is below Telegram's group rate limit; "
            "expect 429 errors under load."
        )

    return settings
