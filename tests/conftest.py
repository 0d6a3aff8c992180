"""Pytest configuration and shared fixtures."""

import asyncio
from unittest.mock import AsyncMock, MagicMock

import pytest
from telegram.error import BadRequest

from council_relay.config import RelaySettings
from council_relay.dispatch import DispatchQueue
from council_relay.identities import IdentityResolver

MAIN_TOKEN = "main-token"
CHAT_ID = "-100123"


class FakeBots:
    """Bot factory recording every send as (token, method, kwargs)."""

    def __init__(self):
        self.calls: list[tuple[str, str, dict]] = []
        self.bots: dict[str, MagicMock] = {}
        self.fail_texts: set[str] = set()
        self.bad_markup: set[str] = set()
        self.fail_photos = False

    def __call__(self, token: str):
        bot = MagicMock()
        bot.initialize = AsyncMock()
        bot.shutdown = AsyncMock()

        async def send_message(**kwargs):
            self.calls.append((token, "send_message", kwargs))
            if kwargs["text"] in self.fail_texts:
                raise BadRequest("Bad Request: chat not found")
            if kwargs["text"] in self.bad_markup:
                raise BadRequest("Bad Request: can't parse entities: unclosed start tag")

        async def send_photo(**kwargs):
            self.calls.append((token, "send_photo", kwargs))
            if self.fail_photos:
                raise BadRequest("Bad Request: wrong file identifier")

        bot.send_message = AsyncMock(side_effect=send_message)
        bot.send_photo = AsyncMock(side_effect=send_photo)
        self.bots[token] = bot
        return bot

    @property
    def texts(self) -> list[str]:
        return [kw["text"] for _, method, kw in self.calls if method == "send_message"]


class Clock:
    """Manually advanced monotonic clock."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float):
        self.now += seconds


async def no_sleep(delay: float):
    await asyncio.sleep(0)


@pytest.fixture
def settings():
    return RelaySettings(
        _env_file=None,
        telegram_bot_token=MAIN_TOKEN,
        telegram_chat_id=CHAT_ID,
        ws_url="wss://council.example/ws",
        james_bot_token="james-token",
        backend_url="https://backend.example",
    )


@pytest.fixture
def identities(settings):
    return IdentityResolver(settings)


@pytest.fixture
def fake_bots():
    return FakeBots()


@pytest.fixture
def clock():
    return Clock()


@pytest.fixture
def queue(identities, fake_bots):
    return DispatchQueue(
        MAIN_TOKEN, CHAT_ID, identities, send_interval=0.4,
        bot_factory=fake_bots, sleep=no_sleep,
    )
