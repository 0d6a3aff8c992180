"""Council member identities.

Each Council member posts through their own Telegram bot when a token
is configured for them; otherwise the main bot posts on their behalf.
"""

import logging
from dataclasses import dataclass
from typing import Optional

logger = logging.getLogger("council_relay.identities")


@dataclass(frozen=True)
class Identity:
    bot_id: str
    name: str
    role: str
    credential_key: str   # RelaySettings attribute holding this member's bot token
    username: str         # Telegram @username of the member's bot


IDENTITIES: dict[str, Identity] = {
    "chad": Identity("chad", "James", "Chart Analyst", "james_bot_token", "JamesCouncilBot"),
    "quantum": Identity("quantum", "Keone", "Quant Analyst", "keone_bot_token", "KeoneCouncilBot"),
    "sensei": Identity("sensei", "Portdev", "Community Analyst", "portdev_bot_token", "PortdevCouncilBot"),
    "sterling": Identity("sterling", "Harpal", "Risk Manager", "harpal_bot_token", "HarpalCouncilBot"),
    "oracle": Identity("oracle", "Mike", "Whale Tracker", "mike_bot_token", "MikeCouncilBot"),
}


class IdentityResolver:
    """Maps Council bot ids to display names and bot credentials."""

    def __init__(self, settings=None, identities: Optional[dict[str, Identity]] = None):
        self._identities = identities if identities is not None else IDENTITIES
        self._settings = settings
        self._by_username = {i.username.lower(): i.bot_id for i in self._identities.values()}

    def is_known(self, bot_id: Optional[str]) -> bool:
        return bool(bot_id) and bot_id in self._identities

    def display_name(self, bot_id: str) -> str:
        """Display name for a bot id, or the id itself when unknown."""
        identity = self._identities.get(bot_id)
        return identity.name if identity else bot_id

    def credential(self, bot_id: Optional[str]) -> Optional[str]:
        """Return the member's own bot token, or None to use the main bot."""
        identity = self._identities.get(bot_id) if bot_id else None
        if not identity or self._settings is None:
            return None
        return getattr(self._settings, identity.credential_key, None) or None

    def from_username(self, username: Optional[str]) -> Optional[str]:
        """Resolve a Telegram bot username (without @) to a bot id."""
        if not username:
            return None
        return self._by_username.get(username.lstrip("@").lower())

    def detect_mention(self, text: str) -> Optional[str]:
        """Find the first member addressed in the text.

        @username mentions win over plain display-name mentions.
        """
        lowered = text.lower()
        for identity in self._identities.values():
            if f"@{identity.username.lower()}" in lowered:
                return identity.bot_id
        for identity in self._identities.values():
            if identity.name.lower() in lowered:
                return identity.bot_id
        return None

    def configured(self) -> dict[str, bool]:
        """Which members have a dedicated bot token."""
        return {bot_id: self.credential(bot_id) is not None for bot_id in self._identities}

    def __iter__(self):
        return iter(self._identities.values())
