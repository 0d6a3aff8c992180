"""Council Relay — live Council events to Telegram, and replies back."""

__version__ = "0.3.0"
