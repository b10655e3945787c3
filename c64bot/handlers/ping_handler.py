"""Simple ping-pong handler for liveness checks."""

from __future__ import annotations

from datetime import datetime, UTC
from typing import TYPE_CHECKING

from c64bot.handlers.base import KeywordHandler
from c64bot.models.messages import InboundMessage

if TYPE_CHECKING:
    from c64bot.config import BotConfig


class PingHandler(KeywordHandler):
    priority = 30

    def __init__(self, config: "BotConfig") -> None:
        prefix = config.command_prefix
        super().__init__([f"{prefix} ping", f"{prefix}-ping", f"ping {prefix}"])

    async def execute(self, message: InboundMessage) -> None:
        latency_ms = int((datetime.now(UTC) - message.created_at).total_seconds() * 1000)
        await message.reply(f"Pong! Bot latency: {max(0, latency_ms)}ms")
