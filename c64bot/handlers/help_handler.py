"""Handler for help and information commands."""

from __future__ import annotations

from typing import TYPE_CHECKING

from c64bot.handlers.base import KeywordHandler
from c64bot.models.domain import ReplyEmbed, ReplyPayload
from c64bot.models.messages import InboundMessage

if TYPE_CHECKING:
    from c64bot.config import BotConfig


class HelpHandler(KeywordHandler):
    priority = 20

    def __init__(self, config: "BotConfig") -> None:
        prefix = config.command_prefix
        super().__init__(
            [
                f"{prefix} help",
                f"{prefix}-help",
                f"help {prefix}",
                f"{prefix} info",
                f"{prefix}-info",
            ]
        )
        self.config = config

    async def execute(self, message: InboundMessage) -> None:
        prefix = self.config.command_prefix
        extensions = "/".join(self.config.normalized_extensions)
        description = "\n".join(
            [
                "I'm here to rule the demoscene.",
                "",
                f"Usage: upload a {extensions} file - I'll take care of the rest.",
                "",
                "Commands:",
                f"{prefix} help - Show this help message",
                f"{prefix} ping - Check that I'm alive",
            ]
        )
        await message.reply(
            ReplyPayload(embed=ReplyEmbed(title="C64 Bot Help", description=description))
        )
