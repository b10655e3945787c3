"""Builds the platform-neutral replies the pipeline sends back."""

from __future__ import annotations

from typing import TYPE_CHECKING
from urllib.parse import quote

from c64bot.models.domain import (
    ActionLink,
    Attachment,
    EmulatorLaunchConfig,
    ReplyEmbed,
    ReplyPayload,
)
from c64bot.models.messages import InboundMessage
from c64bot.observability.redaction import describe_error

if TYPE_CHECKING:
    from c64bot.config import BotConfig

# Characters JavaScript's encodeURIComponent leaves untouched besides [A-Za-z0-9-_.~]
_URI_COMPONENT_SAFE = "!*'()"


def build_emulator_url(base_url: str, launch_config: EmulatorLaunchConfig) -> str:
    """Web emulator link with the run config as a URL-encoded JSON fragment."""
    fragment = quote(launch_config.to_json(), safe=_URI_COMPONENT_SAFE)
    return f"{base_url}#{fragment}"


class ReplyBuilder:
    def __init__(self, config: "BotConfig") -> None:
        self.config = config

    def emulator_url(self, file_url: str) -> str:
        return build_emulator_url(
            self.config.emulator_base_url, self.config.emulator_launch_config(file_url)
        )

    def success(
        self,
        attachment: Attachment,
        message: InboundMessage,
        *,
        file_url: str,
        thumbnail_url: str | None = None,
    ) -> ReplyPayload:
        embed = ReplyEmbed(
            title=attachment.name,
            description=message.text_without_prefix(self.config.command_prefix),
            author=message.author.display_name,
            thumbnail_url=thumbnail_url,
        )
        return ReplyPayload(
            embed=embed,
            action_links=[
                ActionLink(label="Emulate!", url=self.emulator_url(file_url)),
                ActionLink(label="Download", url=file_url),
            ],
        )

    def failure(self, attachment: Attachment, error: BaseException) -> ReplyPayload:
        return ReplyPayload.plain(
            f"Sorry, I couldn't process {attachment.name}. Error: {describe_error(error)}"
        )

    def rejection(self, attachment: Attachment) -> ReplyPayload:
        extensions = " or ".join(self.config.normalized_extensions)
        return ReplyPayload.plain(
            f"Skipping {attachment.name} - only {extensions} files are supported."
        )
