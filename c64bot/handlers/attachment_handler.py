"""Handler for program file attachments.

Fans out one ``AttachmentPipeline`` per qualifying attachment and waits for
all of them to settle before the message counts as handled. The source
message is deleted once, after that, if any pipeline delivered its reply.
"""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING

from c64bot.errors import SourceDeletionError
from c64bot.handlers.base import MessageHandler
from c64bot.models.messages import InboundMessage

if TYPE_CHECKING:
    from c64bot.config import BotConfig
    from c64bot.services.attachment_pipeline import PipelineFactory

logger = logging.getLogger(__name__)


class AttachmentHandler(MessageHandler):
    """Processes .prg/.d64 attachments, or prefixed messages without any."""

    priority = 10

    def __init__(self, config: "BotConfig", pipeline_factory: "PipelineFactory") -> None:
        self.config = config
        self._pipeline_factory = pipeline_factory

    def _is_accepted(self, name: str) -> bool:
        return name.lower().endswith(self.config.normalized_extensions)

    def matches(self, message: InboundMessage) -> bool:
        if message.author.is_bot:
            return False

        if message.uses_prefix(self.config.command_prefix):
            return True

        return any(self._is_accepted(a.name) for a in message.attachments)

    async def execute(self, message: InboundMessage) -> None:
        if not message.attachments:
            extensions = " or ".join(self.config.normalized_extensions)
            await message.reply(f"Please attach a {extensions} file to your message.")
            return

        prefixed = message.uses_prefix(self.config.command_prefix)
        pipelines = []
        for attachment in message.attachments:
            # Unrelated files shared in the same channel are ignored silently
            if not prefixed and not self._is_accepted(attachment.name):
                logger.debug("Ignoring unsupported attachment %s", attachment.name)
                continue
            pipelines.append(self._pipeline_factory(attachment, message))

        results = await asyncio.gather(
            *(pipeline.run() for pipeline in pipelines),
            return_exceptions=True,
        )

        responded = False
        for pipeline, result in zip(pipelines, results):
            if isinstance(result, BaseException):
                logger.error(
                    "Pipeline for %s crashed: %s",
                    pipeline.attachment.name,
                    result,
                    exc_info=result,
                )
            elif result.responded:
                responded = True

        if responded and self.config.delete_source_message:
            try:
                await message.delete_source()
            except SourceDeletionError as e:
                logger.warning("Could not delete original message: %s", e)
