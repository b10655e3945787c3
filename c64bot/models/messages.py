"""Platform-neutral inbound chat message.

Chat adapters (see ``c64bot.telegram``) translate platform updates into an
``InboundMessage`` so handlers and pipelines never touch a platform SDK.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, UTC
from typing import Any, Protocol

from c64bot.models.domain import Attachment, ReplyPayload


class ReplySink(Protocol):
    """Where replies for one inbound message go."""

    async def send(self, payload: ReplyPayload) -> Any: ...

    async def delete_source(self) -> None: ...


@dataclass(frozen=True)
class Author:
    """Who sent the message.

    Attributes:
        is_bot: True for automated agents (including this bot itself).
        display_name: Name used for attribution in replies.
    """

    is_bot: bool = False
    display_name: str = "unknown"


@dataclass
class InboundMessage:
    """A chat message as seen by the handlers."""

    author: Author
    text: str
    sink: ReplySink
    attachments: list[Attachment] = field(default_factory=list)
    created_at: datetime = field(default_factory=lambda: datetime.now(UTC))
    message_id: str | None = None

    def uses_prefix(self, prefix: str) -> bool:
        """True if the message text starts with the trigger text."""
        if not prefix:
            return False
        return self.text.strip().lower().startswith(prefix.lower())

    def text_without_prefix(self, prefix: str) -> str:
        text = self.text.strip()
        if self.uses_prefix(prefix):
            text = text[len(prefix) :].strip()
        return text

    async def reply(self, payload: ReplyPayload | str) -> Any:
        if isinstance(payload, str):
            payload = ReplyPayload.plain(payload)
        return await self.sink.send(payload)

    async def delete_source(self) -> None:
        await self.sink.delete_source()
