"""Message handler base class.

Every handler exposes a pure ``matches`` predicate and an async ``execute``.
Lower priority values run first.
"""

from __future__ import annotations

from abc import ABC, abstractmethod

from c64bot.models.messages import InboundMessage


class MessageHandler(ABC):
    """Base class for all message handlers."""

    priority: int = 100

    @abstractmethod
    def matches(self, message: InboundMessage) -> bool:
        """Return True if this handler should process the message.

        Must not have side effects and must ignore messages from bots,
        otherwise the bot would react to its own replies.
        """

    @abstractmethod
    async def execute(self, message: InboundMessage) -> None:
        """Process the message."""

    @property
    def name(self) -> str:
        return type(self).__name__

    def set_priority(self, priority: int) -> MessageHandler:
        self.priority = priority
        return self

    def __repr__(self) -> str:
        return f"<{self.name} priority={self.priority}>"


class KeywordHandler(MessageHandler):
    """Handler triggered by any of a fixed set of keywords in the text."""

    def __init__(self, keywords: list[str]) -> None:
        self.keywords = [k.lower() for k in keywords]

    def matches(self, message: InboundMessage) -> bool:
        if message.author.is_bot:
            return False
        content = message.text.lower()
        return any(keyword in content for keyword in self.keywords)
