"""Handler registry.

Holds handlers sorted by ascending priority and dispatches each inbound
message to every handler whose predicate matches. Handlers do not
short-circuit each other: a help request carrying a program file is seen by
both the attachment handler and the help handler.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from c64bot.handlers.base import MessageHandler
from c64bot.models.messages import InboundMessage

if TYPE_CHECKING:
    from c64bot.config import BotConfig
    from c64bot.services.attachment_pipeline import PipelineFactory

logger = logging.getLogger(__name__)


class HandlerRegistry:
    """Priority-ordered collection of message handlers.

    Registration happens at startup only; the list is treated as immutable
    while messages are being dispatched.
    """

    def __init__(self) -> None:
        self._handlers: list[MessageHandler] = []
        self.initialized = False

    def register(self, handler: MessageHandler) -> HandlerRegistry:
        """Append a handler and re-sort by priority.

        The sort is stable, so handlers with equal priority keep their
        registration order. No duplicate detection is performed.
        """
        self._handlers.append(handler)
        self._handlers.sort(key=lambda h: h.priority)
        return self

    def unregister(self, handler_or_name: MessageHandler | str) -> bool:
        """Remove every handler with the given name.

        Returns:
            True if at least one handler was removed.
        """
        name = handler_or_name if isinstance(handler_or_name, str) else handler_or_name.name
        before = len(self._handlers)
        self._handlers = [h for h in self._handlers if h.name != name]
        return len(self._handlers) < before

    @property
    def handlers(self) -> list[MessageHandler]:
        return list(self._handlers)

    async def dispatch(self, message: InboundMessage) -> bool:
        """Run every matching handler in priority order.

        Each handler is awaited before the next one is evaluated. A failing
        handler is logged and skipped.

        Returns:
            True if at least one handler executed without raising.
        """
        handled = False

        for handler in self._handlers:
            try:
                if not handler.matches(message):
                    continue
                await handler.execute(message)
                handled = True
            except Exception:
                logger.exception("Error in handler %s", handler.name)

        return handled


def initialize_handlers(
    registry: HandlerRegistry,
    config: "BotConfig",
    pipeline_factory: "PipelineFactory",
) -> HandlerRegistry:
    """Register all known handlers exactly once.

    Later calls return the registry unchanged.

    Args:
        registry: Registry owned by the application.
        config: Application configuration.
        pipeline_factory: Builds one pipeline per accepted attachment.

    Returns:
        The same registry, for chaining.
    """
    from c64bot.handlers.attachment_handler import AttachmentHandler
    from c64bot.handlers.help_handler import HelpHandler
    from c64bot.handlers.ping_handler import PingHandler

    if registry.initialized:
        return registry

    registry.register(AttachmentHandler(config, pipeline_factory))
    registry.register(HelpHandler(config))
    registry.register(PingHandler(config))
    registry.initialized = True

    logger.info("Initialized %d message handlers", len(registry.handlers))
    return registry
