"""Message handlers package."""

from .attachment_handler import AttachmentHandler
from .base import KeywordHandler, MessageHandler
from .help_handler import HelpHandler
from .ping_handler import PingHandler
from .registry import HandlerRegistry, initialize_handlers

__all__ = [
    "AttachmentHandler",
    "HandlerRegistry",
    "HelpHandler",
    "KeywordHandler",
    "MessageHandler",
    "PingHandler",
    "initialize_handlers",
]
