"""Telegram chat adapter."""

from c64bot.telegram.bot import TelegramBotInterface
from c64bot.telegram.message_sender import TelegramReplySink

__all__ = ["TelegramBotInterface", "TelegramReplySink"]
