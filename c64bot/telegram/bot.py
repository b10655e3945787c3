"""Telegram bot interface.

Receives updates via long polling, converts each one into an
``InboundMessage`` and hands it to the handler registry.
"""

from __future__ import annotations

import logging
from datetime import datetime, UTC
from typing import TYPE_CHECKING

from telegram import Update
from telegram.error import TelegramError
from telegram.ext import Application, ContextTypes, MessageHandler, filters

from c64bot.models.domain import Attachment
from c64bot.models.messages import Author, InboundMessage
from c64bot.telegram.message_sender import TelegramReplySink

if TYPE_CHECKING:
    from c64bot.config import BotConfig
    from c64bot.handlers.registry import HandlerRegistry

logger = logging.getLogger(__name__)


def display_name_of(user) -> str:
    """Best human-readable name for a Telegram user."""
    if user is None:
        return "unknown"
    full_name = " ".join(p for p in (user.first_name, user.last_name) if p)
    return full_name or (f"@{user.username}" if user.username else str(user.id))


class TelegramBotInterface:
    """Telegram front-end for the handler registry.

    Plain text messages, captions and document uploads are all routed
    through ``HandlerRegistry.dispatch``; the handlers decide what to do.
    """

    def __init__(
        self,
        config: "BotConfig",
        registry: "HandlerRegistry",
        application: Application | None = None,
    ) -> None:
        """Initialize the Telegram bot interface.

        Args:
            config: Application configuration with bot token.
            registry: Initialized handler registry.
            application: Prebuilt application (built from the token if None).
        """
        self.config = config
        self.registry = registry
        # Updates are processed concurrently; no message waits on another.
        self.application = application or (
            Application.builder()
            .token(config.telegram_bot_token)
            .concurrent_updates(True)
            .build()
        )
        self._setup_handlers()

        logger.info("TelegramBotInterface initialized")

    def _setup_handlers(self) -> None:
        self.application.add_handler(
            MessageHandler(
                (filters.TEXT & ~filters.COMMAND) | filters.CAPTION | filters.Document.ALL,
                self._handle_message,
            )
        )

    async def to_inbound_message(self, update: Update, bot) -> InboundMessage | None:
        """Translate a Telegram update into an ``InboundMessage``.

        Returns None for updates without a message.
        """
        message = update.effective_message
        if message is None or update.effective_chat is None:
            return None

        user = update.effective_user
        author = Author(
            is_bot=bool(user.is_bot) if user is not None else False,
            display_name=display_name_of(user),
        )

        text = message.text or message.caption or ""
        attachments: list[Attachment] = []
        document = message.document
        if document is not None:
            name = document.file_name or "unnamed_file"
            if not self._wants_file(name, text):
                logger.debug("Not resolving unrelated document %s", name)
            else:
                attachment = await self._resolve_document(bot, document.file_id, name)
                if attachment is not None:
                    attachments.append(attachment)

        return InboundMessage(
            author=author,
            text=text,
            sink=TelegramReplySink(bot, update.effective_chat.id, message.message_id),
            attachments=attachments,
            created_at=message.date or datetime.now(UTC),
            message_id=str(message.message_id),
        )

    def _wants_file(self, name: str, text: str) -> bool:
        """Only accepted file types, or any file under the trigger text, get a download URL."""
        if name.lower().endswith(self.config.normalized_extensions):
            return True
        prefix = self.config.command_prefix
        return bool(prefix) and text.strip().lower().startswith(prefix.lower())

    async def _resolve_document(self, bot, file_id: str, name: str) -> Attachment | None:
        try:
            tg_file = await bot.get_file(file_id)
        except TelegramError as e:
            logger.warning("Could not resolve Telegram file for %s: %s", name, e)
            return None
        return Attachment(name=name, source_url=tg_file.file_path)

    async def _handle_message(
        self,
        update: Update,
        context: ContextTypes.DEFAULT_TYPE,
    ) -> None:
        inbound = await self.to_inbound_message(update, context.bot)
        if inbound is None:
            return

        logger.debug(
            "Dispatching message %s from %s (%d attachments)",
            inbound.message_id,
            inbound.author.display_name,
            len(inbound.attachments),
        )
        handled = await self.registry.dispatch(inbound)
        if not handled:
            logger.debug("No handler matched message %s", inbound.message_id)

    async def start(self) -> None:
        """Initialize the bot and start polling for updates."""
        logger.info("Starting Telegram bot...")

        await self.application.initialize()
        await self.application.start()
        await self.application.updater.start_polling(allowed_updates=Update.ALL_TYPES)

        logger.info("Telegram bot started and polling for updates")

    async def stop(self) -> None:
        """Stop polling and shut the bot down."""
        logger.info("Stopping Telegram bot...")

        if self.application.updater.running:
            await self.application.updater.stop()

        await self.application.stop()
        await self.application.shutdown()

        logger.info("Telegram bot stopped")
