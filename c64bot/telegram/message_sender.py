"""Telegram reply delivery.

Turns a platform-neutral ``ReplyPayload`` into Telegram API calls for one
inbound message.
"""

from __future__ import annotations

import logging
from typing import Any, Protocol

from telegram import InlineKeyboardButton, InlineKeyboardMarkup, ReplyParameters
from telegram.error import TelegramError

from c64bot.errors import ReplyDeliveryError, SourceDeletionError
from c64bot.models.domain import ActionLink, ReplyPayload

logger = logging.getLogger(__name__)

# Telegram limits for message text and media captions
TELEGRAM_MAX_TEXT = 4096
TELEGRAM_MAX_CAPTION = 1024


class TelegramBotProtocol(Protocol):
    async def send_message(self, chat_id: int | str, text: str, **kwargs: Any) -> Any: ...

    async def send_photo(self, chat_id: int | str, photo: Any, **kwargs: Any) -> Any: ...

    async def delete_message(self, chat_id: int | str, message_id: int) -> Any: ...


def format_payload_text(payload: ReplyPayload) -> str:
    """Plain-text rendering of a payload (Telegram has no embeds)."""
    parts: list[str] = []
    if payload.text:
        parts.append(payload.text)
    embed = payload.embed
    if embed is not None:
        parts.append(embed.title)
        if embed.description:
            parts.append(embed.description)
        if embed.author:
            parts.append(f"Uploaded by {embed.author}")
    return "\n".join(parts)


def build_keyboard(links: list[ActionLink]) -> InlineKeyboardMarkup | None:
    if not links:
        return None
    return InlineKeyboardMarkup(
        [[InlineKeyboardButton(text=link.label, url=link.url) for link in links]]
    )


class TelegramReplySink:
    """Sends replies to the chat of one inbound Telegram message."""

    def __init__(
        self,
        bot: TelegramBotProtocol,
        chat_id: int,
        message_id: int | None = None,
    ) -> None:
        self.bot = bot
        self.chat_id = chat_id
        self.message_id = message_id

    def _reply_parameters(self) -> ReplyParameters | None:
        if self.message_id is None:
            return None
        return ReplyParameters(message_id=self.message_id, allow_sending_without_reply=True)

    async def send(self, payload: ReplyPayload) -> Any:
        """Send ``payload``; a thumbnail turns it into a photo with a caption.

        Raises:
            ReplyDeliveryError: If Telegram refuses the message.
        """
        text = format_payload_text(payload)
        markup = build_keyboard(payload.action_links)
        thumbnail_url = payload.embed.thumbnail_url if payload.embed else None

        if thumbnail_url:
            try:
                return await self.bot.send_photo(
                    chat_id=self.chat_id,
                    photo=thumbnail_url,
                    caption=text[:TELEGRAM_MAX_CAPTION],
                    reply_markup=markup,
                    reply_parameters=self._reply_parameters(),
                )
            except TelegramError as e:
                logger.warning(
                    "Photo reply to chat %s failed (falling back to plain text): %s",
                    self.chat_id,
                    e,
                )

        try:
            return await self.bot.send_message(
                chat_id=self.chat_id,
                text=text[:TELEGRAM_MAX_TEXT] or "(empty)",
                reply_markup=markup,
                reply_parameters=self._reply_parameters(),
            )
        except TelegramError as e:
            raise ReplyDeliveryError(f"Telegram rejected reply: {e}") from e

    async def delete_source(self) -> None:
        """Delete the inbound message (needs delete rights in groups).

        Raises:
            SourceDeletionError: If Telegram refuses the deletion.
        """
        if self.message_id is None:
            raise SourceDeletionError("Inbound message has no id")
        try:
            await self.bot.delete_message(chat_id=self.chat_id, message_id=self.message_id)
        except TelegramError as e:
            raise SourceDeletionError(f"Telegram refused deletion: {e}") from e
        logger.debug("Deleted message %s in chat %s", self.message_id, self.chat_id)
