"""Unit tests for TelegramReplySink.

Covers photo replies with inline link buttons, the plain-text fallback
when Telegram rejects the photo, and source message deletion.
"""

from __future__ import annotations

from unittest.mock import AsyncMock, MagicMock

import pytest
from telegram.error import BadRequest

from c64bot.errors import ReplyDeliveryError, SourceDeletionError
from c64bot.models.domain import ActionLink, ReplyEmbed, ReplyPayload
from c64bot.telegram.message_sender import (
    TelegramReplySink,
    build_keyboard,
    format_payload_text,
)


@pytest.fixture
def bot():
    mock = MagicMock()
    mock.send_message = AsyncMock()
    mock.send_photo = AsyncMock()
    mock.delete_message = AsyncMock()
    return mock


def card(thumbnail_url: str | None = "http://files.test/c64files/screenshots/x.png") -> ReplyPayload:
    return ReplyPayload(
        embed=ReplyEmbed(
            title="game.prg",
            description="my first demo",
            author="Jeff Minter",
            thumbnail_url=thumbnail_url,
        ),
        action_links=[
            ActionLink(label="Emulate!", url="https://vc64web.github.io/#x"),
            ActionLink(label="Download", url="http://files.test/c64files/game-1.prg"),
        ],
    )


def test_format_payload_text_renders_embed() -> None:
    assert format_payload_text(card()) == "game.prg\nmy first demo\nUploaded by Jeff Minter"


def test_build_keyboard_single_row() -> None:
    markup = build_keyboard(card().action_links)

    assert len(markup.inline_keyboard) == 1
    assert [b.text for b in markup.inline_keyboard[0]] == ["Emulate!", "Download"]
    assert build_keyboard([]) is None


async def test_send_with_thumbnail_uses_photo(bot) -> None:
    sink = TelegramReplySink(bot, chat_id=123, message_id=7)

    await sink.send(card())

    bot.send_photo.assert_awaited_once()
    call = bot.send_photo.call_args
    assert call.kwargs["chat_id"] == 123
    assert call.kwargs["photo"].endswith("/screenshots/x.png")
    assert call.kwargs["caption"].startswith("game.prg")
    assert call.kwargs["reply_parameters"].message_id == 7
    bot.send_message.assert_not_awaited()


async def test_photo_rejection_falls_back_to_text(bot) -> None:
    bot.send_photo.side_effect = BadRequest("Wrong file identifier/http url specified")
    sink = TelegramReplySink(bot, chat_id=123, message_id=7)

    await sink.send(card())

    bot.send_message.assert_awaited_once()
    assert bot.send_message.call_args.kwargs["reply_markup"] is not None


async def test_plain_text_reply(bot) -> None:
    sink = TelegramReplySink(bot, chat_id=5)

    await sink.send(ReplyPayload.plain("Skipping a.zip"))

    call = bot.send_message.call_args
    assert call.kwargs["text"] == "Skipping a.zip"
    assert call.kwargs["reply_parameters"] is None
    bot.send_photo.assert_not_awaited()


async def test_text_failure_raises_delivery_error(bot) -> None:
    bot.send_message.side_effect = BadRequest("Chat not found")
    sink = TelegramReplySink(bot, chat_id=5)

    with pytest.raises(ReplyDeliveryError, match="Chat not found"):
        await sink.send(ReplyPayload.plain("hi"))


async def test_long_caption_is_truncated(bot) -> None:
    payload = card()
    payload.embed.description = "x" * 5000
    sink = TelegramReplySink(bot, chat_id=1, message_id=2)

    await sink.send(payload)

    assert len(bot.send_photo.call_args.kwargs["caption"]) == 1024


async def test_delete_source(bot) -> None:
    sink = TelegramReplySink(bot, chat_id=1, message_id=2)

    await sink.delete_source()

    bot.delete_message.assert_awaited_once_with(chat_id=1, message_id=2)


async def test_delete_source_refused(bot) -> None:
    bot.delete_message.side_effect = BadRequest("Message can't be deleted")
    sink = TelegramReplySink(bot, chat_id=1, message_id=2)

    with pytest.raises(SourceDeletionError):
        await sink.delete_source()


async def test_delete_source_without_id(bot) -> None:
    with pytest.raises(SourceDeletionError):
        await TelegramReplySink(bot, chat_id=1).delete_source()
