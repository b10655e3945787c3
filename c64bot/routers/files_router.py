"""Stored-file API endpoints.

Routers handle HTTP concerns only; listing and streaming are delegated to
ObjectStore.
"""

import mimetypes
from datetime import datetime
from typing import TYPE_CHECKING

from fastapi import APIRouter, HTTPException
from fastapi.responses import StreamingResponse

from c64bot.errors import StorageError
from c64bot.models.base import JsonModel
from c64bot.services.reply_builder import ReplyBuilder
from c64bot.services.storage_service import SCREENSHOT_PREFIX

if TYPE_CHECKING:
    from c64bot.config import BotConfig
    from c64bot.services.storage_service import ObjectStore

_STREAM_CHUNK_BYTES = 64 * 1024


class StoredFileResponse(JsonModel):
    """One stored program with its links."""

    key: str
    url: str
    play_url: str
    last_modified: datetime


class FileListResponse(JsonModel):
    files: list[StoredFileResponse]


def create_files_router(store: "ObjectStore", config: "BotConfig") -> APIRouter:
    """Create files router with injected object store.

    Args:
        store: ObjectStore holding the uploaded programs.
        config: Configuration (accepted extensions, emulator link flags).

    Returns:
        APIRouter with the file endpoints configured.
    """
    router = APIRouter(prefix="/api", tags=["files"])
    replies = ReplyBuilder(config)
    extensions = config.normalized_extensions

    @router.get("/files", response_model=FileListResponse, response_model_by_alias=True)
    async def list_files() -> FileListResponse:
        """List stored programs, newest first."""
        try:
            objects = await store.list_objects()
        except StorageError as e:
            raise HTTPException(status_code=502, detail="Object store unavailable") from e

        programs = [
            o
            for o in objects
            if not o.key.startswith(SCREENSHOT_PREFIX) and o.key.lower().endswith(extensions)
        ]
        programs.sort(key=lambda o: o.last_modified, reverse=True)
        return FileListResponse(
            files=[
                StoredFileResponse(
                    key=o.key,
                    url=o.public_url,
                    play_url=replies.emulator_url(o.public_url),
                    last_modified=o.last_modified,
                )
                for o in programs
            ]
        )

    @router.get("/file/{key:path}")
    async def get_file(key: str) -> StreamingResponse:
        """Stream a stored object."""
        try:
            body = await store.get_object_stream(key)
        except StorageError as e:
            raise HTTPException(status_code=404, detail="File not found") from e

        media_type = mimetypes.guess_type(key)[0] or "application/octet-stream"
        return StreamingResponse(body.iter_chunks(_STREAM_CHUNK_BYTES), media_type=media_type)

    return router
