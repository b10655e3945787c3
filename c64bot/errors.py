"""Error taxonomy for the attachment pipeline.

Skipping an unsupported attachment is not an error and has no exception;
see ``PipelineState.SKIPPED``.
"""

from __future__ import annotations


class C64BotError(Exception):
    """Base class for all bot errors."""


class DownloadError(C64BotError):
    """The attachment could not be fetched to scratch storage."""

    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class StorageError(C64BotError):
    """An object-store call failed."""

    def __init__(self, message: str, *, key: str | None = None) -> None:
        super().__init__(message)
        self.key = key


class ArtifactError(C64BotError):
    """Preview generation failed and fallback was disabled."""


class ReplyDeliveryError(C64BotError):
    """The chat platform refused a reply."""


class SourceDeletionError(C64BotError):
    """The original inbound message could not be deleted."""
