"""Per-attachment processing pipeline.

validate -> download -> store -> derive preview -> respond -> clean up.
One pipeline instance handles exactly one attachment; failures never leak
into sibling pipelines. Deleting the source message is left to
``AttachmentHandler`` once every pipeline for the message has settled.
"""

from __future__ import annotations

import asyncio
import functools
import logging
import re
import shutil
import tempfile
import time
from collections.abc import Callable
from dataclasses import dataclass
from pathlib import Path, PurePosixPath
from typing import TYPE_CHECKING

from c64bot.enums import ArtifactOutcome, PipelineState
from c64bot.errors import C64BotError, ReplyDeliveryError, StorageError
from c64bot.models.domain import Attachment, DerivedArtifact, ReplyPayload
from c64bot.models.messages import InboundMessage
from c64bot.observability.health_state import inflight_dec, inflight_inc, mark_progress
from c64bot.services.storage_service import SCREENSHOT_PREFIX

if TYPE_CHECKING:
    from c64bot.config import BotConfig
    from c64bot.services.artifact_generator import ArtifactGenerator
    from c64bot.services.download_service import DownloadService
    from c64bot.services.reply_builder import ReplyBuilder
    from c64bot.services.storage_service import ObjectStore

logger = logging.getLogger(__name__)

_UNSAFE_KEY_CHARS = re.compile(r"[^A-Za-z0-9._-]")

# Abandoned preview tasks, kept referenced until they finish their own teardown.
_late_artifact_tasks: set[asyncio.Task] = set()


def object_key(filename: str, *, now_ms: int | None = None) -> str:
    """Storage key ``{basename}-{ms}{ext}`` for an uploaded file.

    Uniqueness is best effort: two files with the same basename processed in
    the same millisecond get the same key.
    """
    pure = PurePosixPath(filename.replace("\\", "/")).name
    suffix = PurePosixPath(pure).suffix
    stem = pure[: -len(suffix)] if suffix else pure
    stem = _UNSAFE_KEY_CHARS.sub("_", stem) or "file"
    if now_ms is None:
        now_ms = int(time.time() * 1000)
    suffix = _UNSAFE_KEY_CHARS.sub("_", suffix.lower())
    return f"{stem}-{now_ms}{suffix}"


@dataclass
class PipelineResult:
    """Outcome of one pipeline run."""

    state: PipelineState
    file_url: str | None = None
    artifact: ArtifactOutcome | None = None
    thumbnail_url: str | None = None
    responded: bool = False
    error: BaseException | None = None


class AttachmentPipeline:
    """State machine for a single attachment."""

    def __init__(
        self,
        attachment: Attachment,
        message: InboundMessage,
        *,
        config: "BotConfig",
        downloader: "DownloadService",
        store: "ObjectStore",
        generator: "ArtifactGenerator",
        reply_builder: "ReplyBuilder",
    ) -> None:
        self.attachment = attachment
        self.message = message
        self.config = config
        self._downloader = downloader
        self._store = store
        self._generator = generator
        self._replies = reply_builder
        self.states: list[PipelineState] = []

    @property
    def state(self) -> PipelineState | None:
        return self.states[-1] if self.states else None

    def _transition(self, state: PipelineState) -> None:
        self.states.append(state)
        mark_progress(f"pipeline.{state}")
        logger.debug("%s -> %s", self.attachment.name, state)

    async def run(self) -> PipelineResult:
        inflight_inc()
        try:
            return await self._run()
        finally:
            inflight_dec()

    async def _run(self) -> PipelineResult:
        self._transition(PipelineState.RECEIVED)

        if self.attachment.extension not in self.config.normalized_extensions:
            if not self.message.uses_prefix(self.config.command_prefix):
                self._transition(PipelineState.SKIPPED)
                return PipelineResult(state=PipelineState.SKIPPED)
            await self._send(self._replies.rejection(self.attachment))
            self._transition(PipelineState.REJECTED)
            return PipelineResult(state=PipelineState.REJECTED)

        self._transition(PipelineState.VALIDATED)

        workdir = Path(tempfile.mkdtemp(prefix="c64bot-"))
        try:
            result = await self._process(workdir)
        finally:
            shutil.rmtree(workdir, ignore_errors=True)

        if result.state is PipelineState.FAILED:
            return result

        self._transition(PipelineState.CLEANED_UP)
        result.state = PipelineState.CLEANED_UP
        return result

    async def _process(self, workdir: Path) -> PipelineResult:
        key = object_key(self.attachment.name)
        local_path = workdir / key

        try:
            await self._downloader.download(self.attachment.source_url, local_path)
            self._transition(PipelineState.DOWNLOADED)
            file_url = await self._store.put_object(key, local_path)
            self._transition(PipelineState.STORED)
        except C64BotError as e:
            logger.error("Error processing %s: %s", self.attachment.name, e)
            return await self._fail(e)
        except Exception as e:
            logger.exception("Unexpected error processing %s", self.attachment.name)
            return await self._fail(e)

        outcome, thumbnail_url = await self._derive(local_path)

        payload = self._replies.success(
            self.attachment, self.message, file_url=file_url, thumbnail_url=thumbnail_url
        )
        responded = await self._send(payload)
        if responded:
            self._transition(PipelineState.RESPONDED)

        return PipelineResult(
            state=self.state,
            file_url=file_url,
            artifact=outcome,
            thumbnail_url=thumbnail_url,
            responded=responded,
        )

    async def _fail(self, error: BaseException) -> PipelineResult:
        self._transition(PipelineState.FAILED)
        await self._send(self._replies.failure(self.attachment, error))
        return PipelineResult(state=PipelineState.FAILED, error=error)

    async def _derive(self, program_path: Path) -> tuple[ArtifactOutcome, str | None]:
        """Best-effort preview; never raises."""
        if not self.config.screenshot_enabled:
            self._transition(PipelineState.ARTIFACT_SKIPPED)
            return ArtifactOutcome.SKIPPED, None

        # Outlives workdir when the generator is abandoned at the ceiling.
        preview_dir = Path(tempfile.mkdtemp(prefix="c64bot-preview-"))
        task = asyncio.create_task(self._generator.generate(program_path, output_dir=preview_dir))
        try:
            image_path = await asyncio.wait_for(
                asyncio.shield(task), timeout=self.config.artifact_ceiling_seconds
            )
        except TimeoutError:
            logger.warning(
                "Preview for %s exceeded %ss, replying without it",
                self.attachment.name,
                self.config.artifact_ceiling_seconds,
            )
            _late_artifact_tasks.add(task)
            task.add_done_callback(functools.partial(_discard_late_artifact, preview_dir))
            return self._artifact_failed()
        except Exception as e:
            logger.warning("Preview for %s failed: %s", self.attachment.name, e)
            shutil.rmtree(preview_dir, ignore_errors=True)
            return self._artifact_failed()

        artifact = DerivedArtifact(local_path=image_path)
        try:
            artifact.public_url = await self._store.put_object(
                f"{SCREENSHOT_PREFIX}{program_path.stem}.png", image_path, content_type="image/png"
            )
            artifact.uploaded = True
        except StorageError as e:
            logger.warning("Preview upload for %s failed: %s", self.attachment.name, e)
            return self._artifact_failed()
        finally:
            artifact.local_path.unlink(missing_ok=True)
            shutil.rmtree(preview_dir, ignore_errors=True)

        self._transition(PipelineState.ARTIFACT_READY)
        return ArtifactOutcome.READY, artifact.public_url

    def _artifact_failed(self) -> tuple[ArtifactOutcome, str | None]:
        self._transition(PipelineState.ARTIFACT_FAILED)
        return ArtifactOutcome.FAILED, self.config.default_screenshot_url or None

    async def _send(self, payload: ReplyPayload) -> bool:
        try:
            await self.message.reply(payload)
        except ReplyDeliveryError as e:
            logger.error("Failed to deliver reply for %s: %s", self.attachment.name, e)
            return False
        return True


def _discard_late_artifact(preview_dir: Path, task: asyncio.Task) -> None:
    """Remove whatever an abandoned generator left in its output directory."""
    _late_artifact_tasks.discard(task)
    shutil.rmtree(preview_dir, ignore_errors=True)
    if not task.cancelled() and task.exception() is not None:
        logger.warning(
            "Abandoned preview generation ended with %s", type(task.exception()).__name__
        )


PipelineFactory = Callable[[Attachment, InboundMessage], AttachmentPipeline]


def make_pipeline_factory(
    *,
    config: "BotConfig",
    downloader: "DownloadService",
    store: "ObjectStore",
    generator: "ArtifactGenerator",
    reply_builder: "ReplyBuilder",
) -> PipelineFactory:
    def factory(attachment: Attachment, message: InboundMessage) -> AttachmentPipeline:
        return AttachmentPipeline(
            attachment,
            message,
            config=config,
            downloader=downloader,
            store=store,
            generator=generator,
            reply_builder=reply_builder,
        )

    return factory
