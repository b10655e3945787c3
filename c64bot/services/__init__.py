"""Services for the attachment pipeline and its collaborators."""

from c64bot.services.artifact_generator import ArtifactGenerator, DisplaySession
from c64bot.services.attachment_pipeline import (
    AttachmentPipeline,
    PipelineFactory,
    PipelineResult,
    make_pipeline_factory,
    object_key,
)
from c64bot.services.download_service import DownloadService
from c64bot.services.reply_builder import ReplyBuilder, build_emulator_url
from c64bot.services.retention_sweeper import RetentionSweeper, SweepReport
from c64bot.services.storage_service import ObjectStore

__all__ = [
    "ArtifactGenerator",
    "AttachmentPipeline",
    "DisplaySession",
    "DownloadService",
    "ObjectStore",
    "PipelineFactory",
    "PipelineResult",
    "ReplyBuilder",
    "RetentionSweeper",
    "SweepReport",
    "build_emulator_url",
    "make_pipeline_factory",
    "object_key",
]
