"""StrEnum definitions for type-safe constants."""

from enum import StrEnum


class PipelineState(StrEnum):
    """States one attachment moves through."""

    RECEIVED = "received"
    VALIDATED = "validated"
    DOWNLOADED = "downloaded"
    STORED = "stored"
    ARTIFACT_READY = "artifact_ready"
    ARTIFACT_SKIPPED = "artifact_skipped"
    ARTIFACT_FAILED = "artifact_failed"
    RESPONDED = "responded"
    CLEANED_UP = "cleaned_up"

    # Terminal exits that bypass the main sequence
    SKIPPED = "skipped"
    REJECTED = "rejected"
    FAILED = "failed"


class ArtifactOutcome(StrEnum):
    """How the derive step resolved."""

    READY = "ready"
    SKIPPED = "skipped"
    FAILED = "failed"
