"""Typed models package."""

from .base import JsonModel
from .domain import (
    ActionLink,
    Attachment,
    DerivedArtifact,
    EmulatorLaunchConfig,
    ReplyEmbed,
    ReplyPayload,
    RetentionPolicy,
    StoredObject,
)
from .messages import Author, InboundMessage, ReplySink

__all__ = [
    "ActionLink",
    "Attachment",
    "Author",
    "DerivedArtifact",
    "EmulatorLaunchConfig",
    "InboundMessage",
    "JsonModel",
    "ReplyEmbed",
    "ReplyPayload",
    "ReplySink",
    "RetentionPolicy",
    "StoredObject",
]
