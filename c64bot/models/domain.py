"""Domain value objects for the attachment pipeline.

These replace ad-hoc dicts with typed pydantic models. Only ``StoredObject``
outlives a single pipeline run; it is owned by the object store.
"""

from __future__ import annotations

from datetime import datetime
from pathlib import Path, PurePosixPath

from pydantic import ConfigDict, Field

from c64bot.models.base import JsonModel


class Attachment(JsonModel):
    """A named binary file referenced by a source URL.

    Attributes:
        name: Display name as submitted (e.g. ``game.prg``).
        source_url: Where the file can be fetched from.
    """

    name: str
    source_url: str

    @property
    def extension(self) -> str:
        return PurePosixPath(self.name).suffix.lower()


class StoredObject(JsonModel):
    """An object persisted in the bucket.

    Attributes:
        key: Object key within the bucket.
        public_url: Direct link to the object.
        last_modified: Timestamp reported by the store.
    """

    key: str
    public_url: str
    last_modified: datetime


class DerivedArtifact(JsonModel):
    """A preview image produced by running a program in the emulator.

    Attributes:
        local_path: Scratch location of the image.
        uploaded: Whether it was persisted under the screenshots prefix.
        public_url: Link to the uploaded copy, if any.
    """

    local_path: Path
    uploaded: bool = False
    public_url: str | None = None


class EmulatorLaunchConfig(JsonModel):
    """Playback flags passed to the web emulator in the URL fragment.

    Field names on the wire are fixed by the emulator front-end.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    open_roms: bool = Field(default=True, alias="openROMS")
    border: bool = False
    url: str
    autoload: bool = True
    wide: bool = False


class RetentionPolicy(JsonModel):
    """Count-and-age rule bounding the stored population."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    max_count: int = Field(default=100, ge=0)
    max_age_days: int = Field(default=7, ge=0)


class ReplyEmbed(JsonModel):
    """Rich card shown for a processed file."""

    title: str
    description: str = ""
    author: str | None = None
    thumbnail_url: str | None = None


class ActionLink(JsonModel):
    """A labelled link button attached to a reply."""

    label: str
    url: str


class ReplyPayload(JsonModel):
    """Platform-neutral reply sent back to the submitter."""

    text: str | None = None
    embed: ReplyEmbed | None = None
    action_links: list[ActionLink] = Field(default_factory=list)

    @classmethod
    def plain(cls, text: str) -> ReplyPayload:
        return cls(text=text)
