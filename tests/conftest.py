"""Pytest configuration and fixtures."""

from __future__ import annotations

import logging
from datetime import datetime, UTC
from pathlib import Path

import pytest

from c64bot.config import BotConfig
from c64bot.errors import StorageError
from c64bot.models.domain import Attachment, ReplyPayload, StoredObject
from c64bot.models.messages import Author, InboundMessage


def pytest_configure(config: pytest.Config) -> None:
    """Keep botocore credential lookups out of test output."""
    for name in ["botocore.credentials", "botocore", "boto3"]:
        logging.getLogger(name).setLevel(logging.WARNING)


class RecordingSink:
    """ReplySink that records everything sent through it."""

    def __init__(self, *, fail_send: Exception | None = None, fail_delete: Exception | None = None):
        self.sent: list[ReplyPayload] = []
        self.deleted = False
        self.delete_count = 0
        self._fail_send = fail_send
        self._fail_delete = fail_delete

    async def send(self, payload: ReplyPayload) -> None:
        if self._fail_send is not None:
            raise self._fail_send
        self.sent.append(payload)

    async def delete_source(self) -> None:
        if self._fail_delete is not None:
            raise self._fail_delete
        self.deleted = True
        self.delete_count += 1


class BytesBody:
    """Mimics botocore's StreamingBody.iter_chunks."""

    def __init__(self, data: bytes):
        self.data = data

    def iter_chunks(self, chunk_size: int = 1024):
        for i in range(0, len(self.data), chunk_size):
            yield self.data[i : i + chunk_size]


class InMemoryStore:
    """ObjectStore stand-in keeping objects in a dict."""

    def __init__(self, public_host: str = "http://files.test", bucket: str = "c64files"):
        self.bucket = bucket
        self._public_host = public_host
        self.objects: dict[str, StoredObject] = {}
        self.payloads: dict[str, bytes] = {}
        self.fail_put_for: set[str] = set()
        self.fail_delete_for: set[str] = set()
        self.put_calls: list[str] = []
        self.delete_calls: list[str] = []

    def public_url(self, key: str) -> str:
        return f"{self._public_host}/{self.bucket}/{key}"

    def add(self, key: str, last_modified: datetime) -> StoredObject:
        obj = StoredObject(key=key, public_url=self.public_url(key), last_modified=last_modified)
        self.objects[key] = obj
        return obj

    async def put_object(self, key: str, local_path: Path, *, content_type: str | None = None) -> str:
        self.put_calls.append(key)
        if any(key.startswith(prefix) for prefix in self.fail_put_for):
            raise StorageError("Upload failed: InternalError", key=key)
        self.payloads[key] = Path(local_path).read_bytes()
        self.add(key, datetime.now(UTC))
        return self.public_url(key)

    async def list_objects(self, prefix: str | None = None) -> list[StoredObject]:
        return [o for k, o in self.objects.items() if k.startswith(prefix or "")]

    async def get_object_stream(self, key: str) -> "BytesBody":
        if key not in self.payloads:
            raise StorageError("Download failed: NoSuchKey", key=key)
        return BytesBody(self.payloads[key])

    async def delete_object(self, key: str) -> None:
        self.delete_calls.append(key)
        if key in self.fail_delete_for:
            raise StorageError("Delete failed: AccessDenied", key=key)
        self.objects.pop(key, None)
        self.payloads.pop(key, None)


class FakeDownloader:
    """DownloadService stand-in writing fixed bytes, or raising per URL."""

    def __init__(self, content: bytes = b"\x01\x08\x0b\x08"):
        self.content = content
        self.errors: dict[str, Exception] = {}
        self.calls: list[tuple[str, Path]] = []

    async def download(self, url: str, destination: Path) -> int:
        self.calls.append((url, destination))
        if url in self.errors:
            raise self.errors[url]
        destination.write_bytes(self.content)
        return len(self.content)


@pytest.fixture
def config() -> BotConfig:
    """Test configuration with fast timeouts and no error log file."""
    return BotConfig(
        telegram_bot_token="test_token",
        public_host="http://files.test",
        s3_bucket="c64files",
        screenshot_delay_ms=0,
        emulator_timeout_seconds=0.2,
        artifact_ceiling_seconds=2.0,
        error_log_file_enabled=False,
        default_screenshot_url="https://img.test/default.png",
    )


@pytest.fixture
def sink() -> RecordingSink:
    return RecordingSink()


@pytest.fixture
def sink_factory():
    """Build a RecordingSink that fails on send or delete."""
    return RecordingSink


@pytest.fixture
def store() -> InMemoryStore:
    return InMemoryStore()


@pytest.fixture
def downloader() -> FakeDownloader:
    return FakeDownloader()


@pytest.fixture
def make_message(sink):
    """Build an InboundMessage with attachments given by file name."""

    def _make(
        text: str = "",
        *names: str,
        is_bot: bool = False,
        message_sink=None,
    ) -> InboundMessage:
        return InboundMessage(
            author=Author(is_bot=is_bot, display_name="Jeff Minter"),
            text=text,
            sink=message_sink or sink,
            attachments=[
                Attachment(name=name, source_url=f"https://cdn.test/{name}") for name in names
            ],
            message_id="42",
        )

    return _make
