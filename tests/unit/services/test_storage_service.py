"""Tests for ObjectStore against a mocked boto3 S3 client."""

import json
from datetime import datetime, UTC
from unittest.mock import MagicMock, patch

import pytest
from botocore.exceptions import ClientError, EndpointConnectionError

from c64bot.errors import StorageError
from c64bot.services.storage_service import ObjectStore, create_s3_client, public_read_policy


def client_error(code: str, operation: str = "Op") -> ClientError:
    return ClientError({"Error": {"Code": code, "Message": "details"}}, operation)


@pytest.fixture
def s3():
    client = MagicMock()
    paginator = MagicMock()
    paginator.paginate.return_value = [
        {
            "Contents": [
                {"Key": "game-1.prg", "LastModified": datetime(2026, 1, 1, tzinfo=UTC)},
                {"Key": "screenshots/game-1.png", "LastModified": datetime(2026, 1, 1)},
            ]
        },
        {},
    ]
    client.get_paginator.return_value = paginator
    return client


@pytest.fixture
def object_store(config, s3):
    return ObjectStore(config, client=s3)


class TestBucket:
    async def test_existing_bucket_gets_policy(self, object_store, s3):
        await object_store.ensure_bucket_exists()

        s3.head_bucket.assert_called_once_with(Bucket="c64files")
        s3.create_bucket.assert_not_called()
        policy = json.loads(s3.put_bucket_policy.call_args.kwargs["Policy"])
        assert policy["Statement"][0]["Resource"] == ["arn:aws:s3:::c64files/*"]
        assert policy["Statement"][0]["Action"] == ["s3:GetObject"]

    async def test_missing_bucket_is_created(self, object_store, s3):
        s3.head_bucket.side_effect = client_error("404", "HeadBucket")

        await object_store.ensure_bucket_exists()

        s3.create_bucket.assert_called_once_with(Bucket="c64files")

    async def test_other_errors_raise_storage_error(self, object_store, s3):
        s3.head_bucket.side_effect = client_error("403", "HeadBucket")

        with pytest.raises(StorageError, match="403"):
            await object_store.ensure_bucket_exists()


class TestObjects:
    async def test_put_object_returns_public_url_and_sets_content_type(
        self, object_store, s3, tmp_path
    ):
        local = tmp_path / "game-1.prg"
        local.write_bytes(b"\x01\x08")

        url = await object_store.put_object("game-1.prg", local)

        assert url == "http://files.test/c64files/game-1.prg"
        args = s3.upload_file.call_args
        assert args.args == (str(local), "c64files", "game-1.prg")
        assert "ContentType" in args.kwargs["ExtraArgs"]
        s3.head_bucket.assert_called_once()

    async def test_bucket_checked_only_once(self, object_store, s3, tmp_path):
        local = tmp_path / "shot.png"
        local.write_bytes(b"\x89PNG")

        await object_store.put_object("screenshots/a.png", local)
        await object_store.put_object("screenshots/b.png", local)

        assert s3.head_bucket.call_count == 1
        assert s3.upload_file.call_args.kwargs["ExtraArgs"]["ContentType"] == "image/png"

    async def test_upload_failure_raises_without_leaking_message(
        self, object_store, s3, tmp_path
    ):
        local = tmp_path / "game-1.prg"
        local.write_bytes(b"")
        s3.upload_file.side_effect = EndpointConnectionError(endpoint_url="http://minio:9000")

        with pytest.raises(StorageError) as exc_info:
            await object_store.put_object("game-1.prg", local)

        assert str(exc_info.value) == "Upload failed: EndpointConnectionError"
        assert exc_info.value.key == "game-1.prg"

    async def test_list_objects_paginates_and_normalizes_timestamps(self, object_store, s3):
        objects = await object_store.list_objects()

        assert [o.key for o in objects] == ["game-1.prg", "screenshots/game-1.png"]
        assert all(o.last_modified.tzinfo is not None for o in objects)
        assert objects[0].public_url == "http://files.test/c64files/game-1.prg"
        s3.get_paginator.return_value.paginate.assert_called_once_with(Bucket="c64files", Prefix="")

    async def test_list_failure_raises(self, object_store, s3):
        s3.get_paginator.side_effect = client_error("AccessDenied")
        with pytest.raises(StorageError, match="AccessDenied"):
            await object_store.list_objects("screenshots/")

    async def test_delete_object(self, object_store, s3):
        await object_store.delete_object("game-1.prg")
        s3.delete_object.assert_called_once_with(Bucket="c64files", Key="game-1.prg")

    async def test_get_object_stream_missing_key(self, object_store, s3):
        s3.get_object.side_effect = client_error("NoSuchKey", "GetObject")
        with pytest.raises(StorageError, match="NoSuchKey"):
            await object_store.get_object_stream("nope.prg")


def test_public_read_policy_is_valid_json():
    assert json.loads(public_read_policy("b"))["Version"] == "2012-10-17"


def test_client_uses_path_style_addressing(config):
    with patch("c64bot.services.storage_service.boto3.client") as factory:
        create_s3_client(config)

    kwargs = factory.call_args.kwargs
    assert kwargs["endpoint_url"] == "http://minio:9000"
    assert kwargs["aws_access_key_id"] == "minioadmin"
    assert kwargs["config"].s3 == {"addressing_style": "path"}
