"""Object store (S3 / MinIO) access.

Keeps boto3 details out of the pipeline and the sweeper. boto3 is blocking,
so every call runs in a worker thread.
"""

from __future__ import annotations

import asyncio
import json
import logging
import mimetypes
from datetime import UTC
from pathlib import Path
from typing import TYPE_CHECKING, Any

import boto3
from botocore.config import Config as BotoConfig
from botocore.exceptions import BotoCoreError, ClientError

from c64bot.errors import StorageError
from c64bot.models.domain import StoredObject

if TYPE_CHECKING:
    from c64bot.config import BotConfig

logger = logging.getLogger(__name__)

SCREENSHOT_PREFIX = "screenshots/"

_STORE_ERRORS = (BotoCoreError, ClientError, OSError)


def create_s3_client(config: "BotConfig") -> Any:
    """Create an S3 client for MinIO (path-style) or AWS."""
    if config.s3_endpoint_url:
        logger.info("Using S3-compatible endpoint at %s", config.s3_endpoint_url)
    else:
        logger.info("Using AWS S3 in region %s", config.s3_region)

    return boto3.client(
        "s3",
        endpoint_url=config.s3_endpoint_url or None,
        aws_access_key_id=config.s3_access_key or None,
        aws_secret_access_key=config.s3_secret_key or None,
        region_name=config.s3_region,
        config=BotoConfig(signature_version="s3v4", s3={"addressing_style": "path"}),
    )


def public_read_policy(bucket: str) -> str:
    return json.dumps(
        {
            "Version": "2012-10-17",
            "Statement": [
                {
                    "Effect": "Allow",
                    "Principal": {"AWS": ["*"]},
                    "Action": ["s3:GetObject"],
                    "Resource": [f"arn:aws:s3:::{bucket}/*"],
                }
            ],
        }
    )


class ObjectStore:
    """put/get/list/delete against a single bucket."""

    def __init__(self, config: "BotConfig", client: Any | None = None) -> None:
        self.bucket = config.s3_bucket
        self._public_host = config.public_host.rstrip("/")
        self._client = client if client is not None else create_s3_client(config)
        self._bucket_ready = False

    def public_url(self, key: str) -> str:
        return f"{self._public_host}/{self.bucket}/{key}"

    async def ensure_bucket_exists(self) -> None:
        """Create the bucket if needed and (re)apply the public-read policy.

        Raises:
            StorageError: If the bucket cannot be checked, created or configured.
        """
        try:
            await asyncio.to_thread(self._ensure_bucket_sync)
        except _STORE_ERRORS as e:
            logger.error("Error initializing bucket %s: %s", self.bucket, e)
            raise StorageError(f"Bucket initialization failed: {_error_code(e)}") from e
        self._bucket_ready = True

    def _ensure_bucket_sync(self) -> None:
        try:
            self._client.head_bucket(Bucket=self.bucket)
            logger.info("Bucket %s already exists", self.bucket)
        except ClientError as e:
            if _error_code(e) not in {"404", "NoSuchBucket", "NotFound"}:
                raise
            logger.info("Bucket %s does not exist, creating it...", self.bucket)
            self._client.create_bucket(Bucket=self.bucket)

        self._client.put_bucket_policy(Bucket=self.bucket, Policy=public_read_policy(self.bucket))
        logger.info("Set public read policy for bucket %s", self.bucket)

    async def put_object(
        self, key: str, local_path: Path, *, content_type: str | None = None
    ) -> str:
        """Upload a local file and return its public URL.

        Raises:
            StorageError: On upload failure.
        """
        if not self._bucket_ready:
            await self.ensure_bucket_exists()

        content_type = (
            content_type
            or mimetypes.guess_type(local_path.name)[0]
            or "application/octet-stream"
        )
        try:
            await asyncio.to_thread(
                self._client.upload_file,
                str(local_path),
                self.bucket,
                key,
                ExtraArgs={"ContentType": content_type},
            )
        except _STORE_ERRORS as e:
            logger.error("Error uploading %s to bucket %s: %s", key, self.bucket, e)
            raise StorageError(f"Upload failed: {_error_code(e)}", key=key) from e

        logger.info("File %s uploaded to bucket %s", key, self.bucket)
        return self.public_url(key)

    async def list_objects(self, prefix: str | None = None) -> list[StoredObject]:
        """List every object under ``prefix`` (all objects if None)."""
        try:
            return await asyncio.to_thread(self._list_objects_sync, prefix or "")
        except _STORE_ERRORS as e:
            logger.error("Error listing bucket %s: %s", self.bucket, e)
            raise StorageError(f"Listing failed: {_error_code(e)}") from e

    def _list_objects_sync(self, prefix: str) -> list[StoredObject]:
        paginator = self._client.get_paginator("list_objects_v2")
        objects: list[StoredObject] = []
        for page in paginator.paginate(Bucket=self.bucket, Prefix=prefix):
            for item in page.get("Contents", []):
                last_modified = item["LastModified"]
                if last_modified.tzinfo is None:
                    last_modified = last_modified.replace(tzinfo=UTC)
                objects.append(
                    StoredObject(
                        key=item["Key"],
                        public_url=self.public_url(item["Key"]),
                        last_modified=last_modified,
                    )
                )
        return objects

    async def get_object_stream(self, key: str) -> Any:
        """Return a readable botocore StreamingBody for ``key``."""
        try:
            response = await asyncio.to_thread(self._client.get_object, Bucket=self.bucket, Key=key)
        except _STORE_ERRORS as e:
            raise StorageError(f"Fetch failed: {_error_code(e)}", key=key) from e
        return response["Body"]

    async def delete_object(self, key: str) -> None:
        try:
            await asyncio.to_thread(self._client.delete_object, Bucket=self.bucket, Key=key)
        except _STORE_ERRORS as e:
            raise StorageError(f"Delete failed: {_error_code(e)}", key=key) from e
        logger.info("Deleted %s from bucket %s", key, self.bucket)


def _error_code(exc: BaseException) -> str:
    """Error code for ClientError, class name otherwise.

    Never the raw message: botocore messages can echo endpoints and keys.
    """
    if isinstance(exc, ClientError):
        return str(exc.response.get("Error", {}).get("Code") or "ClientError")
    return type(exc).__name__
