"""
S3-compatible blob store client.

Objects live in a single container (bucket) and are publicly readable at
`{base_url}/{object_name}`, so the URL is computed locally without a round
trip. boto3 is synchronous; uploads run in a worker thread.
"""

from __future__ import annotations

import asyncio
import logging
import mimetypes
from typing import Any
from urllib.parse import quote

import boto3
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError

from core.settings import BlobSettings

logger = logging.getLogger(__name__)

DEFAULT_CONTENT_TYPE = "application/octet-stream"


# Blob failures are explicit and separable from database errors.
class BlobStoreError(RuntimeError):
    pass


def guess_content_type(object_name: str, declared: str | None = None) -> str:
    ct = (declared or "").lower().strip()
    if ct == "image/jpg":
        return "image/jpeg"
    if ct and ct != DEFAULT_CONTENT_TYPE:
        return ct
    guessed, _ = mimetypes.guess_type(object_name)
    return guessed or DEFAULT_CONTENT_TYPE


def build_s3_client(settings: BlobSettings) -> Any:
    kwargs: dict[str, Any] = {
        "region_name": settings.region,
        "config": Config(
            signature_version="s3v4",
            s3={"addressing_style": "path"},
            retries={"max_attempts": 3, "mode": "standard"},
        ),
    }
    if settings.endpoint_url:
        kwargs["endpoint_url"] = settings.endpoint_url
    if settings.access_key_id:
        kwargs["aws_access_key_id"] = settings.access_key_id
    if settings.secret_access_key:
        kwargs["aws_secret_access_key"] = settings.secret_access_key

    try:
        return boto3.client("s3", **kwargs)
    except (BotoCoreError, ValueError) as e:
        raise BlobStoreError(f"Failed to create S3 client: {e}") from e


class S3BlobStore:
    """
    Store image objects in an S3-compatible bucket.

    Usage::

        store = S3BlobStore.from_settings(settings.blob)
        await store.upload("cola.png", data)
        store.public_url("cola.png")  # -> "{base_url}/cola.png"
    """

    def __init__(self, *, container: str, base_url: str, client: Any):
        self.container = container
        self.base_url = base_url.rstrip("/")
        self._client = client

    @classmethod
    def from_settings(cls, settings: BlobSettings) -> "S3BlobStore":
        return cls(
            container=settings.container,
            base_url=settings.base_url,
            client=build_s3_client(settings),
        )

    def public_url(self, object_name: str) -> str:
        return f"{self.base_url}/{quote(object_name)}"

    def container_path(self, object_name: str) -> str:
        return f"{self.container}/{object_name}"

    def _put(self, object_name: str, data: bytes, content_type: str) -> None:
        self._client.put_object(
            Bucket=self.container,
            Key=object_name,
            Body=data,
            ContentType=content_type,
        )

    async def upload(self, object_name: str, data: bytes, *, content_type: str | None = None) -> None:
        """
        Upload `data` under `object_name`, replacing any existing object.

        Returns only once the store has acknowledged the write.
        """
        if not object_name:
            raise BlobStoreError("Object name is empty.")

        ct = guess_content_type(object_name, content_type)
        try:
            await asyncio.to_thread(self._put, object_name, data, ct)
        except (ClientError, BotoCoreError) as e:
            raise BlobStoreError(f"S3 upload failed for {object_name!r}: {e}") from e

        logger.info(
            "blob_uploaded container=%s object=%s size=%s content_type=%s",
            self.container,
            object_name,
            len(data),
            ct,
        )
