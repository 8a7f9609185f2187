"""S3 object storage for uploaded recordings."""

from __future__ import annotations

import asyncio
import io
import threading
from dataclasses import dataclass
from typing import Any, Callable, Optional

from botocore.exceptions import BotoCoreError, ClientError
from fastapi.concurrency import run_in_threadpool

from voiceflow.config.settings import settings
from voiceflow.services.aws import create_boto3_client

ProgressCallback = Callable[[float], None]


class StorageError(RuntimeError):
    """Raised when S3 asset persistence fails."""


@dataclass(frozen=True)
class StoredObject:
    """Location of an object written to the bucket."""

    path: str
    url: str


def _object_url(bucket: str, region: str, key: str) -> str:
    if region == "us-east-1":
        return f"https://{bucket}.s3.amazonaws.com/{key}"
    return f"https://{bucket}.s3.{region}.amazonaws.com/{key}"


class _TransferProgress:
    """Translate boto3's byte-count callbacks into loop-side percentages."""

    def __init__(
        self,
        total_bytes: int,
        on_progress: ProgressCallback,
        loop: asyncio.AbstractEventLoop,
    ) -> None:
        self._total = max(total_bytes, 1)
        self._seen = 0
        self._on_progress = on_progress
        self._loop = loop
        self._lock = threading.Lock()

    def __call__(self, bytes_amount: int) -> None:
        with self._lock:
            self._seen += bytes_amount
            percentage = min(100.0, self._seen * 100.0 / self._total)
        self._loop.call_soon_threadsafe(self._on_progress, percentage)


class S3ObjectStorage:
    """Upload/delete recordings in the configured bucket."""

    def __init__(
        self,
        bucket_name: str | None = None,
        *,
        region: str | None = None,
        client: Any | None = None,
    ) -> None:
        self._bucket = bucket_name or settings.s3.bucket_name
        self._region = region or settings.s3.region
        self._client = client or create_boto3_client(
            "s3", region_name=self._region, max_attempts=1
        )

    async def upload(
        self,
        path: str,
        data: bytes,
        *,
        content_type: str = "audio/m4a",
        on_progress: Optional[ProgressCallback] = None,
    ) -> StoredObject:
        """Upload bytes under ``path`` and return the object location."""

        if not data:
            raise StorageError("Audio payload for upload was empty.")
        if not self._bucket:
            raise StorageError("S3 bucket name is not configured.")

        callback = None
        if on_progress is not None:
            callback = _TransferProgress(
                len(data), on_progress, asyncio.get_running_loop()
            )

        try:
            await run_in_threadpool(
                self._client.upload_fileobj,
                io.BytesIO(data),
                self._bucket,
                path,
                ExtraArgs={"ContentType": content_type},
                Callback=callback,
            )
        except (BotoCoreError, ClientError) as exc:
            raise StorageError(f"Failed to upload recording audio: {exc}") from exc

        return StoredObject(path=path, url=_object_url(self._bucket, self._region, path))

    async def delete(self, path: str) -> None:
        """Delete the object stored at ``path``."""

        try:
            await run_in_threadpool(
                self._client.delete_object,
                Bucket=self._bucket,
                Key=path,
            )
        except (BotoCoreError, ClientError) as exc:
            raise StorageError(f"Failed to delete recording audio: {exc}") from exc


__all__ = ["S3ObjectStorage", "StorageError", "StoredObject", "ProgressCallback"]
