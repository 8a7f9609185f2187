"""Upload stage: move the local recording into object storage."""

from __future__ import annotations

import logging
from typing import Callable, Optional, Protocol

from voiceflow.services.storage import StorageError, StoredObject

from .errors import ErrorCategory, StageError, StageErrorKind
from .ingestion import (
    AudioFileError,
    audio_extension,
    file_size,
    format_megabytes,
    read_audio_bytes,
    resolve_content_type,
)
from .retry import RetryPolicy
from .types import UploadResult

logger = logging.getLogger("voiceflow.services.recording_pipeline")


class ObjectStorage(Protocol):
    async def upload(
        self,
        path: str,
        data: bytes,
        *,
        content_type: str = ...,
        on_progress: Optional[Callable[[float], None]] = ...,
    ) -> StoredObject:
        ...

    async def delete(self, path: str) -> None:
        ...


def object_path(user_id: str, recording_id: str, extension: str) -> str:
    """Deterministic key so compensation can find the object without bookkeeping."""

    return f"{user_id}/{recording_id}.{extension.lstrip('.')}"


async def upload_recording(
    storage: ObjectStorage,
    *,
    local_audio_uri: str,
    user_id: str,
    recording_id: str,
    retry_policy: RetryPolicy,
    max_bytes: int,
    on_progress: Optional[Callable[[float], None]] = None,
) -> UploadResult:
    """Validate, read and upload the recording, retrying transient failures."""

    try:
        size = file_size(local_audio_uri)
    except AudioFileError as exc:
        return UploadResult(error=StageError.from_exception(StageErrorKind.VALIDATION, exc))

    if size > max_bytes:
        return UploadResult(
            error=StageError(
                kind=StageErrorKind.VALIDATION,
                message=(
                    f"Audio file too large: {format_megabytes(size)}. "
                    f"Maximum is {format_megabytes(max_bytes)}"
                ),
                category=ErrorCategory.FILE_TOO_LARGE,
            )
        )

    try:
        data = await read_audio_bytes(local_audio_uri)
    except AudioFileError as exc:
        return UploadResult(error=StageError.from_exception(StageErrorKind.VALIDATION, exc))

    path = object_path(user_id, recording_id, audio_extension(local_audio_uri))
    content_type = resolve_content_type(local_audio_uri)
    attempts = 0
    highest = 0.0

    def report(percentage: float) -> None:
        nonlocal highest
        highest = max(highest, min(100.0, percentage))
        if on_progress is not None:
            on_progress(highest)

    async def attempt() -> StoredObject:
        nonlocal attempts
        attempts += 1
        return await storage.upload(
            path,
            data,
            content_type=content_type,
            on_progress=report,
        )

    report(0.0)
    try:
        stored = await retry_policy.run(attempt, retry_on=(StorageError,), label="upload")
    except StorageError as exc:
        logger.error("Upload failed after %s attempts path=%s: %s", attempts, path, exc)
        return UploadResult(
            attempts=attempts,
            error=StageError.from_exception(StageErrorKind.TRANSIENT, exc),
        )

    report(100.0)
    logger.info("Uploaded recording path=%s bytes=%s attempts=%s", stored.path, size, attempts)
    return UploadResult(path=stored.path, url=stored.url, attempts=attempts)


__all__ = ["ObjectStorage", "object_path", "upload_recording"]
