"""Local audio file helpers shared by the Upload and Transcription stages."""

from __future__ import annotations

import mimetypes
from pathlib import Path
from typing import Final
from urllib.parse import unquote, urlparse

from fastapi.concurrency import run_in_threadpool

_CONTENT_TYPES: Final[dict[str, str]] = {
    "m4a": "audio/m4a",
    "mp4": "audio/mp4",
    "mp3": "audio/mpeg",
    "wav": "audio/wav",
    "webm": "audio/webm",
    "aac": "audio/aac",
}

DEFAULT_EXTENSION: Final[str] = "m4a"


class AudioFileError(ValueError):
    """Raised when the local audio file is missing or unreadable."""


def resolve_local_path(local_audio_uri: str) -> Path:
    """Accept plain paths as well as ``file://`` URIs."""

    if local_audio_uri.startswith("file://"):
        return Path(unquote(urlparse(local_audio_uri).path))
    return Path(local_audio_uri)


def audio_extension(local_audio_uri: str) -> str:
    suffix = resolve_local_path(local_audio_uri).suffix.lstrip(".").lower()
    return suffix if suffix in _CONTENT_TYPES else DEFAULT_EXTENSION


def resolve_content_type(local_audio_uri: str) -> str:
    extension = audio_extension(local_audio_uri)
    content_type = _CONTENT_TYPES.get(extension)
    if content_type:
        return content_type
    guessed, _ = mimetypes.guess_type(f"audio.{extension}")
    return guessed or "audio/m4a"


def file_size(local_audio_uri: str) -> int:
    """Return the size in bytes, raising :class:`AudioFileError` if missing."""

    path = resolve_local_path(local_audio_uri)
    if not path.is_file():
        raise AudioFileError("Audio file does not exist")
    return path.stat().st_size


async def read_audio_bytes(local_audio_uri: str) -> bytes:
    """Load the file fully into memory, rejecting empty payloads."""

    path = resolve_local_path(local_audio_uri)
    try:
        data = await run_in_threadpool(path.read_bytes)
    except OSError as exc:
        raise AudioFileError(f"Failed to read audio file: {exc}") from exc
    if not data:
        raise AudioFileError("Audio file is empty")
    return data


def format_megabytes(size_bytes: int) -> str:
    return f"{size_bytes / 1024 / 1024:.2f}MB"


__all__ = [
    "AudioFileError",
    "audio_extension",
    "file_size",
    "format_megabytes",
    "read_audio_bytes",
    "resolve_content_type",
    "resolve_local_path",
]
