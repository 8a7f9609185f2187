"""Amazon Transcribe integration helpers using Streaming API."""

from __future__ import annotations

import asyncio
import logging
import os
import subprocess
import tempfile
from dataclasses import dataclass
from functools import lru_cache
from typing import Any

from amazon_transcribe.client import TranscribeStreamingClient
from amazon_transcribe.handlers import TranscriptResultStreamHandler
from amazon_transcribe.model import TranscriptEvent
from fastapi.concurrency import run_in_threadpool

from voiceflow.config.settings import settings
from voiceflow.services.aws import export_credentials

logger = logging.getLogger(__name__)

# ISO 639-1 hint -> (display name, streaming locale)
SUPPORTED_LANGUAGES: dict[str, tuple[str, str]] = {
    "en": ("English", "en-US"),
    "es": ("Spanish", "es-US"),
    "fr": ("French", "fr-FR"),
    "de": ("German", "de-DE"),
    "pt": ("Portuguese", "pt-BR"),
    "it": ("Italian", "it-IT"),
    "ja": ("Japanese", "ja-JP"),
    "ko": ("Korean", "ko-KR"),
    "zh": ("Chinese", "zh-CN"),
}


def language_name(code: str) -> str:
    entry = SUPPORTED_LANGUAGES.get(code.lower())
    return entry[0] if entry else "Unknown"


def _locale_for_hint(hint: str) -> str:
    entry = SUPPORTED_LANGUAGES.get(hint.lower())
    if entry:
        return entry[1]
    # Already a locale (e.g. "en-GB") or unknown; let the provider decide.
    return hint


def _short_code(locale: str | None) -> str | None:
    if not locale:
        return None
    return locale.split("-", 1)[0].lower()


@dataclass(frozen=True)
class ProviderTranscript:
    """Raw provider output before any pipeline validation."""

    text: str
    language: str | None = None
    duration_seconds: float | None = None


class TranscriptionError(RuntimeError):
    """Raised when Amazon Transcribe fails to process audio successfully."""


class TranscribeService:
    """High-level facade for streaming audio to Amazon Transcribe."""

    def __init__(
        self,
        region: str,
        *,
        default_language_code: str = "en-US",
        language_options: list[str] | None = None,
        media_sample_rate_hz: int = 16000,
        media_encoding: str = "pcm",
    ) -> None:
        self._region = region
        self._default_language_code = default_language_code
        self._language_options = list(language_options or [])
        self._media_sample_rate_hz = media_sample_rate_hz
        self._media_encoding = media_encoding

        export_credentials()
        self._client = TranscribeStreamingClient(region=region)

    async def transcribe(
        self,
        audio_bytes: bytes,
        language_hint: str | None = None,
    ) -> ProviderTranscript:
        """Stream audio to Transcribe and return the full transcript."""

        if not audio_bytes:
            raise TranscriptionError("The audio payload is empty.")

        try:
            pcm_data = await run_in_threadpool(self._convert_to_pcm_sync, audio_bytes)
        except TranscriptionError:
            raise
        except OSError as exc:
            raise TranscriptionError(f"Audio conversion failed: {exc}") from exc

        stream_kwargs: dict[str, Any] = {
            "media_sample_rate_hz": self._media_sample_rate_hz,
            "media_encoding": self._media_encoding,
        }
        if language_hint:
            stream_kwargs["language_code"] = _locale_for_hint(language_hint)
        elif len(self._language_options) >= 2:
            stream_kwargs["identify_language"] = True
            stream_kwargs["language_options"] = self._language_options
        else:
            stream_kwargs["language_code"] = self._default_language_code

        try:
            stream = await self._client.start_stream_transcription(**stream_kwargs)
        except Exception as exc:  # pragma: no cover - external dependency
            raise TranscriptionError(f"Could not open transcription stream: {exc}") from exc

        handler = _SimpleTranscriptHandler(stream.output_stream)

        async def write_chunks() -> None:
            chunk_size = 8192
            for i in range(0, len(pcm_data), chunk_size):
                await stream.input_stream.send_audio_event(
                    audio_chunk=pcm_data[i : i + chunk_size]
                )
            await stream.input_stream.end_stream()

        try:
            await asyncio.gather(write_chunks(), handler.handle_events())
        except Exception as exc:  # pragma: no cover - external dependency
            logger.error("Streaming loop failed: %s", exc)
            raise TranscriptionError(f"Streaming transcription failed: {exc}") from exc

        duration_seconds = len(pcm_data) / float(self._media_sample_rate_hz * 2)
        language = _short_code(handler.language_code or stream_kwargs.get("language_code"))
        logger.info(
            "Transcription complete. chars=%s language=%s", len(handler.transcript), language
        )
        return ProviderTranscript(
            text=handler.transcript.strip(),
            language=language,
            duration_seconds=duration_seconds,
        )

    def _convert_to_pcm_sync(self, audio_bytes: bytes) -> bytes:
        """Synchronous ffmpeg conversion using a temporary file to support seeking."""

        with tempfile.NamedTemporaryFile(delete=False, suffix=".tmp") as tmp_file:
            tmp_file.write(audio_bytes)
            tmp_path = tmp_file.name

        try:
            process = subprocess.run(
                [
                    "ffmpeg",
                    "-y",
                    "-i", tmp_path,
                    "-f", "s16le",
                    "-ac", "1",
                    "-ar", str(self._media_sample_rate_hz),
                    "pipe:1",
                ],
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
                check=True,
            )
            if not process.stdout:
                logger.warning(
                    "ffmpeg produced empty output. stderr: %s",
                    process.stderr.decode("utf-8", errors="replace"),
                )
            return process.stdout
        except subprocess.CalledProcessError as exc:
            error_msg = exc.stderr.decode("utf-8", errors="replace") if exc.stderr else "No stderr"
            logger.error("ffmpeg failed. stderr: %s", error_msg)
            raise TranscriptionError(f"ffmpeg failed to convert audio to PCM: {error_msg}") from exc
        finally:
            if os.path.exists(tmp_path):
                os.remove(tmp_path)


class _SimpleTranscriptHandler(TranscriptResultStreamHandler):
    def __init__(self, transcript_result_stream):
        super().__init__(transcript_result_stream)
        self.transcript = ""
        self.language_code: str | None = None

    async def handle_transcript_event(self, transcript_event: TranscriptEvent):
        for result in transcript_event.transcript.results:
            if result.is_partial:
                continue
            detected = getattr(result, "language_code", None)
            if detected and not self.language_code:
                self.language_code = detected
            for alt in result.alternatives[:1]:
                self.transcript += alt.transcript + " "


@lru_cache(maxsize=1)
def get_transcribe_service() -> TranscribeService:
    """Return a lazily-instantiated transcribe service singleton."""

    return TranscribeService(
        region=settings.transcribe.region,
        default_language_code=settings.transcribe.default_language_code,
        language_options=settings.transcribe.language_options,
        media_sample_rate_hz=settings.transcribe.media_sample_rate_hz,
    )


__all__ = [
    "ProviderTranscript",
    "SUPPORTED_LANGUAGES",
    "TranscribeService",
    "TranscriptionError",
    "get_transcribe_service",
    "language_name",
]
