"""Transcription stage: speech-to-text with an independent duration probe."""

from __future__ import annotations

import logging
import re
from pathlib import Path
from typing import Awaitable, Callable, Optional, Protocol

from voiceflow.config.settings import CostConfig
from voiceflow.services.audio_probe import probe_duration_seconds
from voiceflow.services.transcribe import ProviderTranscript, TranscriptionError

from .costs import transcription_cost
from .errors import ErrorCategory, StageError, StageErrorKind
from .ingestion import (
    AudioFileError,
    file_size,
    format_megabytes,
    read_audio_bytes,
    resolve_local_path,
)
from .retry import RetryPolicy
from .types import QualityReport, TranscriptionResult

logger = logging.getLogger("voiceflow.services.recording_pipeline")

AudioProbe = Callable[[Path], Awaitable[Optional[float]]]

_REPEATED_CHARACTERS = re.compile(r"(.)\1{10,}")


class TranscriptionProvider(Protocol):
    async def transcribe(
        self,
        audio_bytes: bytes,
        language_hint: Optional[str] = None,
    ) -> ProviderTranscript:
        ...


def assess_transcript_quality(transcript: str, threshold: int = 70) -> QualityReport:
    """Heuristic plausibility score; flags silence/noise misfires, never rejects."""

    issues: list[str] = []
    score = 100

    if len(transcript) < 10:
        issues.append("Transcript is too short")
        score -= 50

    if _REPEATED_CHARACTERS.search(transcript):
        issues.append("Contains repeated characters (possible audio issue)")
        score -= 20

    if re.fullmatch(r"\d+", transcript.strip()):
        issues.append("Transcript contains only numbers")
        score -= 30

    if len(transcript.split()) < 3:
        issues.append("Very few words detected")
        score -= 25

    return QualityReport(score=max(0, score), issues=tuple(issues), threshold=threshold)


async def transcribe_recording(
    provider: TranscriptionProvider,
    *,
    local_audio_uri: str,
    language_hint: Optional[str],
    retry_policy: RetryPolicy,
    max_bytes: int,
    cost_config: Optional[CostConfig] = None,
    probe: AudioProbe = probe_duration_seconds,
    quality_threshold: int = 70,
    on_progress: Optional[Callable[[float], None]] = None,
) -> TranscriptionResult:
    """Transcribe the local recording, retrying transient provider failures."""

    def report(percentage: float) -> None:
        if on_progress is not None:
            on_progress(percentage)

    try:
        size = file_size(local_audio_uri)
    except AudioFileError as exc:
        return TranscriptionResult(error=StageError.from_exception(StageErrorKind.VALIDATION, exc))

    if size > max_bytes:
        # No chunking strategy: refuse rather than truncate.
        return TranscriptionResult(
            error=StageError(
                kind=StageErrorKind.VALIDATION,
                message=(
                    f"Audio file too large for transcription: {format_megabytes(size)} "
                    f"(limit {format_megabytes(max_bytes)}). Large file transcription is "
                    "not yet supported; please record shorter segments."
                ),
                category=ErrorCategory.FILE_TOO_LARGE,
            )
        )

    try:
        audio_bytes = await read_audio_bytes(local_audio_uri)
    except AudioFileError as exc:
        return TranscriptionResult(error=StageError.from_exception(StageErrorKind.VALIDATION, exc))
    report(10.0)

    async def attempt() -> ProviderTranscript:
        return await provider.transcribe(audio_bytes, language_hint)

    try:
        transcript = await retry_policy.run(
            attempt, retry_on=(TranscriptionError,), label="transcription"
        )
    except TranscriptionError as exc:
        return TranscriptionResult(error=StageError.from_exception(StageErrorKind.FATAL, exc))
    report(80.0)

    text = (transcript.text or "").strip()
    if not text:
        return TranscriptionResult(
            error=StageError(
                kind=StageErrorKind.VALIDATION,
                message="Transcription produced empty result. Please try speaking louder.",
            )
        )

    duration = await probe(resolve_local_path(local_audio_uri))
    if duration is None:
        duration = transcript.duration_seconds or 0.0
        logger.info("Duration probe unavailable; using provider duration=%.2fs", duration)

    quality = assess_transcript_quality(text, quality_threshold)
    if quality.issues:
        logger.warning(
            "Transcript quality score=%s issues=%s", quality.score, ", ".join(quality.issues)
        )
    report(100.0)

    return TranscriptionResult(
        text=text,
        language=transcript.language or language_hint,
        audio_length_seconds=float(duration),
        cost_estimate=transcription_cost(duration, cost_config),
        quality=quality,
    )


__all__ = ["AudioProbe", "TranscriptionProvider", "assess_transcript_quality", "transcribe_recording"]
