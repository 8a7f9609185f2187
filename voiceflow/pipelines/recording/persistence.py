"""Persistence stage: write the finished recording row."""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Optional

from voiceflow.services.relational_store import RelationalStoreError, RelationalStoreInterface

from .errors import StageError, StageErrorKind
from .types import PersistenceResult, ProcessingJob

logger = logging.getLogger("voiceflow.services.recording_pipeline")

RECORDINGS_TABLE = "recordings"


def count_words(text: str) -> int:
    return len(text.split())


def recording_title(now: Optional[datetime] = None) -> str:
    now = now or datetime.now(timezone.utc)
    return f"Recording {now.strftime('%Y-%m-%d %H:%M')}"


def build_recording_row(job: ProcessingJob) -> dict[str, Any]:
    """Row for the ``recordings`` table; counts use the final transcript."""

    final_text = job.enhanced_transcript
    return {
        "client_recording_id": job.recording_id,
        "user_id": job.user_id,
        "title": recording_title(),
        "audio_url": job.audio_url,
        "original_transcript": job.original_transcript,
        "enhanced_transcript": final_text,
        "language": job.detected_language or job.language_hint or "en",
        "style": job.style.value,
        "duration": round(job.audio_duration_seconds),
        "word_count": count_words(final_text),
        "character_count": len(final_text),
        "cost_estimate": job.cost_estimate,
    }


async def persist_recording(
    store: RelationalStoreInterface,
    job: ProcessingJob,
) -> PersistenceResult:
    if not job.enhanced_transcript:
        return PersistenceResult(
            error=StageError(
                kind=StageErrorKind.VALIDATION,
                message="Cannot save a recording without a transcript",
            )
        )

    row = build_recording_row(job)
    try:
        record = await store.insert(RECORDINGS_TABLE, row)
    except RelationalStoreError as exc:
        logger.error("Failed to save recording client_id=%s: %s", job.recording_id, exc)
        return PersistenceResult(error=StageError.from_exception(StageErrorKind.FATAL, exc))

    logger.info(
        "Saved recording id=%s client_id=%s words=%s",
        record.get("id"),
        job.recording_id,
        row["word_count"],
    )
    return PersistenceResult(record=record)


__all__ = [
    "RECORDINGS_TABLE",
    "build_recording_row",
    "count_words",
    "persist_recording",
    "recording_title",
]
