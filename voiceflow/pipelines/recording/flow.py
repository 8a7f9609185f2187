"""Stage map and progress bands for the recording-processing pipeline.

The orchestrator in ``orchestrator.py`` runs the stages strictly in this
order:

1. ``upload`` - move the local audio file into object storage.
2. ``transcription`` - speech-to-text plus an independent duration probe.
3. ``enhancement`` - restyle the transcript (falls back to the raw text).
4. ``persistence`` - write the final record to the relational store.

Each stage reports its own 0-100 progress; :func:`overall_progress` maps it
into the band reserved for that stage so callers only ever see a single
0-100 scale.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Iterable, List, Optional

logger = logging.getLogger("voiceflow.services.recording_pipeline")


class ProcessingStage(str, Enum):
    UPLOADING = "uploading"
    TRANSCRIBING = "transcribing"
    ENHANCING = "enhancing"
    SAVING = "saving"
    COMPLETE = "complete"
    ERROR = "error"


@dataclass(frozen=True)
class StageBand:
    start: float
    end: float


STAGE_BANDS: dict[ProcessingStage, StageBand] = {
    ProcessingStage.UPLOADING: StageBand(0.0, 25.0),
    ProcessingStage.TRANSCRIBING: StageBand(25.0, 60.0),
    ProcessingStage.ENHANCING: StageBand(60.0, 90.0),
    ProcessingStage.SAVING: StageBand(90.0, 100.0),
    ProcessingStage.COMPLETE: StageBand(100.0, 100.0),
    ProcessingStage.ERROR: StageBand(0.0, 0.0),
}

_STAGE_NAMES = {
    ProcessingStage.UPLOADING: "Uploading audio...",
    ProcessingStage.TRANSCRIBING: "Transcribing your voice...",
    ProcessingStage.ENHANCING: "Enhancing with AI...",
    ProcessingStage.SAVING: "Saving your note...",
    ProcessingStage.COMPLETE: "Complete!",
    ProcessingStage.ERROR: "Processing failed",
}


def overall_progress(stage: ProcessingStage, stage_percent: float) -> float:
    """Linearly remap a stage-local percentage into the stage's overall band."""

    band = STAGE_BANDS[stage]
    if math.isnan(stage_percent):
        stage_percent = 0.0
    clamped = min(100.0, max(0.0, stage_percent))
    return band.start + (band.end - band.start) * clamped / 100.0


def stage_display_name(stage: ProcessingStage) -> str:
    return _STAGE_NAMES.get(stage, "Processing...")


def estimate_processing_time(audio_duration_seconds: float) -> int:
    """Rough end-to-end wall-clock estimate in seconds, shown before processing."""

    upload_time = 5
    transcription_time = audio_duration_seconds * 0.15
    enhancement_time = 12
    saving_time = 2
    return math.ceil(upload_time + transcription_time + enhancement_time + saving_time)


ProgressCallback = Callable[[ProcessingStage, float], None]
StageCompleteCallback = Callable[[ProcessingStage], None]


class ProgressReporter:
    """Forward remapped, non-decreasing progress to the caller's callbacks.

    Once ``is_suppressed`` returns true (the job was cancelled) nothing more
    is forwarded.
    """

    def __init__(
        self,
        on_progress: Optional[ProgressCallback] = None,
        on_stage_complete: Optional[StageCompleteCallback] = None,
        is_suppressed: Callable[[], bool] = lambda: False,
    ) -> None:
        self._on_progress = on_progress
        self._on_stage_complete = on_stage_complete
        self._is_suppressed = is_suppressed
        self._last = 0.0

    @property
    def last_percent(self) -> float:
        return self._last

    def report(self, stage: ProcessingStage, stage_percent: float) -> None:
        overall = max(self._last, overall_progress(stage, stage_percent))
        self._last = overall
        if self._on_progress is None or self._is_suppressed():
            return
        try:
            self._on_progress(stage, overall)
        except Exception:
            logger.exception("Progress callback raised for stage=%s", stage.value)

    def stage_callback(self, stage: ProcessingStage) -> Callable[[float], None]:
        """Bind ``stage`` so a stage can report plain local percentages."""

        return lambda stage_percent: self.report(stage, stage_percent)

    def stage_complete(self, stage: ProcessingStage, *, force: bool = False) -> None:
        if self._on_stage_complete is None:
            return
        if self._is_suppressed() and not force:
            return
        try:
            self._on_stage_complete(stage)
        except Exception:
            logger.exception("Stage-complete callback raised for stage=%s", stage.value)


@dataclass(frozen=True)
class PipelineStage:
    """Human-readable description of one stage in the recording pipeline."""

    order: int
    stage: ProcessingStage
    module: str
    summary: str

    @property
    def band(self) -> StageBand:
        return STAGE_BANDS[self.stage]


class RecordingPipelineMap:
    """Ordered description of the stages, used by ``GET /recordings/stages``."""

    _STAGES: List[PipelineStage] = [
        PipelineStage(
            1,
            ProcessingStage.UPLOADING,
            "voiceflow.pipelines.recording.upload",
            "Validate the local file and upload it to S3 with retry/backoff.",
        ),
        PipelineStage(
            2,
            ProcessingStage.TRANSCRIBING,
            "voiceflow.pipelines.recording.transcription",
            "Stream the audio to Amazon Transcribe, probe duration, score plausibility.",
        ),
        PipelineStage(
            3,
            ProcessingStage.ENHANCING,
            "voiceflow.pipelines.recording.enhancement",
            "Restyle the transcript with Bedrock; fall back to the raw text on failure.",
        ),
        PipelineStage(
            4,
            ProcessingStage.SAVING,
            "voiceflow.pipelines.recording.persistence",
            "Insert the recording row with word/character counts.",
        ),
    ]

    @classmethod
    def describe(cls) -> Iterable[PipelineStage]:
        return tuple(cls._STAGES)


__all__ = [
    "PipelineStage",
    "ProcessingStage",
    "ProgressCallback",
    "ProgressReporter",
    "RecordingPipelineMap",
    "STAGE_BANDS",
    "StageBand",
    "StageCompleteCallback",
    "estimate_processing_time",
    "overall_progress",
    "stage_display_name",
]
