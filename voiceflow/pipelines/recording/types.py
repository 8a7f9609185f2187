"""Typed containers shared across the recording pipeline stages.

Every stage result carries either its payload or a :class:`StageError`,
never both, so the orchestrator can decide fatal-vs-degradable handling
uniformly.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Optional

from .errors import ErrorCategory, StageError, StageErrorKind
from .flow import ProcessingStage
from .styles import EnhancementStyle


class CancellationToken:
    """Cooperative cancel flag, honoured by the orchestrator between stages."""

    def __init__(self) -> None:
        self._cancelled = False

    def cancel(self) -> None:
        self._cancelled = True

    @property
    def cancelled(self) -> bool:
        return self._cancelled


@dataclass(frozen=True)
class ProcessingRequest:
    """Caller input for one pipeline run."""

    user_id: str
    local_audio_uri: str
    recording_id: str
    style: EnhancementStyle | str = EnhancementStyle.NOTE
    custom_prompt: Optional[str] = None
    language_hint: Optional[str] = None
    is_premium: bool = False


@dataclass
class ProcessingJob:
    """Mutable per-run state, owned by the orchestrator for the whole run."""

    user_id: str
    local_audio_uri: str
    recording_id: str
    style: EnhancementStyle
    is_premium: bool
    language_hint: Optional[str] = None
    audio_path: Optional[str] = None
    audio_url: Optional[str] = None
    original_transcript: str = ""
    enhanced_transcript: str = ""
    detected_language: Optional[str] = None
    audio_duration_seconds: float = 0.0
    cost_estimate: float = 0.0
    enhancement_degraded: bool = False
    warnings: list[str] = field(default_factory=list)
    compensated: bool = False


@dataclass(frozen=True)
class QualityReport:
    score: int
    issues: tuple[str, ...] = ()
    threshold: int = 70

    @property
    def acceptable(self) -> bool:
        return self.score >= self.threshold


def _check_exclusive(name: str, has_payload: bool, error: Optional[StageError]) -> None:
    if has_payload == (error is not None):
        raise ValueError(f"{name} must carry either a payload or an error")


@dataclass(frozen=True)
class UploadResult:
    path: Optional[str] = None
    url: Optional[str] = None
    attempts: int = 0
    error: Optional[StageError] = None

    def __post_init__(self) -> None:
        _check_exclusive("UploadResult", bool(self.url), self.error)

    @property
    def ok(self) -> bool:
        return self.error is None


@dataclass(frozen=True)
class TranscriptionResult:
    text: str = ""
    language: Optional[str] = None
    audio_length_seconds: float = 0.0
    cost_estimate: float = 0.0
    quality: Optional[QualityReport] = None
    error: Optional[StageError] = None

    def __post_init__(self) -> None:
        _check_exclusive("TranscriptionResult", bool(self.text), self.error)

    @property
    def ok(self) -> bool:
        return self.error is None


@dataclass(frozen=True)
class EnhancementResult:
    enhanced_text: str = ""
    style: Optional[EnhancementStyle] = None
    tokens_used: Optional[int] = None
    cost_estimate: float = 0.0
    quality: Optional[QualityReport] = None
    error: Optional[StageError] = None

    def __post_init__(self) -> None:
        _check_exclusive("EnhancementResult", bool(self.enhanced_text), self.error)

    @property
    def ok(self) -> bool:
        return self.error is None


@dataclass(frozen=True)
class TranslationResult:
    translated_text: str = ""
    target_language: str = ""
    tokens_used: Optional[int] = None
    cost_estimate: float = 0.0
    error: Optional[StageError] = None

    def __post_init__(self) -> None:
        _check_exclusive("TranslationResult", bool(self.translated_text), self.error)

    @property
    def ok(self) -> bool:
        return self.error is None


@dataclass(frozen=True)
class PersistenceResult:
    record: Optional[dict[str, Any]] = None
    error: Optional[StageError] = None

    def __post_init__(self) -> None:
        _check_exclusive("PersistenceResult", self.record is not None, self.error)

    @property
    def ok(self) -> bool:
        return self.error is None


@dataclass(frozen=True)
class ProcessingRecord:
    """Everything the caller gets back from a successful run."""

    recording_id: str
    client_recording_id: str
    audio_url: str
    original_transcript: str
    enhanced_transcript: str
    language: str
    style: EnhancementStyle
    duration_seconds: float
    word_count: int
    character_count: int
    cost_estimate: float
    enhancement_degraded: bool = False
    warnings: tuple[str, ...] = ()


@dataclass(frozen=True)
class PipelineFailure:
    stage: ProcessingStage
    kind: StageErrorKind
    category: ErrorCategory
    message: str
    user_message: str
    compensated: bool = False

    @classmethod
    def from_stage_error(
        cls,
        stage: ProcessingStage,
        error: StageError,
        *,
        compensated: bool = False,
    ) -> "PipelineFailure":
        return cls(
            stage=stage,
            kind=error.kind,
            category=error.category,
            message=error.message,
            user_message=error.user_message,
            compensated=compensated,
        )


@dataclass(frozen=True)
class PipelineOutcome:
    record: Optional[ProcessingRecord] = None
    error: Optional[PipelineFailure] = None

    def __post_init__(self) -> None:
        if (self.record is None) == (self.error is None):
            raise ValueError("PipelineOutcome must carry exactly one of record or error")

    @property
    def ok(self) -> bool:
        return self.error is None


@dataclass(frozen=True)
class RegenerationResult:
    record: Optional[dict[str, Any]] = None
    quality: Optional[QualityReport] = None
    cost_estimate: float = 0.0
    error: Optional[StageError] = None

    def __post_init__(self) -> None:
        _check_exclusive("RegenerationResult", self.record is not None, self.error)

    @property
    def ok(self) -> bool:
        return self.error is None


__all__ = [
    "CancellationToken",
    "EnhancementResult",
    "PersistenceResult",
    "PipelineFailure",
    "PipelineOutcome",
    "ProcessingJob",
    "ProcessingRecord",
    "ProcessingRequest",
    "QualityReport",
    "RegenerationResult",
    "StageError",
    "StageErrorKind",
    "TranscriptionResult",
    "TranslationResult",
    "UploadResult",
]
