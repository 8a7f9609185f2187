"""Schemas for recording processing endpoints."""

from typing import Any, Optional

from pydantic import BaseModel, Field


class ProcessedRecording(BaseModel):
    recording_id: str
    client_recording_id: str
    audio_url: str
    original_transcript: str
    enhanced_transcript: str
    language: str
    style: str
    duration_seconds: float
    word_count: int
    character_count: int
    cost_estimate: float
    enhancement_degraded: bool = False
    warnings: list[str] = Field(default_factory=list)


class RegenerateRequest(BaseModel):
    style: str
    custom_prompt: Optional[str] = None
    is_premium: bool = False


class QualitySummary(BaseModel):
    score: int
    issues: list[str] = Field(default_factory=list)
    acceptable: bool


class RegeneratedRecording(BaseModel):
    record: dict[str, Any]
    quality: Optional[QualitySummary] = None
    cost_estimate: float = 0.0


class TranslateRequest(BaseModel):
    text: str = Field(min_length=1)
    target_language: str = Field(min_length=1)


class TranslateResponse(BaseModel):
    translated_text: str
    target_language: str
    tokens_used: Optional[int] = None
    cost_estimate: float = 0.0


class RecordingUpdate(BaseModel):
    title: Optional[str] = None
    enhanced_transcript: Optional[str] = None
    style: Optional[str] = None
    language: Optional[str] = None


class MutationResponse(BaseModel):
    """A mutation is either applied now or queued for replay."""

    status: str
    record: Optional[dict[str, Any]] = None
    operation_id: Optional[str] = None


class StageDescription(BaseModel):
    order: int
    stage: str
    name: str
    module: str
    summary: str
    progress_start: float
    progress_end: float


class StyleDescription(BaseModel):
    style: str
    name: str
    description: str
    example: str
    premium: bool
    instruction: str


class ProcessingEstimate(BaseModel):
    duration_seconds: float
    processing_seconds: int
    cost_estimate: float


class LanguageDescription(BaseModel):
    code: str
    name: str
    locale: str
