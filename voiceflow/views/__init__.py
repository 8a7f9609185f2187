"""Pydantic schemas for the HTTP layer."""

from .common import ErrorResponse, FailureDetail, HealthResponse
from .queue import (
    ConnectivityResponse,
    ConnectivityUpdate,
    QueuedOperationView,
    QueueStatus,
    ReplayReportView,
)
from .recordings import (
    LanguageDescription,
    MutationResponse,
    ProcessedRecording,
    ProcessingEstimate,
    QualitySummary,
    RecordingUpdate,
    RegenerateRequest,
    RegeneratedRecording,
    StageDescription,
    StyleDescription,
    TranslateRequest,
    TranslateResponse,
)

__all__ = [
    "ConnectivityResponse",
    "ConnectivityUpdate",
    "ErrorResponse",
    "FailureDetail",
    "HealthResponse",
    "LanguageDescription",
    "MutationResponse",
    "ProcessedRecording",
    "ProcessingEstimate",
    "QualitySummary",
    "QueueStatus",
    "QueuedOperationView",
    "RecordingUpdate",
    "RegenerateRequest",
    "RegeneratedRecording",
    "ReplayReportView",
    "StageDescription",
    "StyleDescription",
    "TranslateRequest",
    "TranslateResponse",
]
