"""Telemetry helpers and metrics."""

from .metrics import (
    COMPENSATIONS,
    ENHANCEMENT_FALLBACKS,
    ERROR_COUNTER,
    OFFLINE_DROPPED,
    PIPELINE_RUNS,
    REQUEST_COUNT,
    REQUEST_LATENCY,
    STAGE_DURATION,
    observe_request,
    observe_stage,
    record_compensation,
    record_dropped_operation,
    record_enhancement_fallback,
    record_pipeline_outcome,
)

__all__ = [
    "COMPENSATIONS",
    "ENHANCEMENT_FALLBACKS",
    "ERROR_COUNTER",
    "OFFLINE_DROPPED",
    "PIPELINE_RUNS",
    "REQUEST_COUNT",
    "REQUEST_LATENCY",
    "STAGE_DURATION",
    "observe_request",
    "observe_stage",
    "record_compensation",
    "record_dropped_operation",
    "record_enhancement_fallback",
    "record_pipeline_outcome",
]
