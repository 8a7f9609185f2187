"""Application middleware package."""

from .logging import RequestLoggingMiddleware
from .telemetry import TelemetryMiddleware

__all__ = ["RequestLoggingMiddleware", "TelemetryMiddleware"]
