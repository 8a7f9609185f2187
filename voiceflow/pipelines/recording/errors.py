"""Stage error taxonomy and the user-facing categories derived from it."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum


class StageErrorKind(str, Enum):
    VALIDATION = "validation"
    TRANSIENT = "transient"
    DEGRADED = "degraded"
    FATAL = "fatal"
    CANCELLED = "cancelled"


class ErrorCategory(str, Enum):
    INVALID_CONFIG = "invalid_config"
    RATE_LIMIT = "rate_limit"
    TIMEOUT = "timeout"
    NETWORK = "network"
    FILE_TOO_LARGE = "file_too_large"
    PREMIUM_REQUIRED = "premium_required"
    NOT_FOUND = "not_found"
    UNKNOWN = "unknown"


USER_MESSAGES: dict[ErrorCategory, str] = {
    ErrorCategory.INVALID_CONFIG: "Invalid credentials or configuration. Please check the service settings.",
    ErrorCategory.RATE_LIMIT: "Rate limit exceeded. Please try again later.",
    ErrorCategory.TIMEOUT: "Request timed out. Please try again.",
    ErrorCategory.NETWORK: "Network error. Please check your connection.",
    ErrorCategory.FILE_TOO_LARGE: "Audio file is too large.",
    ErrorCategory.PREMIUM_REQUIRED: "This feature is only available for premium users.",
    ErrorCategory.NOT_FOUND: "The requested recording was not found.",
    ErrorCategory.UNKNOWN: "An unknown error occurred.",
}

# Evaluated in order; first match wins.
_PATTERNS: tuple[tuple[ErrorCategory, tuple[str, ...]], ...] = (
    (
        ErrorCategory.INVALID_CONFIG,
        (
            "api key",
            "unauthorized",
            "401",
            "403",
            "accessdenied",
            "access denied",
            "invalid credentials",
            "unrecognizedclient",
            "security token",
            "not configured",
        ),
    ),
    (ErrorCategory.RATE_LIMIT, ("rate limit", "429", "throttl", "too many requests")),
    (ErrorCategory.TIMEOUT, ("timeout", "timed out")),
    (ErrorCategory.NETWORK, ("network", "connection", "unreachable", "endpoint")),
    (ErrorCategory.FILE_TOO_LARGE, ("too large", "file size", "exceeds")),
)


def classify_error(message: str) -> ErrorCategory:
    """Best-effort mapping of a provider error message to a user-facing category."""

    lowered = (message or "").lower()
    for category, needles in _PATTERNS:
        if any(needle in lowered for needle in needles):
            return category
    return ErrorCategory.UNKNOWN


def user_message(category: ErrorCategory) -> str:
    return USER_MESSAGES.get(category, USER_MESSAGES[ErrorCategory.UNKNOWN])


@dataclass(frozen=True)
class StageError:
    """Error value returned by a stage instead of raising across the boundary."""

    kind: StageErrorKind
    message: str
    category: ErrorCategory = field(default=None)  # type: ignore[assignment]

    def __post_init__(self) -> None:
        if self.category is None:
            object.__setattr__(self, "category", classify_error(self.message))

    @property
    def user_message(self) -> str:
        return user_message(self.category)

    @classmethod
    def from_exception(cls, kind: StageErrorKind, exc: BaseException) -> "StageError":
        return cls(kind=kind, message=str(exc) or exc.__class__.__name__)


__all__ = [
    "ErrorCategory",
    "StageError",
    "StageErrorKind",
    "USER_MESSAGES",
    "classify_error",
    "user_message",
]
