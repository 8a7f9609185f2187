"""SQLAlchemy models."""

from .base import Base
from .recording import Recording  # noqa: F401

__all__ = ["Base", "Recording"]
