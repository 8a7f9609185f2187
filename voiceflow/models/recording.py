"""SQLAlchemy model for processed voice recordings."""

from __future__ import annotations

import uuid
from datetime import datetime

from sqlalchemy import Column, DateTime, Float, Integer, String, Text
from sqlalchemy.dialects.postgresql import UUID

from voiceflow.models.base import Base


class Recording(Base):
    __tablename__ = "recordings"

    id = Column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
        nullable=False,
    )
    client_recording_id = Column(String(128), nullable=False, index=True)
    user_id = Column(String(128), nullable=False, index=True)
    title = Column(Text, nullable=False)
    audio_url = Column(Text, nullable=False)
    original_transcript = Column(Text, nullable=True)
    enhanced_transcript = Column(Text, nullable=True)
    language = Column(String(16), nullable=False, default="en")
    style = Column(String(16), nullable=False, default="note", index=True)
    duration = Column(Integer, nullable=False, default=0)  # seconds
    word_count = Column(Integer, nullable=True)
    character_count = Column(Integer, nullable=True)
    cost_estimate = Column(Float, nullable=True)
    created_at = Column(
        DateTime,
        nullable=False,
        server_default="NOW()",
    )
    updated_at = Column(
        DateTime,
        nullable=False,
        server_default="NOW()",
        onupdate=datetime.utcnow,
    )


__all__ = ["Recording"]
