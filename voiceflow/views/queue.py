"""Schemas for the offline mutation queue endpoints."""

from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel, Field


class QueuedOperationView(BaseModel):
    id: str
    type: str
    target_table: str
    payload: dict[str, Any]
    enqueued_at: datetime
    retry_count: int


class QueueStatus(BaseModel):
    online: bool
    replaying: bool
    pending: int
    dropped_total: int
    operations: list[QueuedOperationView] = Field(default_factory=list)


class ConnectivityUpdate(BaseModel):
    online: bool


class ReplayReportView(BaseModel):
    replayed: int = 0
    retained: int = 0
    dropped: int = 0
    skipped: bool = False


class ConnectivityResponse(BaseModel):
    online: bool
    replay: Optional[ReplayReportView] = None
