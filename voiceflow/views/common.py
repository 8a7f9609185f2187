"""Common response schemas."""

from typing import Optional

from pydantic import BaseModel


class FailureDetail(BaseModel):
    """Body of ``detail`` when a pipeline operation fails."""

    stage: Optional[str] = None
    kind: str
    category: str
    message: str
    user_message: str
    compensated: bool = False


class ErrorResponse(BaseModel):
    detail: FailureDetail


class HealthResponse(BaseModel):
    status: str
    service: str
    version: str
