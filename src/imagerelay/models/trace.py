"""Attempt trace models."""

from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field

from imagerelay.models.errors import ErrorCode


class AttemptStatus(str, Enum):
    SUCCESS = "success"
    FAILED = "failed"
    SKIPPED = "skipped"


class AttemptRecord(BaseModel):
    """One entry of the append-only trace of an orchestration call."""

    provider_id: str
    display_name: str
    status: AttemptStatus
    start_offset_ms: int = Field(..., ge=0, description="Milliseconds since the call started")
    duration_ms: int = Field(0, ge=0)
    error_code: Optional[ErrorCode] = Field(None, description="Failure kind, for operator diagnosis")
    error_summary: Optional[str] = Field(None, description="Bounded failure description")
