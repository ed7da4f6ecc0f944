"""Metrics models for provider orchestration."""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field


class GenerationMetrics(BaseModel):
    """Tracking data for one orchestration call."""

    duration_ms: int = Field(..., ge=0, description="Total orchestration time in milliseconds")
    attempt_count: int = Field(0, ge=0, description="Providers actually attempted (skipped entries excluded)")
    provider_id: Optional[str] = Field(None, description="Provider that produced the image")
    model_used: Optional[str] = Field(None, description="Backend model identifier")
    timestamp: Optional[datetime] = Field(None, description="When the orchestration completed (UTC)")
