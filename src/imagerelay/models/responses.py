"""Outcome models for provider orchestration."""

from typing import Optional

from pydantic import BaseModel, Field, model_validator

from imagerelay.models.errors import ErrorCode
from imagerelay.models.metrics import GenerationMetrics
from imagerelay.models.trace import AttemptRecord


class GenerationError(BaseModel):
    """Error details for failed generation operations."""

    code: ErrorCode = Field(..., description="Error category code")
    message: str = Field(..., description="Aggregated, operator-readable failure description")
    details: Optional[dict] = Field(None, description="Optional additional context for debugging")


class GenerationOutcome(BaseModel):
    """Terminal result of one orchestration call."""

    success: bool = Field(..., description="Whether a provider produced an image")
    image_bytes: Optional[bytes] = Field(None, repr=False, description="Generated image (present if success=True)")
    provider_id: Optional[str] = Field(None, description="Provider that produced the image")
    provider_name: Optional[str] = Field(None, description="Display name of that provider")
    trace: list[AttemptRecord] = Field(default_factory=list, description="Per-attempt log in attempt order")
    error: Optional[GenerationError] = Field(None, description="Error details if success=False")
    metrics: Optional[GenerationMetrics] = Field(None, description="Timing and attempt count")

    @model_validator(mode="after")
    def validate_success_state(self):
        """Ensure exactly one branch is populated."""
        if self.success is True:
            if not self.image_bytes:
                raise ValueError("image_bytes must be present when success=True")
            if not self.provider_id:
                raise ValueError("provider_id must be present when success=True")
            if self.error is not None:
                raise ValueError("error must be None when success=True")
        else:
            if self.error is None:
                raise ValueError("error must be present when success=False")
            if self.image_bytes is not None:
                raise ValueError("image_bytes must be None when success=False")
        return self

    @property
    def aggregated_error(self) -> Optional[str]:
        return self.error.message if self.error else None
