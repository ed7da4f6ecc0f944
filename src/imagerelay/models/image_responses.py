"""Image generation response models."""

from typing import Optional

from pydantic import BaseModel, Field, model_validator

from imagerelay.models.metrics import GenerationMetrics
from imagerelay.models.responses import GenerationError
from imagerelay.models.trace import AttemptRecord


class ImageGenerationResponse(BaseModel):
    """Response model for the generation service."""

    success: bool = Field(..., description="Whether generation and storage succeeded")
    image_url: Optional[str] = Field(None, description="Public URL of the stored image (present if success=True)")
    provider_id: Optional[str] = Field(None, description="Provider that produced the image")
    provider_name: Optional[str] = Field(None, description="Display name of that provider")
    trace: list[AttemptRecord] = Field(default_factory=list, description="Orchestration trace")
    metrics: Optional[GenerationMetrics] = Field(None, description="Performance tracking")
    error: Optional[GenerationError] = Field(None, description="Error details if success=False")

    @model_validator(mode="after")
    def validate_success_state(self):
        """Ensure success state is consistent."""
        if self.success is True:
            if not self.image_url:
                raise ValueError("image_url must be present when success=True")
            if self.error:
                raise ValueError("error must be None when success=True")
        else:
            if not self.error:
                raise ValueError("error must be present when success=False")
            if self.image_url:
                raise ValueError("image_url must be None when success=False")
        return self
