"""Request models for image generation."""

from pydantic import BaseModel, Field


class ImageGenerationRequest(BaseModel):
    """Request model for the generation service."""

    prompt: str = Field(..., min_length=1, description="Fully built image generation prompt")
    name_hint: str = Field("image", description="Used to name the stored object")
    exclude_provider_ids: set[str] = Field(
        default_factory=set,
        description="Provider ids known bad from a prior outer-level attempt",
    )
