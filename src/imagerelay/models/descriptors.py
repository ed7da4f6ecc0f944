"""Provider descriptor models."""

from enum import Enum

from pydantic import BaseModel, Field, ValidationInfo, field_validator

MIN_ADMIN_PRIORITY = 1
MAX_ADMIN_PRIORITY = 10
DEFAULT_ADMIN_PRIORITY = 5
ENV_PRIORITY = 0


class ProviderFamily(str, Enum):
    """Backend kind, selects which image provider implementation is invoked."""

    GEMINI = "gemini"
    OPENAI = "openai"
    GROK = "grok"
    FAL = "fal"
    CUSTOM = "custom"  # OpenAI-compatible chat endpoint


class ProviderOrigin(str, Enum):
    """Where a descriptor came from."""

    ENV = "env"
    CONFIG = "config"


def clamp_priority(value: int) -> int:
    """Clamp an admin priority into the 1-10 range."""
    return max(MIN_ADMIN_PRIORITY, min(MAX_ADMIN_PRIORITY, value))


def mask_secret(secret: str) -> str:
    """Return a log-safe representation of a credential."""
    if not secret:
        return "<empty>"
    if len(secret) <= 8:
        return f"***({len(secret)} chars)"
    return f"{secret[:4]}…({len(secret)} chars)"


class ProviderDescriptor(BaseModel):
    """Identity and dispatch data for one configured image backend."""

    id: str = Field(..., min_length=1, description="Stable identity, unique per configured source")
    display_name: str = Field(..., description="Human label, not guaranteed unique")
    family: ProviderFamily = Field(..., description="Backend kind driving provider dispatch")
    origin: ProviderOrigin = Field(..., description="Environment-supplied or admin-configured")
    credential: str = Field("", repr=False, description="API key (never logged in full)")
    endpoint: str = Field("", description="Base URL or application id")
    model: str = Field("", description="Backend model identifier")
    enabled: bool = Field(True, description="Disabled descriptors are never ranked")
    priority: int = Field(DEFAULT_ADMIN_PRIORITY, description="Lower value is attempted earlier")

    @field_validator("priority")
    @classmethod
    def normalize_priority(cls, value: int, info: ValidationInfo) -> int:
        """Environment descriptors always rank ahead of every admin value."""
        if info.data.get("origin") == ProviderOrigin.ENV:
            return ENV_PRIORITY
        return clamp_priority(value)

    def missing_fields(self) -> list[str]:
        """Names of required dispatch fields that are blank."""
        return [
            name
            for name in ("credential", "endpoint", "model")
            if not getattr(self, name).strip()
        ]

    @property
    def masked_credential(self) -> str:
        return mask_secret(self.credential)

    def log_label(self) -> str:
        return f"{self.display_name} ({self.id}, key {self.masked_credential})"
