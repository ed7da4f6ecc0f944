"""Provider health bookkeeping models."""

from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field

from imagerelay.models.descriptors import ProviderFamily, ProviderOrigin


class HealthRecord(BaseModel):
    """Per-provider mutable health state, held for the process lifetime only."""

    consecutive_errors: int = Field(0, ge=0, description="Failures since the last success")
    last_used_at: Optional[float] = Field(None, description="Epoch seconds of the last attempt")
    last_failure_at: Optional[float] = Field(None, description="Epoch seconds of the last failure")
    disabled_until: Optional[float] = Field(None, description="Excluded from ranking while now < this")

    def is_disabled(self, now: float) -> bool:
        return self.disabled_until is not None and now < self.disabled_until


class ProviderStatusLabel(str, Enum):
    HEALTHY = "healthy"
    WARNING = "warning"
    FAILED = "failed"


class ProviderStatus(BaseModel):
    """Operational view of one provider for dashboards."""

    id: str
    display_name: str
    family: ProviderFamily
    origin: ProviderOrigin
    priority: int
    enabled: bool
    consecutive_errors: int = 0
    disabled_until: Optional[float] = None
    last_used_at: Optional[float] = None
    status: ProviderStatusLabel = ProviderStatusLabel.HEALTHY


class HealthSummary(BaseModel):
    total: int = 0
    enabled: int = 0
    disabled: int = 0
    errors: int = 0


class SystemHealth(BaseModel):
    """Aggregate health across every known provider."""

    overall: str = Field(..., description="healthy, degraded or critical")
    providers: list[ProviderStatus] = Field(default_factory=list)
    summary: HealthSummary = Field(default_factory=HealthSummary)
