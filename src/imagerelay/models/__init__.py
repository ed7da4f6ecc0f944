"""Models package for imagerelay."""

from imagerelay.models.descriptors import ProviderDescriptor, ProviderFamily, ProviderOrigin
from imagerelay.models.errors import (
    AuthError,
    ErrorCode,
    InvalidProviderConfig,
    ModelRefused,
    NoProvidersConfigured,
    ProviderError,
    ProviderTimeout,
    TransportError,
    is_attempt_error,
)
from imagerelay.models.health import HealthRecord, ProviderStatus, ProviderStatusLabel, SystemHealth
from imagerelay.models.image_responses import ImageGenerationResponse
from imagerelay.models.metrics import GenerationMetrics
from imagerelay.models.requests import ImageGenerationRequest
from imagerelay.models.responses import GenerationError, GenerationOutcome
from imagerelay.models.trace import AttemptRecord, AttemptStatus

__all__ = [
    "AttemptRecord",
    "AttemptStatus",
    "AuthError",
    "ErrorCode",
    "GenerationError",
    "GenerationMetrics",
    "GenerationOutcome",
    "HealthRecord",
    "ImageGenerationRequest",
    "ImageGenerationResponse",
    "InvalidProviderConfig",
    "ModelRefused",
    "NoProvidersConfigured",
    "ProviderDescriptor",
    "ProviderError",
    "ProviderFamily",
    "ProviderOrigin",
    "ProviderStatus",
    "ProviderStatusLabel",
    "ProviderTimeout",
    "SystemHealth",
    "TransportError",
    "is_attempt_error",
]
