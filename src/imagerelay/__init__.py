"""imagerelay - ordered, health-aware fallback across image generation providers."""

from imagerelay.config import EngineSettings
from imagerelay.interfaces import AdminConfigSource, ImageStore
from imagerelay.models.descriptors import ProviderDescriptor, ProviderFamily, ProviderOrigin
from imagerelay.models.errors import ErrorCode, ProviderError, is_attempt_error
from imagerelay.models.image_responses import ImageGenerationResponse
from imagerelay.models.metrics import GenerationMetrics
from imagerelay.models.requests import ImageGenerationRequest
from imagerelay.models.responses import GenerationError, GenerationOutcome
from imagerelay.models.trace import AttemptRecord, AttemptStatus
from imagerelay.providers.base import ImageProvider
from imagerelay.services.config_source import InMemoryAdminConfigSource
from imagerelay.services.health_tracker import ProviderHealthTracker
from imagerelay.services.image_service import ImageService
from imagerelay.services.metrics_service import MetricsService
from imagerelay.services.orchestrator import ProviderOrchestrator
from imagerelay.services.registry import ProviderRegistry
from imagerelay.services.upload_service import UploadService

__version__ = "0.1.0"

__all__ = [
    # Configuration and collaborators
    "AdminConfigSource",
    "EngineSettings",
    "ImageStore",
    "InMemoryAdminConfigSource",
    # Models
    "AttemptRecord",
    "AttemptStatus",
    "ErrorCode",
    "GenerationError",
    "GenerationMetrics",
    "GenerationOutcome",
    "ImageGenerationRequest",
    "ImageGenerationResponse",
    "ProviderDescriptor",
    "ProviderError",
    "ProviderFamily",
    "ProviderOrigin",
    "is_attempt_error",
    # Providers
    "ImageProvider",
    # Services
    "ImageService",
    "MetricsService",
    "ProviderHealthTracker",
    "ProviderOrchestrator",
    "ProviderRegistry",
    "UploadService",
    "build_orchestrator",
]


def build_orchestrator(
    config_source: AdminConfigSource | None = None,
    settings: EngineSettings | None = None,
    metrics_service: MetricsService | None = None,
) -> ProviderOrchestrator:
    """Wire settings, a fresh health tracker, the registry and the orchestrator."""
    settings = settings or EngineSettings.from_env()
    health = ProviderHealthTracker(
        failure_threshold=settings.failure_threshold,
        cooldown_seconds=settings.cooldown_seconds,
        forgiveness_seconds=settings.forgiveness_seconds,
    )
    registry = ProviderRegistry(health, config_source=config_source, settings=settings)
    return ProviderOrchestrator(registry, metrics_service=metrics_service)
