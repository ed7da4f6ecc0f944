"""Image generation service: orchestrate providers, then store the result."""

import asyncio
import logging
from typing import Any, Optional

from imagerelay.interfaces import ImageStore
from imagerelay.models.errors import ErrorCode
from imagerelay.models.image_responses import ImageGenerationResponse
from imagerelay.models.requests import ImageGenerationRequest
from imagerelay.models.responses import GenerationError
from imagerelay.services.orchestrator import ProviderOrchestrator
from imagerelay.services.retry_service import RetryableError, retry_storage

logger = logging.getLogger(__name__)


class ImageService:
    """Caller-side service that turns a prompt into a stored image URL."""

    def __init__(
        self,
        orchestrator: ProviderOrchestrator,
        store: ImageStore,
        retry_config: dict[str, Any] | None = None,
    ):
        """
        Initialize image service.

        Args:
            orchestrator: Provider orchestrator producing the image bytes
            store: Binary storage returning a public URL
            retry_config: Optional tenacity configuration for the storage step
        """
        self.orchestrator = orchestrator
        self.store = store
        self._retry_config = retry_config

    async def generate(
        self,
        request: ImageGenerationRequest,
        cancel_event: Optional[asyncio.Event] = None,
    ) -> ImageGenerationResponse:
        """
        Generate an image and upload it.

        Args:
            request: Image generation request
            cancel_event: Optional asyncio.Event forwarded to the orchestrator

        Returns:
            ImageGenerationResponse with the public URL and trace, or the error
        """
        outcome = await self.orchestrator.generate(
            request.prompt,
            exclude_provider_ids=request.exclude_provider_ids,
            cancel_event=cancel_event,
        )

        if not outcome.success:
            return ImageGenerationResponse(
                success=False,
                trace=outcome.trace,
                metrics=outcome.metrics,
                error=outcome.error,
            )

        try:
            image_url = await retry_storage(
                self.store.store,
                outcome.image_bytes,
                request.name_hint,
                retry_config=self._retry_config,
            )
        except (RetryableError, ValueError) as e:
            logger.error(f"❌ [ImageService] Image from {outcome.provider_id} generated but storage failed: {e}")
            return ImageGenerationResponse(
                success=False,
                provider_id=outcome.provider_id,
                provider_name=outcome.provider_name,
                trace=outcome.trace,
                metrics=outcome.metrics,
                error=GenerationError(
                    code=ErrorCode.STORAGE_FAILED,
                    message=f"Image generated by {outcome.provider_name} but storage failed: {e}",
                ),
            )

        return ImageGenerationResponse(
            success=True,
            image_url=image_url,
            provider_id=outcome.provider_id,
            provider_name=outcome.provider_name,
            trace=outcome.trace,
            metrics=outcome.metrics,
        )
