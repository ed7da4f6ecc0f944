"""Fal.ai image generation provider."""

import logging

import fal_client
import httpx
from fal_client import FalClientHTTPError

from imagerelay.models.descriptors import ProviderDescriptor
from imagerelay.models.errors import ModelRefused, ProviderTimeout, TransportError
from imagerelay.providers.base import (
    download_image,
    error_for_status,
    truncate_diagnostic,
    validate_descriptor,
)

logger = logging.getLogger(__name__)


class FalProvider:
    """Image provider using Fal.ai queue applications.

    The application id is ``{endpoint}/{model}``, e.g. endpoint ``fal-ai`` and
    model ``flux-pro/new``. One keyed client is kept per credential so its
    connection pool is reused across attempts.
    """

    def __init__(self):
        self._clients: dict[str, fal_client.AsyncClient] = {}

    @staticmethod
    def application_id(descriptor: ProviderDescriptor) -> str:
        return f"{descriptor.endpoint.strip('/')}/{descriptor.model.strip('/')}"

    def client_for(self, credential: str) -> fal_client.AsyncClient:
        """Keyed client for a credential, never the FAL_KEY process environment."""
        client = self._clients.get(credential)
        if client is None:
            client = fal_client.AsyncClient(key=credential)
            self._clients[credential] = client
        return client

    async def generate(self, descriptor: ProviderDescriptor, prompt: str) -> bytes:
        """
        Generate one image using Fal.ai.

        Raises:
            InvalidProviderConfig: Descriptor is missing credential, endpoint or model
            AuthError: Key rejected
            ModelRefused: Result carried no image
            ProviderTimeout, TransportError: Call or download failed
        """
        validate_descriptor(descriptor)
        label = descriptor.display_name
        application = self.application_id(descriptor)
        client = self.client_for(descriptor.credential)

        try:
            fal_result = await client.subscribe(
                application,
                arguments={"prompt": prompt, "num_images": 1},
            )
        except (TimeoutError, httpx.TimeoutException) as e:
            raise ProviderTimeout(f"{label} request timed out", original_exception=e)
        except FalClientHTTPError as e:
            raise error_for_status(label, e.status_code, e.message)
        except Exception as e:
            raise TransportError(f"{label} generation failed: {truncate_diagnostic(e)}", original_exception=e)

        images = (fal_result or {}).get("images") or []
        for image_data in images:
            image_url = image_data.get("url") if isinstance(image_data, dict) else None
            if image_url:
                return await download_image(image_url, label)

        raise ModelRefused(f"{label} returned no images: {truncate_diagnostic(fal_result)}")
