"""OpenAI image generation provider."""

import logging

from openai import (
    APIConnectionError,
    APIStatusError,
    APITimeoutError,
    AsyncOpenAI,
    AuthenticationError,
    BadRequestError,
    PermissionDeniedError,
)

from imagerelay.models.descriptors import ProviderDescriptor
from imagerelay.models.errors import (
    AuthError,
    ModelRefused,
    ProviderError,
    ProviderTimeout,
    TransportError,
)
from imagerelay.providers.base import (
    decode_base64_image,
    download_image,
    truncate_diagnostic,
    validate_descriptor,
)

logger = logging.getLogger(__name__)

CONTENT_POLICY_CODES = {"content_policy_violation", "moderation_blocked"}


def map_openai_error(e: Exception, label: str) -> ProviderError:
    """Translate an OpenAI SDK exception into a typed provider error."""
    message = truncate_diagnostic(e)
    if isinstance(e, APITimeoutError):
        return ProviderTimeout(f"{label} request timed out", original_exception=e)
    if isinstance(e, (AuthenticationError, PermissionDeniedError)):
        return AuthError(f"{label} rejected the credential: {message}", original_exception=e)
    if isinstance(e, BadRequestError) and getattr(e, "code", None) in CONTENT_POLICY_CODES:
        return ModelRefused(f"{label} refused the prompt: {message}", original_exception=e)
    if isinstance(e, APIStatusError):
        return TransportError(f"{label} returned error {e.status_code}: {message}", original_exception=e)
    if isinstance(e, APIConnectionError):
        return TransportError(f"{label} connection failed: {message}", original_exception=e)
    return TransportError(f"{label} generation failed: {message}", original_exception=e)


def build_client(descriptor: ProviderDescriptor) -> AsyncOpenAI:
    """One client per attempt, closed by the caller; the SDK's own retries are off."""
    return AsyncOpenAI(
        api_key=descriptor.credential,
        base_url=descriptor.endpoint.rstrip("/"),
        max_retries=0,
    )


class OpenAIImageProvider:
    """Image provider using the OpenAI Images API (or a compatible endpoint)."""

    async def generate(self, descriptor: ProviderDescriptor, prompt: str) -> bytes:
        """
        Generate one image using the Images API.

        Raises:
            InvalidProviderConfig: Descriptor is missing credential, endpoint or model
            AuthError: Key rejected
            ModelRefused: Content policy rejection or no image in the response
            ProviderTimeout: Request timed out
            TransportError: Anything else
        """
        validate_descriptor(descriptor)
        label = descriptor.display_name

        request_kwargs = {"model": descriptor.model, "prompt": prompt, "n": 1}
        # gpt-image models always answer with base64 and reject response_format
        if descriptor.model.lower().startswith("dall-e"):
            request_kwargs["response_format"] = "b64_json"

        try:
            async with build_client(descriptor) as client:
                response = await client.images.generate(**request_kwargs)
        except Exception as e:
            raise map_openai_error(e, label)

        for image_data in response.data or []:
            if getattr(image_data, "b64_json", None):
                return decode_base64_image(image_data.b64_json, label)
            if getattr(image_data, "url", None):
                return await download_image(image_data.url, label)

        raise ModelRefused(f"{label} response contained no image data")
