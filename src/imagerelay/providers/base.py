"""Base provider interface for image generation."""

import base64
import binascii
from typing import Protocol

import httpx
from typing_extensions import runtime_checkable

from imagerelay.models.descriptors import ProviderDescriptor
from imagerelay.models.errors import (
    AuthError,
    InvalidProviderConfig,
    ModelRefused,
    ProviderError,
    ProviderTimeout,
    TransportError,
)

DIAGNOSTIC_PREFIX_LENGTH = 200
DOWNLOAD_TIMEOUT_SECONDS = 30.0


@runtime_checkable
class ImageProvider(Protocol):
    """Protocol for image generation providers."""

    async def generate(self, descriptor: ProviderDescriptor, prompt: str) -> bytes:
        """
        Generate one image from a prompt.

        A single attempt: implementations never retry and never touch health
        state. Fallback between providers belongs to the orchestrator.

        Args:
            descriptor: Credential, endpoint and model to dispatch with
            prompt: Text prompt for image generation

        Returns:
            Raw image bytes

        Raises:
            ProviderError: A typed failure (auth, transport, refusal, timeout, config)
        """
        ...


def truncate_diagnostic(text: object, limit: int = DIAGNOSTIC_PREFIX_LENGTH) -> str:
    """Bound a backend diagnostic to a fixed prefix."""
    value = str(text)
    if len(value) <= limit:
        return value
    return value[:limit] + "…"


def validate_descriptor(descriptor: ProviderDescriptor) -> None:
    """Pre-flight check shared by every provider, run before any network call."""
    missing = descriptor.missing_fields()
    if missing:
        raise InvalidProviderConfig(
            f"{descriptor.display_name} is missing {', '.join(missing)}"
        )


def error_for_status(label: str, status_code: int, body: str = "") -> ProviderError:
    """Map a non-2xx HTTP status to a typed provider error."""
    detail = f"{label} returned HTTP {status_code}"
    if body:
        detail = f"{detail}: {truncate_diagnostic(body)}"
    if status_code in (401, 403):
        return AuthError(detail)
    return TransportError(detail)


def decode_base64_image(data: str, label: str) -> bytes:
    """Decode base64 image data, accepting data URIs."""
    if data.startswith("data:") and "," in data:
        data = data.split(",", 1)[1]
    try:
        image_bytes = base64.b64decode(data, validate=False)
    except (binascii.Error, ValueError) as e:
        raise ModelRefused(f"{label} returned undecodable image data", original_exception=e)
    if not image_bytes:
        raise ModelRefused(f"{label} returned empty image data")
    return image_bytes


async def download_image(
    url: str,
    label: str,
    transport: httpx.AsyncBaseTransport | None = None,
) -> bytes:
    """Fetch image bytes from a URL handed back by a backend."""
    try:
        async with httpx.AsyncClient(timeout=DOWNLOAD_TIMEOUT_SECONDS, transport=transport) as client:
            response = await client.get(url)
    except httpx.TimeoutException as e:
        raise ProviderTimeout(f"{label} image download timed out", original_exception=e)
    except httpx.HTTPError as e:
        raise TransportError(f"{label} image download failed: {truncate_diagnostic(e)}", original_exception=e)

    if response.status_code != 200:
        raise error_for_status(f"{label} image download", response.status_code)
    if not response.content:
        raise ModelRefused(f"{label} image URL returned no data")
    return response.content
