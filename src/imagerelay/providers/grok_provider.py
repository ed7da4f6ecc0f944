"""Chat-completions image provider for Grok and other OpenAI-compatible endpoints."""

import logging
import re

from imagerelay.models.descriptors import ProviderDescriptor
from imagerelay.models.errors import ModelRefused
from imagerelay.providers.base import (
    decode_base64_image,
    download_image,
    truncate_diagnostic,
    validate_descriptor,
)
from imagerelay.providers.openai_provider import build_client, map_openai_error

logger = logging.getLogger(__name__)

SYSTEM_MESSAGE = (
    "You are an image generation assistant. When asked for an image, "
    "generate it and reply with the image link only."
)

URL_PATTERN = re.compile(r"https?://[^\s<>\"'{}|\\^`\[\]()]+", re.IGNORECASE)
DATA_URI_PATTERN = re.compile(r"data:image/[a-z0-9.+-]+;base64,[A-Za-z0-9+/=\s]+", re.IGNORECASE)


def extract_image_reference(content: str) -> str | None:
    """Return the first data URI or URL found in a chat reply."""
    data_uri = DATA_URI_PATTERN.search(content)
    if data_uri:
        return data_uri.group(0)
    url = URL_PATTERN.search(content)
    if url:
        return url.group(0).rstrip(".,;")
    return None


class ChatImageProvider:
    """Image provider that asks a chat model for an image link, then downloads it."""

    async def generate(self, descriptor: ProviderDescriptor, prompt: str) -> bytes:
        """
        Generate one image through chat completions.

        Raises:
            InvalidProviderConfig: Descriptor is missing credential, endpoint or model
            ModelRefused: Reply carried neither an URL nor a data URI
            AuthError, TransportError, ProviderTimeout: Call or download failed
        """
        validate_descriptor(descriptor)
        label = descriptor.display_name

        try:
            async with build_client(descriptor) as client:
                completion = await client.chat.completions.create(
                    model=descriptor.model,
                    messages=[
                        {"role": "system", "content": SYSTEM_MESSAGE},
                        {"role": "user", "content": f"Generate an image: {prompt}"},
                    ],
                    temperature=0.7,
                    max_tokens=1000,
                    stream=False,
                )
        except Exception as e:
            raise map_openai_error(e, label)

        content = ""
        if completion.choices:
            content = completion.choices[0].message.content or ""

        reference = extract_image_reference(content)
        if reference is None:
            logger.warning(f"⚠️ [ChatImageProvider] {label} replied without an image reference")
            raise ModelRefused(f"{label} returned text instead of an image: {truncate_diagnostic(content)}")

        if reference.lower().startswith("data:"):
            return decode_base64_image(re.sub(r"\s+", "", reference), label)
        return await download_image(reference, label)
