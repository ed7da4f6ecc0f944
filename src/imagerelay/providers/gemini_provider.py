"""Google Gemini / Imagen image generation provider."""

import json
import logging
from typing import Any

import httpx

from imagerelay.models.descriptors import ProviderDescriptor
from imagerelay.models.errors import ModelRefused, ProviderTimeout, TransportError
from imagerelay.providers.base import (
    decode_base64_image,
    error_for_status,
    truncate_diagnostic,
    validate_descriptor,
)

logger = logging.getLogger(__name__)

REQUEST_TIMEOUT_SECONDS = 120.0


class GeminiProvider:
    """Image provider using the Generative Language API.

    Model names containing "gemini" are called through ``:generateContent``
    and answer with inline image parts. Any other model name is treated as an
    Imagen model and called through ``:predict``.
    """

    def __init__(self, transport: httpx.AsyncBaseTransport | None = None):
        """
        Initialize Gemini provider.

        Args:
            transport: Optional httpx transport (tests pass httpx.MockTransport)
        """
        self._transport = transport

    @staticmethod
    def uses_generate_content(model: str) -> bool:
        return "gemini" in model.lower()

    def _build_request(self, descriptor: ProviderDescriptor, prompt: str) -> tuple[str, dict[str, Any]]:
        base_url = descriptor.endpoint.rstrip("/")
        if self.uses_generate_content(descriptor.model):
            url = f"{base_url}/{descriptor.model}:generateContent"
            payload = {
                "contents": [{"parts": [{"text": prompt}]}],
                "generationConfig": {"responseModalities": ["IMAGE"]},
            }
        else:
            url = f"{base_url}/{descriptor.model}:predict"
            payload = {
                "instances": [{"prompt": prompt}],
                "parameters": {
                    "sampleCount": 1,
                    "aspectRatio": "4:3",
                    "outputOptions": {"mimeType": "image/png"},
                },
            }
        return url, payload

    async def generate(self, descriptor: ProviderDescriptor, prompt: str) -> bytes:
        """
        Generate one image with Gemini or Imagen.

        Raises:
            InvalidProviderConfig: Descriptor is missing credential, endpoint or model
            AuthError: Key rejected (401/403)
            TransportError: Connection failure or other non-2xx status
            ProviderTimeout: Request timed out
            ModelRefused: Response carried text or nothing instead of an image
        """
        validate_descriptor(descriptor)
        label = descriptor.display_name
        url, payload = self._build_request(descriptor, prompt)

        logger.debug(f"🎨 [GeminiProvider] Sending to {descriptor.model} ({label})")

        try:
            async with httpx.AsyncClient(timeout=REQUEST_TIMEOUT_SECONDS, transport=self._transport) as client:
                response = await client.post(
                    url,
                    json=payload,
                    headers={"x-goog-api-key": descriptor.credential},
                )
        except httpx.TimeoutException as e:
            raise ProviderTimeout(f"{label} request timed out", original_exception=e)
        except httpx.HTTPError as e:
            raise TransportError(f"{label} request failed: {truncate_diagnostic(e)}", original_exception=e)

        if response.status_code != 200:
            raise error_for_status(label, response.status_code, response.text)

        try:
            data = response.json()
        except json.JSONDecodeError as e:
            raise TransportError(f"{label} returned a non-JSON body", original_exception=e)

        if self.uses_generate_content(descriptor.model):
            return self._image_from_candidates(data, label)
        return self._image_from_predictions(data, label)

    def _image_from_candidates(self, data: Any, label: str) -> bytes:
        candidates = data.get("candidates") if isinstance(data, dict) else None
        parts = []
        if candidates:
            parts = (candidates[0].get("content") or {}).get("parts") or []

        for part in parts:
            inline = part.get("inlineData") or part.get("inline_data")
            if inline and inline.get("data"):
                return decode_base64_image(inline["data"], label)

        for part in parts:
            if part.get("text"):
                logger.warning(f"⚠️ [GeminiProvider] {label} returned text instead of an image")
                raise ModelRefused(
                    f"{label} returned text instead of an image: {truncate_diagnostic(part['text'])}"
                )

        raise ModelRefused(f"No image data found in {label} response: {truncate_diagnostic(json.dumps(data))}")

    def _image_from_predictions(self, data: Any, label: str) -> bytes:
        predictions = data.get("predictions") if isinstance(data, dict) else None
        if predictions and predictions[0].get("bytesBase64Encoded"):
            return decode_base64_image(predictions[0]["bytesBase64Encoded"], label)
        raise ModelRefused(f"Invalid response format from {label}: {truncate_diagnostic(json.dumps(data))}")
