"""Image providers, one per backend family."""

from imagerelay.models.descriptors import ProviderFamily
from imagerelay.providers.base import ImageProvider
from imagerelay.providers.fal_provider import FalProvider
from imagerelay.providers.gemini_provider import GeminiProvider
from imagerelay.providers.grok_provider import ChatImageProvider
from imagerelay.providers.openai_provider import OpenAIImageProvider


def default_providers() -> dict[ProviderFamily, ImageProvider]:
    """Family to provider dispatch table. Adding a backend means adding one entry."""
    chat = ChatImageProvider()
    return {
        ProviderFamily.GEMINI: GeminiProvider(),
        ProviderFamily.OPENAI: OpenAIImageProvider(),
        ProviderFamily.GROK: chat,
        ProviderFamily.CUSTOM: chat,
        ProviderFamily.FAL: FalProvider(),
    }


__all__ = [
    "ChatImageProvider",
    "FalProvider",
    "GeminiProvider",
    "ImageProvider",
    "OpenAIImageProvider",
    "default_providers",
]
