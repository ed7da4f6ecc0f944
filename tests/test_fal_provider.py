"""Tests for Fal image provider."""

import fal_client
import httpx
import pytest
from unittest.mock import AsyncMock, patch

from conftest import make_descriptor
from imagerelay.models.descriptors import ProviderFamily
from imagerelay.models.errors import AuthError, ModelRefused, ProviderTimeout, TransportError
from imagerelay.providers.fal_provider import FalProvider


def fal_descriptor(**overrides):
    return make_descriptor("fal", family=ProviderFamily.FAL, endpoint="fal-ai/", model="flux-pro/new", **overrides)


@pytest.mark.asyncio
async def test_fal_provider_generate_success():
    """Test successful image generation with Fal provider."""
    with patch("imagerelay.providers.fal_provider.fal_client") as mock_fal_client, patch(
        "imagerelay.providers.fal_provider.download_image", new=AsyncMock(return_value=b"image_data")
    ) as mock_download:
        mock_subscribe = AsyncMock(return_value={
            "images": [
                {"url": "https://fal.media/files/img1.png", "width": 1024, "height": 1024},
            ]
        })
        mock_fal_client.AsyncClient.return_value.subscribe = mock_subscribe

        result = await FalProvider().generate(fal_descriptor(), "A red dragon")

        assert result == b"image_data"
        mock_fal_client.AsyncClient.assert_called_once_with(key="test-key")
        mock_subscribe.assert_awaited_once_with(
            "fal-ai/flux-pro/new",
            arguments={"prompt": "A red dragon", "num_images": 1},
        )
        mock_download.assert_awaited_once_with("https://fal.media/files/img1.png", "fal")


@pytest.mark.asyncio
async def test_fal_provider_generate_timeout():
    """Test that Fal provider maps timeouts to ProviderTimeout."""
    with patch("imagerelay.providers.fal_provider.fal_client") as mock_fal_client:
        mock_fal_client.AsyncClient.return_value.subscribe = AsyncMock(side_effect=TimeoutError("Request timed out"))

        with pytest.raises(ProviderTimeout):
            await FalProvider().generate(fal_descriptor(), "A red dragon")


def fal_status_error(status_code: int, text: str):
    """Raise the HTTP error fal_client produces for a failed queue request."""
    request = httpx.Request("POST", "https://queue.fal.run/fal-ai/flux-pro/new")
    response = httpx.Response(status_code, text=text, request=request)

    async def _subscribe(*args, **kwargs):
        fal_client.client._raise_for_status(response)

    return _subscribe


@pytest.mark.asyncio
@pytest.mark.parametrize("status_code", [401, 403])
async def test_fal_provider_auth_failure(status_code):
    with patch("imagerelay.providers.fal_provider.fal_client") as mock_fal_client:
        mock_fal_client.AsyncClient.return_value.subscribe = AsyncMock(
            side_effect=fal_status_error(status_code, "Invalid key")
        )

        with pytest.raises(AuthError) as exc_info:
            await FalProvider().generate(fal_descriptor(), "A red dragon")

        assert "Invalid key" in str(exc_info.value)


@pytest.mark.asyncio
async def test_fal_provider_server_error():
    with patch("imagerelay.providers.fal_provider.fal_client") as mock_fal_client:
        mock_fal_client.AsyncClient.return_value.subscribe = AsyncMock(side_effect=fal_status_error(500, "boom"))

        with pytest.raises(TransportError) as exc_info:
            await FalProvider().generate(fal_descriptor(), "A red dragon")

        assert "500" in str(exc_info.value)


@pytest.mark.asyncio
async def test_client_reused_per_credential():
    with patch("imagerelay.providers.fal_provider.fal_client") as mock_fal_client, patch(
        "imagerelay.providers.fal_provider.download_image", new=AsyncMock(return_value=b"image_data")
    ):
        mock_fal_client.AsyncClient.return_value.subscribe = AsyncMock(
            return_value={"images": [{"url": "https://fal.media/files/img1.png"}]}
        )
        provider = FalProvider()

        await provider.generate(fal_descriptor(), "first")
        await provider.generate(fal_descriptor(), "second")
        await provider.generate(fal_descriptor(credential="other-key"), "third")

        assert [c.kwargs for c in mock_fal_client.AsyncClient.call_args_list] == [
            {"key": "test-key"},
            {"key": "other-key"},
        ]


@pytest.mark.asyncio
async def test_fal_provider_unexpected_error():
    with patch("imagerelay.providers.fal_provider.fal_client") as mock_fal_client:
        mock_fal_client.AsyncClient.return_value.subscribe = AsyncMock(side_effect=RuntimeError("queue lost"))

        with pytest.raises(TransportError) as exc_info:
            await FalProvider().generate(fal_descriptor(), "A red dragon")

        assert "queue lost" in str(exc_info.value)


@pytest.mark.asyncio
async def test_fal_provider_no_images():
    with patch("imagerelay.providers.fal_provider.fal_client") as mock_fal_client:
        mock_fal_client.AsyncClient.return_value.subscribe = AsyncMock(return_value={"images": []})

        with pytest.raises(ModelRefused):
            await FalProvider().generate(fal_descriptor(), "A red dragon")


def test_application_id_joins_endpoint_and_model():
    assert FalProvider.application_id(fal_descriptor()) == "fal-ai/flux-pro/new"
