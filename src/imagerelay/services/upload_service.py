"""Cloudflare Images storage for generated images."""

import json
import logging
import os
import re
import time

import httpx

from imagerelay.services.retry_service import RetryableError, check_storage_status

logger = logging.getLogger(__name__)

UPLOAD_TIMEOUT_SECONDS = 30.0


def safe_name(name_hint: str) -> str:
    """Lowercase slug with every non-alphanumeric character replaced by '_'."""
    slug = re.sub(r"[^a-z0-9]", "_", name_hint, flags=re.IGNORECASE).lower()
    return slug or "image"


def object_key(name_hint: str, now: float | None = None) -> str:
    """Storage key of the form generated/{epoch_ms}-{slug}.png."""
    epoch_ms = int((time.time() if now is None else now) * 1000)
    return f"generated/{epoch_ms}-{safe_name(name_hint)}.png"


class UploadService:
    """ImageStore backed by the Cloudflare Images API."""

    def __init__(
        self,
        account_id: str | None = None,
        api_token: str | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        """
        Initialize upload service.

        Args:
            account_id: Cloudflare account ID (defaults to CLOUDFLARE_ACCOUNT_ID env var)
            api_token: Cloudflare API token (defaults to CLOUDFLARE_IMAGES_API_TOKEN env var)
            transport: Optional httpx transport (tests pass httpx.MockTransport)
        """
        self.account_id = account_id or os.getenv("CLOUDFLARE_ACCOUNT_ID")
        self.api_token = api_token or os.getenv("CLOUDFLARE_IMAGES_API_TOKEN")
        self._transport = transport

        if not self.account_id:
            raise ValueError("CLOUDFLARE_ACCOUNT_ID environment variable or account_id parameter is required")
        if not self.api_token:
            raise ValueError(
                "CLOUDFLARE_IMAGES_API_TOKEN environment variable or api_token parameter is required"
            )

        self.upload_url = f"https://api.cloudflare.com/client/v4/accounts/{self.account_id}/images/v1"

    async def store(self, image_bytes: bytes, name_hint: str) -> str:
        """
        Upload image bytes and return the public URL.

        Raises:
            RetryableError: Connection failures, rate limits and server errors (safe to retry)
            ValueError: The upload was rejected, or accepted without a URL
        """
        key = object_key(name_hint)
        headers = {"Authorization": f"Bearer {self.api_token}"}
        files = {
            "file": (key.rsplit("/", 1)[-1], image_bytes, "image/png"),
            "metadata": (None, json.dumps({"name_hint": name_hint})),
            "requireSignedURLs": (None, "false"),
        }

        try:
            async with httpx.AsyncClient(timeout=UPLOAD_TIMEOUT_SECONDS, transport=self._transport) as client:
                response = await client.post(self.upload_url, headers=headers, files=files)
        except httpx.HTTPError as e:
            raise RetryableError(f"Cloudflare Images upload failed: {str(e)}", original_exception=e)

        check_storage_status("Cloudflare Images", response.status_code, response.text)

        variants = (response.json().get("result") or {}).get("variants") or []
        public_url = variants[0] if variants else None
        if not public_url:
            raise ValueError("Cloudflare Images API returned no public URL")

        # Always hand back the public variant
        if not public_url.endswith("/public"):
            public_url = "/".join(public_url.split("/")[:-1]) + "/public"

        logger.info(f"☁️ [UploadService] Stored {key} ({len(image_bytes)} bytes)")
        return public_url
