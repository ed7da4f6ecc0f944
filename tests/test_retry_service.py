"""Tests for the storage retry policy."""

import pytest
from tenacity import stop_after_attempt, wait_none

from imagerelay.models.errors import ErrorCode
from imagerelay.services.retry_service import (
    RetryableError,
    check_storage_status,
    is_retryable_status,
    retry_storage,
)

FAST_RETRY = {"stop": stop_after_attempt(3), "wait": wait_none(), "reraise": True}


class FlakyUpload:
    """Storage call that fails a fixed number of times then succeeds."""

    def __init__(self, fail_count: int = 0):
        self.fail_count = fail_count
        self.call_count = 0

    async def __call__(self, image_bytes: bytes, name_hint: str) -> str:
        self.call_count += 1
        if self.call_count <= self.fail_count:
            raise RetryableError(f"Simulated failure {self.call_count}", status_code=503)
        return f"https://cdn.example.com/{name_hint}/public"


@pytest.mark.asyncio
async def test_retry_succeeds_after_failures():
    """Test that retry succeeds after transient failures."""
    upload = FlakyUpload(fail_count=2)

    result = await retry_storage(upload, b"png", "dragon", retry_config=FAST_RETRY)

    assert result == "https://cdn.example.com/dragon/public"
    assert upload.call_count == 3  # Initial + 2 retries


@pytest.mark.asyncio
async def test_retry_exhausts_after_max_attempts():
    """Test that retry raises after max attempts are exhausted."""
    upload = FlakyUpload(fail_count=999)

    with pytest.raises(RetryableError) as exc_info:
        await retry_storage(upload, b"png", "dragon", retry_config=FAST_RETRY)

    assert exc_info.value.error_code == ErrorCode.STORAGE_FAILED
    assert exc_info.value.status_code == 503
    assert upload.call_count == 3


@pytest.mark.asyncio
async def test_retry_succeeds_on_first_attempt():
    """Test that retry doesn't retry if first attempt succeeds."""
    upload = FlakyUpload()

    await retry_storage(upload, b"png", "dragon")

    assert upload.call_count == 1


@pytest.mark.asyncio
async def test_rejected_upload_is_raised_immediately():
    calls = []

    async def rejected(image_bytes, name_hint):
        calls.append(name_hint)
        check_storage_status("Cloudflare Images", 400, "Bad image")

    with pytest.raises(ValueError):
        await retry_storage(rejected, b"png", "dragon", retry_config=FAST_RETRY)

    assert calls == ["dragon"]


@pytest.mark.asyncio
async def test_retry_is_logged(caplog):
    upload = FlakyUpload(fail_count=1)

    with caplog.at_level("WARNING", logger="imagerelay.services.retry_service"):
        await retry_storage(upload, b"png", "dragon", retry_config=FAST_RETRY)

    assert "Simulated failure 1" in caplog.text


@pytest.mark.parametrize("status_code", [408, 429, 500, 502, 503])
def test_transient_statuses_are_retryable(status_code):
    assert is_retryable_status(status_code) is True
    with pytest.raises(RetryableError):
        check_storage_status("Cloudflare Images", status_code)


@pytest.mark.parametrize("status_code", [400, 401, 403, 413])
def test_client_errors_are_not_retryable(status_code):
    assert is_retryable_status(status_code) is False
    with pytest.raises(ValueError) as exc_info:
        check_storage_status("Cloudflare Images", status_code, "Bad image")

    assert str(status_code) in str(exc_info.value)
    assert "Bad image" in str(exc_info.value)


def test_success_status_passes():
    check_storage_status("Cloudflare Images", 200)
