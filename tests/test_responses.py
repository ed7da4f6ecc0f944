"""Contract tests for outcome and response models."""

import pytest
from pydantic import ValidationError

from imagerelay.models.errors import TERMINAL_ERRORS, AuthError, ErrorCode, ProviderTimeout, is_attempt_error
from imagerelay.models.image_responses import ImageGenerationResponse
from imagerelay.models.requests import ImageGenerationRequest
from imagerelay.models.responses import GenerationError, GenerationOutcome
from imagerelay.models.trace import AttemptRecord, AttemptStatus


def test_generation_error_shape():
    error = GenerationError(code=ErrorCode.ALL_PROVIDERS_EXHAUSTED, message="All 2 provider(s) failed")

    assert error.code == ErrorCode.ALL_PROVIDERS_EXHAUSTED
    assert error.message == "All 2 provider(s) failed"
    assert error.details is None


def test_successful_outcome():
    trace = [
        AttemptRecord(
            provider_id="gemini-env", display_name="Google Gemini", status=AttemptStatus.SUCCESS, start_offset_ms=0
        )
    ]
    outcome = GenerationOutcome(
        success=True,
        image_bytes=b"png",
        provider_id="gemini-env",
        provider_name="Google Gemini",
        trace=trace,
    )

    assert outcome.aggregated_error is None
    assert outcome.trace[0].error_code is None


def test_success_requires_image_and_provider():
    with pytest.raises(ValidationError):
        GenerationOutcome(success=True, provider_id="gemini-env")

    with pytest.raises(ValidationError):
        GenerationOutcome(success=True, image_bytes=b"png")


def test_failure_requires_error_and_no_image():
    with pytest.raises(ValidationError):
        GenerationOutcome(success=False)

    with pytest.raises(ValidationError):
        GenerationOutcome(
            success=False,
            image_bytes=b"png",
            error=GenerationError(code=ErrorCode.CANCELLED, message="Cancelled"),
        )


def test_failed_outcome_exposes_aggregated_error():
    outcome = GenerationOutcome(
        success=False,
        error=GenerationError(code=ErrorCode.NO_PROVIDERS_CONFIGURED, message="No image providers"),
    )

    assert outcome.aggregated_error == "No image providers"
    assert outcome.trace == []


def test_image_response_validation():
    ImageGenerationResponse(success=True, image_url="https://cdn.example.com/a/public")

    with pytest.raises(ValidationError):
        ImageGenerationResponse(success=True)

    with pytest.raises(ValidationError):
        ImageGenerationResponse(
            success=False,
            image_url="https://cdn.example.com/a/public",
            error=GenerationError(code=ErrorCode.STORAGE_FAILED, message="upload failed"),
        )


def test_request_requires_prompt():
    with pytest.raises(ValidationError):
        ImageGenerationRequest(prompt="")

    request = ImageGenerationRequest(prompt="A red dragon")
    assert request.name_hint == "image"
    assert request.exclude_provider_ids == set()


def test_error_code_categories():
    assert is_attempt_error(ErrorCode.TIMEOUT) is True
    assert is_attempt_error(ErrorCode.CANCELLED) is False
    assert ErrorCode.ALL_PROVIDERS_EXHAUSTED in TERMINAL_ERRORS
    assert ErrorCode.STORAGE_FAILED not in TERMINAL_ERRORS


def test_provider_error_summary_carries_code():
    assert AuthError("key rejected").summary == "[AUTH_ERROR] key rejected"
    assert ProviderTimeout("slow").error_code == ErrorCode.TIMEOUT
