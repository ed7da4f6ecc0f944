"""Error codes and exceptions for provider orchestration."""

from enum import Enum


class ErrorCode(str, Enum):
    """Error category codes for generation operations."""

    # Per-attempt errors (recorded in the trace, counted against provider health)
    INVALID_PROVIDER_CONFIG = "INVALID_PROVIDER_CONFIG"
    TRANSPORT_ERROR = "TRANSPORT_ERROR"
    AUTH_ERROR = "AUTH_ERROR"
    MODEL_REFUSED = "MODEL_REFUSED"
    TIMEOUT = "TIMEOUT"

    # Terminal results of one orchestration call
    NO_PROVIDERS_CONFIGURED = "NO_PROVIDERS_CONFIGURED"
    CANCELLED = "CANCELLED"
    ALL_PROVIDERS_EXHAUSTED = "ALL_PROVIDERS_EXHAUSTED"

    # Caller layer
    STORAGE_FAILED = "STORAGE_FAILED"


ATTEMPT_ERRORS = {
    ErrorCode.INVALID_PROVIDER_CONFIG,
    ErrorCode.TRANSPORT_ERROR,
    ErrorCode.AUTH_ERROR,
    ErrorCode.MODEL_REFUSED,
    ErrorCode.TIMEOUT,
}

TERMINAL_ERRORS = {
    ErrorCode.NO_PROVIDERS_CONFIGURED,
    ErrorCode.CANCELLED,
    ErrorCode.ALL_PROVIDERS_EXHAUSTED,
}


def is_attempt_error(code: ErrorCode) -> bool:
    """Check if an error code describes a single provider attempt."""
    return code in ATTEMPT_ERRORS


class ProviderError(Exception):
    """Base exception raised by image providers for a failed attempt."""

    error_code = ErrorCode.TRANSPORT_ERROR

    def __init__(self, message: str, original_exception: Exception | None = None):
        super().__init__(message)
        self.message = message
        self.original_exception = original_exception

    @property
    def summary(self) -> str:
        return f"[{self.error_code.value}] {self.message}"


class InvalidProviderConfig(ProviderError):
    """Descriptor is missing credential, endpoint or model."""

    error_code = ErrorCode.INVALID_PROVIDER_CONFIG


class TransportError(ProviderError):
    """Network, connection or non-auth HTTP failure."""

    error_code = ErrorCode.TRANSPORT_ERROR


class AuthError(ProviderError):
    """Credential rejected by the backend."""

    error_code = ErrorCode.AUTH_ERROR


class ModelRefused(ProviderError):
    """Well-formed response without usable image data."""

    error_code = ErrorCode.MODEL_REFUSED


class ProviderTimeout(ProviderError):
    """Attempt exceeded its time bound."""

    error_code = ErrorCode.TIMEOUT


class NoProvidersConfigured(Exception):
    """The ranked candidate list is empty."""

    error_code = ErrorCode.NO_PROVIDERS_CONFIGURED
