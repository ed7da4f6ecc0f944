"""Retry policy for the storage step that follows a successful generation.

Provider attempts are never retried here; fallback between providers is the
orchestrator's job. Storage is different: the image already exists, so a
transient upload failure is repeated before the caller sees STORAGE_FAILED.
"""

import logging
from typing import Any, Awaitable, Callable, TypeVar

from tenacity import (
    AsyncRetrying,
    before_sleep_log,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from imagerelay.models.errors import ErrorCode

logger = logging.getLogger(__name__)

T = TypeVar("T")

STORAGE_ATTEMPTS = 3
RETRYABLE_STATUS_CODES = frozenset({408, 429})

# 3 attempts, waiting 1s then 2s
DEFAULT_RETRY_CONFIG = {
    "stop": stop_after_attempt(STORAGE_ATTEMPTS),
    "wait": wait_exponential(multiplier=1, min=1, max=4),
    "reraise": True,
}


class RetryableError(Exception):
    """Transient storage failure that may succeed when repeated."""

    error_code = ErrorCode.STORAGE_FAILED

    def __init__(self, message: str, status_code: int | None = None, original_exception: Exception | None = None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.original_exception = original_exception


def is_retryable_status(status_code: int) -> bool:
    """Rate limits, request timeouts and server errors are worth repeating."""
    return status_code in RETRYABLE_STATUS_CODES or status_code >= 500


def check_storage_status(service: str, status_code: int, body: str = "") -> None:
    """
    Raise for a failed storage response.

    Args:
        service: Storage backend name used in the message
        status_code: HTTP status of the upload response
        body: Response text, truncated into the message

    Raises:
        RetryableError: Transient status (see is_retryable_status)
        ValueError: Any other non-2xx status; repeating it cannot help
    """
    if 200 <= status_code < 300:
        return
    detail = f"{service} API error {status_code}"
    if body:
        detail = f"{detail}: {body[:200]}"
    if is_retryable_status(status_code):
        raise RetryableError(detail, status_code=status_code)
    raise ValueError(detail)


async def retry_storage(
    func: Callable[..., Awaitable[T]],
    *args: Any,
    retry_config: dict[str, Any] | None = None,
    **kwargs: Any,
) -> T:
    """
    Run a storage call, repeating it with exponential backoff on RetryableError.

    Args:
        func: Async storage function to execute
        *args: Positional arguments for func
        retry_config: Optional tenacity configuration. If None, uses default.
        **kwargs: Keyword arguments for func

    Returns:
        Result from func

    Raises:
        RetryableError: If every attempt failed transiently
        Exception: Other exceptions are re-raised immediately
    """
    config = dict(retry_config or DEFAULT_RETRY_CONFIG)
    config.setdefault("retry", retry_if_exception_type(RetryableError))
    config.setdefault("before_sleep", before_sleep_log(logger, logging.WARNING))

    async for attempt in AsyncRetrying(**config):
        with attempt:
            return await func(*args, **kwargs)
