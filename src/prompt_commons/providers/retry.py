"""Retry policy shared by the Gemini providers."""

import asyncio

import httpx
from google.genai import errors as genai_errors
from loguru import logger
from tenacity import (
    AsyncRetrying,
    RetryCallState,
    retry_if_exception,
    stop_after_attempt,
    wait_exponential,
)

# HTTP statuses worth another attempt: timeout and rate limiting
TRANSIENT_CLIENT_CODES = {408, 429}
MAX_BACKOFF_SECONDS = 30


def is_transient_provider_error(exc: BaseException) -> bool:
    """True for failures that may succeed on retry.

    Server errors, rate limiting, timeouts and transport failures are transient.
    Other client errors (bad key, bad request) and malformed responses are not.
    """
    if isinstance(exc, genai_errors.ServerError):
        return True
    if isinstance(exc, genai_errors.ClientError):
        return exc.code in TRANSIENT_CLIENT_CODES
    return isinstance(exc, (httpx.TransportError, asyncio.TimeoutError, ConnectionError))


def _log_retry(retry_state: RetryCallState) -> None:
    exc = retry_state.outcome.exception() if retry_state.outcome else None
    logger.warning(f"Provider call failed (attempt {retry_state.attempt_number}), retrying: {exc}")


def provider_retrying(max_attempts: int, base_delay: float) -> AsyncRetrying:
    """Build a tenacity controller: waits base_delay * 2^n between attempts, reraises at the end."""
    return AsyncRetrying(
        stop=stop_after_attempt(max_attempts),
        wait=wait_exponential(multiplier=base_delay, min=0, max=MAX_BACKOFF_SECONDS),
        retry=retry_if_exception(is_transient_provider_error),
        before_sleep=_log_retry,
        reraise=True,
    )
