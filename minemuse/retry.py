"""Retry with exponential backoff for upstream HTTP and LLM calls."""

from __future__ import annotations

import asyncio
import logging

import httpx

logger = logging.getLogger(__name__)

RETRYABLE_HTTP_CODES = {429, 500, 502, 503, 504}
RETRYABLE_EXCEPTIONS = (
    httpx.TimeoutException,
    httpx.ConnectError,
    httpx.RemoteProtocolError,
    ConnectionError,
    TimeoutError,
)
# anthropic SDK exceptions, matched by name so callers without the SDK still work
RETRYABLE_ERROR_NAMES = {
    "RateLimitError",
    "OverloadedError",
    "InternalServerError",
    "APIConnectionError",
    "APITimeoutError",
}


def _backoff(attempt: int, base_delay: float, max_delay: float) -> float:
    return min(base_delay * (2**attempt), max_delay)


def _retry_after(response: httpx.Response, fallback: float, max_delay: float) -> float:
    header = response.headers.get("retry-after")
    if not header:
        return fallback
    try:
        return min(float(header), max_delay)
    except ValueError:
        return fallback


async def retry_async(
    fn,
    *args,
    max_retries: int = 3,
    base_delay: float = 1.0,
    max_delay: float = 60.0,
    **kwargs,
):
    """Await ``fn(*args, **kwargs)``, retrying transient failures.

    Transient means an httpx timeout or connection error, an HTTP 429/5xx
    status (``Retry-After`` is honoured), or an anthropic rate-limit,
    overload or connection error. Anything else is raised immediately;
    once retries run out the last error is raised.
    """
    last_exc: BaseException | None = None
    for attempt in range(max_retries + 1):
        try:
            return await fn(*args, **kwargs)
        except RETRYABLE_EXCEPTIONS as exc:
            last_exc = exc
            if attempt == max_retries:
                break
            delay = _backoff(attempt, base_delay, max_delay)
            logger.warning(
                "Retry %d/%d after %s: %s (waiting %.1fs)",
                attempt + 1, max_retries, type(exc).__name__, exc, delay,
            )
        except httpx.HTTPStatusError as exc:
            status = exc.response.status_code
            if status not in RETRYABLE_HTTP_CODES:
                raise
            last_exc = exc
            if attempt == max_retries:
                break
            delay = _retry_after(
                exc.response, _backoff(attempt, base_delay, max_delay), max_delay,
            )
            logger.warning(
                "Retry %d/%d after HTTP %d (waiting %.1fs)",
                attempt + 1, max_retries, status, delay,
            )
        except Exception as exc:
            exc_name = type(exc).__name__
            if exc_name not in RETRYABLE_ERROR_NAMES:
                raise
            last_exc = exc
            if attempt == max_retries:
                break
            delay = _backoff(attempt, base_delay, max_delay)
            logger.warning(
                "Retry %d/%d after %s (waiting %.1fs)",
                attempt + 1, max_retries, exc_name, delay,
            )
        await asyncio.sleep(delay)

    raise last_exc  # type: ignore[misc]
