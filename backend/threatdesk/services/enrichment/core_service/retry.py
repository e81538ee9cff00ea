# backend/threatdesk/services/enrichment/core_service/retry.py
from __future__ import annotations

import asyncio
import logging
import random
from typing import Awaitable, Callable, TypeVar

import httpx

logger = logging.getLogger(__name__)

T = TypeVar("T")


def is_transient_http_error(e: Exception) -> bool:
    # timeouts and connection trouble only; status codes are the caller's call
    return isinstance(e, (httpx.TimeoutException, httpx.NetworkError))


def backoff_delay(attempt: int, base_delay: float, max_delay: float, jitter: float) -> float:
    """Exponential backoff for the given zero-based attempt, capped and jittered."""
    delay = min(max_delay, base_delay * (2 ** attempt))
    return max(0.0, delay * (1.0 + random.uniform(-jitter, jitter)))


async def async_retry(
    fn: Callable[[], Awaitable[T]],
    *,
    attempts: int = 2,
    base_delay: float = 0.5,
    max_delay: float = 2.0,
    jitter: float = 0.25,
    retry_if: Callable[[Exception], bool] = is_transient_http_error,
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    label: str = "request",
) -> T:
    """
    Await `fn()` up to `attempts` times.

    Only exceptions accepted by `retry_if` are retried; anything else, and
    the last failure, is re-raised unchanged.
    """
    attempts = max(1, attempts)
    attempt = 0
    while True:
        try:
            return await fn()
        except Exception as e:
            attempt += 1
            if attempt >= attempts or not retry_if(e):
                raise
            delay = backoff_delay(attempt - 1, base_delay, max_delay, jitter)
            logger.warning(
                "%s failed (%s), retry %d/%d in %.2fs",
                label, type(e).__name__, attempt, attempts - 1, delay,
            )
            await sleep(delay)
