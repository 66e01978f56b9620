"""Rate-limit aware retry for oracle calls."""

from __future__ import annotations

import asyncio
from typing import Any, Awaitable, Callable, TypeVar

import httpx
from tenacity import (
    AsyncRetrying,
    RetryCallState,
    retry_if_exception,
    stop_after_attempt,
    wait_exponential,
)

from oncall_copilot.errors import RateLimitedError
from oncall_copilot.logging_config import get_logger

logger = get_logger(__name__)

T = TypeVar("T")

BACKOFF_FACTOR = 1.5
RATE_LIMIT_STATUS = 429
RATE_LIMIT_MARKERS = ("resource_exhausted", "resource exhausted", "rate limit")


def is_rate_limited(exc: BaseException) -> bool:
    if isinstance(exc, RateLimitedError):
        return True

    if isinstance(exc, httpx.HTTPStatusError):
        if exc.response.status_code == RATE_LIMIT_STATUS:
            return True
        details = _response_text(exc.response)
    else:
        details = ""

    for attr in ("status_code", "status", "code"):
        value = getattr(exc, attr, None)
        if value == RATE_LIMIT_STATUS or str(value) == str(RATE_LIMIT_STATUS):
            return True

    haystack = f"{exc} {details}".lower()
    return any(marker in haystack for marker in RATE_LIMIT_MARKERS)


def _response_text(response: httpx.Response) -> str:
    try:
        return response.text
    except httpx.ResponseNotRead:
        return ""


def _log_backoff(retry_state: RetryCallState) -> None:
    exc = retry_state.outcome.exception() if retry_state.outcome else None
    logger.warning(
        "oracle_rate_limited",
        extra={
            "attempt": retry_state.attempt_number,
            "delay_seconds": retry_state.next_action.sleep if retry_state.next_action else None,
            "error": str(exc),
        },
    )


async def with_retry(
    operation: Callable[[], Awaitable[T]],
    max_attempts: int = 5,
    initial_delay: float = 2.0,
    *,
    sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
) -> T:
    """Run ``operation``, backing off on rate-limit failures only.

    The delay starts at ``initial_delay`` and grows by ``BACKOFF_FACTOR`` after
    every rate-limited attempt. Any other failure, or the last rate-limited one,
    is re-raised unchanged.
    """
    retrying = AsyncRetrying(
        sleep=sleep,
        stop=stop_after_attempt(max_attempts),
        wait=wait_exponential(multiplier=initial_delay, exp_base=BACKOFF_FACTOR),
        retry=retry_if_exception(is_rate_limited),
        before_sleep=_log_backoff,
        reraise=True,
    )
    async for attempt in retrying:
        with attempt:
            result = await operation()
    return result
