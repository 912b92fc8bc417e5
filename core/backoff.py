"""Timeout-guarded retry with exponential backoff for outbound fetches."""

from __future__ import annotations

import asyncio
import logging
from contextlib import nullcontext
from typing import Awaitable, Callable, Optional, TypeVar

from core.errors import FetchExhaustedError, TransportError
from core.logging import jlog

T = TypeVar("T")

Sleep = Callable[[float], Awaitable[None]]

logger = logging.getLogger("optionscout.backoff")


def backoff_delay(attempt: int, base: float) -> float:
    """Delay after failed ``attempt`` (1-based): base, 2*base, 4*base, ..."""

    return base * (2 ** (attempt - 1))


async def backoff_request(
    fn: Callable[[], Awaitable[T]],
    *,
    max_attempts: int = 3,
    base_delay: float = 2.0,
    timeout: float = 60.0,
    label: str = "request",
    sleep: Sleep = asyncio.sleep,
    on_attempt: Optional[Callable[[int], None]] = None,
    gate: Optional[asyncio.Semaphore] = None,
) -> T:
    """Run ``fn`` up to ``max_attempts`` times, each bounded by ``timeout``.

    Only :class:`TransportError` and timeouts are retried; anything else
    propagates immediately. Cancellation is never swallowed. When all
    attempts fail a :class:`FetchExhaustedError` is raised.

    ``gate`` is held for the duration of each attempt only, so backoff
    sleeps never occupy a concurrency slot and queueing time does not
    count against ``timeout``.
    """

    last_error: Optional[BaseException] = None
    for attempt in range(1, max_attempts + 1):
        try:
            async with gate if gate is not None else nullcontext():
                if on_attempt is not None:
                    on_attempt(attempt)
                return await asyncio.wait_for(fn(), timeout=timeout)
        except asyncio.TimeoutError as exc:
            last_error = TransportError(f"{label}: timed out after {timeout:.0f}s")
            last_error.__cause__ = exc
        except TransportError as exc:
            last_error = exc
        if attempt < max_attempts:
            delay = backoff_delay(attempt, base_delay)
            jlog("fetch.retry", label=label, attempt=attempt, delay=delay, error=str(last_error))
            await sleep(delay)
    logger.warning(
        "fetch.exhausted",
        extra={"label": label, "attempts": max_attempts, "error": str(last_error)},
    )
    raise FetchExhaustedError(
        f"{label}: failed after {max_attempts} attempts: {last_error}",
        attempts=max_attempts,
        last_error=last_error,
    )


__all__ = ["backoff_delay", "backoff_request"]
