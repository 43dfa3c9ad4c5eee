"""Bounded-retry polling with a fixed interval and an optional cancel event."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from typing import TypeVar

from testdroid_client.exceptions import PollCancelledError, PollTimeoutError

logger = logging.getLogger(__name__)

T = TypeVar("T")


async def poll_until(
    fetch: Callable[[], Awaitable[T]],
    predicate: Callable[[T], bool],
    *,
    attempts: int,
    interval: float,
    cancel: asyncio.Event | None = None,
    label: str = "poll",
) -> T:
    """Call ``fetch`` until ``predicate`` accepts its result.

    Args:
        fetch: Coroutine factory producing one observation per attempt.
        predicate: Returns True for an acceptable observation.
        attempts: Maximum number of ``fetch`` calls.
        interval: Seconds to wait between attempts (not after the last one).
        cancel: When set, the poll stops with ``PollCancelledError``.
        label: Name used in log lines.

    Returns:
        The first accepted observation.

    Raises:
        PollTimeoutError: If no observation was accepted within ``attempts``.
        PollCancelledError: If ``cancel`` is set.
    """
    for attempt in range(1, attempts + 1):
        if cancel is not None and cancel.is_set():
            raise PollCancelledError(f"{label} cancelled before attempt {attempt}")

        logger.debug("%s: attempt %d of %d", label, attempt, attempts)
        result = await fetch()
        if predicate(result):
            return result

        if attempt < attempts:
            await _wait(interval, cancel, label)

    raise PollTimeoutError(f"{label} gave up after {attempts} attempts")


async def _wait(interval: float, cancel: asyncio.Event | None, label: str) -> None:
    if cancel is None:
        await asyncio.sleep(interval)
        return

    try:
        await asyncio.wait_for(cancel.wait(), timeout=interval)
    except asyncio.TimeoutError:
        return
    raise PollCancelledError(f"{label} cancelled while waiting")
