# featuretree/utils/async_helpers.py
"""
Background task and retry helpers for status notifications.
"""

import asyncio
import logging
from typing import Any, Awaitable, Callable, Coroutine, MutableSet, Optional, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


def create_safe_task(
    coro: Coroutine[Any, Any, Any],
    name: Optional[str] = None,
    pending: Optional[MutableSet[asyncio.Task]] = None,
) -> asyncio.Task:
    """
    Schedule `coro` on the running loop without losing its failure.

    If `pending` is given the task is held there until it finishes, so the
    caller can await outstanding work later (see StatusSync.drain).
    """
    task = asyncio.create_task(coro, name=name)
    if pending is not None:
        pending.add(task)

    def _finished(t: asyncio.Task) -> None:
        if pending is not None:
            pending.discard(t)
        if t.cancelled():
            return
        exc = t.exception()
        if exc is not None:
            logger.error(f"[AsyncTask:{t.get_name()}] Unhandled exception: {exc}", exc_info=exc)

    task.add_done_callback(_finished)
    return task


async def retry_with_backoff(
    func: Callable[[], Awaitable[T]],
    attempts: int,
    backoff: float,
    name: Optional[str] = None,
) -> T:
    """
    Await `func()` up to `attempts` times, sleeping backoff * 2**n between tries.

    The last exception is re-raised once every attempt has failed.
    """
    label = name or "retry"
    attempts = max(1, attempts)
    for attempt in range(1, attempts + 1):
        try:
            return await func()
        except Exception as e:
            if attempt == attempts:
                raise
            delay = backoff * 2 ** (attempt - 1)
            logger.warning(f"[AsyncTask:{label}] Attempt {attempt}/{attempts} failed: {e}; retrying in {delay:.2f}s")
            await asyncio.sleep(delay)
    raise AssertionError("retry loop exited without returning")
