"""
Deadline race for a single collection.

``run_with_deadline`` starts a collection as an asyncio task and arms a
timer beside it. Both report into one ``asyncio.Future`` used as a one-shot
outcome cell: whichever writes first is the result, the other finds the
cell already resolved and does nothing.

When the deadline wins, the collection task is not cancelled. It keeps
running until it finishes on its own and its own cleanup closes the device
session. The late result or exception is retrieved, logged and dropped.

CHANGELOG:
- 2026-10-15: Keep orphaned sessions referenced until they finish (STORY-009)
- 2026-10-13: Initial creation (STORY-008)

TODO:
- None
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from typing import TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")

_orphaned: set[asyncio.Task] = set()
"""Collections that lost the race and are still running."""


class CollectionTimeoutError(Exception):
    """The collection did not finish before its deadline.

    ``str()`` is ``"timeout"``, which is what the HTTP endpoint reports.

    Args:
        timeout_s: The deadline that elapsed, in seconds.
    """

    def __init__(self, timeout_s: float) -> None:
        self.timeout_s = timeout_s
        super().__init__("timeout")


def orphaned_count() -> int:
    """Number of timed-out collections still running in the background."""
    return len(_orphaned)


def _discard_late_outcome(task: asyncio.Task) -> None:
    """Consume the outcome of a collection that lost the race."""
    _orphaned.discard(task)
    if task.cancelled():
        logger.debug("Discarded collection was cancelled")
        return
    exc = task.exception()
    if exc is not None:
        logger.warning("Discarding late collection failure after timeout: %s", exc)
    else:
        logger.info("Discarding late collection result after timeout")


async def run_with_deadline(
    start: Callable[[], Awaitable[T]],
    timeout_s: float | None,
) -> T:
    """Run ``start()`` and race it against *timeout_s*.

    Args:
        start: Zero-argument callable returning the collection awaitable.
            Called exactly once.
        timeout_s: Deadline in seconds, or None for no deadline.

    Returns:
        The collection's result when it finishes first.

    Raises:
        CollectionTimeoutError: The deadline elapsed first.
        Exception: Whatever the collection raised, when it finished first.
    """
    if timeout_s is None:
        return await start()

    loop = asyncio.get_running_loop()
    outcome: asyncio.Future[T] = loop.create_future()
    task = asyncio.ensure_future(start())

    def _on_task_done(done: asyncio.Task) -> None:
        if outcome.done():
            _discard_late_outcome(done)
            return
        if done.cancelled():
            outcome.cancel()
            return
        exc = done.exception()
        if exc is not None:
            outcome.set_exception(exc)
        else:
            outcome.set_result(done.result())

    def _on_deadline() -> None:
        if not outcome.done():
            outcome.set_exception(CollectionTimeoutError(timeout_s))

    task.add_done_callback(_on_task_done)
    timer = loop.call_later(timeout_s, _on_deadline)

    try:
        return await outcome
    except CollectionTimeoutError:
        logger.warning("Collection exceeded deadline of %.3fs", timeout_s)
        raise
    except asyncio.CancelledError:
        # Caller went away (e.g. client disconnected): stop the collection too.
        task.cancel()
        raise
    finally:
        timer.cancel()
        if not task.done():
            _orphaned.add(task)
