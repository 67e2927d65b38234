"""Bounded-concurrency helpers for fan-out calls to rate-limited providers.

The contextual enricher issues one LLM request per chunk.  Documents with
hundreds of chunks would trip provider rate limits if every request were
dispatched at once, so calls are grouped into fixed-size batches that run
in parallel, with a short pause between batches.
"""

from __future__ import annotations

import asyncio
from typing import Awaitable, Callable, Sequence, TypeVar

from chunkwise.utils.logging import get_logger

_T = TypeVar("_T")
_R = TypeVar("_R")

_logger = get_logger(__name__)


async def run_in_batches(
    items: Sequence[_T],
    worker: Callable[[_T], Awaitable[_R]],
    batch_size: int,
    delay_seconds: float = 0.0,
    on_batch_done: Callable[[int, int], Awaitable[None] | None] | None = None,
) -> list[_R]:
    """Apply *worker* to *items* in parallel batches of *batch_size*.

    Parameters
    ----------
    items:
        Inputs, processed in order.  Output order matches input order.
    worker:
        Async callable applied to each item.  Exceptions propagate; callers
        that want per-item degradation must catch inside the worker.
    batch_size:
        Number of items dispatched concurrently.
    delay_seconds:
        Pause between consecutive batches (not after the last one).
    on_batch_done:
        Optional callback invoked after each batch with
        ``(completed, total)``.  May be sync or async.
    """
    batch_size = max(1, batch_size)
    total = len(items)
    results: list[_R] = []

    for start in range(0, total, batch_size):
        batch = items[start : start + batch_size]
        results.extend(await asyncio.gather(*(worker(item) for item in batch)))

        completed = min(start + batch_size, total)
        if on_batch_done is not None:
            outcome = on_batch_done(completed, total)
            if asyncio.iscoroutine(outcome):
                await outcome

        if completed < total and delay_seconds > 0:
            await asyncio.sleep(delay_seconds)

    _logger.debug("batched_run_complete", total=total, batch_size=batch_size)
    return results
