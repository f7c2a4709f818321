"""
Small asyncio helpers shared by the crawl and deep-scrape paths.

Both helpers settle every coroutine: an exception raised by one item is
returned in that item's slot instead of cancelling its siblings.
"""

import asyncio
import logging
from typing import Any, Awaitable, Callable, Iterable, List, Sequence, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


async def gather_settled(coros: Iterable[Awaitable[Any]]) -> List[Any]:
    """Await all coroutines concurrently; failures come back as Exception objects."""
    return await asyncio.gather(*coros, return_exceptions=True)


async def batched_map(
    fn: Callable[[T], Awaitable[Any]],
    items: Sequence[T],
    batch_size: int,
    delay: float = 0.0,
) -> List[Any]:
    """
    Apply an async function to items in fixed-size concurrent batches.

    Items within a batch run concurrently; batches run one after another with
    `delay` seconds of sleep between them (none after the last batch).
    Results keep input order; a failing item yields its Exception.
    """
    if batch_size < 1:
        raise ValueError("batch_size must be >= 1")

    results: List[Any] = []
    total = len(items)
    for start in range(0, total, batch_size):
        batch = items[start:start + batch_size]
        results.extend(await gather_settled(fn(item) for item in batch))
        if start + batch_size < total and delay > 0:
            await asyncio.sleep(delay)
    return results
