"""Order-preserving concurrent map.

Results come back in input order regardless of completion order. Every
task is awaited before returning, so nothing is left running when a
command finishes, even if one of them failed.
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable, Iterable
from typing import TypeVar

T = TypeVar("T")
R = TypeVar("R")


async def ordered_map(
    func: Callable[[T], Awaitable[R]],
    items: Iterable[T],
    max_workers: int = 8,
) -> list[R]:
    """Apply an async function to items concurrently.

    Args:
        func: Coroutine function applied to each item
        items: Inputs
        max_workers: Maximum concurrent invocations

    Returns:
        List of results (in input order)

    Raises:
        The first exception in input order, after all tasks have finished
    """
    semaphore = asyncio.Semaphore(max(1, max_workers))

    async def process(item: T) -> R:
        async with semaphore:
            return await func(item)

    results = await asyncio.gather(*(process(item) for item in items), return_exceptions=True)
    for result in results:
        if isinstance(result, BaseException):
            raise result
    return results  # type: ignore[return-value]
