from __future__ import annotations

import asyncio
from typing import Awaitable, Iterable, TypeVar

T = TypeVar("T")


async def bounded_gather(awaitables: Iterable[Awaitable[T]], limit: int = 0) -> list[T]:
    """
    Await every item and return results in input order.
    At most `limit` run at once; limit <= 0 means no bound.
    """
    items = list(awaitables)
    if not items:
        return []
    if limit <= 0:
        return list(await asyncio.gather(*items))

    semaphore = asyncio.Semaphore(limit)

    async def _run(item: Awaitable[T]) -> T:
        async with semaphore:
            return await item

    return list(await asyncio.gather(*(_run(item) for item in items)))
