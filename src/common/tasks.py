"""Structured fan-out helper for recursive resolution and installation."""

from __future__ import annotations

import asyncio
from typing import Awaitable, Iterable, List, TypeVar

T = TypeVar("T")


async def gather_or_cancel(aws: Iterable[Awaitable[T]]) -> List[T]:
    """Run awaitables concurrently and join on all of them.

    Results keep the input order. The first failure propagates; siblings still
    in flight are cancelled and awaited so none of them outlives the caller.
    """
    tasks = [asyncio.ensure_future(aw) for aw in aws]
    if not tasks:
        return []
    try:
        return await asyncio.gather(*tasks)
    except BaseException:
        for task in tasks:
            if not task.done():
                task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        raise
