"""Helpers for running API lookups concurrently."""
import asyncio
from typing import Awaitable, Iterable, List, TypeVar

T = TypeVar("T")


async def gather_or_cancel(awaitables: Iterable[Awaitable[T]]) -> List[T]:
    """
    Await all `awaitables` concurrently and return their results in input order.

    If any of them fails, the others are cancelled and have finished unwinding
    before the first error is re-raised, so no request outlives the run.
    """
    tasks = [asyncio.ensure_future(awaitable) for awaitable in awaitables]
    try:
        return list(await asyncio.gather(*tasks))
    except BaseException:
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        raise
