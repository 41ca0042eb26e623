"""Bounded fan-out for concurrent provider calls.

Ingesting a long handbook produces dozens of chunks, and each chunk needs
its own embedding request.  Firing them all at once trips provider rate
limits, so callers fan out through :func:`throttled_gather`, a drop-in
replacement for ``asyncio.gather`` that holds a semaphore slot per
awaitable.
"""

from __future__ import annotations

import asyncio
from typing import Awaitable, TypeVar

_T = TypeVar("_T")


async def throttled_gather(
    coros: list[Awaitable[_T]],
    semaphore: asyncio.Semaphore | int,
    return_exceptions: bool = True,
) -> list[_T | BaseException]:
    """Run awaitables concurrently, at most ``semaphore`` at a time.

    Parameters
    ----------
    coros:
        Awaitable objects to execute.
    semaphore:
        A shared semaphore, or a positive int to create a private one.
    return_exceptions:
        If ``True``, exceptions are returned in the results list rather
        than being raised.  Mirrors ``asyncio.gather`` semantics.

    Returns
    -------
    list[_T | BaseException]
        Results in the same order as the input awaitables.
    """
    if isinstance(semaphore, int):
        if semaphore < 1:
            raise ValueError("concurrency limit must be at least 1")
        semaphore = asyncio.Semaphore(semaphore)

    async def _wrapped(coro: Awaitable[_T]) -> _T:
        async with semaphore:
            return await coro

    return await asyncio.gather(
        *(_wrapped(c) for c in coros),
        return_exceptions=return_exceptions,
    )
