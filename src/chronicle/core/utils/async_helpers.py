"""Async utilities: sync entry points and caller-enforced timeouts."""

import asyncio
from collections.abc import Awaitable, Coroutine
from concurrent.futures import ThreadPoolExecutor
from typing import Any, TypeVar

T = TypeVar("T")


def run_async_safely(coro: Coroutine[Any, Any, T]) -> T:
    """
    Drive *coro* to completion from synchronous code such as a click command.

    When the calling thread already has a running loop (a notebook, or a
    test that invokes the CLI from inside an async test), the coroutine gets
    a fresh loop on a worker thread instead.
    """
    try:
        asyncio.get_running_loop()
    except RuntimeError:
        return asyncio.run(coro)

    with ThreadPoolExecutor(max_workers=1) as pool:
        return pool.submit(asyncio.run, coro).result()


async def with_timeout(aw: Awaitable[T], timeout: float | None) -> T:
    """Await *aw*, raising ``TimeoutError`` after *timeout* seconds (None = no limit)."""
    if timeout is None or timeout <= 0:
        return await aw
    return await asyncio.wait_for(aw, timeout=timeout)
