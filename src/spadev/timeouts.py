"""Deadline helpers for awaiting dev server startup."""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable
from typing import TypeVar

from spadev.errors import StartupTimeoutError

T = TypeVar("T")


async def with_timeout(awaitable: Awaitable[T], timeout: float, message: str) -> T:
    """Return the result of `awaitable`, or fail once `timeout` seconds have passed.

    Unlike `asyncio.wait_for`, the awaitable is NOT cancelled when the deadline
    passes: it keeps running in the background and its eventual result (or
    error) is simply not observed by this call. Callers that share one startup
    task across many requests rely on that.

    Raises:
        StartupTimeoutError: The deadline passed first; carries `message`.
    """
    future = asyncio.ensure_future(awaitable)
    done, _ = await asyncio.wait({future}, timeout=timeout)
    if future not in done:
        raise StartupTimeoutError(message, timeout=timeout)
    return future.result()
