"""Tests for the startup deadline race."""

from __future__ import annotations

import asyncio
import time

import pytest

from spadev.errors import StartupTimeoutError
from spadev.middleware import startup_timeout_message
from spadev.timeouts import with_timeout


class TestWithTimeout:
    @pytest.mark.asyncio
    async def test_never_resolving_future_times_out(self) -> None:
        pending: asyncio.Future[int] = asyncio.get_running_loop().create_future()

        started = time.perf_counter()
        with pytest.raises(StartupTimeoutError) as exc_info:
            await with_timeout(pending, 0.05, startup_timeout_message(0.05))
        elapsed = time.perf_counter() - started

        assert 0.04 <= elapsed < 0.5
        assert "0.05 seconds" in str(exc_info.value)
        assert "Check the log output" in str(exc_info.value)
        assert exc_info.value.timeout == 0.05
        assert isinstance(exc_info.value, TimeoutError)
        assert not pending.cancelled()
        pending.cancel()

    @pytest.mark.asyncio
    async def test_returns_result_before_deadline(self) -> None:
        async def ready() -> int:
            await asyncio.sleep(0.01)
            return 5173

        assert await with_timeout(ready(), 1.0, "too slow") == 5173

    @pytest.mark.asyncio
    async def test_propagates_failure_before_deadline(self) -> None:
        async def crash() -> int:
            raise RuntimeError("exited")

        with pytest.raises(RuntimeError, match="exited"):
            await with_timeout(crash(), 1.0, "too slow")

    @pytest.mark.asyncio
    async def test_loser_keeps_running(self) -> None:
        async def slow() -> str:
            await asyncio.sleep(0.1)
            return "done"

        task = asyncio.create_task(slow())
        with pytest.raises(StartupTimeoutError, match="too slow"):
            await with_timeout(task, 0.01, "too slow")

        assert await task == "done"
        # A later race on the same task sees the finished result.
        assert await with_timeout(task, 0.01, "too slow") == "done"


def test_timeout_message_formats_whole_seconds() -> None:
    message = startup_timeout_message(120.0)
    assert "timeout period of 120 seconds" in message
