"""Buffered, multi-listener line stream over a child process output pipe."""

from __future__ import annotations

import asyncio
from collections.abc import AsyncIterator, Callable

import regex

from spadev.constants import REGEX_MATCH_TIMEOUT
from spadev.errors import EndOfStreamError, MatchTimeoutError, PatternTimeoutError
from spadev.logging import DevLogComponent, get_logger
from spadev.models import ClosedCallback, LineCallback
from spadev.utils import format_seconds

logger = get_logger(DevLogComponent.WATCHER)

# CSI / OSC escape sequences emitted by coloured CLI output (vite, vue-cli, npm)
ANSI_ESCAPE = regex.compile(r"\x1b(?:\[[0-?]*[ -/]*[@-~]|\][^\x07]*\x07|[@-Z\\-_])")


def strip_ansi(text: str) -> str:
    """Remove ANSI colour and cursor escape sequences from a line."""
    return ANSI_ESCAPE.sub("", text)


class _Subscriber:
    __slots__ = ("on_line", "on_closed")

    def __init__(self, on_line: LineCallback, on_closed: ClosedCallback | None):
        self.on_line: LineCallback = on_line
        self.on_closed: ClosedCallback | None = on_closed


class EventedStreamReader:
    """Watch a line-oriented stream, keeping every line for late readers.

    The reading task is the only writer: it appends each decoded line to the
    buffer and only then hands it to subscribers, so anything a subscriber has
    seen can also be read back later with `read_as_string`. Subscribers added
    after output has started get the buffered lines replayed first, then the
    live ones, in source order.

    Attributes:
        name: Label used in log messages (e.g. "stdout")
    """

    def __init__(self, stream: asyncio.StreamReader, *, name: str = "stream"):
        self.name: str = name
        self._stream: asyncio.StreamReader = stream
        self._lines: list[str] = []
        self._subscribers: list[_Subscriber] = []
        self._closed: bool = False
        self._changed: asyncio.Condition = asyncio.Condition()
        self._task: asyncio.Task[None] | None = None

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def lines_read(self) -> int:
        return len(self._lines)

    def start(self) -> None:
        """Start consuming the stream (must be called from a running event loop)."""
        if self._task is None:
            self._task = asyncio.get_running_loop().create_task(
                self._read_loop(), name=f"spadev-watch-{self.name}"
            )

    async def _read_loop(self) -> None:
        try:
            while True:
                try:
                    raw = await self._stream.readline()
                except ValueError as e:
                    # The overlong line has already been discarded by readline.
                    logger.warning(f"Skipped an overlong line on {self.name}: {e}")
                    continue
                if not raw:
                    break
                line = strip_ansi(
                    raw.decode("utf-8", errors="replace").rstrip("\r\n")
                )
                self._lines.append(line)
                for subscriber in list(self._subscribers):
                    self._deliver(subscriber.on_line, line)
                async with self._changed:
                    self._changed.notify_all()
        except Exception:
            logger.exception(f"Stopped reading {self.name}")
        finally:
            self._closed = True
            for subscriber in list(self._subscribers):
                if subscriber.on_closed is not None:
                    self._deliver(subscriber.on_closed)
            async with self._changed:
                self._changed.notify_all()

    def _deliver(self, callback: Callable[..., None], *args: str) -> None:
        try:
            callback(*args)
        except Exception:
            logger.exception(f"Subscriber callback on {self.name} failed")

    def subscribe(
        self, on_line: LineCallback, on_closed: ClosedCallback | None = None
    ) -> Callable[[], None]:
        """Register a listener for every line of the stream.

        Lines already buffered are replayed to `on_line` before this returns;
        later lines arrive as they are read. `on_closed` is called once at end of
        stream, immediately if the stream has already ended.

        Returns:
            A callable that removes the listener
        """
        subscriber = _Subscriber(on_line, on_closed)
        for line in list(self._lines):
            self._deliver(on_line, line)
        if self._closed:
            if on_closed is not None:
                self._deliver(on_closed)
        else:
            self._subscribers.append(subscriber)

        def unsubscribe() -> None:
            if subscriber in self._subscribers:
                self._subscribers.remove(subscriber)

        return unsubscribe

    async def lines(self) -> AsyncIterator[str]:
        """Yield buffered lines, then live lines, until the stream ends."""
        index = 0
        while True:
            while index < len(self._lines):
                yield self._lines[index]
                index += 1
            if self._closed:
                return
            async with self._changed:
                await self._changed.wait_for(
                    lambda: index < len(self._lines) or self._closed
                )

    async def wait_closed(self) -> None:
        """Wait until the underlying stream has ended."""
        async with self._changed:
            await self._changed.wait_for(lambda: self._closed)

    async def wait_for_match(
        self,
        pattern: str | regex.Pattern[str],
        timeout: float | None = None,
    ) -> regex.Match[str]:
        """Wait for the first line (buffered or live) matching `pattern`.

        Args:
            pattern: Regular expression, searched anywhere in each line
            timeout: Seconds to wait overall; None waits until end of stream

        Returns:
            The match object for the first matching line

        Raises:
            EndOfStreamError: The stream ended without a matching line
            MatchTimeoutError: `timeout` elapsed without a matching line
            PatternTimeoutError: A single line took longer than REGEX_MATCH_TIMEOUT to match
        """
        compiled = regex.compile(pattern) if isinstance(pattern, str) else pattern
        try:
            return await asyncio.wait_for(self._scan(compiled), timeout)
        except asyncio.TimeoutError:
            raise MatchTimeoutError(
                f"No line on {self.name} matched {compiled.pattern!r} "
                f"within {format_seconds(timeout or 0)} seconds"
            ) from None

    async def _scan(self, compiled: regex.Pattern[str]) -> regex.Match[str]:
        async for line in self.lines():
            try:
                match = compiled.search(line, timeout=REGEX_MATCH_TIMEOUT)
            except TimeoutError:
                raise PatternTimeoutError(
                    f"Matching {compiled.pattern!r} against a line on {self.name} "
                    f"took longer than {format_seconds(REGEX_MATCH_TIMEOUT)} seconds"
                ) from None
            if match is not None:
                return match
        raise EndOfStreamError(
            f"{self.name} ended before a line matched {compiled.pattern!r}"
        )

    def read_as_string(self) -> str:
        """Return every line read so far, each terminated by a newline."""
        return "".join(f"{line}\n" for line in self._lines)
