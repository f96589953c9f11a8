"""Centralized logging for spadev (buffering, routing, and CLI formatting)."""

from __future__ import annotations

import logging
import time
from collections import deque
from enum import Enum
from typing import Any, ClassVar, TypeAlias

from pydantic import BaseModel, ConfigDict
from rich.text import Text
from typing_extensions import override

from spadev.constants import LOGGER_NAME
from spadev.models import LogChannel, LogEntry
from spadev.utils import console

LogBuffer: TypeAlias = deque[LogEntry]


class DevLogComponent(str, Enum):
    """Where a log originated (used for fine-grained filtering)."""

    SERVER = "server"
    UI = "ui"
    WATCHER = "watcher"
    PROCESS_CONTROL = "process_control"


_COMPONENT_DEFAULT_CHANNEL: dict[DevLogComponent, LogChannel] = {
    DevLogComponent.SERVER: LogChannel.SPA,
    DevLogComponent.WATCHER: LogChannel.SPA,
    DevLogComponent.PROCESS_CONTROL: LogChannel.SPA,
    DevLogComponent.UI: LogChannel.UI,
}


class _DevLogState(BaseModel):
    model_config: ClassVar[ConfigDict] = ConfigDict(arbitrary_types_allowed=True)

    buffer: LogBuffer | None = None
    echo: bool = False
    raw_output: bool = False
    configured: bool = False


_STATE = _DevLogState()


def _now_timestamp(created: float | None = None) -> str:
    t = time.localtime(created if created is not None else time.time())
    return time.strftime("%Y-%m-%d %H:%M:%S", t)


def _make_entry(
    record: logging.LogRecord,
    *,
    channel: LogChannel,
    component: DevLogComponent,
    content: str,
) -> LogEntry:
    return LogEntry(
        timestamp=_now_timestamp(record.created),
        level=record.levelname,
        channel=channel,
        component=component.value,
        content=content,
    )


class _DevLogHandler(logging.Handler):
    """Turn records into LogEntry objects, then buffer and/or print them."""

    log_component: DevLogComponent
    log_channel: LogChannel

    def __init__(self, *, channel: LogChannel, component: DevLogComponent):
        super().__init__()
        self.log_channel = channel
        self.log_component = component

    @override
    def emit(self, record: logging.LogRecord) -> None:
        try:
            entry = _make_entry(
                record,
                channel=self.log_channel,
                component=self.log_component,
                content=self.format(record),
            )
            if _STATE.buffer is not None:
                _STATE.buffer.append(entry)
            if _STATE.echo:
                print_log_entry(entry, raw_output=_STATE.raw_output)
        except Exception:
            self.handleError(record)


def configure_dev_logging(
    *,
    buffer: LogBuffer | None = None,
    echo: bool = False,
    raw_output: bool = False,
    level: int = logging.INFO,
) -> None:
    """Configure all spadev loggers.

    Args:
        buffer: In-memory buffer receiving every record as a LogEntry
        echo: Also print records to the console with channel prefixes
        raw_output: When echoing, print only the message without prefixes
        level: Minimum level for every component logger
    """
    _STATE.buffer = buffer
    _STATE.echo = echo
    _STATE.raw_output = raw_output

    for component in DevLogComponent:
        channel = _COMPONENT_DEFAULT_CHANNEL.get(component, LogChannel.SPA)
        logger = logging.getLogger(f"{LOGGER_NAME}.{component.value}")
        logger.setLevel(level)
        logger.handlers.clear()
        handler = _DevLogHandler(channel=channel, component=component)
        handler.setFormatter(logging.Formatter("%(message)s"))
        logger.addHandler(handler)
        logger.propagate = False

    _STATE.configured = True


def reset_dev_logging() -> None:
    """Detach spadev handlers and return loggers to the unconfigured state."""
    for component in DevLogComponent:
        logger = logging.getLogger(f"{LOGGER_NAME}.{component.value}")
        logger.handlers.clear()
        logger.addHandler(logging.NullHandler())
        logger.setLevel(logging.NOTSET)
        logger.propagate = False
    _STATE.buffer = None
    _STATE.echo = False
    _STATE.raw_output = False
    _STATE.configured = False


def get_logger(component: DevLogComponent) -> logging.Logger:
    """Get a spadev logger for a component (do not call stdlib logging directly)."""
    logger = logging.getLogger(f"{LOGGER_NAME}.{component.value}")
    if not _STATE.configured:
        # Avoid "No handlers could be found" warnings when logging was never configured.
        if not logger.handlers:
            logger.addHandler(logging.NullHandler())
        logger.propagate = False
    return logger


def print_log_entry(
    entry: LogEntry | dict[str, Any],  # pyright: ignore[reportExplicitAny]
    *,
    raw_output: bool = False,
) -> None:
    """Print a single log entry with `[spa]`/`[ui]` prefixes."""
    if isinstance(entry, dict):
        entry = LogEntry.model_validate(entry)

    if raw_output:
        console.print(entry.content, markup=False, highlight=False)
        return

    prefix_style = "bright_blue" if entry.channel == LogChannel.SPA else "cyan"
    if entry.level in ("ERROR", "CRITICAL"):
        prefix_style = "red"

    ts = Text(entry.timestamp, style="dim")
    sep = Text(" | ")
    prefix = Text(f"[{entry.channel.value}]", style=prefix_style)
    content = Text(entry.content)
    console.print(ts + sep + prefix + sep + content)
