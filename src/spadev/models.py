"""Centralized Pydantic models, enums, and type aliases for spadev."""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from enum import Enum
from typing import ClassVar, TypeAlias

import httpx
from pydantic import BaseModel, ConfigDict, Field

from spadev.constants import (
    DEFAULT_PACKAGE_MANAGER,
    DEFAULT_STARTUP_TIMEOUT,
)


# === Type Aliases ===

TargetProvider: TypeAlias = Callable[[], Awaitable[httpx.URL]]
ProxyRegistrar: TypeAlias = Callable[[TargetProvider], None]

LineCallback: TypeAlias = Callable[[str], None]
ClosedCallback: TypeAlias = Callable[[], None]


# === Enums ===


class DevServerState(str, Enum):
    """Lifecycle of a single dev server launch."""

    starting = "starting"
    ready = "ready"
    failed = "failed"
    stopped = "stopped"


class LogChannel(str, Enum):
    """Log channel for routing and display ([spa] for us, [ui] for the child)."""

    SPA = "spa"
    UI = "ui"


# === Models ===


class TrackedProcess(BaseModel):
    """A process we started and are allowed to manage.

    create_time protects against PID reuse. pgid enables POSIX process-group shutdown
    even if the original PID has already exited (common with npm -> node handoff).
    """

    pid: int | None = None
    create_time: float | None = None
    pgid: int | None = None

    model_config: ClassVar[ConfigDict] = ConfigDict(frozen=True)


class SpaDevServerOptions(BaseModel):
    """Configuration for launching a front-end dev server.

    All default values are defined here and should not be repeated elsewhere.
    """

    source_path: str
    startup_timeout: float = DEFAULT_STARTUP_TIMEOUT
    package_manager: list[str] = Field(
        default_factory=lambda: list(DEFAULT_PACKAGE_MANAGER)
    )
    env: dict[str, str] = Field(default_factory=dict)


class LogEntry(BaseModel):
    """A single buffered log line."""

    timestamp: str
    level: str
    channel: LogChannel
    component: str
    content: str
