"""Launch a front-end dev server and expose its address to a proxy."""

from spadev.errors import (
    EndOfStreamError,
    MatchTimeoutError,
    PatternTimeoutError,
    ProcessExitedError,
    SpaDevServerError,
    SpawnError,
    StartupTimeoutError,
)
from spadev.middleware import SpaDevServerAttachment, attach
from spadev.models import DevServerState, SpaDevServerOptions
from spadev.ports import find_available_port
from spadev.readiness import SpaDevServer
from spadev.runner import ScriptRunner
from spadev.timeouts import with_timeout
from spadev.watcher import EventedStreamReader

__version__ = "0.1.0"

__all__ = [
    "DevServerState",
    "EndOfStreamError",
    "EventedStreamReader",
    "MatchTimeoutError",
    "PatternTimeoutError",
    "ProcessExitedError",
    "ScriptRunner",
    "SpaDevServer",
    "SpaDevServerAttachment",
    "SpaDevServerError",
    "SpaDevServerOptions",
    "SpawnError",
    "StartupTimeoutError",
    "attach",
    "find_available_port",
    "with_timeout",
]
