"""Exceptions raised while launching and watching a dev server."""

from __future__ import annotations


class SpaDevServerError(Exception):
    """Base class for all spadev errors."""


class SpawnError(SpaDevServerError):
    """The dev server process could not be started at all."""


class EndOfStreamError(SpaDevServerError):
    """A watched stream closed before the expected line showed up."""


class MatchTimeoutError(SpaDevServerError):
    """No matching line arrived within the requested time."""


class PatternTimeoutError(SpaDevServerError):
    """A single regex attempt ran longer than the per-line match bound."""


class ProcessExitedError(SpaDevServerError):
    """The script exited without reporting that it was listening."""

    def __init__(self, script_name: str, stderr: str) -> None:
        super().__init__(
            f"The script '{script_name}' exited without indicating that the "
            f"dev server was listening for requests. The error output was: {stderr}"
        )
        self.script_name: str = script_name
        self.stderr: str = stderr


class StartupTimeoutError(SpaDevServerError, TimeoutError):
    """The dev server did not become ready before the startup deadline."""

    def __init__(self, message: str, timeout: float) -> None:
        super().__init__(message)
        self.timeout: float = timeout
