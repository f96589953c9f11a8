"""Start a dev server script and wait until it reports that it is listening."""

from __future__ import annotations

import asyncio

import regex

from spadev.constants import (
    DEFAULT_HOST,
    READINESS_LINE_TEMPLATE,
    STDERR_DRAIN_TIMEOUT,
)
from spadev.errors import EndOfStreamError, ProcessExitedError
from spadev.logging import DevLogComponent, get_logger
from spadev.models import DevServerState, SpaDevServerOptions
from spadev.ports import find_available_port
from spadev.runner import ScriptRunner

logger = get_logger(DevLogComponent.SERVER)
ui_logger = get_logger(DevLogComponent.UI)


def readiness_pattern(port: int) -> regex.Pattern[str]:
    """Pattern for the exact `Local:   http://localhost:<port>/` line."""
    return regex.compile(regex.escape(READINESS_LINE_TEMPLATE.format(port=port)))


def launch_arguments(port: int) -> list[str]:
    return ["--port", str(port), "--host", DEFAULT_HOST]


class SpaDevServer:
    """A single launch of a front-end dev server script.

    `start()` picks a port, runs the script with that port and waits for the
    readiness line on stdout. If the script exits first, the failure carries the
    complete stderr output of the script.
    """

    def __init__(self, options: SpaDevServerOptions, script_name: str) -> None:
        self.options: SpaDevServerOptions = options
        self.script_name: str = script_name
        self.state: DevServerState = DevServerState.starting
        self.port: int | None = None
        self._runner: ScriptRunner | None = None

    @property
    def runner(self) -> ScriptRunner | None:
        return self._runner

    def create_runner(self, port: int) -> ScriptRunner:
        return ScriptRunner(
            self.options.source_path,
            self.script_name,
            launch_arguments(port),
            package_manager=self.options.package_manager,
            env=self.options.env,
        )

    async def start(self) -> int:
        """Launch the script and return the port once it is accepting connections.

        Raises:
            SpawnError: The script could not be started
            ProcessExitedError: The script exited before printing the readiness line
        """
        if self._runner is not None:
            raise RuntimeError(f"Dev server for '{self.script_name}' was already started")

        port = find_available_port()
        self.port = port
        logger.info(f"Starting dev server on port {port}...")

        runner = self.create_runner(port)
        self._runner = runner
        try:
            await runner.start()
            runner.attach_to_logger(ui_logger)
            await runner.stdout.wait_for_match(readiness_pattern(port))
        except EndOfStreamError as e:
            self.state = DevServerState.failed
            # stdout closing usually means the process is gone; let stderr catch up.
            try:
                await asyncio.wait_for(
                    runner.stderr.wait_closed(), STDERR_DRAIN_TIMEOUT
                )
            except asyncio.TimeoutError:
                logger.debug("stderr still open after stdout closed")
            raise ProcessExitedError(
                self.script_name, runner.stderr.read_as_string()
            ) from e
        except BaseException:
            self.state = DevServerState.failed
            raise

        self.state = DevServerState.ready
        logger.info(f"Dev server is running on port {port}")
        return port

    async def stop(self) -> None:
        """Stop the script and everything it spawned."""
        if self._runner is not None:
            await self._runner.stop()
        self.state = DevServerState.stopped
