"""Run a package.json script as a child process with watched output streams."""

from __future__ import annotations

import asyncio
import logging
import os
import shutil
import subprocess
from collections.abc import Mapping, Sequence
from pathlib import Path

from spadev.constants import DEFAULT_PACKAGE_MANAGER, STREAM_LINE_LIMIT
from spadev.errors import SpawnError
from spadev.logging import DevLogComponent, get_logger
from spadev.models import TrackedProcess
from spadev.process_control import stop_tracked_process, track_process
from spadev.watcher import EventedStreamReader

logger = get_logger(DevLogComponent.SERVER)


def build_script_argv(
    package_manager: Sequence[str], script_name: str, arguments: Sequence[str]
) -> list[str]:
    """Build the command line for running a script.

    `npm run serve -- --port 5173` style when a package manager is given, or
    the script itself followed by its arguments when it is empty.
    """
    if not package_manager:
        return [script_name, *arguments]
    return [*package_manager, script_name, "--", *arguments]


class ScriptRunner:
    """Spawn a script in its project directory and watch stdout/stderr.

    The runner owns the child process: call `stop()` (or use it as an async
    context manager) to take down the process and everything it spawned.
    """

    def __init__(
        self,
        working_directory: str | Path,
        script_name: str,
        arguments: Sequence[str] = (),
        *,
        package_manager: Sequence[str] = DEFAULT_PACKAGE_MANAGER,
        env: Mapping[str, str] | None = None,
    ) -> None:
        self.working_directory: Path = Path(working_directory)
        self.script_name: str = script_name
        self.argv: list[str] = build_script_argv(
            package_manager, script_name, arguments
        )
        self.env: dict[str, str] = dict(env or {})
        self.tracked: TrackedProcess | None = None
        self._process: asyncio.subprocess.Process | None = None
        self._stdout: EventedStreamReader | None = None
        self._stderr: EventedStreamReader | None = None

    def resolve_executable(self) -> str:
        """Locate the executable on PATH (handles npm.cmd and friends on Windows)."""
        executable = self.argv[0]
        search_path = self.env.get("PATH", os.environ.get("PATH"))
        resolved = shutil.which(executable, path=search_path)
        if resolved is None:
            raise SpawnError(
                f"Could not find '{executable}' on PATH. Make sure it is installed "
                f"to run the script '{self.script_name}'."
            )
        return resolved

    def check(self) -> str:
        """Validate the working directory and executable without starting anything."""
        if not self.working_directory.is_dir():
            raise SpawnError(
                f"Working directory '{self.working_directory}' does not exist or is not a directory"
            )
        return self.resolve_executable()

    @property
    def stdout(self) -> EventedStreamReader:
        if self._stdout is None:
            raise RuntimeError("Script has not been started")
        return self._stdout

    @property
    def stderr(self) -> EventedStreamReader:
        if self._stderr is None:
            raise RuntimeError("Script has not been started")
        return self._stderr

    @property
    def pid(self) -> int | None:
        return self._process.pid if self._process is not None else None

    @property
    def returncode(self) -> int | None:
        return self._process.returncode if self._process is not None else None

    @property
    def started(self) -> bool:
        return self._process is not None

    async def start(self) -> None:
        """Spawn the child process and begin watching its output."""
        if self._process is not None:
            raise RuntimeError(f"Script '{self.script_name}' is already running")

        executable = self.check()

        # Create process group/session so we can stop the full node tree reliably.
        creationflags = 0
        start_new_session = False
        if os.name == "nt":
            creationflags = subprocess.CREATE_NEW_PROCESS_GROUP  # type: ignore[attr-defined]
        else:
            start_new_session = True

        try:
            process = await asyncio.create_subprocess_exec(
                executable,
                *self.argv[1:],
                cwd=self.working_directory,
                env={**os.environ, **self.env},
                stdin=asyncio.subprocess.DEVNULL,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
                start_new_session=start_new_session,
                creationflags=creationflags,
                limit=STREAM_LINE_LIMIT,
            )
        except OSError as e:
            raise SpawnError(
                f"Failed to start '{' '.join(self.argv)}' in {self.working_directory}: {e}"
            ) from e

        self._process = process
        # Track immediately: the package manager may hand off to node and exit quickly.
        self.tracked = track_process(process.pid)
        logger.debug(f"Started script '{self.script_name}' pid={process.pid}")

        assert process.stdout is not None and process.stderr is not None
        self._stdout = EventedStreamReader(process.stdout, name="stdout")
        self._stderr = EventedStreamReader(process.stderr, name="stderr")
        self._stdout.start()
        self._stderr.start()

    def attach_to_logger(self, target: logging.Logger) -> None:
        """Forward the script output to a logger: stdout at INFO, stderr at ERROR."""

        def log_stdout(line: str) -> None:
            if line.strip():
                target.info(line)

        def log_stderr(line: str) -> None:
            if line.strip():
                target.error(line)

        self.stdout.subscribe(log_stdout)
        self.stderr.subscribe(log_stderr)

    async def wait(self) -> int:
        """Wait for the child process to exit and return its exit code."""
        if self._process is None:
            raise RuntimeError("Script has not been started")
        return await self._process.wait()

    async def stop(self) -> None:
        """Stop the child process tree. Safe to call more than once."""
        process = self._process
        if process is None:
            return
        # The root may be gone while its group (node, esbuild) is still alive.
        tp = self.tracked
        if tp is None and process.returncode is None:
            tp = track_process(process.pid)
        if tp is not None:
            await asyncio.to_thread(
                stop_tracked_process, tp, name=f"script '{self.script_name}'"
            )
            self.tracked = None
        if process.returncode is None:
            try:
                process.kill()
            except ProcessLookupError:
                pass
        await process.wait()

    async def __aenter__(self) -> ScriptRunner:
        await self.start()
        return self

    async def __aexit__(self, *_: object) -> None:
        await self.stop()
