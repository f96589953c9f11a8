"""Attach a front-end dev server to a request-forwarding proxy.

The proxy only needs an async callable returning the address to forward to.
`attach()` hands it one: the first call launches the dev server, every call
shares that single launch and waits for it up to the startup timeout.
"""

from __future__ import annotations

import asyncio

import httpx

from spadev.constants import DEFAULT_HOST
from spadev.logging import DevLogComponent, get_logger
from spadev.models import ProxyRegistrar, SpaDevServerOptions
from spadev.readiness import SpaDevServer
from spadev.runner import ScriptRunner
from spadev.timeouts import with_timeout
from spadev.utils import format_seconds

logger = get_logger(DevLogComponent.SERVER)


def target_url(port: int) -> httpx.URL:
    return httpx.URL(f"http://{DEFAULT_HOST}:{port}")


def startup_timeout_message(timeout: float) -> str:
    return (
        "The dev server did not start listening for requests within the timeout "
        f"period of {format_seconds(timeout)} seconds. "
        "Check the log output for error information."
    )


class SpaDevServerAttachment:
    """Lazily started dev server plus the target provider handed to the proxy.

    Attributes:
        server: The dev server launch backing this attachment
        startup_timeout: Seconds each `target_uri()` call waits for startup
    """

    def __init__(self, server: SpaDevServer, startup_timeout: float) -> None:
        self.server: SpaDevServer = server
        self.startup_timeout: float = startup_timeout
        self._target_task: asyncio.Task[httpx.URL] | None = None

    @property
    def started(self) -> bool:
        return self._target_task is not None

    async def _resolve_target(self) -> httpx.URL:
        port = await self.server.start()
        return target_url(port)

    def _report_outcome(self, task: asyncio.Task[httpx.URL]) -> None:
        # Also marks the exception as retrieved when no request is waiting any more.
        if task.cancelled():
            return
        error = task.exception()
        if error is not None:
            logger.error(f"Dev server failed to start: {error}")

    def _ensure_started(self) -> asyncio.Task[httpx.URL]:
        if self._target_task is None:
            self._target_task = asyncio.get_running_loop().create_task(
                self._resolve_target(), name="spadev-start"
            )
            self._target_task.add_done_callback(self._report_outcome)
        return self._target_task

    async def target_uri(self) -> httpx.URL:
        """Return the dev server address, launching it on first use.

        Raises:
            StartupTimeoutError: Startup did not finish within `startup_timeout`;
                the launch keeps going and later calls can still succeed
            ProcessExitedError: The script exited before it was listening
            SpawnError: The script could not be started
        """
        return await with_timeout(
            self._ensure_started(),
            self.startup_timeout,
            startup_timeout_message(self.startup_timeout),
        )

    async def aclose(self) -> None:
        """Stop the dev server (if it was ever launched)."""
        task = self._target_task
        if task is not None and not task.done():
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass
            except Exception:
                # Already reported by _report_outcome.
                pass
        await self.server.stop()

    async def __aenter__(self) -> SpaDevServerAttachment:
        return self

    async def __aexit__(self, *_: object) -> None:
        await self.aclose()


def attach(
    options: SpaDevServerOptions,
    script_name: str,
    use_proxy: ProxyRegistrar,
) -> SpaDevServerAttachment:
    """Register a dev server launched from `script_name` as the proxy target.

    Nothing is started here: the script runs on the first call of the provider
    passed to `use_proxy`, as
    `<package manager> <script_name> -- --port <port> --host localhost`
    inside `options.source_path`.

    Args:
        options: Where the front-end project lives and how to run it
        script_name: package.json script that starts the dev server
        use_proxy: Hook receiving the zero-argument async target provider

    Returns:
        The attachment, whose `aclose()` stops the dev server

    Raises:
        ValueError: `options.source_path` or `script_name` is empty
        SpawnError: The project directory or package manager cannot be found
    """
    if not options.source_path:
        raise ValueError("source_path cannot be null or empty")
    if not script_name:
        raise ValueError("script_name cannot be null or empty")

    ScriptRunner(
        options.source_path,
        script_name,
        package_manager=options.package_manager,
        env=options.env,
    ).check()

    attachment = SpaDevServerAttachment(
        SpaDevServer(options, script_name), options.startup_timeout
    )
    use_proxy(attachment.target_uri)
    return attachment
