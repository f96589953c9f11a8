"""Command line entry point: `spadev run <source_path>`."""

from __future__ import annotations

import asyncio
import shlex
import time
from pathlib import Path
from typing import Annotated

from dotenv import dotenv_values
from rich.markup import escape
from typer import Argument, Exit, Option, Typer

from spadev import __version__
from spadev.constants import (
    DEFAULT_PACKAGE_MANAGER,
    DEFAULT_SCRIPT_NAME,
    DEFAULT_STARTUP_TIMEOUT,
)
from spadev.errors import SpaDevServerError
from spadev.logging import configure_dev_logging
from spadev.middleware import attach
from spadev.models import SpaDevServerOptions, TargetProvider
from spadev.utils import console, format_elapsed_ms

app = Typer(
    name="spadev",
    help="Run a front-end dev server and report where it is listening",
    no_args_is_help=True,
)


def _version_callback(value: bool) -> None:
    if value:
        console.print(f"spadev {__version__}")
        raise Exit()


@app.callback()
def main(
    version: Annotated[
        bool,
        Option(
            "--version",
            callback=_version_callback,
            is_eager=True,
            help="Show the version and exit",
        ),
    ] = False,
) -> None:
    """spadev command line interface."""


def load_env_file(source_path: Path, env_file: Path | None) -> dict[str, str]:
    """Read variables for the dev server from `env_file` or `<source_path>/.env`."""
    path = env_file if env_file is not None else source_path / ".env"
    if env_file is not None and not path.is_file():
        raise FileNotFoundError(f"Env file not found at {path}")
    if not path.is_file():
        return {}
    return {k: v for k, v in dotenv_values(path).items() if v is not None}


async def _run_dev_server(options: SpaDevServerOptions, script: str) -> int:
    providers: list[TargetProvider] = []
    async with attach(options, script, providers.append) as attachment:
        phase_start = time.perf_counter()
        url = await providers[0]()
        console.print(
            f"[green]✓[/green] Dev server ready at [bold]{url}[/bold] "
            f"({format_elapsed_ms(phase_start)})"
        )
        runner = attachment.server.runner
        assert runner is not None
        return await runner.wait()


@app.command(name="run", help="Start the dev server and stream its output until it exits")
def run(
    source_path: Annotated[
        Path, Argument(help="Directory of the front-end project (contains package.json)")
    ],
    script: Annotated[
        str, Option("--script", "-s", help="package.json script that starts the dev server")
    ] = DEFAULT_SCRIPT_NAME,
    timeout: Annotated[
        float, Option(help="Seconds to wait for the dev server to start listening")
    ] = DEFAULT_STARTUP_TIMEOUT,
    package_manager: Annotated[
        str,
        Option(
            "--package-manager",
            help="Command that runs package.json scripts; empty runs the script directly",
        ),
    ] = " ".join(DEFAULT_PACKAGE_MANAGER),
    env_file: Annotated[
        Path | None,
        Option(help="Env file for the dev server (defaults to <source_path>/.env)"),
    ] = None,
    raw_output: Annotated[
        bool, Option("--raw-output", help="Print dev server output without prefixes")
    ] = False,
) -> None:
    """Start the dev server and stream its output until it exits."""
    configure_dev_logging(echo=True, raw_output=raw_output)

    try:
        options = SpaDevServerOptions(
            source_path=str(source_path),
            startup_timeout=timeout,
            package_manager=shlex.split(package_manager),
            env=load_env_file(source_path, env_file),
        )
        exit_code = asyncio.run(_run_dev_server(options, script))
    except KeyboardInterrupt:
        console.print("[yellow]Dev server stopped[/yellow]")
        return
    except (SpaDevServerError, ValueError, FileNotFoundError) as e:
        console.print(f"[red]❌ {escape(str(e))}[/red]")
        raise Exit(code=1)

    if exit_code != 0:
        console.print(f"[red]❌ Dev server exited with code {exit_code}[/red]")
        raise Exit(code=1)
    console.print("[dim]Dev server exited[/dim]")


if __name__ == "__main__":
    app()
