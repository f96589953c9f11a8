"""Cross-platform tracking and shutdown of the dev server process tree.

Design goals:
- Only stop processes we started (tracked by pid + create_time).
- Prefer graceful shutdown (SIGINT first), escalate deterministically.
- Catch the whole tree: package managers hand off to node, node spawns esbuild.
"""

from __future__ import annotations

import os
import signal
import time

import psutil

from spadev.logging import DevLogComponent, get_logger
from spadev.models import TrackedProcess

logger = get_logger(DevLogComponent.PROCESS_CONTROL)


def _get_pgid_safe(pid: int) -> int | None:
    # Windows doesn't have pgid.
    if os.name == "nt":
        return None
    try:
        return os.getpgid(pid)
    except OSError:
        return None


def track_process(pid: int) -> TrackedProcess | None:
    """Create a TrackedProcess for a running PID, recording create_time and pgid."""
    try:
        proc = psutil.Process(pid)
        return TrackedProcess(
            pid=pid,
            create_time=float(proc.create_time()),
            pgid=_get_pgid_safe(pid),
        )
    except (psutil.NoSuchProcess, psutil.AccessDenied):
        return None


def validate_tracked(tp: TrackedProcess) -> psutil.Process | None:
    """Return a psutil.Process only if PID matches create_time (prevents PID reuse bugs)."""
    if tp.pid is None or tp.create_time is None:
        return None
    try:
        proc = psutil.Process(tp.pid)
        if abs(float(proc.create_time()) - float(tp.create_time)) > 0.001:
            return None
        return proc
    except (psutil.NoSuchProcess, psutil.AccessDenied):
        return None


def _list_pgid_members(pgid: int) -> list[int]:
    """Return live PIDs in a process group (POSIX only)."""
    pids: list[int] = []
    for proc in psutil.process_iter(["pid", "status"]):
        try:
            if proc.info["status"] == psutil.STATUS_ZOMBIE:
                continue
            if _get_pgid_safe(proc.pid) == pgid:
                pids.append(proc.pid)
        except (psutil.NoSuchProcess, psutil.AccessDenied):
            continue
    return pids


def _wait_for_pgid_empty(pgid: int, timeout: float, poll: float = 0.1) -> bool:
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if not _list_pgid_members(pgid):
            return True
        time.sleep(poll)
    return not _list_pgid_members(pgid)


def _signal_group(pgid: int, sig: signal.Signals) -> None:
    try:
        os.killpg(pgid, sig)
    except (ProcessLookupError, PermissionError):
        pass


def _terminate_tree(root: psutil.Process, timeout: float) -> None:
    """Terminate a process tree, children first, killing whatever survives."""
    try:
        children = root.children(recursive=True)
    except psutil.Error:
        children = []

    for proc in [*children, root]:
        try:
            proc.terminate()
        except psutil.Error:
            pass

    _, alive = psutil.wait_procs([*children, root], timeout=timeout)
    for proc in alive:
        try:
            proc.kill()
        except psutil.Error:
            pass
    if alive:
        psutil.wait_procs(alive, timeout=max(0.5, timeout / 2))


def stop_tracked_process(
    tp: TrackedProcess,
    *,
    name: str,
    sigint_timeout: float = 1.0,
    sigterm_timeout: float = 1.5,
    sigkill_timeout: float = 1.0,
) -> None:
    """Stop a tracked process and its children.

    Behavior:
    - POSIX: signal process group (SIGINT -> SIGTERM -> SIGKILL).
    - Windows: terminate/kill the process tree.
    """
    pgid = tp.pgid
    if pgid is None:
        proc = validate_tracked(tp)
        if proc is None:
            return
        logger.debug(f"Stopping {name} pid={tp.pid}")
        _terminate_tree(proc, timeout=sigterm_timeout + sigkill_timeout)
        return

    logger.debug(f"Stopping {name} pgid={pgid}")
    for sig, timeout in (
        (signal.SIGINT, sigint_timeout),
        (signal.SIGTERM, sigterm_timeout),
        (signal.SIGKILL, sigkill_timeout),
    ):
        _signal_group(pgid, sig)
        if _wait_for_pgid_empty(pgid, timeout):
            return

    # Last resort: if we still have a valid root process, kill its tree explicitly.
    proc = validate_tracked(tp)
    if proc is not None:
        _terminate_tree(proc, timeout=sigkill_timeout)
    logger.warning(f"{name} process group {pgid} did not exit cleanly")
