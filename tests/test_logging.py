"""Tests for spadev logging configuration."""

from __future__ import annotations

import logging
from collections import deque

import pytest

from spadev.logging import (
    DevLogComponent,
    configure_dev_logging,
    get_logger,
    print_log_entry,
)
from spadev.models import LogChannel, LogEntry


def test_unconfigured_logger_is_silent() -> None:
    logger = get_logger(DevLogComponent.SERVER)
    assert logger.name == "spadev.server"
    assert not logger.propagate
    assert any(isinstance(h, logging.NullHandler) for h in logger.handlers)


def test_buffered_entries_are_routed_by_component() -> None:
    buffer: deque[LogEntry] = deque()
    configure_dev_logging(buffer=buffer)

    get_logger(DevLogComponent.SERVER).info("Starting dev server on port 5173...")
    get_logger(DevLogComponent.UI).error("Error: port in use")
    get_logger(DevLogComponent.PROCESS_CONTROL).debug("filtered out at INFO")

    assert [(e.channel, e.component, e.level, e.content) for e in buffer] == [
        (LogChannel.SPA, "server", "INFO", "Starting dev server on port 5173..."),
        (LogChannel.UI, "ui", "ERROR", "Error: port in use"),
    ]


def test_echo_prints_prefixed_lines(capsys: pytest.CaptureFixture[str]) -> None:
    configure_dev_logging(echo=True)
    get_logger(DevLogComponent.UI).info("VITE ready")

    out = capsys.readouterr().out
    assert "[ui]" in out
    assert "VITE ready" in out


def test_print_log_entry_raw_output(capsys: pytest.CaptureFixture[str]) -> None:
    entry = {
        "timestamp": "2024-01-01 00:00:00",
        "level": "INFO",
        "channel": "spa",
        "component": "server",
        "content": "[bold]not markup[/bold]",
    }
    print_log_entry(entry, raw_output=True)

    assert capsys.readouterr().out == "[bold]not markup[/bold]\n"
