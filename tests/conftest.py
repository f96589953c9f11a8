from __future__ import annotations

import sys
from collections.abc import Iterator
from pathlib import Path

import pytest

from spadev.logging import reset_dev_logging
from spadev.models import SpaDevServerOptions

FAKE_DEV_SERVER: Path = Path(__file__).parent / "fixtures" / "fake_dev_server.py"


def read_launches(project_dir: Path) -> list[str]:
    """Lines "<mode> <port>" written by every fake dev server launch."""
    log = project_dir / "launches.log"
    if not log.exists():
        return []
    return log.read_text().splitlines()


@pytest.fixture(autouse=True)
def _reset_logging() -> Iterator[None]:
    yield
    reset_dev_logging()


@pytest.fixture
def project_dir(tmp_path: Path) -> Path:
    """Front-end project directory the fake dev server runs in."""
    path = tmp_path / "ui"
    path.mkdir()
    (path / "package.json").write_text('{"name": "fake-ui", "private": true}')
    return path


@pytest.fixture
def fake_package_manager() -> list[str]:
    """Runs `<mode> -- --port N --host localhost` through the fake dev server."""
    return [sys.executable, str(FAKE_DEV_SERVER)]


@pytest.fixture
def options(project_dir: Path, fake_package_manager: list[str]) -> SpaDevServerOptions:
    return SpaDevServerOptions(
        source_path=str(project_dir),
        startup_timeout=10.0,
        package_manager=fake_package_manager,
    )
