"""Tests for the spadev command line."""

from __future__ import annotations

from pathlib import Path

from typer.testing import CliRunner

from spadev import __version__
from spadev.__main__ import app, load_env_file

runner: CliRunner = CliRunner()


def _flat(text: str) -> str:
    # Rich wraps long lines at the console width.
    return " ".join(text.split())


def _run_args(project_dir: Path, fake_package_manager: list[str], script: str) -> list[str]:
    return [
        "run",
        str(project_dir),
        "--script",
        script,
        "--timeout",
        "10",
        "--package-manager",
        " ".join(f"'{part}'" for part in fake_package_manager),
    ]


def test_version() -> None:
    result = runner.invoke(app, ["--version"])
    assert result.exit_code == 0
    assert __version__ in result.output


def test_run_reports_address_until_exit(
    project_dir: Path, fake_package_manager: list[str]
) -> None:
    result = runner.invoke(
        app, _run_args(project_dir, fake_package_manager, "serve-once")
    )

    assert result.exit_code == 0, result.output
    assert "Dev server ready at http://localhost:" in _flat(result.output)
    assert "Dev server exited" in result.output


def test_run_failure_shows_stderr(
    project_dir: Path, fake_package_manager: list[str]
) -> None:
    result = runner.invoke(app, _run_args(project_dir, fake_package_manager, "crash"))

    assert result.exit_code == 1
    assert "port in use" in _flat(result.output)


def test_run_missing_project(tmp_path: Path, fake_package_manager: list[str]) -> None:
    result = runner.invoke(
        app, _run_args(tmp_path / "missing", fake_package_manager, "serve")
    )

    assert result.exit_code == 1
    assert "does not exist" in _flat(result.output)


def test_load_env_file_defaults_to_project_dotenv(project_dir: Path) -> None:
    assert load_env_file(project_dir, None) == {}

    (project_dir / ".env").write_text("VITE_API_URL=http://localhost:8000\nEMPTY\n")
    assert load_env_file(project_dir, None) == {
        "VITE_API_URL": "http://localhost:8000"
    }


def test_load_env_file_explicit(project_dir: Path, tmp_path: Path) -> None:
    env_file = tmp_path / "dev.env"
    env_file.write_text("BROWSER=none\n")
    assert load_env_file(project_dir, env_file) == {"BROWSER": "none"}


def test_run_missing_env_file(
    project_dir: Path, fake_package_manager: list[str], tmp_path: Path
) -> None:
    args = _run_args(project_dir, fake_package_manager, "serve")
    result = runner.invoke(app, [*args, "--env-file", str(tmp_path / "none.env")])

    assert result.exit_code == 1
    assert "Env file not found" in _flat(result.output)
