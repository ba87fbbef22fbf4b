from __future__ import annotations

import tomllib
from pathlib import Path

import pytest
from typer.testing import CliRunner

from dotkit import __version__
from dotkit.cli import app
from dotkit.exec import RecordingExecutor
from dotkit.platform import Os, Platform

runner = CliRunner()


def _flat(text: str) -> str:
    return " ".join(text.split())


@pytest.fixture
def executor(monkeypatch: pytest.MonkeyPatch) -> RecordingExecutor:
    executor = RecordingExecutor(available=set())
    monkeypatch.setattr("dotkit.cli._make_executor", lambda: executor)
    monkeypatch.setattr("dotkit.cli._detect_platform", lambda: Platform(Os.LINUX))
    return executor


@pytest.fixture
def root(tmp_path: Path, fake_home: Path) -> Path:
    root = tmp_path / "dotfiles"
    result = runner.invoke(app, ["--root", str(root), "init"])
    assert result.exit_code == 0
    (root / "symlinks" / "bashrc").write_text("export EDITOR=nvim\n")
    return root


def test_version() -> None:
    result = runner.invoke(app, ["version"])

    assert result.exit_code == 0
    assert f"dotkit {__version__}" in result.stdout


def test_init_writes_parseable_config(root: Path) -> None:
    conf = root / "conf"

    with (conf / "packages.toml").open("rb") as handle:
        packages = tomllib.load(handle)
    with (conf / "profiles.toml").open("rb") as handle:
        profiles = tomllib.load(handle)

    assert (conf / "packages.toml").read_text().startswith("# dotkit packages.toml")
    assert packages["base"]["packages"] == ["git", "neovim"]
    assert profiles["base"]["exclude"] == ["desktop"]
    assert (root / "symlinks").is_dir()


def test_init_refuses_to_overwrite(root: Path) -> None:
    (root / "conf" / "packages.toml").write_text("[base]\npackages = []\n")

    refused = runner.invoke(app, ["--root", str(root), "init"])
    assert refused.exit_code == 1
    assert "already exists" in refused.stdout

    forced = runner.invoke(app, ["--root", str(root), "init", "--force"])
    assert forced.exit_code == 0
    assert "neovim" in (root / "conf" / "packages.toml").read_text()


def test_install_dry_run_changes_nothing(root: Path, fake_home: Path, executor: RecordingExecutor) -> None:
    result = runner.invoke(app, ["--root", str(root), "--dry-run", "install"])

    assert result.exit_code == 0, result.stdout
    output = _flat(result.stdout)
    assert "[dry-run] would link:" in output
    assert "pacman not found" in output
    assert not (fake_home / ".bashrc").exists()
    assert executor.calls == []


def test_install_writes_log_file(root: Path, tmp_path: Path, executor: RecordingExecutor) -> None:
    result = runner.invoke(app, ["--root", str(root), "--sequential", "install", "--only", "symlinks"])

    assert result.exit_code == 0, result.stdout
    log_text = (tmp_path / "cache" / "dotkit" / "install.log").read_text()
    assert "==> Install symlinks" in log_text
    assert "1 tasks: 1 ok" in log_text


def test_install_skip(root: Path, fake_home: Path, executor: RecordingExecutor) -> None:
    result = runner.invoke(app, ["--root", str(root), "install", "--skip", "symlinks,packages"])

    assert result.exit_code == 0, result.stdout
    assert "Install symlinks" not in result.stdout
    assert not (fake_home / ".bashrc").exists()


def test_profile_option_is_persisted(root: Path, executor: RecordingExecutor) -> None:
    (root / ".git").mkdir()
    (root / ".git" / "config").write_text("[core]\n\tbare = false\n")

    result = runner.invoke(app, ["--root", str(root), "--profile", "desktop", "install", "--only", "symlinks"])

    assert result.exit_code == 0, result.stdout
    assert "profile: desktop" in result.stdout
    assert "profile = desktop" in (root / ".git" / "config").read_text()

    again = runner.invoke(app, ["--root", str(root), "--dry-run", "install", "--only", "symlinks"])
    assert "profile: desktop" in again.stdout


def test_unknown_profile_exits(root: Path, executor: RecordingExecutor) -> None:
    result = runner.invoke(app, ["--root", str(root), "-p", "gaming", "install"])

    assert result.exit_code == 1
    assert "Unknown profile 'gaming'" in _flat(result.stdout)


def test_missing_root_exits(tmp_path: Path, fake_home: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.chdir(fake_home)

    result = runner.invoke(app, ["install"])

    assert result.exit_code == 1
    assert "Could not find a dotfiles root" in _flat(result.stdout)


def test_invalid_config_exits(root: Path, executor: RecordingExecutor) -> None:
    (root / "conf" / "symlinks.toml").write_text("[base\n")

    result = runner.invoke(app, ["--root", str(root), "install"])

    assert result.exit_code == 1
    assert "Failed to parse" in _flat(result.stdout)


def test_failed_task_exits_nonzero(root: Path, monkeypatch: pytest.MonkeyPatch, executor: RecordingExecutor) -> None:
    monkeypatch.setattr("dotkit.cli._detect_platform", lambda: Platform(Os.LINUX, is_arch=True))
    (root / "conf" / "packages.toml").write_text('[base]\npackages = [{name = "paru-bin", aur = true}]\n')

    result = runner.invoke(app, ["--root", str(root), "install", "--only", "paru"])

    assert result.exit_code == 1
    output = _flat(result.stdout)
    assert "missing prerequisite: git" in output
    assert "1 task(s) failed" in output
