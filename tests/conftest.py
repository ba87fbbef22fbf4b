from __future__ import annotations

import io
from pathlib import Path

import pytest
from rich.console import Console

from dotkit.config import Config
from dotkit.context import Context
from dotkit.exec import RecordingExecutor
from dotkit.logger import Logger
from dotkit.platform import Os, Platform


@pytest.fixture
def fake_home(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> Path:
    home = tmp_path / "home"
    home.mkdir()
    monkeypatch.setenv("HOME", str(home))
    monkeypatch.setenv("USERPROFILE", str(home))
    monkeypatch.setenv("XDG_CACHE_HOME", str(tmp_path / "cache"))
    monkeypatch.delenv("DOTKIT_ROOT", raising=False)
    return home


@pytest.fixture
def output() -> io.StringIO:
    return io.StringIO()


@pytest.fixture
def logger(output: io.StringIO) -> Logger:
    console = Console(file=output, width=200, color_system=None)
    return Logger(console, verbose=True)


@pytest.fixture
def executor() -> RecordingExecutor:
    return RecordingExecutor()


@pytest.fixture
def make_context(tmp_path: Path, fake_home: Path, logger: Logger, executor: RecordingExecutor):
    """Build a ``Context`` around the shared logger and executor."""

    def factory(
        *,
        dry_run: bool = False,
        parallel: bool = False,
        platform: Platform | None = None,
        **config_fields,
    ) -> Context:
        config = Config(root=tmp_path / "dotfiles", profile="base", **config_fields)
        return Context(
            config=config,
            platform=platform or Platform(Os.LINUX, is_arch=True),
            log=logger,
            executor=executor,
            home=fake_home,
            dry_run=dry_run,
            parallel=parallel,
        )

    return factory
