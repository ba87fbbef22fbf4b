"""Execution context shared by every task in a run."""

from __future__ import annotations

from dataclasses import dataclass, replace
from pathlib import Path

from .config import Config
from .exec import Executor
from .logger import Log
from .platform import Platform


@dataclass(frozen=True, slots=True)
class Context:
    """Read-only bundle handed to tasks and resources.

    ``log`` is the only mutable collaborator and is thread-safe.
    """

    config: Config
    platform: Platform
    log: Log
    executor: Executor
    home: Path
    dry_run: bool = False
    parallel: bool = True

    @property
    def root(self) -> Path:
        return self.config.root

    def with_log(self, log: Log) -> "Context":
        """Return a copy of this context writing to ``log``."""

        return replace(self, log=log)
