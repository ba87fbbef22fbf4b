"""systemd units that should be enabled and running."""

from __future__ import annotations

from ..exec import ExecResult, Executor
from ..models import ResourceChange, ResourceState
from .base import Resource


class SystemdUnitResource(Resource):
    def __init__(self, name: str, executor: Executor, *, scope: str = "user") -> None:
        self.name = name
        self.scope = scope
        self.executor = executor

    def description(self) -> str:
        if self.scope == "user":
            return self.name
        return f"{self.name} ({self.scope})"

    def _systemctl(self, *args: str) -> ExecResult:
        if self.scope == "user":
            return self.executor.run_unchecked("systemctl", ["--user", *args])
        return self.executor.run_unchecked("sudo", ["systemctl", *args])

    def current_state(self) -> ResourceState:
        if self._systemctl("is-enabled", self.name).success:
            return ResourceState.correct()
        return ResourceState.missing()

    def apply(self) -> ResourceChange:
        result = self._systemctl("enable", "--now", self.name)
        if result.success:
            return ResourceChange.applied()
        return ResourceChange.skipped(f"failed to enable: {result.stderr.strip()}")
