"""The login shell of the current user."""

from __future__ import annotations

import os
from pathlib import PurePath

from ..exec import Executor
from ..models import ResourceChange, ResourceState
from .base import Resource, ResourceError


class DefaultShellResource(Resource):
    def __init__(self, shell: str, executor: Executor) -> None:
        self.shell = shell
        self.executor = executor

    def description(self) -> str:
        return f"default shell -> {self.shell}"

    def current_state(self) -> ResourceState:
        current = os.environ.get("SHELL", "")
        if not current:
            return ResourceState.missing()
        if PurePath(current).name == self.shell:
            return ResourceState.correct()
        return ResourceState.incorrect(current)

    def apply(self) -> ResourceChange:
        path = self.executor.which_path(self.shell)
        if path is None:
            raise ResourceError(f"{self.shell} not found on PATH")
        self.executor.run("chsh", ["-s", path])
        return ResourceChange.applied()
