"""Global git configuration values."""

from __future__ import annotations

from ..exec import Executor
from ..models import ResourceChange, ResourceState
from .base import Resource, ResourceError

# `git config --get` exits 1 when the key is unset; other codes are real errors.
GIT_KEY_NOT_FOUND = 1


class GitConfigResource(Resource):
    def __init__(self, key: str, value: str, executor: Executor) -> None:
        self.key = key
        self.value = value
        self.executor = executor

    def description(self) -> str:
        return f"{self.key} = {self.value}"

    def current_state(self) -> ResourceState:
        result = self.executor.run_unchecked("git", ["config", "--global", "--get", self.key])
        if result.code == GIT_KEY_NOT_FOUND:
            return ResourceState.missing()
        if not result.success:
            raise ResourceError(f"reading git config {self.key}: {result.stderr.strip()}")
        current = result.stdout.strip()
        if current == self.value:
            return ResourceState.correct()
        return ResourceState.incorrect(current)

    def apply(self) -> ResourceChange:
        self.executor.run("git", ["config", "--global", self.key, self.value])
        return ResourceChange.applied()
