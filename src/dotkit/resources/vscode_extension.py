"""VS Code extensions."""

from __future__ import annotations

import sys
from typing import Sequence

from ..exec import ExecResult, Executor
from ..models import ResourceChange, ResourceState
from .base import Resource

CODE_COMMANDS = ("code-insiders", "code")


def find_code_command(executor: Executor) -> str | None:
    """Return the VS Code CLI to use, preferring Insiders."""

    for command in CODE_COMMANDS:
        if executor.which(command):
            return command
    return None


def run_code(command: str, args: Sequence[str], executor: Executor) -> ExecResult:
    # The Windows CLI is a .cmd shim and has to go through cmd.exe.
    if sys.platform.startswith("win"):
        return executor.run_unchecked("cmd", ["/C", command, *args])
    return executor.run_unchecked(command, args)


def installed_extensions(command: str, executor: Executor) -> set[str]:
    result = run_code(command, ["--list-extensions"], executor)
    if not result.success:
        return set()
    return {line.strip().lower() for line in result.stdout.splitlines() if line.strip()}


class VsCodeExtensionResource(Resource):
    def __init__(self, extension_id: str, command: str, executor: Executor) -> None:
        self.id = extension_id
        self.command = command
        self.executor = executor

    def description(self) -> str:
        return self.id

    def state_from_installed(self, installed: set[str]) -> ResourceState:
        return ResourceState.correct() if self.id.lower() in installed else ResourceState.missing()

    def current_state(self) -> ResourceState:
        return self.state_from_installed(installed_extensions(self.command, self.executor))

    def apply(self) -> ResourceChange:
        result = run_code(self.command, ["--install-extension", self.id, "--force"], self.executor)
        if result.success:
            return ResourceChange.applied()
        return ResourceChange.skipped(f"failed to install: {result.stderr.strip()}")
