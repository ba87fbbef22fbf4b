"""Process execution for dotkit."""

from __future__ import annotations

import os
import shutil
import subprocess
import threading
from abc import ABC, abstractmethod
from collections import deque
from dataclasses import dataclass, field
from pathlib import Path
from typing import Mapping, Sequence


class ExecError(RuntimeError):
    """Raised when a process cannot be started or a checked call fails."""


@dataclass(frozen=True, slots=True)
class ExecResult:
    """Captured outcome of a finished process."""

    stdout: str
    stderr: str
    code: int

    @property
    def success(self) -> bool:
        return self.code == 0


@dataclass(frozen=True, slots=True)
class ExecCall:
    """One recorded invocation of an executor."""

    program: str
    args: tuple[str, ...]
    cwd: Path | None = None
    env: tuple[tuple[str, str], ...] = ()

    @property
    def argv(self) -> tuple[str, ...]:
        return (self.program, *self.args)


def _label(program: str, args: Sequence[str]) -> str:
    return " ".join([program, *args[:1]])


def _check(result: ExecResult, program: str, args: Sequence[str]) -> ExecResult:
    if not result.success:
        raise ExecError(f"{_label(program, args)} failed (exit {result.code}): {result.stderr.strip()}")
    return result


class Executor(ABC):
    """Runs external programs on behalf of resources and tasks.

    Implementations must be safe to share between worker threads.
    """

    @abstractmethod
    def run_unchecked(self, program: str, args: Sequence[str]) -> ExecResult:
        """Run ``program`` and return its result whatever the exit status."""

    @abstractmethod
    def run_in_with_env(
        self,
        cwd: Path,
        program: str,
        args: Sequence[str],
        env: Mapping[str, str],
    ) -> ExecResult:
        """Run ``program`` inside ``cwd`` with extra environment variables; fails on non-zero exit."""

    @abstractmethod
    def which_path(self, program: str) -> str | None:
        """Return the full path of ``program`` on ``PATH``, or ``None``."""

    def which(self, program: str) -> bool:
        return self.which_path(program) is not None

    def run(self, program: str, args: Sequence[str]) -> ExecResult:
        """Run ``program`` and raise ``ExecError`` on a non-zero exit status."""

        return _check(self.run_unchecked(program, args), program, args)

    def run_in(self, cwd: Path, program: str, args: Sequence[str]) -> ExecResult:
        return self.run_in_with_env(cwd, program, args, {})


class SystemExecutor(Executor):
    """Executor backed by real subprocesses."""

    def run_unchecked(self, program: str, args: Sequence[str]) -> ExecResult:
        return self._spawn(program, args)

    def run_in_with_env(
        self,
        cwd: Path,
        program: str,
        args: Sequence[str],
        env: Mapping[str, str],
    ) -> ExecResult:
        merged = {**os.environ, **env} if env else None
        result = self._spawn(program, args, cwd=cwd, env=merged)
        return _check(result, program, args)

    def which_path(self, program: str) -> str | None:
        return shutil.which(program)

    def _spawn(
        self,
        program: str,
        args: Sequence[str],
        *,
        cwd: Path | None = None,
        env: Mapping[str, str] | None = None,
    ) -> ExecResult:
        try:
            completed = subprocess.run(
                [program, *args],
                cwd=cwd,
                env=env,
                capture_output=True,
                text=True,
                check=False,
            )
        except OSError as exc:
            raise ExecError(f"failed to start {program}: {exc}") from exc
        return ExecResult(stdout=completed.stdout, stderr=completed.stderr, code=completed.returncode)


@dataclass
class RecordingExecutor(Executor):
    """Executor that records calls and replays scripted responses.

    Responses queued with ``push`` are consumed first-in first-out. Calls with
    no queued response succeed with empty output. ``available`` lists the
    programs ``which`` and ``which_path`` report as present; ``None`` means every program is.
    """

    available: set[str] | None = None
    calls: list[ExecCall] = field(default_factory=list)
    _responses: deque[ExecResult] = field(default_factory=deque, repr=False)
    _lock: threading.Lock = field(default_factory=threading.Lock, repr=False)

    def push(self, success: bool = True, stdout: str = "", stderr: str = "") -> "RecordingExecutor":
        self._responses.append(ExecResult(stdout=stdout, stderr=stderr, code=0 if success else 1))
        return self

    @property
    def call_count(self) -> int:
        with self._lock:
            return len(self.calls)

    def commands(self) -> list[str]:
        """Return each recorded call as a single space-joined string."""

        with self._lock:
            return [" ".join(call.argv) for call in self.calls]

    def run_unchecked(self, program: str, args: Sequence[str]) -> ExecResult:
        return self._record(ExecCall(program=program, args=tuple(args)))

    def run_in_with_env(
        self,
        cwd: Path,
        program: str,
        args: Sequence[str],
        env: Mapping[str, str],
    ) -> ExecResult:
        call = ExecCall(program=program, args=tuple(args), cwd=cwd, env=tuple(sorted(env.items())))
        return _check(self._record(call), program, args)

    def which_path(self, program: str) -> str | None:
        if self.available is None or program in self.available:
            return f"/usr/bin/{program}"
        return None

    def _record(self, call: ExecCall) -> ExecResult:
        with self._lock:
            self.calls.append(call)
            if self._responses:
                return self._responses.popleft()
        return ExecResult(stdout="", stderr="", code=0)
