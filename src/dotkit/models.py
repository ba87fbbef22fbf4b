"""Shared models and enums for dotkit."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class StateKind(str, Enum):
    """Observed condition of a resource."""

    MISSING = "missing"
    CORRECT = "correct"
    INCORRECT = "incorrect"
    INVALID = "invalid"


@dataclass(frozen=True, slots=True)
class ResourceState:
    """State of a resource, with the current value or the invalid reason in ``detail``."""

    kind: StateKind
    detail: str | None = None

    @classmethod
    def missing(cls) -> "ResourceState":
        return cls(StateKind.MISSING)

    @classmethod
    def correct(cls) -> "ResourceState":
        return cls(StateKind.CORRECT)

    @classmethod
    def incorrect(cls, current: str) -> "ResourceState":
        return cls(StateKind.INCORRECT, current)

    @classmethod
    def invalid(cls, reason: str) -> "ResourceState":
        return cls(StateKind.INVALID, reason)

    @property
    def actionable(self) -> bool:
        return self.kind in (StateKind.MISSING, StateKind.INCORRECT)


class ChangeKind(str, Enum):
    """What happened when a resource was applied."""

    APPLIED = "applied"
    ALREADY_CORRECT = "already_correct"
    SKIPPED = "skipped"


@dataclass(frozen=True, slots=True)
class ResourceChange:
    kind: ChangeKind
    reason: str | None = None

    @classmethod
    def applied(cls) -> "ResourceChange":
        return cls(ChangeKind.APPLIED)

    @classmethod
    def already_correct(cls) -> "ResourceChange":
        return cls(ChangeKind.ALREADY_CORRECT)

    @classmethod
    def skipped(cls, reason: str) -> "ResourceChange":
        return cls(ChangeKind.SKIPPED, reason)


@dataclass(frozen=True, slots=True)
class TaskStats:
    """Per-batch counters.

    ``failed`` counts apply errors that were downgraded to warnings; those are
    also included in ``skipped``.
    """

    changed: int = 0
    already_ok: int = 0
    skipped: int = 0
    failed: int = 0

    def __add__(self, other: "TaskStats") -> "TaskStats":
        return TaskStats(
            changed=self.changed + other.changed,
            already_ok=self.already_ok + other.already_ok,
            skipped=self.skipped + other.skipped,
            failed=self.failed + other.failed,
        )

    @property
    def total(self) -> int:
        return self.changed + self.already_ok + self.skipped

    def summary(self, dry_run: bool) -> str:
        verb = "would change" if dry_run else "changed"
        text = f"{self.changed} {verb}, {self.already_ok} already ok"
        if self.skipped:
            text += f", {self.skipped} skipped"
        return text


class ResultKind(str, Enum):
    OK = "ok"
    SKIPPED = "skipped"
    DRY_RUN = "dry_run"


@dataclass(frozen=True, slots=True)
class TaskResult:
    """Value returned by a task body."""

    kind: ResultKind
    reason: str | None = None
    stats: TaskStats | None = None

    @classmethod
    def ok(cls, stats: TaskStats | None = None) -> "TaskResult":
        return cls(ResultKind.OK, stats=stats)

    @classmethod
    def skipped(cls, reason: str) -> "TaskResult":
        return cls(ResultKind.SKIPPED, reason=reason)

    @classmethod
    def dry_run(cls, stats: TaskStats | None = None) -> "TaskResult":
        return cls(ResultKind.DRY_RUN, stats=stats)


class TaskStatus(str, Enum):
    """Recorded outcome of a task in one run."""

    OK = "ok"
    NOT_APPLICABLE = "not_applicable"
    SKIPPED = "skipped"
    DRY_RUN = "dry_run"
    FAILED = "failed"


@dataclass(frozen=True, slots=True)
class TaskEntry:
    """One row of the run summary."""

    name: str
    status: TaskStatus
    message: str | None = None
