"""Task contract and single-task execution."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import ClassVar

from ..context import Context
from ..models import ResultKind, TaskResult, TaskStatus


class Task(ABC):
    """One provisioning step.

    ``task_id`` is the key other tasks list in ``dependencies``; ids that are
    not part of the current run are ignored by the scheduler.
    """

    name: ClassVar[str]
    task_id: ClassVar[str]
    dependencies: ClassVar[tuple[str, ...]] = ()

    @abstractmethod
    def should_run(self, ctx: Context) -> bool:
        """Return ``True`` when the task applies to this host and configuration."""

    @abstractmethod
    def run(self, ctx: Context) -> TaskResult:
        ...

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self.task_id}>"


def execute(task: Task, ctx: Context) -> TaskStatus:
    """Run ``task`` and record its outcome on ``ctx.log``.

    Errors raised by the predicate or the task body are logged and recorded
    as failures; they never propagate.
    """

    log = ctx.log
    try:
        if not task.should_run(ctx):
            log.debug(f"skipping task: {task.name} (not applicable)")
            log.record_task(task.name, TaskStatus.NOT_APPLICABLE)
            return TaskStatus.NOT_APPLICABLE

        log.stage(task.name)
        result = task.run(ctx)
    except Exception as exc:  # noqa: BLE001
        log.error(f"{task.name}: {exc}")
        log.record_task(task.name, TaskStatus.FAILED, str(exc))
        return TaskStatus.FAILED

    if result.kind is ResultKind.SKIPPED:
        log.info(f"skipped: {result.reason}")
        log.record_task(task.name, TaskStatus.SKIPPED, result.reason)
        return TaskStatus.SKIPPED

    status = TaskStatus.DRY_RUN if result.kind is ResultKind.DRY_RUN else TaskStatus.OK
    details = result.stats.summary(ctx.dry_run) if result.stats is not None else None
    log.record_task(task.name, status, details)
    return status
