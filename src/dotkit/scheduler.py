"""Dependency-aware task scheduling."""

from __future__ import annotations

from concurrent.futures import FIRST_COMPLETED, Future, ThreadPoolExecutor, wait
from typing import Iterable, Sequence

from .context import Context
from .graph import dependency_indices, dependents_of, topological_order
from .logger import BufferedLog, Logger
from .processing import worker_count
from .tasks.base import Task, execute


class TaskFailuresError(RuntimeError):
    """Raised after a run in which at least one task failed."""

    def __init__(self, count: int) -> None:
        super().__init__(f"{count} task(s) failed")
        self.count = count


def run_tasks(tasks: Iterable[Task], ctx: Context, log: Logger) -> int:
    """Run ``tasks`` to completion, print the summary and return the failure count.

    ``ctx.log`` should be ``log``; in parallel mode each task gets its own
    buffered view of it.
    """

    tasks = list(tasks)
    order = topological_order(tasks)

    if order is None:
        log.warn("dependency cycle detected; falling back to sequential execution")
        _run_sequential(tasks, range(len(tasks)), ctx)
    elif ctx.parallel and len(tasks) > 1:
        _run_parallel(tasks, ctx, log)
    else:
        _run_sequential(tasks, order, ctx)

    log.print_summary()
    return log.failure_count()


def run_tasks_to_completion(tasks: Iterable[Task], ctx: Context, log: Logger) -> None:
    """Like ``run_tasks`` but raise ``TaskFailuresError`` when any task failed."""

    failures = run_tasks(tasks, ctx, log)
    if failures:
        raise TaskFailuresError(failures)


def _run_sequential(tasks: Sequence[Task], order: Iterable[int], ctx: Context) -> None:
    for index in order:
        execute(tasks[index], ctx)


def _run_buffered(task: Task, ctx: Context, buffer: BufferedLog) -> None:
    try:
        execute(task, ctx.with_log(buffer))
    finally:
        buffer.flush()


def _run_parallel(tasks: Sequence[Task], ctx: Context, log: Logger) -> None:
    deps = dependency_indices(tasks)
    dependents = dependents_of(deps)
    remaining = [len(required) for required in deps]
    log.debug(f"running {len(tasks)} tasks in parallel")

    # Only this thread touches `remaining` and `running`; workers just run tasks.
    with ThreadPoolExecutor(max_workers=worker_count(len(tasks))) as pool:
        running: dict[Future[None], int] = {}

        def submit(index: int) -> None:
            future = pool.submit(_run_buffered, tasks[index], ctx, log.buffered())
            running[future] = index

        for index, count in enumerate(remaining):
            if count == 0:
                submit(index)

        while running:
            done, _ = wait(running, return_when=FIRST_COMPLETED)
            for future in sorted(done, key=running.__getitem__):
                index = running.pop(future)
                future.result()
                for dependent in dependents[index]:
                    remaining[dependent] -= 1
                    if remaining[dependent] == 0:
                        submit(dependent)
