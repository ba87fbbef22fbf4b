"""Generic check-then-apply driver shared by every resource-backed task."""

from __future__ import annotations

import os
import threading
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, replace
from typing import Callable, Iterable, TypeVar

from .context import Context
from .models import ChangeKind, ResourceState, StateKind, TaskResult, TaskStats
from .resources.base import Resource, ResourceError

T = TypeVar("T")


@dataclass(frozen=True, slots=True)
class ProcessOpts:
    """How a batch reacts to each resource state.

    ``verb`` is used in log lines ("would link: ...", "failed to link ...").
    """

    verb: str
    fix_incorrect: bool = True
    fix_missing: bool = True
    bail_on_error: bool = True

    @classmethod
    def apply_all(cls, verb: str) -> "ProcessOpts":
        return cls(verb)

    @classmethod
    def install_missing(cls, verb: str) -> "ProcessOpts":
        return cls(verb, fix_incorrect=False, fix_missing=True, bail_on_error=False)

    def no_bail(self) -> "ProcessOpts":
        return replace(self, bail_on_error=False)

    def skip_missing(self) -> "ProcessOpts":
        return replace(self, fix_missing=False)


def process_resources(ctx: Context, resources: Iterable[Resource], opts: ProcessOpts) -> TaskResult:
    """Check each resource and fix the ones in scope of ``opts``."""

    def work(resource: Resource) -> TaskStats:
        return process_single(ctx, resource, resource.current_state(), opts)

    return finish(ctx, _run_batch(ctx, list(resources), work))


def process_resource_states(
    ctx: Context,
    resource_states: Iterable[tuple[Resource, ResourceState]],
    opts: ProcessOpts,
) -> TaskResult:
    """Like ``process_resources`` for states that were already queried in bulk."""

    def work(item: tuple[Resource, ResourceState]) -> TaskStats:
        resource, state = item
        return process_single(ctx, resource, state, opts)

    return finish(ctx, _run_batch(ctx, list(resource_states), work))


def process_resources_remove(ctx: Context, resources: Iterable[Resource], verb: str) -> TaskResult:
    """Remove every resource that is currently in its desired state."""

    def work(resource: Resource) -> TaskStats:
        return remove_single(ctx, resource, resource.current_state(), verb)

    return finish(ctx, _run_batch(ctx, list(resources), work))


def finish(ctx: Context, stats: TaskStats) -> TaskResult:
    """Log the batch summary and turn it into a task result."""

    ctx.log.info(stats.summary(ctx.dry_run))
    if ctx.dry_run and stats.changed:
        return TaskResult.dry_run(stats)
    return TaskResult.ok(stats)


def process_single(ctx: Context, resource: Resource, state: ResourceState, opts: ProcessOpts) -> TaskStats:
    desc = resource.description()

    if state.kind is StateKind.CORRECT:
        ctx.log.debug(f"ok: {desc}")
        return TaskStats(already_ok=1)
    if state.kind is StateKind.INVALID:
        ctx.log.debug(f"skipping {desc}: {state.detail}")
        return TaskStats(skipped=1)
    if (state.kind is StateKind.MISSING and not opts.fix_missing) or (
        state.kind is StateKind.INCORRECT and not opts.fix_incorrect
    ):
        ctx.log.debug(f"skipping {desc}: not in fix scope")
        return TaskStats(skipped=1)

    if ctx.dry_run:
        if state.kind is StateKind.INCORRECT:
            ctx.log.dry_run(f"would {opts.verb} {desc} (currently {state.detail})")
        else:
            ctx.log.dry_run(f"would {opts.verb}: {desc}")
        return TaskStats(changed=1)

    return apply_resource(ctx, resource, opts)


def apply_resource(ctx: Context, resource: Resource, opts: ProcessOpts) -> TaskStats:
    desc = resource.description()
    try:
        change = resource.apply()
    except Exception as exc:
        if opts.bail_on_error:
            raise
        ctx.log.warn(f"failed to {opts.verb} {desc}: {exc}")
        return TaskStats(skipped=1, failed=1)

    if change.kind is ChangeKind.APPLIED:
        ctx.log.debug(f"{opts.verb}: {desc}")
        return TaskStats(changed=1)
    if change.kind is ChangeKind.ALREADY_CORRECT:
        return TaskStats(already_ok=1)

    message = f"failed to {opts.verb} {desc}: {change.reason}"
    if opts.bail_on_error:
        raise ResourceError(message)
    ctx.log.warn(message)
    return TaskStats(skipped=1, failed=1)


def remove_single(ctx: Context, resource: Resource, state: ResourceState, verb: str) -> TaskStats:
    desc = resource.description()
    if state.kind is not StateKind.CORRECT:
        ctx.log.debug(f"skipping {desc}: not installed")
        return TaskStats(skipped=1)
    if ctx.dry_run:
        ctx.log.dry_run(f"would {verb}: {desc}")
        return TaskStats(changed=1)
    resource.remove()
    ctx.log.debug(f"{verb}: {desc}")
    return TaskStats(changed=1)


def worker_count(items: int) -> int:
    return max(1, min(items, os.cpu_count() or 1))


def _run_batch(ctx: Context, items: list[T], work: Callable[[T], TaskStats]) -> TaskStats:
    total = TaskStats()
    if not ctx.parallel or len(items) <= 1:
        for item in items:
            total += work(item)
        return total

    ctx.log.debug(f"processing {len(items)} resources in parallel")
    lock = threading.Lock()
    errors: list[Exception] = []

    def guarded(item: T) -> TaskStats | None:
        # Once one item has failed, items that have not started yet are dropped.
        with lock:
            if errors:
                return None
        try:
            return work(item)
        except Exception as exc:
            with lock:
                errors.append(exc)
            return None

    with ThreadPoolExecutor(max_workers=worker_count(len(items))) as pool:
        for delta in pool.map(guarded, items):
            if delta is not None:
                total += delta

    if errors:
        raise errors[0]
    return total
