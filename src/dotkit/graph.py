"""Dependency graph over an ordered task list.

Nodes are positions in the list. Edges come from each task's declared
``dependencies``; ids that match no task in the list are dropped.
"""

from __future__ import annotations

import heapq
from typing import TYPE_CHECKING, Sequence

if TYPE_CHECKING:
    from .tasks.base import Task


def dependency_indices(tasks: Sequence["Task"]) -> list[set[int]]:
    """Return, for each task, the positions of the tasks it waits on."""

    positions: dict[str, int] = {}
    for index, task in enumerate(tasks):
        positions.setdefault(task.task_id, index)
    return [{positions[dep] for dep in task.dependencies if dep in positions} for task in tasks]


def dependents_of(deps: Sequence[set[int]]) -> list[list[int]]:
    dependents: list[list[int]] = [[] for _ in deps]
    for index, required in enumerate(deps):
        for dep in sorted(required):
            dependents[dep].append(index)
    return dependents


def topological_order(tasks: Sequence["Task"]) -> list[int] | None:
    """Kahn's algorithm, always taking the earliest-registered ready task.

    Returns ``None`` when the graph has a cycle. When the registration order
    already satisfies every dependency, it is returned unchanged.
    """

    deps = dependency_indices(tasks)
    dependents = dependents_of(deps)
    remaining = [len(required) for required in deps]
    ready = [index for index, count in enumerate(remaining) if count == 0]
    heapq.heapify(ready)

    order: list[int] = []
    while ready:
        index = heapq.heappop(ready)
        order.append(index)
        for dependent in dependents[index]:
            remaining[dependent] -= 1
            if remaining[dependent] == 0:
                heapq.heappush(ready, dependent)

    if len(order) != len(tasks):
        return None
    return order


def has_cycle(tasks: Sequence["Task"]) -> bool:
    return topological_order(tasks) is None
