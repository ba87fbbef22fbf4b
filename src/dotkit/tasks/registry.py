from __future__ import annotations

from ..context import Context
from ..models import TaskResult
from ..processing import ProcessOpts, process_resource_states
from ..resources.registry import RegistryResource, batch_check_values
from .base import Task


class ApplyRegistry(Task):
    name = "Apply registry settings"
    task_id = "registry"

    def should_run(self, ctx: Context) -> bool:
        return ctx.platform.has_registry() and bool(ctx.config.registry)

    def run(self, ctx: Context) -> TaskResult:
        resources = [RegistryResource.from_entry(entry, ctx.executor) for entry in ctx.config.registry]
        ctx.log.debug(f"batch-checking {len(resources)} registry values in a single PowerShell call")
        current = batch_check_values(resources, ctx.executor)
        states = [(resource, resource.state_from_value(current.get(resource.key))) for resource in resources]
        return process_resource_states(ctx, states, ProcessOpts.apply_all("set registry").no_bail())
