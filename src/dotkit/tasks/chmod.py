from __future__ import annotations

from ..context import Context
from ..models import TaskResult
from ..processing import ProcessOpts, process_resources
from ..resources.chmod import ChmodResource
from .base import Task


class ApplyFilePermissions(Task):
    name = "Apply file permissions"
    task_id = "chmod"
    dependencies = ("symlinks",)

    def should_run(self, ctx: Context) -> bool:
        return ctx.platform.supports_chmod() and bool(ctx.config.chmod)

    def run(self, ctx: Context) -> TaskResult:
        resources = [ChmodResource.from_entry(entry, ctx.home) for entry in ctx.config.chmod]
        # A missing target is reported as invalid, never created.
        return process_resources(ctx, resources, ProcessOpts.apply_all("chmod").skip_missing())
