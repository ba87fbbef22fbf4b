from __future__ import annotations

from ..context import Context
from ..models import TaskResult
from ..processing import ProcessOpts, process_resources
from ..resources.git_config import GitConfigResource
from .base import Task


class ConfigureGit(Task):
    name = "Configure git"
    task_id = "git-config"
    dependencies = ("packages",)

    def should_run(self, ctx: Context) -> bool:
        return bool(ctx.config.git_settings)

    def run(self, ctx: Context) -> TaskResult:
        if not ctx.executor.which("git"):
            return TaskResult.skipped("git not found")
        resources = [GitConfigResource(s.key, s.value, ctx.executor) for s in ctx.config.git_settings]
        return process_resources(ctx, resources, ProcessOpts.apply_all("set git config"))
