from __future__ import annotations

import os

from ..context import Context
from ..models import TaskResult
from ..processing import ProcessOpts, process_resources
from ..resources.shell import DefaultShellResource
from .base import Task

TARGET_SHELL = "zsh"


class ConfigureShell(Task):
    """Make zsh the login shell once the package step has had a chance to install it."""

    name = "Configure default shell"
    task_id = "shell"
    dependencies = ("packages",)

    def should_run(self, ctx: Context) -> bool:
        # chsh prompts for a password, which CI runners cannot answer.
        return ctx.platform.is_linux and ctx.executor.which(TARGET_SHELL) and "CI" not in os.environ

    def run(self, ctx: Context) -> TaskResult:
        resource = DefaultShellResource(TARGET_SHELL, ctx.executor)
        return process_resources(ctx, [resource], ProcessOpts.apply_all("configure"))
