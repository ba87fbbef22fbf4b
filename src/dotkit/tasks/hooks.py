"""Install the checkout's own git hooks, and remove them on uninstall."""

from __future__ import annotations

from pathlib import Path

from ..context import Context
from ..models import TaskResult
from ..processing import ProcessOpts, process_resources, process_resources_remove
from ..resources.hook import HookFileResource
from .base import Task


def discover_hooks(hooks_dir: Path, git_hooks_dir: Path) -> list[HookFileResource]:
    """Pair every extension-less file in ``hooks_dir`` with its ``.git/hooks`` target."""

    if not hooks_dir.is_dir():
        return []
    return [
        HookFileResource(path, git_hooks_dir / path.name)
        for path in sorted(hooks_dir.iterdir())
        if path.is_file() and not path.suffix
    ]


def _git_hooks_dir(ctx: Context) -> Path:
    return ctx.root / ".git" / "hooks"


class InstallGitHooks(Task):
    name = "Install git hooks"
    task_id = "git-hooks"
    dependencies = ("update",)

    def should_run(self, ctx: Context) -> bool:
        return ctx.config.hooks_dir.is_dir() and (ctx.root / ".git").exists()

    def run(self, ctx: Context) -> TaskResult:
        resources = discover_hooks(ctx.config.hooks_dir, _git_hooks_dir(ctx))
        return process_resources(ctx, resources, ProcessOpts.apply_all("install hook"))


class UninstallGitHooks(Task):
    name = "Remove git hooks"
    task_id = "uninstall-git-hooks"

    def should_run(self, ctx: Context) -> bool:
        return ctx.config.hooks_dir.is_dir() and _git_hooks_dir(ctx).is_dir()

    def run(self, ctx: Context) -> TaskResult:
        resources = discover_hooks(ctx.config.hooks_dir, _git_hooks_dir(ctx))
        return process_resources_remove(ctx, resources, "remove hook")
