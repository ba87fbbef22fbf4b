"""Link dotfiles into the home directory, and undo it on uninstall."""

from __future__ import annotations

from ..context import Context
from ..models import TaskResult
from ..processing import ProcessOpts, process_resources, process_resources_remove
from ..resources.symlink import SymlinkResource
from .base import Task


def build_resources(ctx: Context) -> list[SymlinkResource]:
    symlinks_dir = ctx.config.symlinks_dir
    return [SymlinkResource.from_entry(entry, symlinks_dir, ctx.home) for entry in ctx.config.symlinks]


class InstallSymlinks(Task):
    name = "Install symlinks"
    task_id = "symlinks"
    dependencies = ("update", "developer-mode")

    def should_run(self, ctx: Context) -> bool:
        return bool(ctx.config.symlinks)

    def run(self, ctx: Context) -> TaskResult:
        return process_resources(ctx, build_resources(ctx), ProcessOpts.apply_all("link"))


class UninstallSymlinks(Task):
    name = "Remove symlinks"
    task_id = "uninstall-symlinks"

    def should_run(self, ctx: Context) -> bool:
        return bool(ctx.config.symlinks)

    def run(self, ctx: Context) -> TaskResult:
        return process_resources_remove(ctx, build_resources(ctx), "unlink")
