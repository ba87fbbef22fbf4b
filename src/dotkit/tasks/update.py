"""Fast-forward the dotfiles checkout before anything is linked from it."""

from __future__ import annotations

from ..context import Context
from ..exec import ExecError
from ..models import TaskResult
from .base import Task


def _git(ctx: Context, *args: str) -> str:
    env = {"HOME": str(ctx.home), "GIT_CONFIG_NOSYSTEM": "1"}
    return ctx.executor.run_in_with_env(ctx.root, "git", list(args), env).stdout.strip()


class UpdateRepository(Task):
    name = "Update repository"
    task_id = "update"

    def should_run(self, ctx: Context) -> bool:
        return (ctx.root / ".git").exists() and ctx.executor.which("git")

    def run(self, ctx: Context) -> TaskResult:
        try:
            _git(ctx, "symbolic-ref", "--quiet", "HEAD")
        except ExecError:
            return TaskResult.skipped("detached HEAD")

        try:
            staged = _git(ctx, "diff", "--cached", "--name-only")
        except ExecError as exc:
            ctx.log.debug(f"could not list staged changes: {exc}")
            staged = ""
        if staged:
            ctx.log.warn("staged changes present; commit or stash them before updating")
            return TaskResult.skipped("staged changes present")

        if ctx.dry_run:
            try:
                up_to_date = _git(ctx, "rev-parse", "HEAD") == _git(ctx, "rev-parse", "@{u}")
            except ExecError as exc:
                ctx.log.debug(f"could not compare with upstream: {exc}")
                up_to_date = False
            if up_to_date:
                ctx.log.info("already up to date")
                return TaskResult.ok()
            ctx.log.dry_run("git pull")
            return TaskResult.dry_run()

        try:
            output = _git(ctx, "pull", "--ff-only")
        except ExecError as exc:
            ctx.log.warn(f"git pull failed: {exc}")
            return TaskResult.skipped("git pull failed")

        if "Already up to date" in output:
            ctx.log.info("already up to date")
        else:
            ctx.log.info("repository updated")
        return TaskResult.ok()
