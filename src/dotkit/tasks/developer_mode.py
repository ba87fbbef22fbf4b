from __future__ import annotations

from ..context import Context
from ..models import TaskResult
from ..processing import ProcessOpts, process_resources
from ..resources.registry import RegistryResource
from .base import Task

APP_MODEL_UNLOCK_KEY = "HKLM:\\SOFTWARE\\Microsoft\\Windows\\CurrentVersion\\AppModelUnlock"
DEVELOPER_MODE_VALUE = "AllowDevelopmentWithoutDevLicense"


class EnableDeveloperMode(Task):
    """Turn on Windows Developer Mode so unprivileged users can create symlinks."""

    name = "Enable developer mode"
    task_id = "developer-mode"

    def should_run(self, ctx: Context) -> bool:
        return ctx.platform.is_windows

    def run(self, ctx: Context) -> TaskResult:
        resource = RegistryResource(APP_MODEL_UNLOCK_KEY, DEVELOPER_MODE_VALUE, "1", ctx.executor)
        return process_resources(ctx, [resource], ProcessOpts.apply_all("enable").no_bail())
