from __future__ import annotations

from ..context import Context
from ..exec import ExecError
from ..models import TaskResult
from ..processing import ProcessOpts, process_resources
from ..resources.systemd_unit import SystemdUnitResource
from .base import Task


class ConfigureSystemd(Task):
    """Enable and start the configured units once their unit files are linked."""

    name = "Configure systemd units"
    task_id = "systemd"
    dependencies = ("symlinks", "packages")

    def should_run(self, ctx: Context) -> bool:
        return (
            ctx.platform.supports_systemd()
            and bool(ctx.config.systemd_units)
            and ctx.executor.which("systemctl")
        )

    def run(self, ctx: Context) -> TaskResult:
        if not ctx.dry_run:
            try:
                ctx.executor.run("systemctl", ["--user", "daemon-reload"])
            except ExecError as exc:
                ctx.log.debug(f"daemon-reload failed: {exc}")

        resources = [
            SystemdUnitResource(unit.name, ctx.executor, scope=unit.scope) for unit in ctx.config.systemd_units
        ]
        return process_resources(ctx, resources, ProcessOpts.install_missing("enable"))
