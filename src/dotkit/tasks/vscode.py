from __future__ import annotations

from ..context import Context
from ..models import TaskResult
from ..processing import ProcessOpts, process_resource_states
from ..resources.vscode_extension import VsCodeExtensionResource, find_code_command, installed_extensions
from .base import Task


class InstallVsCodeExtensions(Task):
    name = "Install VS Code extensions"
    task_id = "vscode"
    dependencies = ("symlinks", "packages")

    def should_run(self, ctx: Context) -> bool:
        return bool(ctx.config.vscode_extensions)

    def run(self, ctx: Context) -> TaskResult:
        command = find_code_command(ctx.executor)
        if command is None:
            ctx.log.debug("neither code-insiders nor code found in PATH")
            return TaskResult.skipped("VS Code CLI not found")

        ctx.log.debug(f"using VS Code CLI: {command}")
        installed = installed_extensions(command, ctx.executor)
        states = []
        for extension in ctx.config.vscode_extensions:
            resource = VsCodeExtensionResource(extension.id, command, ctx.executor)
            states.append((resource, resource.state_from_installed(installed)))
        return process_resource_states(ctx, states, ProcessOpts.install_missing("install extension"))
