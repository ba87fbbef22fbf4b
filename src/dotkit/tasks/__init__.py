"""Provisioning tasks and the ordered task lists for each command."""

from __future__ import annotations

from typing import Iterable, Sequence

from .base import Task, execute
from .chmod import ApplyFilePermissions
from .developer_mode import EnableDeveloperMode
from .git_config import ConfigureGit
from .hooks import InstallGitHooks, UninstallGitHooks
from .packages import InstallAurPackages, InstallPackages, InstallParu
from .registry import ApplyRegistry
from .shell import ConfigureShell
from .symlinks import InstallSymlinks, UninstallSymlinks
from .systemd import ConfigureSystemd
from .update import UpdateRepository
from .vscode import InstallVsCodeExtensions

__all__ = [
    "Task",
    "execute",
    "all_install_tasks",
    "all_uninstall_tasks",
    "select_tasks",
]


def all_install_tasks() -> list[Task]:
    """Return the install tasks in registration order."""

    return [
        EnableDeveloperMode(),
        UpdateRepository(),
        ConfigureGit(),
        InstallGitHooks(),
        InstallPackages(),
        InstallParu(),
        InstallAurPackages(),
        InstallSymlinks(),
        ApplyFilePermissions(),
        ConfigureShell(),
        ConfigureSystemd(),
        ApplyRegistry(),
        InstallVsCodeExtensions(),
    ]


def all_uninstall_tasks() -> list[Task]:
    return [UninstallSymlinks(), UninstallGitHooks()]


def select_tasks(tasks: Iterable[Task], *, only: Sequence[str] = (), skip: Sequence[str] = ()) -> list[Task]:
    """Filter ``tasks`` by case-insensitive name fragments.

    ``only`` keeps tasks matching any fragment and takes precedence over ``skip``.
    """

    only_lower = [fragment.lower() for fragment in only if fragment]
    skip_lower = [fragment.lower() for fragment in skip if fragment]
    selected: list[Task] = []
    for task in tasks:
        name = task.name.lower()
        if only_lower:
            if any(fragment in name for fragment in only_lower):
                selected.append(task)
        elif not any(fragment in name for fragment in skip_lower):
            selected.append(task)
    return selected
