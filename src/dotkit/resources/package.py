"""System packages installed through pacman, paru or winget."""

from __future__ import annotations

from enum import Enum
from typing import Iterable

from ..exec import Executor
from ..models import ResourceChange, ResourceState
from .base import Resource, ResourceError

PACMAN_INSTALL = ("-S", "--needed", "--noconfirm")
WINGET_AGREEMENTS = ("--accept-source-agreements",)


class PackageManager(str, Enum):
    PACMAN = "pacman"
    PARU = "paru"
    WINGET = "winget"


def installed_packages(manager: PackageManager, executor: Executor) -> set[str]:
    """Query every installed package in one call.

    pacman lists ``name version`` per line; winget prints a table, so every
    token is kept and ids are matched by membership.
    """

    if manager is PackageManager.WINGET:
        result = executor.run_unchecked("winget", ["list", *WINGET_AGREEMENTS, "--disable-interactivity"])
        if not result.success:
            return set()
        return {token for line in result.stdout.splitlines() for token in line.split()}

    result = executor.run_unchecked("pacman", ["-Q"])
    if not result.success:
        return set()
    return {line.split()[0] for line in result.stdout.splitlines() if line.split()}


class PackageResource(Resource):
    def __init__(self, name: str, manager: PackageManager, executor: Executor) -> None:
        self.name = name
        self.manager = manager
        self.executor = executor

    def description(self) -> str:
        return f"{self.name} ({self.manager.value})"

    def state_from_installed(self, installed: set[str]) -> ResourceState:
        return ResourceState.correct() if self.name in installed else ResourceState.missing()

    def current_state(self) -> ResourceState:
        if self.manager is PackageManager.WINGET:
            result = self.executor.run_unchecked(
                "winget", ["list", "--id", self.name, "--exact", *WINGET_AGREEMENTS]
            )
            found = result.success and self.name in result.stdout
        else:
            found = self.executor.run_unchecked("pacman", ["-Q", self.name]).success
        return ResourceState.correct() if found else ResourceState.missing()

    def apply(self) -> ResourceChange:
        if self.manager is PackageManager.PACMAN:
            self.executor.run("sudo", ["pacman", *PACMAN_INSTALL, self.name])
            return ResourceChange.applied()
        if self.manager is PackageManager.PARU:
            self.executor.run("paru", [*PACMAN_INSTALL, self.name])
            return ResourceChange.applied()

        result = self.executor.run_unchecked(
            "winget",
            [
                "install",
                "--id",
                self.name,
                "--exact",
                "--source",
                "winget",
                *WINGET_AGREEMENTS,
                "--accept-package-agreements",
            ],
        )
        if result.success:
            return ResourceChange.applied()
        detail = "\n".join(part for part in (result.stdout.strip(), result.stderr.strip()) if part)
        return ResourceChange.skipped(f"winget install failed: {detail}")


def batch_install(resources: Iterable[PackageResource]) -> None:
    """Install missing pacman and paru packages with one command per manager.

    winget has no batch mode; its packages go through ``apply`` one at a time.
    """

    resources = list(resources)
    if not resources:
        return
    executor = resources[0].executor

    unbatched = [r.name for r in resources if r.manager is PackageManager.WINGET]
    if unbatched:
        raise ResourceError(f"winget packages cannot be batch-installed: {', '.join(unbatched)}")

    pacman = [r.name for r in resources if r.manager is PackageManager.PACMAN]
    if pacman:
        executor.run("sudo", ["pacman", *PACMAN_INSTALL, *pacman])

    paru = [r.name for r in resources if r.manager is PackageManager.PARU]
    if paru:
        executor.run("paru", [*PACMAN_INSTALL, *paru])
