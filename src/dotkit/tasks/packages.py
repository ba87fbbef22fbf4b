"""System and AUR package installation."""

from __future__ import annotations

import os
import tempfile
from pathlib import Path

from ..config import PackageEntry
from ..context import Context
from ..filesystem import remove_path
from ..models import TaskResult, TaskStats
from ..processing import ProcessOpts, finish, process_resource_states
from ..resources.base import ResourceError
from ..resources.package import PackageManager, PackageResource, batch_install, installed_packages
from .base import Task

PARU_AUR_URL = "https://aur.archlinux.org/paru-bin.git"
PARU_PREREQUISITES = ("git", "makepkg", "sudo")


def process_packages(ctx: Context, packages: list[PackageEntry], manager: PackageManager) -> TaskResult:
    """Query installed packages once, then install whatever is missing."""

    ctx.log.debug(f"batch-checking {len(packages)} packages with a single query")
    installed = installed_packages(manager, ctx.executor)
    resources = [PackageResource(pkg.name, manager, ctx.executor) for pkg in packages]

    if manager is PackageManager.WINGET:
        states = [(resource, resource.state_from_installed(installed)) for resource in resources]
        return process_resource_states(ctx, states, ProcessOpts.apply_all("install").no_bail())

    missing: list[PackageResource] = []
    already_ok = 0
    for resource in resources:
        if resource.name in installed:
            ctx.log.debug(f"ok: {resource.description()}")
            already_ok += 1
        else:
            missing.append(resource)

    if missing and ctx.dry_run:
        for resource in missing:
            ctx.log.dry_run(f"would install: {resource.description()}")
        return finish(ctx, TaskStats(changed=len(missing), already_ok=already_ok))

    if missing:
        ctx.log.debug(f"batch-installing {len(missing)} packages")
        try:
            batch_install(missing)
        except Exception as exc:  # noqa: BLE001
            ctx.log.warn(f"batch install failed: {exc}")
            return finish(ctx, TaskStats(already_ok=already_ok, skipped=len(missing), failed=len(missing)))

    return finish(ctx, TaskStats(changed=len(missing), already_ok=already_ok))


class InstallPackages(Task):
    name = "Install packages"
    task_id = "packages"

    def should_run(self, ctx: Context) -> bool:
        return any(not pkg.aur for pkg in ctx.config.packages)

    def run(self, ctx: Context) -> TaskResult:
        packages = [pkg for pkg in ctx.config.packages if not pkg.aur]
        manager = PackageManager.PACMAN if ctx.platform.is_linux else PackageManager.WINGET
        ctx.log.debug(f"using {manager.value} package manager")
        if not ctx.executor.which(manager.value):
            return TaskResult.skipped(f"{manager.value} not found")
        return process_packages(ctx, packages, manager)


class InstallParu(Task):
    """Bootstrap the paru AUR helper from its ``-bin`` package."""

    name = "Install paru"
    task_id = "paru"
    dependencies = ("packages",)

    def should_run(self, ctx: Context) -> bool:
        return ctx.platform.uses_pacman() and any(pkg.aur for pkg in ctx.config.packages)

    def run(self, ctx: Context) -> TaskResult:
        if ctx.executor.which("paru"):
            ctx.log.info("paru already installed")
            return TaskResult.ok()

        if ctx.dry_run:
            ctx.log.dry_run("install paru from AUR (paru-bin)")
            return TaskResult.dry_run()

        for program in PARU_PREREQUISITES:
            if not ctx.executor.which(program):
                raise ResourceError(f"missing prerequisite: {program}")

        build_dir = Path(tempfile.mkdtemp(prefix="paru-build-"))
        try:
            ctx.log.debug("cloning paru-bin from AUR")
            ctx.executor.run("git", ["clone", PARU_AUR_URL, str(build_dir)])

            makeflags = f"-j{os.cpu_count() or 4}"
            ctx.log.debug(f"building with MAKEFLAGS={makeflags}")
            ctx.executor.run_in_with_env(build_dir, "makepkg", ["-si", "--noconfirm"], {"MAKEFLAGS": makeflags})
        finally:
            try:
                remove_path(build_dir)
            except OSError as exc:
                ctx.log.warn(f"failed to remove paru build directory {build_dir}: {exc}")
        ctx.log.info("paru installed successfully")
        return TaskResult.ok()


class InstallAurPackages(Task):
    name = "Install AUR packages"
    task_id = "aur-packages"
    dependencies = ("paru", "packages")

    def should_run(self, ctx: Context) -> bool:
        return ctx.platform.supports_aur() and any(pkg.aur for pkg in ctx.config.packages)

    def run(self, ctx: Context) -> TaskResult:
        if not ctx.executor.which("paru"):
            return TaskResult.skipped("paru not installed")
        packages = [pkg for pkg in ctx.config.packages if pkg.aur]
        return process_packages(ctx, packages, PackageManager.PARU)
