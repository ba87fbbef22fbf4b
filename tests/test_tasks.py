from __future__ import annotations

import io
from pathlib import Path

import pytest

from dotkit.config import (
    ChmodEntry,
    GitSetting,
    PackageEntry,
    RegistryEntry,
    SymlinkEntry,
    SystemdUnitEntry,
    VsCodeExtensionEntry,
)
from dotkit.exec import ExecError, RecordingExecutor
from dotkit.logger import Logger
from dotkit.models import ResultKind, TaskStats, TaskStatus
from dotkit.platform import Os, Platform
from dotkit.resources.base import ResourceError
from dotkit.tasks import all_install_tasks, all_uninstall_tasks, execute, select_tasks
from dotkit.tasks.chmod import ApplyFilePermissions
from dotkit.tasks.developer_mode import EnableDeveloperMode
from dotkit.tasks.git_config import ConfigureGit
from dotkit.tasks.hooks import InstallGitHooks, UninstallGitHooks, discover_hooks
from dotkit.tasks.packages import PARU_AUR_URL, InstallAurPackages, InstallPackages, InstallParu
from dotkit.tasks.registry import ApplyRegistry
from dotkit.tasks.shell import ConfigureShell
from dotkit.tasks.symlinks import InstallSymlinks, UninstallSymlinks
from dotkit.tasks.systemd import ConfigureSystemd
from dotkit.tasks.update import UpdateRepository
from dotkit.tasks.vscode import InstallVsCodeExtensions

WINDOWS = Platform(Os.WINDOWS)
PACKAGES = (PackageEntry(name="git"), PackageEntry(name="neovim"), PackageEntry(name="paru-bin", aur=True))


def _names(tasks) -> list[str]:
    return [task.task_id for task in tasks]


def test_install_tasks_reference_known_ids() -> None:
    tasks = all_install_tasks()
    ids = _names(tasks)

    assert len(set(ids)) == len(ids)
    for task in tasks:
        assert set(task.dependencies) <= set(ids)
    assert _names(all_uninstall_tasks()) == ["uninstall-symlinks", "uninstall-git-hooks"]


def test_select_tasks_by_fragment() -> None:
    tasks = all_install_tasks()

    assert _names(select_tasks(tasks, only=["PACKAGES"])) == ["packages", "aur-packages"]
    assert "vscode" not in _names(select_tasks(tasks, skip=["code"]))
    assert _names(select_tasks(tasks, only=["paru"], skip=["paru"])) == ["paru"]
    assert select_tasks(tasks) == tasks


def test_install_packages_batches_missing(make_context, executor: RecordingExecutor) -> None:
    executor.push(stdout="git 2.44.0-1\n")
    ctx = make_context(packages=PACKAGES)

    result = InstallPackages().run(ctx)

    assert result.kind is ResultKind.OK
    assert result.stats == TaskStats(changed=1, already_ok=1)
    assert executor.commands() == ["pacman -Q", "sudo pacman -S --needed --noconfirm neovim"]


def test_install_packages_dry_run(make_context, executor: RecordingExecutor, output: io.StringIO) -> None:
    ctx = make_context(packages=PACKAGES, dry_run=True)

    result = InstallPackages().run(ctx)

    assert result.kind is ResultKind.DRY_RUN
    assert executor.commands() == ["pacman -Q"]
    assert "[dry-run] would install: neovim (pacman)" in output.getvalue()
    assert "2 would change, 0 already ok" in output.getvalue()


def test_install_packages_batch_failure_counts_every_package(make_context, executor: RecordingExecutor) -> None:
    executor.push(stdout="").push(success=False, stderr="target not found: neovim")
    ctx = make_context(packages=PACKAGES)

    result = InstallPackages().run(ctx)

    assert result.stats == TaskStats(skipped=2, failed=2)


def test_install_packages_without_package_manager(make_context, executor: RecordingExecutor) -> None:
    executor.available = set()
    ctx = make_context(packages=PACKAGES)

    assert execute(InstallPackages(), ctx) is TaskStatus.SKIPPED
    assert ctx.log.entries[-1].message == "pacman not found"


def test_install_packages_winget_does_not_bail(make_context, executor: RecordingExecutor) -> None:
    executor.push(stdout="Name  Id       Version\nGit   Git.Git  2.44\n")
    executor.push(success=False, stdout="No package found matching input criteria.")
    packages = (PackageEntry(name="Git.Git"), PackageEntry(name="Missing.App"), PackageEntry(name="Other.App"))
    ctx = make_context(packages=packages, platform=WINDOWS)

    result = InstallPackages().run(ctx)

    assert result.stats == TaskStats(changed=1, already_ok=1, skipped=1, failed=1)
    assert executor.commands()[1].startswith("winget install --id Missing.App")


def test_paru_bootstrap(
    make_context,
    executor: RecordingExecutor,
    tmp_path: Path,
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    monkeypatch.setattr("dotkit.tasks.packages.tempfile.tempdir", str(tmp_path))
    monkeypatch.setattr("dotkit.tasks.packages.os.cpu_count", lambda: 8)
    executor.available = {"git", "makepkg", "sudo"}
    ctx = make_context(packages=PACKAGES)

    result = InstallParu().run(ctx)

    clone, build = executor.calls
    build_dir = Path(clone.args[-1])
    assert result.kind is ResultKind.OK
    assert clone.argv[:3] == ("git", "clone", PARU_AUR_URL)
    assert build_dir.parent == tmp_path
    assert build_dir.name.startswith("paru-build-")
    assert build.argv == ("makepkg", "-si", "--noconfirm")
    assert build.cwd == build_dir
    assert build.env == (("MAKEFLAGS", "-j8"),)
    assert not build_dir.exists()


def test_paru_build_failure_cleans_up(
    make_context,
    executor: RecordingExecutor,
    tmp_path: Path,
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    monkeypatch.setattr("dotkit.tasks.packages.tempfile.tempdir", str(tmp_path))
    executor.available = {"git", "makepkg", "sudo"}
    executor.push().push(success=False, stderr="missing dependency")
    ctx = make_context(packages=PACKAGES)

    with pytest.raises(ExecError, match="makepkg -si failed"):
        InstallParu().run(ctx)

    assert list(tmp_path.glob("paru-build-*")) == []


def test_paru_skips_when_present_and_fails_without_prerequisites(make_context, executor: RecordingExecutor) -> None:
    ctx = make_context(packages=PACKAGES)

    assert InstallParu().run(ctx).kind is ResultKind.OK
    assert executor.calls == []

    executor.available = {"git"}
    with pytest.raises(ResourceError, match="missing prerequisite: makepkg"):
        InstallParu().run(ctx)
    assert execute(InstallParu(), ctx) is TaskStatus.FAILED


def test_paru_dry_run(make_context, executor: RecordingExecutor) -> None:
    executor.available = {"git", "makepkg", "sudo"}
    ctx = make_context(packages=PACKAGES, dry_run=True)

    assert InstallParu().run(ctx).kind is ResultKind.DRY_RUN
    assert executor.calls == []


def test_aur_tasks_only_on_arch(make_context) -> None:
    arch = make_context(packages=PACKAGES)
    plain = make_context(packages=PACKAGES, platform=Platform(Os.LINUX))

    assert InstallParu().should_run(arch)
    assert InstallAurPackages().should_run(arch)
    assert not InstallParu().should_run(plain)
    assert not InstallAurPackages().should_run(plain)
    assert not InstallPackages().should_run(make_context(packages=(PackageEntry(name="x", aur=True),)))


def test_aur_packages_install_with_paru(make_context, executor: RecordingExecutor) -> None:
    ctx = make_context(packages=PACKAGES)

    result = InstallAurPackages().run(ctx)

    assert result.stats == TaskStats(changed=1)
    assert executor.commands() == ["pacman -Q", "paru -S --needed --noconfirm paru-bin"]

    executor.available = set()
    assert InstallAurPackages().run(ctx).reason == "paru not installed"


def test_symlink_tasks_round_trip(make_context, tmp_path: Path, fake_home: Path) -> None:
    source = tmp_path / "dotfiles" / "symlinks" / "bashrc"
    source.parent.mkdir(parents=True)
    source.write_text("alias ll='ls -l'\n")
    ctx = make_context(symlinks=(SymlinkEntry(source="bashrc"),))

    assert InstallSymlinks().run(ctx).stats == TaskStats(changed=1)
    assert (fake_home / ".bashrc").is_symlink()
    assert InstallSymlinks().run(ctx).stats == TaskStats(already_ok=1)

    assert UninstallSymlinks().run(ctx).stats == TaskStats(changed=1)
    assert not (fake_home / ".bashrc").is_symlink()
    assert (fake_home / ".bashrc").read_text() == "alias ll='ls -l'\n"
    assert UninstallSymlinks().run(ctx).stats == TaskStats(skipped=1)


def test_chmod_never_creates_missing_targets(make_context, fake_home: Path) -> None:
    ctx = make_context(chmod=(ChmodEntry(mode="600", path="ssh/config"),))

    assert ApplyFilePermissions().run(ctx).stats == TaskStats(skipped=1)
    assert not (fake_home / ".ssh").exists()
    assert not ApplyFilePermissions().should_run(make_context(chmod=ctx.config.chmod, platform=WINDOWS))


def test_systemd_enables_missing_units(make_context, executor: RecordingExecutor, output: io.StringIO) -> None:
    executor.push(success=False, stderr="no user bus").push(success=False)
    ctx = make_context(systemd_units=(SystemdUnitEntry(name="dunst.service"),))

    result = ConfigureSystemd().run(ctx)

    assert result.stats == TaskStats(changed=1)
    assert executor.commands() == [
        "systemctl --user daemon-reload",
        "systemctl --user is-enabled dunst.service",
        "systemctl --user enable --now dunst.service",
    ]
    assert "daemon-reload failed" in output.getvalue()


def test_systemd_not_applicable_without_systemctl(make_context, executor: RecordingExecutor) -> None:
    executor.available = set()
    ctx = make_context(systemd_units=(SystemdUnitEntry(name="dunst.service"),))

    assert execute(ConfigureSystemd(), ctx) is TaskStatus.NOT_APPLICABLE


def test_registry_checks_in_one_call(make_context, executor: RecordingExecutor) -> None:
    executor.push(stdout="HKCU:\\Console\\FontSize::=::14\r\nHKCU:\\Console\\QuickEdit::=::::NOT_FOUND::\r\n")
    entries = (
        RegistryEntry(key_path="HKCU:\\Console", value_name="FontSize", value_data="14"),
        RegistryEntry(key_path="HKCU:\\Console", value_name="QuickEdit", value_data="1"),
    )
    ctx = make_context(registry=entries, platform=WINDOWS)

    result = ApplyRegistry().run(ctx)

    assert result.stats == TaskStats(changed=1, already_ok=1)
    assert executor.call_count == 2
    assert "QuickEdit" in executor.calls[1].args[-1]
    assert not ApplyRegistry().should_run(make_context(registry=entries))


def test_vscode_skipped_without_cli(make_context, executor: RecordingExecutor) -> None:
    executor.available = set()
    ctx = make_context(vscode_extensions=(VsCodeExtensionEntry(id="ms-python.python"),))

    assert execute(InstallVsCodeExtensions(), ctx) is TaskStatus.SKIPPED
    assert ctx.log.entries[-1].message == "VS Code CLI not found"


def test_vscode_installs_missing_extensions(make_context, executor: RecordingExecutor) -> None:
    executor.available = {"code"}
    executor.push(stdout="ms-python.python\n")
    extensions = (VsCodeExtensionEntry(id="ms-python.python"), VsCodeExtensionEntry(id="rust-lang.rust-analyzer"))
    ctx = make_context(vscode_extensions=extensions)

    result = InstallVsCodeExtensions().run(ctx)

    assert result.stats == TaskStats(changed=1, already_ok=1)
    assert executor.calls[-1].args[-2] == "rust-lang.rust-analyzer"


def test_git_config(make_context, executor: RecordingExecutor) -> None:
    executor.push(stdout="main\n").push(success=False)
    settings = (GitSetting(key="init.defaultBranch", value="main"), GitSetting(key="pull.rebase", value="true"))
    ctx = make_context(git_settings=settings)

    result = ConfigureGit().run(ctx)

    assert result.stats == TaskStats(changed=1, already_ok=1)
    assert executor.commands()[-1] == "git config --global pull.rebase true"

    executor.available = set()
    assert ConfigureGit().run(ctx).reason == "git not found"


def test_execute_records_stats_summary(make_context, executor: RecordingExecutor, logger: Logger) -> None:
    executor.push(stdout="git 1\nneovim 1\n")
    ctx = make_context(packages=PACKAGES)

    assert execute(InstallPackages(), ctx) is TaskStatus.OK
    assert logger.entries[-1].message == "0 changed, 2 already ok"


@pytest.fixture
def repo(tmp_path: Path) -> Path:
    root = tmp_path / "dotfiles"
    (root / ".git" / "hooks").mkdir(parents=True)
    (root / "hooks").mkdir()
    (root / "hooks" / "pre-commit").write_text("#!/bin/sh\nexec dotkit install --dry-run\n")
    (root / "hooks" / "README.md").write_text("hooks live here\n")
    return root


def test_discover_hooks_ignores_files_with_extensions(repo: Path) -> None:
    hooks = discover_hooks(repo / "hooks", repo / ".git" / "hooks")

    assert [hook.target for hook in hooks] == [repo / ".git" / "hooks" / "pre-commit"]
    assert discover_hooks(repo / "missing", repo / ".git" / "hooks") == []


def test_git_hook_tasks_round_trip(make_context, repo: Path) -> None:
    ctx = make_context()
    installed = repo / ".git" / "hooks" / "pre-commit"

    assert InstallGitHooks().should_run(ctx)
    assert InstallGitHooks().run(ctx).stats == TaskStats(changed=1)
    assert installed.read_text() == (repo / "hooks" / "pre-commit").read_text()
    assert InstallGitHooks().run(ctx).stats == TaskStats(already_ok=1)

    assert UninstallGitHooks().run(ctx).stats == TaskStats(changed=1)
    assert not installed.exists()
    assert (repo / "hooks" / "pre-commit").exists()


def test_git_hook_tasks_need_a_checkout(make_context, tmp_path: Path) -> None:
    (tmp_path / "dotfiles" / "hooks").mkdir(parents=True)
    ctx = make_context()

    assert execute(InstallGitHooks(), ctx) is TaskStatus.NOT_APPLICABLE
    assert execute(UninstallGitHooks(), ctx) is TaskStatus.NOT_APPLICABLE


def test_configure_shell(make_context, executor: RecordingExecutor, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("CI", raising=False)
    monkeypatch.setenv("SHELL", "/bin/bash")
    executor.available = {"zsh"}
    ctx = make_context()

    assert execute(ConfigureShell(), ctx) is TaskStatus.OK
    assert executor.commands() == ["chsh -s /usr/bin/zsh"]

    monkeypatch.setenv("SHELL", "/usr/bin/zsh")
    assert ConfigureShell().run(ctx).stats == TaskStats(already_ok=1)


def test_configure_shell_not_applicable(
    make_context, executor: RecordingExecutor, monkeypatch: pytest.MonkeyPatch
) -> None:
    monkeypatch.delenv("CI", raising=False)
    executor.available = {"zsh"}

    assert not ConfigureShell().should_run(make_context(platform=WINDOWS))
    monkeypatch.setenv("CI", "true")
    assert not ConfigureShell().should_run(make_context())
    monkeypatch.delenv("CI")
    executor.available = set()
    assert not ConfigureShell().should_run(make_context())


def test_update_repository_pulls(
    make_context, executor: RecordingExecutor, repo: Path, fake_home: Path, output: io.StringIO
) -> None:
    executor.push(stdout="refs/heads/main\n").push(stdout="").push(stdout="Updating 1a2b..3c4d\nFast-forward\n")
    ctx = make_context()

    assert UpdateRepository().should_run(ctx)
    assert UpdateRepository().run(ctx).kind is ResultKind.OK
    assert executor.commands() == [
        "git symbolic-ref --quiet HEAD",
        "git diff --cached --name-only",
        "git pull --ff-only",
    ]
    assert executor.calls[-1].cwd == repo
    assert executor.calls[-1].env == (("GIT_CONFIG_NOSYSTEM", "1"), ("HOME", str(fake_home)))
    assert "repository updated" in output.getvalue()


def test_update_repository_skips(make_context, executor: RecordingExecutor, repo: Path, output: io.StringIO) -> None:
    ctx = make_context()

    executor.push(success=False)
    assert UpdateRepository().run(ctx).reason == "detached HEAD"

    executor.push().push(stdout="conf/packages.toml\n")
    assert UpdateRepository().run(ctx).reason == "staged changes present"

    executor.push().push().push(success=False, stderr="fatal: Not possible to fast-forward, aborting.")
    assert UpdateRepository().run(ctx).reason == "git pull failed"
    assert "Not possible to fast-forward" in output.getvalue()


def test_update_repository_dry_run(make_context, executor: RecordingExecutor, repo: Path, output: io.StringIO) -> None:
    ctx = make_context(dry_run=True)

    executor.push().push().push(stdout="1a2b\n").push(stdout="1a2b\n")
    assert UpdateRepository().run(ctx).kind is ResultKind.OK
    assert "already up to date" in output.getvalue()

    executor.push().push().push(stdout="1a2b\n").push(stdout="3c4d\n")
    assert UpdateRepository().run(ctx).kind is ResultKind.DRY_RUN
    assert executor.commands()[-1] == "git rev-parse @{u}"
    assert "[dry-run] git pull" in output.getvalue()


def test_update_repository_needs_a_checkout(make_context) -> None:
    assert not UpdateRepository().should_run(make_context())


def test_developer_mode(make_context, executor: RecordingExecutor) -> None:
    ctx = make_context(platform=WINDOWS)

    executor.push(stdout="1\r\n")
    assert EnableDeveloperMode().run(ctx).stats == TaskStats(already_ok=1)

    executor.push(stdout="::NOT_FOUND::\r\n")
    assert EnableDeveloperMode().run(ctx).stats == TaskStats(changed=1)
    assert "AllowDevelopmentWithoutDevLicense" in executor.calls[-1].args[-1]
    assert not EnableDeveloperMode().should_run(make_context())
