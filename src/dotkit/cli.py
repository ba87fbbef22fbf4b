"""Command-line interface for dotkit."""

from __future__ import annotations

import io
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import tomli_w
import typer
from rich.console import Console

from . import __version__
from .config import CONF_DIRNAME, SYMLINKS_DIRNAME, ConfigError, load_config, resolve_root
from .context import Context
from .exec import Executor, SystemExecutor
from .logger import Logger, default_log_path
from .platform import Platform
from .profiles import DEFAULT_DEFINITIONS, DEFAULT_PROFILE, PROFILES_FILENAME, persist, read_persisted, resolve_profile
from .scheduler import TaskFailuresError, run_tasks_to_completion
from .tasks import Task, all_install_tasks, all_uninstall_tasks, select_tasks

app = typer.Typer(help="Dependency-aware dotfiles provisioning")
console = Console()


@dataclass
class GlobalOptions:
    root: Path | None = None
    profile: str | None = None
    dry_run: bool = False
    verbose: bool = False
    parallel: bool = True


def _make_executor() -> Executor:
    return SystemExecutor()


def _detect_platform() -> Platform:
    return Platform.detect()


def _handle_error(exc: Exception) -> None:
    if isinstance(exc, PermissionError):
        console.print("[red]Permission denied.[/red] Re-run the command with elevated privileges (e.g. `sudo`).")
        raise typer.Exit(code=1)
    if isinstance(exc, ConfigError):
        message = str(exc)
        console.print(message, style="red", markup=False)
        if "dotfiles root" in message:
            console.print("[yellow]Use 'dotkit init' to create a conf/ directory, or pass --root.[/yellow]")
        elif "Unknown profile" in message:
            console.print(f"[yellow]Define profiles in {CONF_DIRNAME}/{PROFILES_FILENAME} or pick an available one.[/yellow]")
        raise typer.Exit(code=1)
    if isinstance(exc, TaskFailuresError):
        console.print(f"[red]{exc}[/red]")
        raise typer.Exit(code=1)
    raise exc


def _split(raw: str | None) -> list[str]:
    if not raw:
        return []
    return [part.strip() for part in raw.split(",") if part.strip()]


def _run(options: GlobalOptions, command: str, tasks: list[Task]) -> None:
    platform = _detect_platform()
    root = resolve_root(options.root)
    profile_name = options.profile or read_persisted(root) or DEFAULT_PROFILE
    profile = resolve_profile(profile_name, root / CONF_DIRNAME, platform)
    if options.profile and not options.dry_run:
        persist(root, profile.name)

    config = load_config(root, profile, with_registry=platform.has_registry())
    log = Logger(console, verbose=options.verbose, log_file=default_log_path(command))
    try:
        log.info(f"dotkit {__version__}")
        log.info(f"profile: {profile.name}")
        log.debug(f"active categories: {', '.join(sorted(profile.active))}")
        log.info(f"loaded {len(config.packages)} packages, {len(config.symlinks)} symlinks")

        ctx = Context(
            config=config,
            platform=platform,
            log=log,
            executor=_make_executor(),
            home=Path.home(),
            dry_run=options.dry_run,
            parallel=options.parallel,
        )
        run_tasks_to_completion(tasks, ctx, log)
    finally:
        log.close()


@app.callback()
def main(
    ctx: typer.Context,
    root: Path | None = typer.Option(None, "--root", help="Dotfiles repository root (defaults to $DOTKIT_ROOT)"),
    profile: str | None = typer.Option(None, "--profile", "-p", help="Profile to apply; remembered for later runs"),
    dry_run: bool = typer.Option(False, "--dry-run", "-d", help="Show what would change without changing it"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Show debug output"),
    parallel: bool = typer.Option(True, "--parallel/--sequential", help="Run independent tasks concurrently"),
) -> None:
    ctx.obj = GlobalOptions(root=root, profile=profile, dry_run=dry_run, verbose=verbose, parallel=parallel)


@app.command()
def install(
    ctx: typer.Context,
    skip: str | None = typer.Option(None, "--skip", help="Comma-separated task names to skip"),
    only: str | None = typer.Option(None, "--only", help="Comma-separated task names to run exclusively"),
) -> None:
    """Install packages, link dotfiles and apply system settings."""

    options: GlobalOptions = ctx.obj
    try:
        tasks = select_tasks(all_install_tasks(), only=_split(only), skip=_split(skip))
        _run(options, "install", tasks)
    except Exception as exc:  # noqa: BLE001
        _handle_error(exc)


@app.command()
def uninstall(ctx: typer.Context) -> None:
    """Replace managed symlinks with real copies of their sources."""

    options: GlobalOptions = ctx.obj
    try:
        _run(options, "uninstall", all_uninstall_tasks())
    except Exception as exc:  # noqa: BLE001
        _handle_error(exc)


def _starter_files() -> dict[str, dict[str, Any]]:
    return {
        "symlinks.toml": {
            "base": {"symlinks": ["bashrc", "config/git/ignore"]},
            "desktop": {"symlinks": ["config/dunst/dunstrc"]},
        },
        "packages.toml": {
            "base": {"packages": ["git", "neovim"]},
            "arch-desktop": {"packages": ["dunst", {"name": "visual-studio-code-bin", "aur": True}]},
        },
        "chmod.toml": {"linux": {"permissions": [{"mode": "600", "path": "ssh/config"}]}},
        "systemd-units.toml": {"linux-desktop": {"units": ["dunst.service"]}},
        "vscode-extensions.toml": {"desktop": {"extensions": ["ms-python.python"]}},
        "git-config.toml": {"base": {"settings": [{"key": "init.defaultBranch", "value": "main"}]}},
        "registry.toml": {"console": {"path": "HKCU:\\Console", "values": {"FontSize": 14}}},
        PROFILES_FILENAME: {
            name: definition.model_dump(exclude_none=True, mode="json")
            for name, definition in DEFAULT_DEFINITIONS.items()
        },
    }


def _render(name: str, data: dict[str, Any]) -> str:
    buffer = io.StringIO()
    buffer.write(f"# dotkit {name}\n\n")
    buffer.write(tomli_w.dumps(data))
    return buffer.getvalue()


@app.command()
def init(
    ctx: typer.Context,
    force: bool = typer.Option(False, "--force", help="Overwrite existing configuration files"),
) -> None:
    """Create a starter conf/ directory."""

    options: GlobalOptions = ctx.obj
    root = options.root or Path.cwd()
    conf_dir = root / CONF_DIRNAME
    files = _starter_files()

    existing = [name for name in files if (conf_dir / name).exists()]
    if existing and not force:
        console.print(f"[red]Configuration already exists in '{conf_dir}'. Use --force to overwrite.[/red]")
        raise typer.Exit(code=1)

    conf_dir.mkdir(parents=True, exist_ok=True)
    (root / SYMLINKS_DIRNAME).mkdir(exist_ok=True)
    for name, data in files.items():
        (conf_dir / name).write_text(_render(name, data))
        console.print(f"[green]Created '{conf_dir / name}'.[/green]")


@app.command()
def version() -> None:
    """Print the dotkit version."""

    console.print(f"dotkit {__version__}")


def run() -> None:
    """Entry point used for console_script bindings."""

    app()
