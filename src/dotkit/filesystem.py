"""Filesystem helpers for dotkit."""

from __future__ import annotations

import os
import shutil
from pathlib import Path


def ensure_parent(path: Path) -> None:
    """Ensure the parent directory exists."""

    path.parent.mkdir(parents=True, exist_ok=True)


def remove_path(path: Path) -> None:
    """Delete ``path`` whether it is a file, directory, or symlink."""

    if not path.exists() and not path.is_symlink():
        return
    if path.is_symlink() or path.is_file():
        path.unlink()
        return
    shutil.rmtree(path)


def symlink_points_to(link: Path, target: Path) -> bool:
    """Return ``True`` if ``link`` is a symlink resolving to ``target``."""

    if not link.is_symlink():
        return False
    current = Path(os.readlink(link))
    current_resolved = (link.parent / current).resolve(strict=False)
    return current_resolved == target.resolve(strict=False)


def create_symlink(source: Path, link: Path) -> None:
    """Create ``link`` pointing at ``source``, replacing whatever is at ``link``."""

    ensure_parent(link)
    remove_path(link)
    link.symlink_to(source, target_is_directory=source.is_dir())


def copy_into_place(source: Path, destination: Path) -> None:
    """Replace ``destination`` with a real copy of ``source``.

    The copy is staged next to ``destination`` first, so a failed copy leaves
    the existing entry untouched.
    """

    staging = destination.with_name(f".{destination.name}.dotkit-tmp")
    remove_path(staging)
    try:
        if source.is_dir():
            shutil.copytree(source, staging, symlinks=True, copy_function=shutil.copy2)
        else:
            shutil.copy2(source, staging)
    except OSError:
        remove_path(staging)
        raise

    remove_path(destination)
    staging.rename(destination)


def file_mode(path: Path) -> int:
    """Return the permission bits of ``path``."""

    return path.stat().st_mode & 0o7777


def chmod_tree(path: Path, mode: int) -> None:
    """Apply ``mode`` to ``path`` and, for directories, everything below it."""

    os.chmod(path, mode)
    if not path.is_dir() or path.is_symlink():
        return
    for current, dirs, files in os.walk(path):
        for name in (*dirs, *files):
            child = Path(current) / name
            if not child.is_symlink():
                os.chmod(child, mode)
