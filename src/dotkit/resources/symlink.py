"""Symlinks from the dotfiles checkout into the home directory."""

from __future__ import annotations

import os
from pathlib import Path

from ..config import SymlinkEntry
from ..filesystem import copy_into_place, create_symlink, symlink_points_to
from ..models import ResourceChange, ResourceState
from .base import Resource

# Sources under these folders map onto the home directory as-is instead of
# being hidden with a leading dot.
UNPREFIXED_DIRS = ("documents/", "appdata/")


def default_target(source: str, home: Path) -> Path:
    """Return the home-relative location for ``source``."""

    normalized = source.replace("\\", "/")
    if normalized.lower().startswith(UNPREFIXED_DIRS):
        return home / normalized
    return home / f".{normalized}"


class SymlinkResource(Resource):
    def __init__(self, source: Path, target: Path) -> None:
        self.source = source
        self.target = target

    @classmethod
    def from_entry(cls, entry: SymlinkEntry, symlinks_dir: Path, home: Path) -> "SymlinkResource":
        source = symlinks_dir / entry.source
        if entry.target:
            target = Path(os.path.expandvars(entry.target)).expanduser()
            if not target.is_absolute():
                target = home / target
        else:
            target = default_target(entry.source, home)
        return cls(source, target)

    def description(self) -> str:
        return f"{self.target} -> {self.source}"

    def current_state(self) -> ResourceState:
        if not self.source.exists():
            return ResourceState.invalid(f"source does not exist: {self.source}")
        if self.target.is_dir() and not self.target.is_symlink():
            return ResourceState.invalid("target is a real directory")
        if self.target.is_symlink():
            if symlink_points_to(self.target, self.source):
                return ResourceState.correct()
            return ResourceState.incorrect(f"points to {os.readlink(self.target)}")
        if self.target.exists():
            return ResourceState.incorrect("target is a regular file")
        return ResourceState.missing()

    def apply(self) -> ResourceChange:
        create_symlink(self.source, self.target)
        return ResourceChange.applied()

    def remove(self) -> ResourceChange:
        """Replace the link with a real copy of its source, so the content survives uninstall."""

        copy_into_place(self.source, self.target)
        return ResourceChange.applied()
