"""Git hooks copied from the dotfiles checkout into ``.git/hooks``."""

from __future__ import annotations

import os
import shutil
from pathlib import Path

from ..filesystem import ensure_parent, remove_path
from ..models import ResourceChange, ResourceState
from .base import Resource

HOOK_MODE = 0o755


class HookFileResource(Resource):
    """A hook script kept as a real copy, since git may run hooks outside the checkout."""

    def __init__(self, source: Path, target: Path) -> None:
        self.source = source
        self.target = target

    def description(self) -> str:
        return self.target.name

    def current_state(self) -> ResourceState:
        if not self.source.exists():
            return ResourceState.invalid(f"source does not exist: {self.source}")
        if self.target.is_symlink() and not self.target.exists():
            return ResourceState.incorrect("broken symlink")
        if not self.target.exists():
            return ResourceState.missing()
        if self.source.read_bytes() == self.target.read_bytes():
            return ResourceState.correct()
        return ResourceState.incorrect("content differs")

    def apply(self) -> ResourceChange:
        ensure_parent(self.target)
        remove_path(self.target)
        shutil.copyfile(self.source, self.target)
        if os.name != "nt":
            self.target.chmod(HOOK_MODE)
        return ResourceChange.applied()

    def remove(self) -> ResourceChange:
        if not self.target.exists() and not self.target.is_symlink():
            return ResourceChange.already_correct()
        remove_path(self.target)
        return ResourceChange.applied()
