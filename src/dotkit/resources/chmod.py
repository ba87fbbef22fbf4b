"""File permission resources."""

from __future__ import annotations

from pathlib import Path

from ..config import ChmodEntry
from ..filesystem import chmod_tree, file_mode
from ..models import ResourceChange, ResourceState
from .base import Resource, ResourceError


def parse_mode(mode: str) -> int:
    try:
        value = int(mode, 8)
    except ValueError as exc:
        raise ResourceError(f"invalid octal mode: {mode}") from exc
    if not 0 <= value <= 0o7777:
        raise ResourceError(f"invalid octal mode: {mode}")
    return value


class ChmodResource(Resource):
    """Permission bits on a file, or recursively on a directory."""

    def __init__(self, target: Path, mode: str) -> None:
        self.target = target
        self.mode = mode

    @classmethod
    def from_entry(cls, entry: ChmodEntry, home: Path) -> "ChmodResource":
        return cls(home / f".{entry.path}", entry.mode)

    def description(self) -> str:
        return f"{self.mode} {self.target}"

    def current_state(self) -> ResourceState:
        if not self.target.exists():
            return ResourceState.invalid(f"target does not exist: {self.target}")
        desired = parse_mode(self.mode)
        current = file_mode(self.target)
        if current == desired:
            return ResourceState.correct()
        return ResourceState.incorrect(f"{current:o}")

    def apply(self) -> ResourceChange:
        chmod_tree(self.target, parse_mode(self.mode))
        return ResourceChange.applied()
