"""Profile resolution and category matching."""

from __future__ import annotations

import tomllib
from pathlib import Path
from typing import Any, Iterable, Mapping

from pydantic import BaseModel, ConfigDict, Field

from .config import ConfigError
from .platform import Platform

PROFILES_FILENAME = "profiles.toml"
DEFAULT_PROFILE = "base"
PERSIST_SECTION = "dotfiles"


class ProfileDef(BaseModel):
    """A profile as written in ``profiles.toml``."""

    model_config = ConfigDict(frozen=True)

    description: str | None = None
    include: tuple[str, ...] = ()
    exclude: tuple[str, ...] = ()


class Profile(BaseModel):
    """A resolved profile: which category tags are active for this host."""

    model_config = ConfigDict(frozen=True)

    name: str
    active: frozenset[str] = Field(default_factory=frozenset)
    excluded: frozenset[str] = Field(default_factory=frozenset)

    def matches(self, section: str) -> bool:
        """Return ``True`` when every ``-``-separated tag of ``section`` is active."""

        tags = split_tags(section)
        return bool(tags) and all(tag in self.active for tag in tags)


DEFAULT_DEFINITIONS: dict[str, ProfileDef] = {
    "base": ProfileDef(description="Core shell environment, no desktop GUI", exclude=("desktop",)),
    "desktop": ProfileDef(description="Full graphical desktop", include=("desktop",)),
}


def split_tags(section: str) -> list[str]:
    return [tag.strip().lower() for tag in section.split("-") if tag.strip()]


def load_definitions(conf_dir: Path) -> dict[str, ProfileDef]:
    path = conf_dir / PROFILES_FILENAME
    if not path.exists():
        return dict(DEFAULT_DEFINITIONS)

    try:
        with path.open("rb") as handle:
            data: Mapping[str, Any] = tomllib.load(handle)
    except tomllib.TOMLDecodeError as exc:
        raise ConfigError(f"Failed to parse '{path}': {exc}") from exc

    definitions: dict[str, ProfileDef] = {}
    for name, body in data.items():
        if not isinstance(body, Mapping):
            raise ConfigError(f"Profile '{name}' in '{path}' must be a table")
        definitions[name] = ProfileDef(
            description=body.get("description"),
            include=tuple(_lower(body.get("include", ()))),
            exclude=tuple(_lower(body.get("exclude", ()))),
        )
    return definitions


def resolve_profile(name: str, conf_dir: Path, platform: Platform) -> Profile:
    """Resolve ``name`` against the profile definitions for ``platform``."""

    definitions = load_definitions(conf_dir)
    definition = definitions.get(name)
    if definition is None:
        available = ", ".join(sorted(definitions))
        raise ConfigError(f"Unknown profile '{name}' (available: {available})")

    excluded = set(definition.exclude) | platform.excluded_tags()
    active = {"base", *definition.include, *platform.active_tags()}
    return Profile(name=name, active=frozenset(active - excluded), excluded=frozenset(excluded))


def read_persisted(root: Path) -> str | None:
    """Return the profile saved in the repository's ``.git/config``, if any."""

    path = root / ".git" / "config"
    try:
        content = path.read_text()
    except OSError:
        return None

    in_section = False
    for line in content.splitlines():
        stripped = line.strip()
        if stripped.startswith("["):
            in_section = stripped == f"[{PERSIST_SECTION}]"
            continue
        if in_section and stripped.startswith("profile"):
            _, _, value = stripped.partition("=")
            if value.strip():
                return value.strip()
    return None


def persist(root: Path, name: str) -> bool:
    """Save ``name`` as the repository's profile.

    Returns ``False`` when ``root`` is not a git checkout.
    """

    git_dir = root / ".git"
    if not git_dir.is_dir():
        return False

    path = git_dir / "config"
    lines = path.read_text().splitlines() if path.exists() else []
    path.write_text(_set_value(lines, name))
    return True


def _set_value(lines: list[str], name: str) -> str:
    header = f"[{PERSIST_SECTION}]"
    entry = f"\tprofile = {name}"
    output: list[str] = []
    in_section = False
    written = False

    for line in lines:
        stripped = line.strip()
        if stripped.startswith("["):
            if in_section and not written:
                output.append(entry)
                written = True
            in_section = stripped == header
        elif in_section and stripped.startswith("profile"):
            if not written:
                output.append(entry)
                written = True
            continue
        output.append(line)

    if not written:
        if not in_section:
            output.append(header)
        output.append(entry)
    return "\n".join(output) + "\n"


def _lower(values: Iterable[Any]) -> list[str]:
    return [str(value).strip().lower() for value in values]
