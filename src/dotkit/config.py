"""TOML configuration loading for dotkit."""

from __future__ import annotations

import os
import tomllib
from pathlib import Path
from typing import TYPE_CHECKING, Any, Callable, Iterable, Mapping, TypeVar

from pydantic import BaseModel, ConfigDict

if TYPE_CHECKING:
    from .profiles import Profile

CONF_DIRNAME = "conf"
SYMLINKS_DIRNAME = "symlinks"
HOOKS_DIRNAME = "hooks"
ROOT_ENV_VAR = "DOTKIT_ROOT"

SYMLINKS_FILE = "symlinks.toml"
CHMOD_FILE = "chmod.toml"
PACKAGES_FILE = "packages.toml"
SYSTEMD_FILE = "systemd-units.toml"
REGISTRY_FILE = "registry.toml"
VSCODE_FILE = "vscode-extensions.toml"
GIT_CONFIG_FILE = "git-config.toml"

T = TypeVar("T")


class ConfigError(RuntimeError):
    """Raised when a configuration file cannot be parsed or validated."""


class SymlinkEntry(BaseModel):
    """A file under ``symlinks/`` to link into the home directory."""

    model_config = ConfigDict(frozen=True)

    source: str
    target: str | None = None

    @classmethod
    def from_raw(cls, raw: Any) -> "SymlinkEntry":
        if isinstance(raw, str):
            return cls(source=raw)
        return cls(source=_required(raw, "source", "symlink"), target=raw.get("target"))


class ChmodEntry(BaseModel):
    model_config = ConfigDict(frozen=True)

    mode: str
    path: str

    @classmethod
    def from_raw(cls, raw: Any) -> "ChmodEntry":
        return cls(mode=str(_required(raw, "mode", "permission")), path=_required(raw, "path", "permission"))


class PackageEntry(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str
    aur: bool = False

    @classmethod
    def from_raw(cls, raw: Any) -> "PackageEntry":
        if isinstance(raw, str):
            return cls(name=raw)
        return cls(name=_required(raw, "name", "package"), aur=bool(raw.get("aur", False)))


class SystemdUnitEntry(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str
    scope: str = "user"

    @classmethod
    def from_raw(cls, raw: Any) -> "SystemdUnitEntry":
        if isinstance(raw, str):
            return cls(name=raw)
        scope = str(raw.get("scope", "user")).lower()
        if scope not in ("user", "system"):
            raise ConfigError(f"Systemd unit scope must be 'user' or 'system', got '{scope}'")
        return cls(name=_required(raw, "name", "unit"), scope=scope)


class RegistryEntry(BaseModel):
    """One registry value to enforce."""

    model_config = ConfigDict(frozen=True)

    key_path: str
    value_name: str
    value_data: str


class VsCodeExtensionEntry(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str


class GitSetting(BaseModel):
    model_config = ConfigDict(frozen=True)

    key: str
    value: str


class Config(BaseModel):
    """Fully parsed, profile-filtered configuration."""

    model_config = ConfigDict(frozen=True)

    root: Path
    profile: str
    symlinks: tuple[SymlinkEntry, ...] = ()
    chmod: tuple[ChmodEntry, ...] = ()
    packages: tuple[PackageEntry, ...] = ()
    systemd_units: tuple[SystemdUnitEntry, ...] = ()
    registry: tuple[RegistryEntry, ...] = ()
    vscode_extensions: tuple[VsCodeExtensionEntry, ...] = ()
    git_settings: tuple[GitSetting, ...] = ()

    @property
    def conf_dir(self) -> Path:
        return self.root / CONF_DIRNAME

    @property
    def symlinks_dir(self) -> Path:
        return self.root / SYMLINKS_DIRNAME

    @property
    def hooks_dir(self) -> Path:
        return self.root / HOOKS_DIRNAME


def load_config(root: Path, profile: "Profile", *, with_registry: bool = False) -> Config:
    """Load every ``conf/*.toml`` file under ``root`` filtered by ``profile``.

    Args:
        root: Dotfiles repository root containing ``conf/``.
        profile: Resolved profile whose active tags select the sections.
        with_registry: Load ``registry.toml`` as well; only meaningful on Windows.
    """

    conf_dir = root / CONF_DIRNAME

    def section_items(filename: str, key: str, parse: Callable[[Any], T]) -> tuple[T, ...]:
        data = _load_file(conf_dir / filename)
        items: list[T] = []
        for section, body in data.items():
            if not profile.matches(section):
                continue
            if not isinstance(body, Mapping):
                raise ConfigError(f"Section '{section}' in '{filename}' must be a table")
            items.extend(parse(raw) for raw in _as_list(body.get(key, []), section, filename))
        return tuple(items)

    return Config(
        root=root,
        profile=profile.name,
        symlinks=section_items(SYMLINKS_FILE, "symlinks", SymlinkEntry.from_raw),
        chmod=section_items(CHMOD_FILE, "permissions", ChmodEntry.from_raw),
        packages=section_items(PACKAGES_FILE, "packages", PackageEntry.from_raw),
        systemd_units=section_items(SYSTEMD_FILE, "units", SystemdUnitEntry.from_raw),
        registry=_load_registry(conf_dir / REGISTRY_FILE) if with_registry else (),
        vscode_extensions=section_items(VSCODE_FILE, "extensions", lambda raw: VsCodeExtensionEntry(id=str(raw))),
        git_settings=_load_git_settings(conf_dir / GIT_CONFIG_FILE, profile),
    )


def resolve_root(explicit: Path | None = None) -> Path:
    """Find the dotfiles root: explicit path, then ``$DOTKIT_ROOT``, then the working directory."""

    if explicit is not None:
        candidate = _expand_path(explicit, base_dir=Path.cwd())
        if not (candidate / CONF_DIRNAME).is_dir():
            raise ConfigError(f"Dotfiles root '{candidate}' does not exist or has no '{CONF_DIRNAME}' directory")
        return candidate

    env_root = os.environ.get(ROOT_ENV_VAR)
    if env_root:
        candidate = _expand_path(env_root, base_dir=Path.cwd())
        if (candidate / CONF_DIRNAME).is_dir():
            return candidate

    cwd = Path.cwd()
    if (cwd / CONF_DIRNAME).is_dir():
        return cwd.resolve(strict=False)

    raise ConfigError(f"Could not find a dotfiles root; pass --root or set {ROOT_ENV_VAR}")


def _expand_path(raw: str | os.PathLike[str] | Path, *, base_dir: Path) -> Path:
    """Return an absolute ``Path`` by expanding env vars and user segments."""

    text = str(raw)
    expanded = Path(os.path.expandvars(text)).expanduser()
    if expanded.is_absolute():
        return expanded.resolve(strict=False)
    return (base_dir / expanded).resolve(strict=False)


def _load_file(path: Path) -> dict[str, Any]:
    if not path.exists():
        return {}
    try:
        with path.open("rb") as handle:
            return tomllib.load(handle)
    except tomllib.TOMLDecodeError as exc:
        raise ConfigError(f"Failed to parse '{path}': {exc}") from exc


def _load_registry(path: Path) -> tuple[RegistryEntry, ...]:
    entries: list[RegistryEntry] = []
    for section, body in _load_file(path).items():
        if not isinstance(body, Mapping) or "path" not in body:
            raise ConfigError(f"Registry section '{section}' must define a 'path'")
        for name, data in (body.get("values") or {}).items():
            entries.append(RegistryEntry(key_path=str(body["path"]), value_name=name, value_data=_stringify(data)))
    return tuple(entries)


def _load_git_settings(path: Path, profile: "Profile") -> tuple[GitSetting, ...]:
    settings: list[GitSetting] = []
    for section, body in _load_file(path).items():
        if not profile.matches(section):
            continue
        raw_settings = body.get("settings", []) if isinstance(body, Mapping) else []
        if isinstance(raw_settings, Mapping):
            settings.extend(GitSetting(key=key, value=_stringify(value)) for key, value in raw_settings.items())
            continue
        for raw in _as_list(raw_settings, section, path.name):
            settings.append(
                GitSetting(
                    key=_required(raw, "key", "git setting"),
                    value=_stringify(_required(raw, "value", "git setting")),
                )
            )
    return tuple(settings)


def _as_list(raw: Any, section: str, filename: str) -> Iterable[Any]:
    if not isinstance(raw, list):
        raise ConfigError(f"Section '{section}' in '{filename}' must hold a list")
    return raw


def _required(raw: Any, key: str, kind: str) -> Any:
    if not isinstance(raw, Mapping) or key not in raw:
        raise ConfigError(f"Each {kind} entry must define '{key}': {raw!r}")
    return raw[key]


def _stringify(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)
