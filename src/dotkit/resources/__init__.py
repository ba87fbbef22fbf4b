"""Resource kinds managed by dotkit."""

from .base import Resource, ResourceError, UnsupportedOperationError
from .chmod import ChmodResource
from .git_config import GitConfigResource
from .hook import HookFileResource
from .package import PackageManager, PackageResource
from .registry import RegistryResource
from .shell import DefaultShellResource
from .symlink import SymlinkResource
from .systemd_unit import SystemdUnitResource
from .vscode_extension import VsCodeExtensionResource

__all__ = [
    "Resource",
    "ResourceError",
    "UnsupportedOperationError",
    "ChmodResource",
    "DefaultShellResource",
    "GitConfigResource",
    "HookFileResource",
    "PackageManager",
    "PackageResource",
    "RegistryResource",
    "SymlinkResource",
    "SystemdUnitResource",
    "VsCodeExtensionResource",
]
