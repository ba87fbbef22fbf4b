"""Host platform detection."""

from __future__ import annotations

import sys
from dataclasses import dataclass
from enum import Enum
from pathlib import Path

ARCH_RELEASE = Path("/etc/arch-release")


class Os(str, Enum):
    LINUX = "linux"
    WINDOWS = "windows"


@dataclass(frozen=True, slots=True)
class Platform:
    """Operating system facts used to decide which tasks apply."""

    os: Os
    is_arch: bool = False

    @classmethod
    def detect(cls) -> "Platform":
        if sys.platform.startswith("win"):
            return cls(Os.WINDOWS)
        return cls(Os.LINUX, is_arch=ARCH_RELEASE.exists())

    @property
    def is_linux(self) -> bool:
        return self.os is Os.LINUX

    @property
    def is_windows(self) -> bool:
        return self.os is Os.WINDOWS

    def supports_chmod(self) -> bool:
        return self.is_linux

    def supports_systemd(self) -> bool:
        return self.is_linux

    def has_registry(self) -> bool:
        return self.is_windows

    def uses_pacman(self) -> bool:
        return self.is_arch

    def supports_aur(self) -> bool:
        return self.is_arch

    def active_tags(self) -> set[str]:
        """Category tags implied by the platform itself."""

        tags = {self.os.value}
        if self.is_arch:
            tags.add("arch")
        return tags

    def excluded_tags(self) -> set[str]:
        """Category tags that can never match on this platform."""

        excluded = {os_.value for os_ in Os if os_ is not self.os}
        if not self.is_arch:
            excluded.add("arch")
        return excluded
