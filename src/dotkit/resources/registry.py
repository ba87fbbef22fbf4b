"""Windows registry values, read and written through PowerShell."""

from __future__ import annotations

from typing import Iterable

from ..config import RegistryEntry
from ..exec import Executor
from ..models import ResourceChange, ResourceState
from .base import Resource

NOT_FOUND = "::NOT_FOUND::"
POWERSHELL = "powershell"
BATCH_SEPARATOR = "::=::"


def _quote(value: str) -> str:
    return "'" + value.replace("'", "''") + "'"


def _parse_int(text: str, base: int = 10) -> int | None:
    try:
        return int(text, base)
    except ValueError:
        return None


def value_matches(current: str, expected: str) -> bool:
    """Compare a registry value, treating ``0x`` and decimal numbers numerically."""

    if expected[:2].lower() == "0x":
        expected_num = _parse_int(expected[2:], 16)
        if expected_num is not None:
            return _parse_int(current) == expected_num
    expected_num = _parse_int(expected)
    if expected_num is not None:
        return _parse_int(current) == expected_num
    return current == expected


def format_value(data: str) -> tuple[str, str]:
    """Return the PowerShell value expression and registry type for ``data``."""

    if data[:2].lower() == "0x":
        number = _parse_int(data[2:], 16)
        if number is not None:
            return str(number), "DWord"
    if _parse_int(data) is not None:
        return data, "DWord"
    return _quote(data), "String"


def _read_script(key_path: str, value_name: str) -> str:
    key, name = _quote(key_path), _quote(value_name)
    return (
        "$ErrorActionPreference='SilentlyContinue'\n"
        f"$v = (Get-ItemProperty -Path {key} -Name {name} -ErrorAction SilentlyContinue).{name}\n"
        f"if ($null -eq $v) {{ Write-Output '{NOT_FOUND}' }} else {{ Write-Output $v }}"
    )


class RegistryResource(Resource):
    def __init__(self, key_path: str, value_name: str, value_data: str, executor: Executor) -> None:
        self.key_path = key_path
        self.value_name = value_name
        self.value_data = value_data
        self.executor = executor

    @classmethod
    def from_entry(cls, entry: RegistryEntry, executor: Executor) -> "RegistryResource":
        return cls(entry.key_path, entry.value_name, entry.value_data, executor)

    @property
    def key(self) -> str:
        return f"{self.key_path}\\{self.value_name}"

    def description(self) -> str:
        return f"{self.key} = {self.value_data}"

    def state_from_value(self, current: str | None) -> ResourceState:
        if current is None:
            return ResourceState.missing()
        if value_matches(current, self.value_data):
            return ResourceState.correct()
        return ResourceState.incorrect(current)

    def current_state(self) -> ResourceState:
        result = self.executor.run_unchecked(
            POWERSHELL, ["-NoProfile", "-Command", _read_script(self.key_path, self.value_name)]
        )
        output = result.stdout.strip()
        if not result.success or output == NOT_FOUND:
            return self.state_from_value(None)
        return self.state_from_value(output)

    def apply(self) -> ResourceChange:
        key = _quote(self.key_path)
        value, kind = format_value(self.value_data)
        script = (
            f"if (!(Test-Path {key})) {{ New-Item -Path {key} -Force | Out-Null }}\n"
            f"Set-ItemProperty -Path {key} -Name {_quote(self.value_name)} -Value {value} -Type {kind}"
        )
        self.executor.run(POWERSHELL, ["-NoProfile", "-Command", script])
        return ResourceChange.applied()


def batch_check_values(resources: Iterable[RegistryResource], executor: Executor) -> dict[str, str | None]:
    """Read every value in a single PowerShell call.

    Returns a mapping of ``key\\name`` to the current value, ``None`` when absent.
    """

    resources = list(resources)
    if not resources:
        return {}

    lines = ["$ErrorActionPreference='SilentlyContinue'"]
    for resource in resources:
        key, name = _quote(resource.key_path), _quote(resource.value_name)
        label = _quote(resource.key)
        lines.append(
            f"$v = (Get-ItemProperty -Path {key} -Name {name} -ErrorAction SilentlyContinue).{name}; "
            f"if ($null -eq $v) {{ $v = '{NOT_FOUND}' }}; "
            f"Write-Output ({label} + '{BATCH_SEPARATOR}' + $v)"
        )

    result = executor.run(POWERSHELL, ["-NoProfile", "-Command", "\n".join(lines)])
    values: dict[str, str | None] = {resource.key: None for resource in resources}
    for line in result.stdout.splitlines():
        label, sep, value = line.rstrip("\r").partition(BATCH_SEPARATOR)
        if not sep or label not in values:
            continue
        values[label] = None if value == NOT_FOUND else value
    return values
