"""Console and file logging for provisioning runs."""

from __future__ import annotations

import itertools
import logging
import os
import threading
from abc import ABC, abstractmethod
from enum import Enum
from pathlib import Path

from rich.console import Console
from rich.table import Table
from rich.text import Text

from .models import TaskEntry, TaskStatus

APP_NAME = "dotkit"

_logger_ids = itertools.count()


class Level(str, Enum):
    STAGE = "stage"
    INFO = "info"
    DEBUG = "debug"
    WARN = "warn"
    ERROR = "error"
    DRY_RUN = "dry_run"


_CONSOLE_STYLES = {
    Level.STAGE: "bold blue",
    Level.INFO: None,
    Level.DEBUG: "dim",
    Level.WARN: "yellow",
    Level.ERROR: "red",
    Level.DRY_RUN: "cyan",
}

_FILE_LEVELS = {
    Level.STAGE: logging.INFO,
    Level.INFO: logging.INFO,
    Level.DEBUG: logging.DEBUG,
    Level.WARN: logging.WARNING,
    Level.ERROR: logging.ERROR,
    Level.DRY_RUN: logging.INFO,
}

_STATUS_STYLES = {
    TaskStatus.OK: "green",
    TaskStatus.NOT_APPLICABLE: "dim",
    TaskStatus.SKIPPED: "yellow",
    TaskStatus.DRY_RUN: "cyan",
    TaskStatus.FAILED: "red",
}


def default_log_path(command: str) -> Path:
    """Return ``$XDG_CACHE_HOME/dotkit/<command>.log`` (``~/.cache`` when unset)."""

    cache = os.environ.get("XDG_CACHE_HOME")
    base = Path(cache) if cache else Path.home() / ".cache"
    return base / APP_NAME / f"{command}.log"


def format_line(level: Level, message: str) -> str:
    if level is Level.STAGE:
        return f"==> {message}"
    if level is Level.WARN:
        return f"warning: {message}"
    if level is Level.ERROR:
        return f"error: {message}"
    if level is Level.DRY_RUN:
        return f"[dry-run] {message}"
    return message


class Log(ABC):
    """Sink for progress messages and task outcomes."""

    @abstractmethod
    def write(self, level: Level, message: str) -> None:
        ...

    @abstractmethod
    def record_task(self, name: str, status: TaskStatus, message: str | None = None) -> None:
        ...

    def stage(self, message: str) -> None:
        self.write(Level.STAGE, message)

    def info(self, message: str) -> None:
        self.write(Level.INFO, message)

    def debug(self, message: str) -> None:
        self.write(Level.DEBUG, message)

    def warn(self, message: str) -> None:
        self.write(Level.WARN, message)

    def error(self, message: str) -> None:
        self.write(Level.ERROR, message)

    def dry_run(self, message: str) -> None:
        self.write(Level.DRY_RUN, message)


class Logger(Log):
    """Shared run logger.

    All output and task records go through one re-entrant lock, so a
    ``BufferedLog`` can replay a whole task's output without interleaving.
    """

    def __init__(
        self,
        console: Console | None = None,
        *,
        verbose: bool = False,
        log_file: Path | None = None,
    ) -> None:
        self.console = console or Console()
        self.verbose = verbose
        self.log_file = log_file
        self.lock = threading.RLock()
        self._entries: list[TaskEntry] = []
        self._file_logger: logging.Logger | None = None
        if log_file is not None:
            self._file_logger = _open_file_logger(log_file)

    def write(self, level: Level, message: str) -> None:
        with self.lock:
            if self._file_logger is not None:
                self._file_logger.log(_FILE_LEVELS[level], format_line(level, message))
            if level is Level.DEBUG and not self.verbose:
                return
            self.console.print(
                format_line(level, message),
                style=_CONSOLE_STYLES[level],
                markup=False,
                highlight=False,
            )

    def record_task(self, name: str, status: TaskStatus, message: str | None = None) -> None:
        with self.lock:
            self._entries.append(TaskEntry(name=name, status=status, message=message))

    def buffered(self) -> "BufferedLog":
        return BufferedLog(self)

    @property
    def entries(self) -> tuple[TaskEntry, ...]:
        with self.lock:
            return tuple(self._entries)

    def failure_count(self) -> int:
        return sum(1 for entry in self.entries if entry.status is TaskStatus.FAILED)

    def has_failures(self) -> bool:
        return self.failure_count() > 0

    def print_summary(self) -> None:
        entries = self.entries
        if not entries:
            return

        table = Table(show_header=True, header_style="bold magenta")
        table.add_column("Task")
        table.add_column("Status")
        table.add_column("Details", overflow="fold")

        counts = {status: 0 for status in TaskStatus}
        for entry in entries:
            counts[entry.status] += 1
            style = _STATUS_STYLES[entry.status]
            details = entry.message or ""
            if entry.status is TaskStatus.NOT_APPLICABLE and not details:
                details = "not applicable"
            table.add_row(Text(entry.name), Text(entry.status.value, style=style), Text(details))

        totals = (
            f"{len(entries)} tasks: {counts[TaskStatus.OK]} ok, {counts[TaskStatus.NOT_APPLICABLE]} n/a, "
            f"{counts[TaskStatus.SKIPPED]} skipped, {counts[TaskStatus.DRY_RUN]} dry-run, "
            f"{counts[TaskStatus.FAILED]} failed"
        )

        with self.lock:
            self.console.print(table)
            self.console.print(totals, style="red" if counts[TaskStatus.FAILED] else "green", markup=False)
            if self._file_logger is not None:
                self._file_logger.info(totals)
                self.console.print(f"log: {self.log_file}", style="dim", markup=False, highlight=False)

    def close(self) -> None:
        if self._file_logger is None:
            return
        for handler in list(self._file_logger.handlers):
            self._file_logger.removeHandler(handler)
            handler.close()
        self._file_logger = None


class BufferedLog(Log):
    """Per-task log that holds output until ``flush``.

    Task outcomes are forwarded to the parent immediately.
    """

    def __init__(self, parent: Logger) -> None:
        self.parent = parent
        self._lines: list[tuple[Level, str]] = []
        self._lock = threading.Lock()

    def write(self, level: Level, message: str) -> None:
        with self._lock:
            self._lines.append((level, message))

    def record_task(self, name: str, status: TaskStatus, message: str | None = None) -> None:
        self.parent.record_task(name, status, message)

    def flush(self) -> None:
        with self._lock:
            lines, self._lines = self._lines, []
        with self.parent.lock:
            for level, message in lines:
                self.parent.write(level, message)


def _open_file_logger(path: Path) -> logging.Logger:
    path.parent.mkdir(parents=True, exist_ok=True)
    file_logger = logging.getLogger(f"{APP_NAME}.run.{next(_logger_ids)}")
    file_logger.setLevel(logging.DEBUG)
    file_logger.propagate = False
    handler = logging.FileHandler(path, mode="w", encoding="utf-8")
    handler.setFormatter(logging.Formatter("%(asctime)s %(levelname)-7s %(message)s"))
    file_logger.addHandler(handler)
    return file_logger
