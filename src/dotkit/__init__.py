"""Core package for the dotkit project."""

__version__ = "0.1.0"

from .cli import app, run
from .config import Config, ConfigError, load_config
from .context import Context
from .exec import ExecError, ExecResult, Executor, RecordingExecutor, SystemExecutor
from .logger import BufferedLog, Logger
from .models import ResourceChange, ResourceState, TaskResult, TaskStats, TaskStatus
from .platform import Os, Platform
from .processing import ProcessOpts, process_resource_states, process_resources, process_resources_remove
from .scheduler import TaskFailuresError, run_tasks, run_tasks_to_completion
from .tasks import Task, execute

__all__ = [
    "__version__",
    "Config",
    "ConfigError",
    "load_config",
    "Context",
    "ExecError",
    "ExecResult",
    "Executor",
    "RecordingExecutor",
    "SystemExecutor",
    "BufferedLog",
    "Logger",
    "ResourceChange",
    "ResourceState",
    "TaskResult",
    "TaskStats",
    "TaskStatus",
    "Os",
    "Platform",
    "ProcessOpts",
    "process_resource_states",
    "process_resources",
    "process_resources_remove",
    "TaskFailuresError",
    "run_tasks",
    "run_tasks_to_completion",
    "Task",
    "execute",
    "app",
    "run",
]
