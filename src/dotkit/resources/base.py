"""Resource contract: check the current state, then apply the desired one."""

from __future__ import annotations

from abc import ABC, abstractmethod

from ..models import ResourceChange, ResourceState


class ResourceError(RuntimeError):
    """Raised when a resource cannot be inspected or changed."""


class UnsupportedOperationError(ResourceError):
    """Raised when a resource does not implement an optional operation."""


class Resource(ABC):
    """A single declarative item that can be checked and applied idempotently."""

    @abstractmethod
    def description(self) -> str:
        """Human-readable identity used in log lines."""

    @abstractmethod
    def current_state(self) -> ResourceState:
        """Inspect the system.

        Raises only for I/O failures unrelated to the resource's own
        correctness; a resource that can never be applied reports
        ``ResourceState.invalid`` instead.
        """

    @abstractmethod
    def apply(self) -> ResourceChange:
        """Bring the resource to its desired state. Safe to call repeatedly."""

    def remove(self) -> ResourceChange:
        raise UnsupportedOperationError(
            f"operation 'remove' is not supported for resource '{self.description()}'"
        )

    def needs_change(self) -> bool:
        return self.current_state().actionable

    def __str__(self) -> str:
        return self.description()
