"""
Run models.

TaskStatus, TaskOutcome and RunReport describe what happened to each
enqueued task during a single driver run.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from scabbard.errors import TaskFailure


def _generate_run_id() -> str:
    """Generate a unique run ID using ULID."""
    import ulid

    return str(ulid.new())


class TaskStatus(Enum):
    """
    Task status enum.

    Each value is a tuple of (name, complete).
    """

    # The task was enqueued but the driver has not started it
    NOT_STARTED = ("NOT_STARTED", False)

    # The task body has been started and has not settled
    RUNNING = ("RUNNING", False)

    # The task body returned
    SUCCEEDED = ("SUCCEEDED", True)

    # The task body raised
    FAILED = ("FAILED", True)

    def __init__(self, name: str, complete: bool) -> None:
        self._name = name
        self._complete = complete

    @property
    def is_complete(self) -> bool:
        """Indicates that the task body has settled (successfully or not)."""
        return self._complete

    def __str__(self) -> str:
        return self._name


@dataclass
class TaskOutcome:
    """
    What happened to a single task.

    Attributes:
        name: Name the task was enqueued under
        index: Position in registration order
        status: Final (or current) status
        result: Value the body returned, if it succeeded
        error: TaskFailure wrapping the body's exception, if it failed
        duration_seconds: Wall time from start to settle
    """

    name: str
    index: int
    status: TaskStatus = TaskStatus.NOT_STARTED
    result: Any = None
    error: TaskFailure | None = None
    duration_seconds: float = 0.0

    @property
    def succeeded(self) -> bool:
        return self.status is TaskStatus.SUCCEEDED

    @property
    def failed(self) -> bool:
        return self.status is TaskStatus.FAILED


@dataclass
class RunReport:
    """
    Aggregate result of one driver run.

    Outcomes are listed in registration order, regardless of the order
    in which tasks finished.
    """

    run_id: str = field(default_factory=_generate_run_id)
    outcomes: list[TaskOutcome] = field(default_factory=list)

    @property
    def succeeded(self) -> list[TaskOutcome]:
        return [o for o in self.outcomes if o.succeeded]

    @property
    def failures(self) -> list[TaskFailure]:
        return [o.error for o in self.outcomes if o.error is not None]

    @property
    def failed_names(self) -> list[str]:
        return [f.task_name for f in self.failures]

    @property
    def ok(self) -> bool:
        """True if no task failed. An empty run is ok."""
        return not self.failures

    def outcome(self, name: str) -> TaskOutcome:
        """Get the first outcome recorded under a task name.

        Raises:
            KeyError: If no task with that name ran
        """
        for o in self.outcomes:
            if o.name == name:
                return o
        raise KeyError(name)

    def summary(self) -> str:
        """One line per task, for terminal output."""
        lines = []
        for o in self.outcomes:
            line = f"{o.status!s:<10} {o.name} ({o.duration_seconds:.2f}s)"
            if o.error is not None:
                line += f": {o.error.cause!r}"
            lines.append(line)
        lines.append(f"{len(self.succeeded)} succeeded, {len(self.failures)} failed")
        return "\n".join(lines)
