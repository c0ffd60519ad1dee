"""
ExecutionContext - the handle passed into every task body.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, TypeVar, overload

from scabbard.logging import task_logger

if TYPE_CHECKING:
    from scabbard.resources import ResourceRegistry

T = TypeVar("T")


class ExecutionContext:
    """
    Read-only view of the harness given to a task body.

    Task bodies use it to look up resources and to log with the task
    name already bound. The registry itself is not exposed, so a body
    can inject resources but not register or replace them.

    Attributes:
        task_name: Name the task was enqueued under
        logger: structlog logger bound with the task name
    """

    __slots__ = ("_task_name", "_resources", "_logger")

    def __init__(self, task_name: str, resources: ResourceRegistry, logger: Any = None) -> None:
        self._task_name = task_name
        self._resources = resources
        self._logger = logger if logger is not None else task_logger(task_name)

    def __repr__(self) -> str:
        return f"ExecutionContext(task_name={self._task_name!r})"

    @property
    def task_name(self) -> str:
        return self._task_name

    @property
    def logger(self) -> Any:
        return self._logger

    @overload
    def inject(self, key: str, expected_type: type[T]) -> T: ...

    @overload
    def inject(self, key: str, expected_type: tuple[type, ...] | None = None) -> Any: ...

    def inject(self, key: str, expected_type: Any = None) -> Any:
        """
        Look up a resource for this task.

        Raises:
            NotFoundError: If nothing is registered under key
            TypeMismatchError: If the value is not an instance of expected_type
        """
        return self._resources.lookup(key, expected_type)
