"""
Task scheduler and pipeline driver.

This module provides the Scheduler class, which keeps an ordered list of
named task bodies and runs them concurrently on one event loop when the
calling module is the program's entry point.

A CI script typically looks like:

    from scabbard import enqueue, inject, is_main, run_pipelines_if_main

    async def tests(context):
        env = context.inject("with_cargo", DockerEnvironment)
        result = await env.exec_checked(["cargo", "test"])
        print(result.stdout)

    enqueue("tests", tests)

    run_pipelines_if_main(is_main(__name__))
"""

from __future__ import annotations

import asyncio
import inspect
import time
from collections import Counter
from collections.abc import Awaitable, Callable, Iterable
from dataclasses import dataclass
from typing import Any, Protocol, TypeVar, runtime_checkable

from scabbard.context import ExecutionContext
from scabbard.error_codes import classify_error
from scabbard.errors import ConfigurationError, PipelineFailure, TaskFailure
from scabbard.logging import bind_context, get_logger, unbind_context
from scabbard.models import RunReport, TaskOutcome, TaskStatus
from scabbard.resources import ResourceRegistry

logger = get_logger(__name__)


@runtime_checkable
class Runnable(Protocol):
    """A task body expressed as an object with a single run method."""

    def run(self, context: ExecutionContext) -> Awaitable[Any] | Any: ...


# Type for task bodies - an (async) callable taking the context, or a Runnable
TaskCallable = Callable[[ExecutionContext], Any]
TaskBody = TaskCallable | Runnable

B = TypeVar("B", bound=TaskBody)


def is_main(module_name: str) -> bool:
    """Whether a module is the program's entry point.

    Pass the calling module's ``__name__``.
    """
    return module_name == "__main__"


@dataclass(frozen=True)
class RegisteredTask:
    """A task body registered under a name."""

    name: str
    body: TaskBody
    index: int

    async def invoke(self, context: ExecutionContext) -> Any:
        """Call the body and await its result if it returned an awaitable."""
        if callable(self.body):
            result = self.body(context)
        elif isinstance(self.body, Runnable):
            result = self.body.run(context)
        else:
            raise TypeError(f"Task body for '{self.name}' is not callable and has no run method")

        if inspect.isawaitable(result):
            result = await result
        return result


class Scheduler:
    """
    Ordered collection of named task bodies.

    Tasks are started in registration order and run concurrently. A task
    that raises does not stop its siblings; failures are collected and
    reported once every task has settled.

    Example:
        scheduler = Scheduler()

        @scheduler.task("build")
        async def build(context):
            return "ok"

        report = scheduler.run_pipelines_if_main(is_main(__name__), resources)
    """

    def __init__(self) -> None:
        self._tasks: list[RegisteredTask] = []
        self._next_index = 0

    def enqueue(self, name: str, body: B) -> B:
        """
        Register a task body. The body is not called.

        Args:
            name: The task name. Need not be unique; duplicates are logged.
            body: Async callable taking an ExecutionContext, or a Runnable

        Returns:
            The body, unchanged
        """
        if not callable(body) and not isinstance(body, Runnable):
            raise TypeError(f"Task body for '{name}' must be callable or have a run method")

        if name in self.task_names():
            logger.warning("duplicate_task_name", task=name)

        self._tasks.append(RegisteredTask(name=name, body=body, index=self._next_index))
        self._next_index += 1
        logger.debug("task_enqueued", task=name)
        return body

    def task(self, name: str) -> Callable[[B], B]:
        """
        Decorator to enqueue a function as a task.

        Example:
            @scheduler.task("lint")
            async def lint(context):
                ...
        """

        def decorator(body: B) -> B:
            return self.enqueue(name, body)

        return decorator

    def task_names(self) -> list[str]:
        """Get pending task names in registration order."""
        return [t.name for t in self._tasks]

    def duplicate_names(self) -> list[str]:
        """Get pending task names that were registered more than once."""
        counts = Counter(self.task_names())
        return [name for name, count in counts.items() if count > 1]

    def clear(self) -> None:
        """Drop all pending tasks."""
        self._tasks.clear()

    def __len__(self) -> int:
        return len(self._tasks)

    def _take(self, only: Iterable[str] | None) -> list[RegisteredTask]:
        """Remove the tasks selected for a run from the pending list."""
        selected_names = set(only or ())
        if not selected_names:
            selected, self._tasks = self._tasks, []
            return selected

        unknown = selected_names - set(self.task_names())
        if unknown:
            raise ConfigurationError(f"Unknown task name(s): {sorted(unknown)}")

        selected = [t for t in self._tasks if t.name in selected_names]
        self._tasks = [t for t in self._tasks if t.name not in selected_names]
        return selected

    async def run_all(
        self,
        resources: ResourceRegistry,
        only: Iterable[str] | None = None,
    ) -> RunReport:
        """
        Run pending tasks concurrently and wait for all of them to settle.

        Args:
            resources: Registry task bodies inject from
            only: Task names to run. None or empty runs every pending task.

        Returns:
            RunReport with one outcome per task, in registration order

        Raises:
            ConfigurationError: If ``only`` names a task that is not pending
            PipelineFailure: If one or more task bodies raised
        """
        selected = self._take(only)
        report = RunReport(outcomes=[TaskOutcome(name=t.name, index=t.index) for t in selected])

        if not selected:
            logger.info("no_tasks_registered", run_id=report.run_id)
            return report

        # Context is copied into each asyncio task at creation
        bind_context(run_id=report.run_id)
        try:
            logger.info("run_started", tasks=len(selected))
            runs = [
                asyncio.create_task(self._run_task(task, outcome, resources), name=f"scabbard:{task.name}")
                for task, outcome in zip(selected, report.outcomes)
            ]
            await asyncio.gather(*runs)
            logger.info(
                "run_finished",
                succeeded=len(report.succeeded),
                failed=len(report.failures),
            )
        finally:
            unbind_context("run_id")

        if not report.ok:
            raise PipelineFailure(report)
        return report

    async def _run_task(
        self,
        task: RegisteredTask,
        outcome: TaskOutcome,
        resources: ResourceRegistry,
    ) -> None:
        """Run one task body, recording its outcome.

        Never raises Exception. A CancelledError raised by the body itself
        (e.g. it awaited something that was cancelled) is recorded as a
        failure; it propagates only when this task was cancelled from outside.
        """
        context = ExecutionContext(task_name=task.name, resources=resources)
        outcome.status = TaskStatus.RUNNING
        started = time.monotonic()
        context.logger.info("task_started")

        try:
            outcome.result = await task.invoke(context)
        except asyncio.CancelledError as e:
            current = asyncio.current_task()
            if current is not None and current.cancelling():
                outcome.status = TaskStatus.FAILED
                outcome.error = TaskFailure(task.name, e)
                raise
            self._record_failure(context, outcome, e)
        except Exception as e:
            self._record_failure(context, outcome, e)
        else:
            outcome.status = TaskStatus.SUCCEEDED
            context.logger.info("task_succeeded")
        finally:
            outcome.duration_seconds = time.monotonic() - started

    @staticmethod
    def _record_failure(context: ExecutionContext, outcome: TaskOutcome, error: BaseException) -> None:
        outcome.status = TaskStatus.FAILED
        outcome.error = TaskFailure(context.task_name, error)
        context.logger.error(
            "task_failed",
            error=repr(error),
            error_code=classify_error(error).value,
            exc_info=error,
        )

    def run_pipelines_if_main(
        self,
        is_main: bool,
        resources: ResourceRegistry,
        only: Iterable[str] | None = None,
    ) -> RunReport | None:
        """
        Run all pending tasks, but only from the program's entry point.

        When ``is_main`` is False this returns None immediately without
        touching the pending list or logging, so a pipeline module can be
        imported by another module without running anything.

        Args:
            is_main: Whether the caller is the entry module; see is_main()
            resources: Registry task bodies inject from
            only: Task names to run. None or empty runs every pending task.

        Returns:
            RunReport, or None if not the entry module

        Raises:
            PipelineFailure: If one or more task bodies raised
        """
        if not is_main:
            return None
        return asyncio.run(self.run_all(resources, only))
