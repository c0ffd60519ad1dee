"""
Process-wide harness.

Pipeline modules written by different people, and loaded independently,
must all register into one run. The Harness pairs the registry and the
scheduler they share, with explicit init/reset for test isolation.

The module-level functions (register, provide, inject, enqueue, task,
run_pipelines_if_main) all act on the default harness.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable
from dataclasses import dataclass, field
from typing import Any, TypeVar, overload

from scabbard.config import ScabbardConfig
from scabbard.logging import configure_logging
from scabbard.models import RunReport
from scabbard.resources import ResourceFactory, ResourceRegistry
from scabbard.scheduler import B, Scheduler

T = TypeVar("T")


@dataclass
class Harness:
    """A resource registry and scheduler that share one pipeline run."""

    config: ScabbardConfig = field(default_factory=ScabbardConfig)
    resources: ResourceRegistry = field(default_factory=ResourceRegistry)
    scheduler: Scheduler = field(default_factory=Scheduler)

    def run_pipelines_if_main(
        self,
        is_main: bool,
        only: Iterable[str] | None = None,
    ) -> RunReport | None:
        """Run pending tasks if ``is_main``; ``only`` defaults to config.only."""
        if only is None:
            only = self.config.only
        return self.scheduler.run_pipelines_if_main(is_main, self.resources, only)


# Global harness instance
_default_harness: Harness | None = None


def init_harness(config: ScabbardConfig | None = None) -> Harness:
    """
    Install a fresh default harness and configure logging for it.

    Args:
        config: Harness configuration. If None, loads from scabbard.yaml and environment.

    Returns:
        The new default harness
    """
    global _default_harness
    config = config or ScabbardConfig.load()
    configure_logging(json_format=config.json_logs, level=config.log_level)
    _default_harness = Harness(config=config)
    return _default_harness


def get_harness() -> Harness:
    """Get the default harness, creating it on first use."""
    if _default_harness is None:
        return init_harness()
    return _default_harness


def reset_harness() -> None:
    """Drop the default harness (for testing)."""
    global _default_harness
    _default_harness = None


def register(key: str, value: Any) -> None:
    """Register a resource in the default harness."""
    get_harness().resources.register(key, value)


@overload
def provide(key: str) -> Callable[[ResourceFactory], ResourceFactory]: ...


@overload
def provide(key: str, factory: ResourceFactory) -> ResourceFactory: ...


def provide(key: str, factory: ResourceFactory | None = None) -> Any:
    """Register a lazy resource provider in the default harness.

    Usable directly or as a decorator:

        @provide("with_cargo")
        def with_cargo():
            ...
    """
    resources = get_harness().resources
    if factory is None:
        return resources.provider(key)
    resources.provide(key, factory)
    return factory


@overload
def inject(key: str, expected_type: type[T]) -> T: ...


@overload
def inject(key: str, expected_type: tuple[type, ...] | None = None) -> Any: ...


def inject(key: str, expected_type: Any = None) -> Any:
    """Look up a resource in the default harness.

    Raises:
        NotFoundError: If nothing is registered under key
        TypeMismatchError: If the value is not an instance of expected_type
    """
    return get_harness().resources.lookup(key, expected_type)


def enqueue(name: str, body: B) -> B:
    """Enqueue a task in the default harness."""
    return get_harness().scheduler.enqueue(name, body)


def task(name: str) -> Callable[[B], B]:
    """Decorator to enqueue a task in the default harness."""
    return get_harness().scheduler.task(name)


def run_pipelines_if_main(
    is_main: bool,
    only: Iterable[str] | None = None,
) -> RunReport | None:
    """Run the default harness's tasks if ``is_main``.

    Raises:
        PipelineFailure: If one or more task bodies raised
    """
    if not is_main:
        return None
    return get_harness().run_pipelines_if_main(is_main, only)
