"""Shared pytest fixtures for harness testing."""

from collections.abc import Generator
from typing import Any

import pytest

from scabbard import ExecutionContext, ResourceRegistry, Scheduler, reset_harness
from scabbard.logging import configure_logging


@pytest.fixture(autouse=True)
def isolated_harness(monkeypatch: pytest.MonkeyPatch) -> Generator[None, None, None]:
    """Reset the default harness and logging, and ignore SCABBARD_* settings between tests."""
    for var in ("SCABBARD_LOG_LEVEL", "SCABBARD_JSON_LOGS", "SCABBARD_ONLY"):
        monkeypatch.delenv(var, raising=False)
    configure_logging()
    reset_harness()
    yield
    reset_harness()


@pytest.fixture
def resources() -> ResourceRegistry:
    return ResourceRegistry()


@pytest.fixture
def scheduler() -> Scheduler:
    return Scheduler()


# =============================================================================
# Shared Test Task Bodies
# =============================================================================


async def succeed(context: ExecutionContext) -> str:
    """A task that always succeeds."""
    return "ok"


async def fail(context: ExecutionContext) -> None:
    """A task that always fails."""
    raise RuntimeError("Task failed intentionally")


class CallRecorder:
    """A task body that records each call and returns a fixed value."""

    def __init__(self, result: Any = None) -> None:
        self.result = result
        self.calls: list[str] = []

    async def __call__(self, context: ExecutionContext) -> Any:
        self.calls.append(context.task_name)
        return self.result
