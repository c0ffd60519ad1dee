"""
Scabbard - task registration and execution harness for CI pipelines.

This package lets a CI script:
- Register shared resources (e.g. a container to run commands in) by name
- Enqueue named asynchronous tasks that inject those resources
- Run every task concurrently, only when the script is the entry point
- Fail the process if any task failed, naming the tasks that did
"""

__version__ = "0.1.0"

from scabbard.config import ScabbardConfig
from scabbard.context import ExecutionContext
from scabbard.error_codes import ErrorCode, classify_error, error_chain, find_in_chain

# Errors
from scabbard.errors import (
    CommandError,
    CommandTimeoutError,
    ConfigurationError,
    NotFoundError,
    PipelineFailure,
    ProvisioningError,
    ResourceError,
    ScabbardBaseException,
    ScabbardError,
    TaskFailure,
    TypeMismatchError,
)

# Process-wide harness
from scabbard.harness import (
    Harness,
    enqueue,
    get_harness,
    init_harness,
    inject,
    provide,
    register,
    reset_harness,
    run_pipelines_if_main,
    task,
)
from scabbard.models import RunReport, TaskOutcome, TaskStatus
from scabbard.resources import ResourceRegistry
from scabbard.scheduler import RegisteredTask, Runnable, Scheduler, is_main

__all__ = [
    "__version__",
    # Core
    "ResourceRegistry",
    "Scheduler",
    "RegisteredTask",
    "Runnable",
    "ExecutionContext",
    "is_main",
    # Run models
    "RunReport",
    "TaskOutcome",
    "TaskStatus",
    # Harness
    "Harness",
    "ScabbardConfig",
    "init_harness",
    "get_harness",
    "reset_harness",
    "register",
    "provide",
    "inject",
    "enqueue",
    "task",
    "run_pipelines_if_main",
    # Errors
    "ScabbardBaseException",
    "ScabbardError",
    "ConfigurationError",
    "ResourceError",
    "NotFoundError",
    "TypeMismatchError",
    "TaskFailure",
    "PipelineFailure",
    "ProvisioningError",
    "CommandError",
    "CommandTimeoutError",
    # Error codes
    "ErrorCode",
    "classify_error",
    "error_chain",
    "find_in_chain",
]
