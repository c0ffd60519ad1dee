"""Scabbard error hierarchy.

Two-tier exception hierarchy:

1. ScabbardBaseException - Base for all errors
2. ScabbardError - Standard errors raised by the harness

Error Classification:
- ResourceError: Resource lookup failed (NotFoundError, TypeMismatchError)
- TaskFailure: A task body raised; isolated to that task
- PipelineFailure: One or more tasks failed; raised after all tasks settle
- ConfigurationError: Invalid configuration or task selection
- ProvisioningError / CommandError: Execution environment problems

None of these are retried by the harness. Retry policy, if wanted,
belongs inside a task body.

Usage:
    from scabbard.errors import NotFoundError, PipelineFailure

    try:
        run_pipelines_if_main(is_main(__name__))
    except PipelineFailure as e:
        for failure in e.failures:
            print(failure.task_name, failure.cause)
        raise
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from scabbard.error_codes import ErrorCode, classify_error

if TYPE_CHECKING:
    from scabbard.models import RunReport


class ScabbardBaseException(Exception):  # noqa: N818 - intentional base exception name
    """Base exception for all Scabbard errors.

    Attributes:
        code: Numeric error code for programmatic handling
        error_code: Semantic ErrorCode for categorization
        cause: Optional original exception that caused this error
    """

    code: int = 0
    default_error_code: ErrorCode = ErrorCode.UNKNOWN

    def __init__(
        self,
        message: str,
        *,
        code: int | None = None,
        cause: BaseException | None = None,
        error_code: ErrorCode | None = None,
    ) -> None:
        """Initialize the exception.

        Args:
            message: Human-readable error message
            code: Optional numeric error code for programmatic handling
            cause: Optional original exception that caused this error
            error_code: Optional semantic ErrorCode for categorization
        """
        super().__init__(message)
        self.message = message
        if code is not None:
            self.code = code
        self.cause = cause
        if cause is not None:
            self.__cause__ = cause
        self._error_code = error_code

    @property
    def error_code(self) -> ErrorCode:
        """Get the semantic error code for this exception.

        Returns the explicitly set error_code if available, otherwise
        the default for the exception class.
        """
        if self._error_code is not None:
            return self._error_code
        return self.default_error_code

    def __str__(self) -> str:
        parts = [self.message]
        if self.code:
            parts.append(f"(code={self.code})")
        if self.cause:
            parts.append(f"caused by: {self.cause!r}")
        return " ".join(parts)


class ScabbardError(ScabbardBaseException):
    """Standard Scabbard error.

    All errors raised by the harness itself inherit from this.
    """

    code: int = 100
    default_error_code = ErrorCode.SYSTEM_ERROR


class ConfigurationError(ScabbardError):
    """Invalid configuration.

    Raised when:
    - scabbard.yaml cannot be parsed or has the wrong shape
    - An environment variable holds an invalid value
    - A task selection names tasks that were never enqueued
    """

    code: int = 104
    default_error_code = ErrorCode.CONFIGURATION_INVALID


# =============================================================================
# Resource errors
# =============================================================================


class ResourceError(ScabbardError):
    """Resource lookup failed.

    Raised synchronously to the task body that performed the lookup.
    Never affects the registry or any other task.
    """

    code: int = 110

    def __init__(self, message: str, *, key: str, **kwargs: Any) -> None:
        super().__init__(message, **kwargs)
        self.key = key


class NotFoundError(ResourceError):
    """No resource is registered under the requested key."""

    code: int = 111
    default_error_code = ErrorCode.RESOURCE_NOT_FOUND

    def __init__(self, key: str) -> None:
        super().__init__(f"No resource registered under key '{key}'", key=key)


class TypeMismatchError(ResourceError):
    """A resource exists under the key but is not of the expected type."""

    code: int = 112
    default_error_code = ErrorCode.RESOURCE_TYPE_MISMATCH

    def __init__(self, key: str, expected: Any, actual: type) -> None:
        super().__init__(
            f"Resource '{key}' is {_type_name(actual)}, expected {_type_name(expected)}",
            key=key,
        )
        self.expected = expected
        self.actual = actual


def _type_name(tp: Any) -> str:
    if isinstance(tp, tuple):
        return " | ".join(_type_name(t) for t in tp)
    return getattr(tp, "__qualname__", None) or repr(tp)


# =============================================================================
# Task errors
# =============================================================================


class TaskFailure(ScabbardError):  # noqa: N818 - mirrors PipelineFailure
    """A task body raised.

    Wraps the body's exception with the name of the task for attribution.
    The original exception is available as ``cause`` and ``__cause__``.
    """

    code: int = 200
    default_error_code = ErrorCode.TASK_FAILED

    def __init__(self, task_name: str, cause: BaseException) -> None:
        super().__init__(f"Task '{task_name}' failed", cause=cause)
        self.task_name = task_name

    @property
    def cause_code(self) -> ErrorCode:
        """Semantic code of the wrapped exception."""
        assert self.cause is not None
        return classify_error(self.cause)


class PipelineFailure(ScabbardError):  # noqa: N818 - run-level counterpart of TaskFailure
    """One or more tasks failed during a run.

    Raised by the driver only after every task has settled. The full
    RunReport, including successful outcomes, is attached.
    """

    code: int = 300
    default_error_code = ErrorCode.PIPELINE_FAILED

    def __init__(self, report: RunReport) -> None:
        failures = report.failures
        lines = [f"{len(failures)} of {len(report.outcomes)} task(s) failed:"]
        for failure in failures:
            lines.append(f"  - {failure.task_name}: {failure.cause!r}")
        super().__init__("\n".join(lines))
        self.report = report

    @property
    def failures(self) -> list[TaskFailure]:
        return self.report.failures

    @property
    def failed_names(self) -> list[str]:
        return self.report.failed_names


# =============================================================================
# Environment errors
# =============================================================================


class ProvisioningError(ScabbardError):
    """An execution environment could not be created or reached."""

    code: int = 400
    default_error_code = ErrorCode.ENVIRONMENT_UNAVAILABLE


class CommandError(ScabbardError):
    """A command run inside an execution environment exited non-zero."""

    code: int = 401
    default_error_code = ErrorCode.COMMAND_FAILED

    def __init__(
        self,
        message: str,
        *,
        command: list[str],
        exit_code: int | None = None,
        stderr: str = "",
        **kwargs: Any,
    ) -> None:
        super().__init__(message, **kwargs)
        self.command = command
        self.exit_code = exit_code
        self.stderr = stderr


class CommandTimeoutError(CommandError):
    """A command exceeded its timeout and was killed."""

    code: int = 402
    default_error_code = ErrorCode.TASK_TIMEOUT
