"""
Structured error codes for Scabbard.

Provides semantic error classification and exception chain traversal,
used when reporting pipeline failures.

Usage:
    from scabbard.error_codes import ErrorCode, error_chain, classify_error

    try:
        await body(context)
    except Exception as e:
        code = classify_error(e)
        chain = error_chain(e)
        if code == ErrorCode.RESOURCE_NOT_FOUND:
            # A resource was requested before it was registered
            pass
"""

from __future__ import annotations

from enum import Enum


class ErrorCode(Enum):
    """Semantic error codes for categorizing exceptions.

    These codes give reports and log processors a stable way to tell
    harness errors (bad wiring, bad configuration) from errors raised
    by the work inside a task body.
    """

    # General errors
    UNKNOWN = "UNKNOWN"
    SYSTEM_ERROR = "SYSTEM_ERROR"
    USER_CODE_ERROR = "USER_CODE_ERROR"

    # Resource errors
    RESOURCE_NOT_FOUND = "RESOURCE_NOT_FOUND"
    RESOURCE_TYPE_MISMATCH = "RESOURCE_TYPE_MISMATCH"

    # Task errors
    TASK_FAILED = "TASK_FAILED"
    TASK_TIMEOUT = "TASK_TIMEOUT"
    PIPELINE_FAILED = "PIPELINE_FAILED"

    # Configuration errors
    CONFIGURATION_INVALID = "CONFIGURATION_INVALID"

    # Environment errors
    ENVIRONMENT_UNAVAILABLE = "ENVIRONMENT_UNAVAILABLE"
    COMMAND_FAILED = "COMMAND_FAILED"


def error_chain(error: BaseException) -> list[BaseException]:
    """Traverse __cause__ chain, return list from root to leaf.

    Args:
        error: The exception to traverse

    Returns:
        List of exceptions from root cause to the provided exception.
        If no cause chain exists, returns a list with just the error.

    Example:
        try:
            raise NotFoundError("env")
        except NotFoundError as e1:
            failure = TaskFailure("test", e1)
            chain = error_chain(failure)
            # chain = [NotFoundError("env"), TaskFailure("test", ...)]
    """
    chain: list[BaseException] = []
    current: BaseException | None = error

    # Build chain from leaf to root
    while current is not None:
        chain.append(current)
        cause = getattr(current, "__cause__", None)
        if cause is current or cause in chain:
            # Prevent infinite loops on self-referential causes
            break
        current = cause

    # Reverse to get root-to-leaf order
    chain.reverse()
    return chain


def find_in_chain(error: BaseException, error_type: type) -> BaseException | None:
    """Find first error of given type in cause chain.

    Args:
        error: The exception to search from
        error_type: The type of exception to find

    Returns:
        The first exception of the given type (closest to the root),
        or None if not found.
    """
    for exc in error_chain(error):
        if isinstance(exc, error_type):
            return exc
    return None


def classify_error(error: BaseException) -> ErrorCode:
    """Map any exception to an ErrorCode for reporting.

    Uses a combination of:
    - Explicit error_code attributes on Scabbard exceptions
    - The cause chain, for foreign exceptions wrapping Scabbard ones
    - Name-based heuristics for everything else

    Args:
        error: The exception to classify

    Returns:
        The most appropriate ErrorCode for the exception.
    """
    # Check for explicit error_code attribute (Scabbard exceptions)
    if hasattr(error, "error_code"):
        return error.error_code  # type: ignore[no-any-return]

    # Check the cause chain for Scabbard exceptions with error_code
    for exc in reversed(error_chain(error)):
        if hasattr(exc, "error_code"):
            return exc.error_code  # type: ignore[no-any-return]

    error_type = type(error).__name__.lower()

    if isinstance(error, TimeoutError) or "timeout" in error_type:
        return ErrorCode.TASK_TIMEOUT

    if isinstance(error, (AssertionError, KeyError, ValueError, TypeError)):
        return ErrorCode.USER_CODE_ERROR

    if isinstance(error, OSError):
        return ErrorCode.SYSTEM_ERROR

    return ErrorCode.UNKNOWN
