"""Execution environments that can be registered as resources."""

from scabbard.environments.docker import (
    CommandResult,
    DockerEnvironment,
    build_exec_command,
    build_run_command,
)

__all__ = [
    "CommandResult",
    "DockerEnvironment",
    "build_exec_command",
    "build_run_command",
]
