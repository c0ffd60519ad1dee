"""Shared resources for this repository's CI pipelines."""

from pathlib import Path

from scabbard import register
from scabbard.environments import DockerEnvironment

PROJECT_ROOT = Path(__file__).resolve().parent.parent

PYTHON_IMAGE = "python:3.12-slim"

register(
    "with_python",
    DockerEnvironment(
        PYTHON_IMAGE,
        workdir="/src",
        volumes=[f"{PROJECT_ROOT}:/src"],
        environment={"PIP_DISABLE_PIP_VERSION_CHECK": "1"},
    ),
)
