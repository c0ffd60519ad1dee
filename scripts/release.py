"""
Pre-release checks for Scabbard, run with Scabbard itself.

Run with:
    python scripts/release.py
"""

from __future__ import annotations

import re
from pathlib import Path

from scabbard import ExecutionContext, is_main, register, run_pipelines_if_main, task
from scabbard.environments.docker import run_command

PROJECT_ROOT = Path(__file__).parent.parent

register("project_root", PROJECT_ROOT)


def read_version(path: Path, pattern: str) -> str:
    """Extract a version string from a file, or raise ValueError."""
    match = re.search(pattern, path.read_text(), re.MULTILINE)
    if not match:
        raise ValueError(f"Could not find version in {path}")
    return match.group(1)


@task("version-sync")
async def version_sync(context: ExecutionContext) -> str:
    """Check that pyproject.toml and __init__.py carry the same version."""
    root = context.inject("project_root", Path)
    pyproject_version = read_version(root / "pyproject.toml", r'^version\s*=\s*"([^"]+)"')
    init_version = read_version(root / "src" / "scabbard" / "__init__.py", r'^__version__\s*=\s*"([^"]+)"')

    if pyproject_version != init_version:
        raise ValueError(
            f"Version mismatch!\n"
            f"  pyproject.toml: {pyproject_version}\n"
            f"  __init__.py:    {init_version}\n"
            f"Please sync versions before releasing."
        )

    context.logger.info("version_validated", version=pyproject_version)
    return pyproject_version


@task("clean-tree")
async def clean_tree(context: ExecutionContext) -> None:
    """Check that the working tree has no uncommitted changes."""
    root = context.inject("project_root", Path)
    result = await run_command(["git", "-C", str(root), "status", "--porcelain"])
    result.check()
    if result.stdout:
        raise ValueError(f"Working tree is not clean:\n{result.stdout}")


run_pipelines_if_main(is_main(__name__))
