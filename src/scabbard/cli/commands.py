"""CLI command implementations for Scabbard."""

from __future__ import annotations

import runpy
import sys
from collections.abc import Sequence
from dataclasses import replace
from pathlib import Path

from scabbard.config import ScabbardConfig
from scabbard.errors import ConfigurationError, PipelineFailure
from scabbard.harness import Harness, get_harness, init_harness

# Exit codes
EXIT_OK = 0
EXIT_TASKS_FAILED = 1
EXIT_USAGE = 2

# Module name pipeline files are loaded under, so their entry-point guard stays off
PIPELINE_MODULE_NAME = "__scabbard_pipeline__"


def load_pipeline(path: str | Path) -> None:
    """
    Execute a pipeline file so its tasks and resources register.

    The file runs under a non-entry module name, so its own
    ``run_pipelines_if_main(is_main(__name__))`` call does nothing. Its
    directory is put on sys.path while it loads, as ``python FILE`` would.

    Raises:
        ConfigurationError: If the file does not exist or raises while loading
    """
    pipeline = Path(path).resolve()
    if not pipeline.is_file():
        raise ConfigurationError(f"Pipeline file not found: {path}")

    sys.path.insert(0, str(pipeline.parent))
    try:
        runpy.run_path(str(pipeline), run_name=PIPELINE_MODULE_NAME)
    except Exception as e:
        raise ConfigurationError(f"Failed to load pipeline {path}: {e!r}", cause=e) from e
    finally:
        try:
            sys.path.remove(str(pipeline.parent))
        except ValueError:
            pass


def _prepare(
    path: str,
    only: Sequence[str] | None = None,
    log_level: str | None = None,
    json_logs: bool | None = None,
    config_path: str | None = None,
) -> Harness:
    config = ScabbardConfig.load(config_path)
    overrides: dict[str, object] = {}
    if only:
        overrides["only"] = tuple(only)
    if log_level:
        overrides["log_level"] = log_level
    if json_logs is not None:
        overrides["json_logs"] = json_logs
    if overrides:
        config = replace(config, **overrides)

    init_harness(config)
    load_pipeline(path)
    # The pipeline file may have installed its own harness
    return get_harness()


def run(
    path: str,
    only: Sequence[str] | None = None,
    log_level: str | None = None,
    json_logs: bool | None = None,
    config_path: str | None = None,
) -> int:
    """Load a pipeline file and run its tasks. Returns the process exit code."""
    try:
        harness = _prepare(path, only, log_level, json_logs, config_path)
        report = harness.run_pipelines_if_main(True, harness.config.only)
    except ConfigurationError as e:
        print(f"Error: {e.message}", file=sys.stderr)
        return EXIT_USAGE
    except PipelineFailure as e:
        print(e.report.summary())
        return EXIT_TASKS_FAILED

    assert report is not None
    if not report.outcomes:
        print("No tasks registered")
    else:
        print(report.summary())
    return EXIT_OK


def list_tasks(path: str, config_path: str | None = None) -> int:
    """Load a pipeline file and print its task names. Returns the process exit code."""
    try:
        harness = _prepare(path, config_path=config_path)
    except ConfigurationError as e:
        print(f"Error: {e.message}", file=sys.stderr)
        return EXIT_USAGE

    scheduler = harness.scheduler
    duplicates = set(scheduler.duplicate_names())
    names = scheduler.task_names()
    if not names:
        print("No tasks registered")
        return EXIT_OK

    for name in names:
        marker = "  (duplicate)" if name in duplicates else ""
        print(f"{name}{marker}")

    resources = harness.resources.keys()
    if resources:
        print(f"\nResources: {', '.join(resources)}")
    return EXIT_OK
