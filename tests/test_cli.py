"""Tests for the scabbard command line and for running pipeline files directly."""

import subprocess
import sys
import textwrap
from pathlib import Path

import pytest

from scabbard import ConfigurationError, get_harness
from scabbard.cli import main
from scabbard.cli.commands import (
    EXIT_OK,
    EXIT_TASKS_FAILED,
    EXIT_USAGE,
    list_tasks,
    load_pipeline,
    run,
)

PASSING_PIPELINE = """
from scabbard import enqueue, is_main, register, run_pipelines_if_main

register("env", {"image": "alpine"})

async def build(context):
    return "built"

async def use_env(context):
    return context.inject("env", dict)["image"]

enqueue("build", build)
enqueue("use-env", use_env)

run_pipelines_if_main(is_main(__name__))
"""

FAILING_PIPELINE = """
from scabbard import enqueue, is_main, run_pipelines_if_main

async def build(context):
    print("build ran")

async def test(context):
    context.inject("env")

enqueue("build", build)
enqueue("test", test)

run_pipelines_if_main(is_main(__name__))
"""


@pytest.fixture
def workdir(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    monkeypatch.chdir(tmp_path)
    return tmp_path


def write(directory: Path, name: str, source: str) -> Path:
    path = directory / name
    path.write_text(textwrap.dedent(source))
    return path


class TestLoadPipeline:
    """Test loading pipeline files."""

    def test_registers_without_running(self, workdir: Path) -> None:
        """Loading a pipeline registers its tasks; its own guard runs nothing."""
        path = write(workdir, "pipeline.py", PASSING_PIPELINE)

        load_pipeline(path)

        harness = get_harness()
        assert harness.scheduler.task_names() == ["build", "use-env"]
        assert harness.resources.keys() == ["env"]

    def test_sibling_imports(self, workdir: Path) -> None:
        """A pipeline can import a sibling setup module, like ci/scope.py."""
        write(workdir, "shared_scope.py", 'from scabbard import register\nregister("env", 1)\n')
        path = write(workdir, "pipeline.py", "import shared_scope  # noqa: F401\n")

        load_pipeline(path)

        assert get_harness().resources.keys() == ["env"]
        assert str(workdir.resolve()) not in sys.path
        sys.modules.pop("shared_scope", None)

    def test_missing_file(self, workdir: Path) -> None:
        """A missing file is a configuration error."""
        with pytest.raises(ConfigurationError, match="not found"):
            load_pipeline(workdir / "missing.py")

    def test_broken_file(self, workdir: Path) -> None:
        """Errors while loading are wrapped with the original as cause."""
        path = write(workdir, "pipeline.py", "raise RuntimeError('broken setup')\n")

        with pytest.raises(ConfigurationError) as exc_info:
            load_pipeline(path)

        assert isinstance(exc_info.value.cause, RuntimeError)


class TestRunCommand:
    """Test `scabbard run`."""

    def test_success(self, workdir: Path, capsys: pytest.CaptureFixture[str]) -> None:
        """All tasks succeed: exit 0 and a summary on stdout."""
        path = write(workdir, "pipeline.py", PASSING_PIPELINE)

        assert run(str(path)) == EXIT_OK

        out = capsys.readouterr().out
        assert "SUCCEEDED" in out
        assert "use-env" in out
        assert "2 succeeded, 0 failed" in out

    def test_failure(self, workdir: Path, capsys: pytest.CaptureFixture[str]) -> None:
        """A failing task: exit 1, siblings still ran, failure named."""
        path = write(workdir, "pipeline.py", FAILING_PIPELINE)

        assert run(str(path)) == EXIT_TASKS_FAILED

        out = capsys.readouterr().out
        assert "build ran" in out
        assert "NotFoundError" in out
        assert "1 succeeded, 1 failed" in out

    def test_only(self, workdir: Path, capsys: pytest.CaptureFixture[str]) -> None:
        """--only restricts the run to the named tasks."""
        path = write(workdir, "pipeline.py", FAILING_PIPELINE)

        assert run(str(path), only=["build"]) == EXIT_OK
        assert "1 succeeded, 0 failed" in capsys.readouterr().out

    def test_only_from_environment(
        self, workdir: Path, monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str]
    ) -> None:
        """SCABBARD_ONLY selects tasks too."""
        monkeypatch.setenv("SCABBARD_ONLY", "build")
        path = write(workdir, "pipeline.py", FAILING_PIPELINE)

        assert run(str(path)) == EXIT_OK

    def test_unknown_task(self, workdir: Path, capsys: pytest.CaptureFixture[str]) -> None:
        """Selecting a task that does not exist is a usage error."""
        path = write(workdir, "pipeline.py", PASSING_PIPELINE)

        assert run(str(path), only=["deploy"]) == EXIT_USAGE
        assert "deploy" in capsys.readouterr().err

    def test_no_tasks(self, workdir: Path, capsys: pytest.CaptureFixture[str]) -> None:
        """An empty pipeline succeeds."""
        path = write(workdir, "pipeline.py", "x = 1\n")

        assert run(str(path)) == EXIT_OK
        assert "No tasks registered" in capsys.readouterr().out

    def test_bad_log_level(self, workdir: Path, capsys: pytest.CaptureFixture[str]) -> None:
        """An invalid --log-level is a usage error."""
        path = write(workdir, "pipeline.py", PASSING_PIPELINE)

        assert run(str(path), log_level="chatty") == EXIT_USAGE
        assert "Invalid log level" in capsys.readouterr().err

    def test_config_file(self, workdir: Path, capsys: pytest.CaptureFixture[str]) -> None:
        """Task selection can come from a config file."""
        config = write(workdir, "ci.yaml", "only: [build]\n")
        path = write(workdir, "pipeline.py", FAILING_PIPELINE)

        assert run(str(path), config_path=str(config)) == EXIT_OK


class TestListCommand:
    """Test `scabbard list`."""

    def test_lists_tasks_with_duplicates(self, workdir: Path, capsys: pytest.CaptureFixture[str]) -> None:
        """Task names are printed in order with duplicates marked; nothing runs."""
        path = write(workdir, "pipeline.py", FAILING_PIPELINE.replace('"test"', '"build"'))

        assert list_tasks(str(path)) == EXIT_OK

        out = capsys.readouterr().out
        assert out.splitlines()[:2] == ["build  (duplicate)", "build  (duplicate)"]
        assert "build ran" not in out

    def test_lists_resources(self, workdir: Path, capsys: pytest.CaptureFixture[str]) -> None:
        """Registered resource keys are listed."""
        path = write(workdir, "pipeline.py", PASSING_PIPELINE)

        list_tasks(str(path))

        assert "Resources: env" in capsys.readouterr().out

    def test_missing_file(self, workdir: Path, capsys: pytest.CaptureFixture[str]) -> None:
        """A missing file is a usage error."""
        assert list_tasks(str(workdir / "missing.py")) == EXIT_USAGE


class TestMain:
    """Test argument parsing."""

    def test_run(self, workdir: Path, capsys: pytest.CaptureFixture[str]) -> None:
        """main() exits with the run's exit code."""
        path = write(workdir, "pipeline.py", FAILING_PIPELINE)

        with pytest.raises(SystemExit) as exc_info:
            main(["run", str(path), "--only", "build", "--log-level", "warning"])

        assert exc_info.value.code == EXIT_OK

    def test_run_failure(self, workdir: Path, capsys: pytest.CaptureFixture[str]) -> None:
        """A failed task gives exit code 1."""
        path = write(workdir, "pipeline.py", FAILING_PIPELINE)

        with pytest.raises(SystemExit) as exc_info:
            main(["run", str(path), "--json-logs"])

        assert exc_info.value.code == EXIT_TASKS_FAILED

    def test_no_command(self, capsys: pytest.CaptureFixture[str]) -> None:
        """Without a command, help is printed and the exit code is 2."""
        with pytest.raises(SystemExit) as exc_info:
            main([])

        assert exc_info.value.code == EXIT_USAGE
        assert "usage" in capsys.readouterr().out


class TestDirectExecution:
    """Test running pipeline files with the interpreter, as CI does."""

    def test_failing_pipeline_exits_non_zero(self, tmp_path: Path) -> None:
        """Running a pipeline whose task fails exits non-zero, naming the task."""
        path = write(tmp_path, "pipeline.py", FAILING_PIPELINE)

        result = subprocess.run(
            [sys.executable, str(path)], cwd=tmp_path, capture_output=True, text=True, timeout=60
        )

        assert result.returncode != 0
        assert "build ran" in result.stdout
        assert "PipelineFailure" in result.stderr
        assert "test" in result.stderr

    def test_passing_pipeline_exits_zero(self, tmp_path: Path) -> None:
        """Running a passing pipeline exits 0."""
        path = write(tmp_path, "pipeline.py", PASSING_PIPELINE)

        result = subprocess.run(
            [sys.executable, str(path)], cwd=tmp_path, capture_output=True, text=True, timeout=60
        )

        assert result.returncode == 0, result.stderr

    def test_imported_pipeline_runs_nothing(self, tmp_path: Path) -> None:
        """Importing a pipeline module from another entry point runs none of its tasks."""
        write(tmp_path, "pipeline.py", FAILING_PIPELINE)
        entry = write(tmp_path, "entry.py", 'import pipeline  # noqa: F401\nprint("imported")\n')

        result = subprocess.run(
            [sys.executable, str(entry)], cwd=tmp_path, capture_output=True, text=True, timeout=60
        )

        assert result.returncode == 0, result.stderr
        assert result.stdout.strip() == "imported"
