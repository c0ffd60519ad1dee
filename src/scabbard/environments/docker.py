"""
Docker-backed execution environment.

DockerEnvironment runs commands with ``docker exec`` in a long-lived
container, started on first use. Register the handle as a resource during
setup so task bodies can inject it:

    register("with_cargo", DockerEnvironment("rust:1", workdir="/src", volumes=[f"{root}:/src"]))

    @task("tests")
    async def tests(context):
        env = context.inject("with_cargo", DockerEnvironment)
        result = await env.exec_checked(["cargo", "test"])
        print(result.stdout)
"""

from __future__ import annotations

import asyncio
import shlex
import subprocess
from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass
from typing import Any

from scabbard.errors import CommandError, CommandTimeoutError, ProvisioningError
from scabbard.logging import get_logger

logger = get_logger(__name__)

# Keeps a detached container alive until it is stopped
KEEPALIVE_COMMAND = ("sleep", "infinity")


@dataclass(frozen=True)
class CommandResult:
    """
    Result of a command run in an execution environment.

    Attributes:
        command: The full argv that was run
        stdout: Standard output (stripped)
        stderr: Standard error (stripped)
        exit_code: Process exit code
    """

    command: list[str]
    stdout: str
    stderr: str
    exit_code: int

    @property
    def ok(self) -> bool:
        return self.exit_code == 0

    def check(self) -> CommandResult:
        """Return self, or raise CommandError if the command exited non-zero."""
        if not self.ok:
            raise CommandError(
                f"Command failed with exit code {self.exit_code}: {self.stderr}",
                command=self.command,
                exit_code=self.exit_code,
                stderr=self.stderr,
            )
        return self


def _split(command: str | Sequence[str]) -> list[str]:
    if isinstance(command, str):
        return shlex.split(command)
    return list(command)


def build_run_command(
    image: str,
    *,
    name: str | None = None,
    workdir: str | None = None,
    volumes: Iterable[str] = (),
    environment: Mapping[str, Any] | None = None,
    network: str | None = None,
    docker: str = "docker",
) -> list[str]:
    """Build the ``docker run`` argv for a detached keepalive container."""
    if not image:
        raise ValueError("'image' is required to start a container")

    cmd = [docker, "run", "-d", "--rm"]

    # Container name
    if name:
        cmd.extend(["--name", name])

    # Volumes
    for vol in volumes:
        cmd.extend(["-v", vol])

    # Environment variables
    for key, value in (environment or {}).items():
        cmd.extend(["-e", f"{key}={value}"])

    # Working directory
    if workdir:
        cmd.extend(["-w", workdir])

    # Network
    if network:
        cmd.extend(["--network", network])

    cmd.append(image)
    cmd.extend(KEEPALIVE_COMMAND)
    return cmd


def build_exec_command(
    container: str,
    command: str | Sequence[str],
    *,
    workdir: str | None = None,
    environment: Mapping[str, Any] | None = None,
    docker: str = "docker",
) -> list[str]:
    """Build the ``docker exec`` argv for a command in a running container."""
    if not container:
        raise ValueError("'container' is required for exec")
    argv = _split(command)
    if not argv:
        raise ValueError("'command' is required for exec")

    cmd = [docker, "exec"]
    if workdir:
        cmd.extend(["-w", workdir])
    for key, value in (environment or {}).items():
        cmd.extend(["-e", f"{key}={value}"])
    cmd.append(container)
    cmd.extend(argv)
    return cmd


async def run_command(cmd: list[str], timeout: float | None = None) -> CommandResult:
    """
    Run a command without a shell and capture its output.

    Raises:
        ProvisioningError: If the executable does not exist
        CommandTimeoutError: If the command exceeds timeout (it is killed)
    """
    try:
        process = await asyncio.create_subprocess_exec(
            *cmd,
            stdout=subprocess.PIPE,
            stderr=subprocess.PIPE,
        )
    except FileNotFoundError as e:
        raise ProvisioningError(
            f"{cmd[0]} is not available. Ensure it is installed and on PATH.",
            cause=e,
        ) from e

    try:
        stdout, stderr = await asyncio.wait_for(process.communicate(), timeout)
    except asyncio.TimeoutError as e:
        process.kill()
        await process.wait()
        raise CommandTimeoutError(
            f"Command timed out after {timeout}s",
            command=cmd,
            cause=e,
        ) from e

    assert process.returncode is not None
    return CommandResult(
        command=cmd,
        stdout=stdout.decode(errors="replace").strip(),
        stderr=stderr.decode(errors="replace").strip(),
        exit_code=process.returncode,
    )


class DockerEnvironment:
    """
    Handle to a container that commands can be executed in.

    Constructing the handle starts nothing; the container is started on
    the first exec (or an explicit start) and reused by every later exec,
    including concurrent ones from different tasks. Whoever owns the
    handle stops it. Usable as an async context manager, which stops the
    container on exit.
    """

    def __init__(
        self,
        image: str,
        *,
        name: str | None = None,
        workdir: str | None = None,
        volumes: Iterable[str] = (),
        environment: Mapping[str, Any] | None = None,
        network: str | None = None,
        docker: str = "docker",
    ) -> None:
        if not image:
            raise ValueError("'image' is required to start a container")
        self.image = image
        self.name = name
        self.workdir = workdir
        self.volumes = list(volumes)
        self.environment = dict(environment or {})
        self.network = network
        self.docker = docker
        self.container_id: str | None = None
        self._stopped = False
        self._lock: asyncio.Lock | None = None
        self._lock_loop: asyncio.AbstractEventLoop | None = None

    def __repr__(self) -> str:
        container = self.container_id[:12] if self.container_id else None
        return f"DockerEnvironment(image={self.image!r}, container_id={container!r})"

    @property
    def started(self) -> bool:
        return self.container_id is not None

    @property
    def stopped(self) -> bool:
        return self._stopped

    def _start_lock(self) -> asyncio.Lock:
        # A lock is bound to one event loop; each pipeline run has its own
        loop = asyncio.get_running_loop()
        if self._lock is None or self._lock_loop is not loop:
            self._lock = asyncio.Lock()
            self._lock_loop = loop
        return self._lock

    def start_command(self) -> list[str]:
        """The ``docker run`` argv used to start the container."""
        return build_run_command(
            self.image,
            name=self.name,
            workdir=self.workdir,
            volumes=self.volumes,
            environment=self.environment,
            network=self.network,
            docker=self.docker,
        )

    async def start(self) -> DockerEnvironment:
        """
        Start the container if it is not running yet.

        Raises:
            ProvisioningError: If Docker is missing, the container fails to
                start, or the handle was already stopped
        """
        async with self._start_lock():
            if self._stopped:
                raise ProvisioningError(f"Environment for {self.image} has been stopped")
            if self.container_id is not None:
                return self

            cmd = self.start_command()
            logger.debug("container_starting", image=self.image, command=cmd)

            result = await run_command(cmd)
            if not result.ok or not result.stdout:
                raise ProvisioningError(
                    f"Failed to start container from {self.image} "
                    f"(exit code {result.exit_code}): {result.stderr}"
                )

            self.container_id = result.stdout.splitlines()[-1].strip()
            logger.info("container_started", image=self.image, container_id=self.container_id[:12])
            return self

    async def exec(
        self,
        command: str | Sequence[str],
        *,
        workdir: str | None = None,
        environment: Mapping[str, Any] | None = None,
        timeout: float | None = None,
    ) -> CommandResult:
        """
        Run a command in the container, starting it first if needed.

        A non-zero exit is not an error here; see exec_checked.

        Raises:
            ProvisioningError: If the container cannot be started or was stopped
            CommandTimeoutError: If the command exceeds timeout
        """
        await self.start()
        assert self.container_id is not None

        cmd = build_exec_command(
            self.container_id,
            command,
            workdir=workdir,
            environment=environment,
            docker=self.docker,
        )
        logger.debug("container_exec", container_id=self.container_id[:12], command=cmd)
        return await run_command(cmd, timeout=timeout)

    async def exec_checked(
        self,
        command: str | Sequence[str],
        *,
        workdir: str | None = None,
        environment: Mapping[str, Any] | None = None,
        timeout: float | None = None,
    ) -> CommandResult:
        """Like exec, but raises CommandError on a non-zero exit."""
        result = await self.exec(command, workdir=workdir, environment=environment, timeout=timeout)
        return result.check()

    async def stop(self) -> None:
        """Stop the container. Calling it again, or before start, only marks the handle stopped."""
        async with self._start_lock():
            if self._stopped:
                return
            self._stopped = True
            if self.container_id is None:
                return

            result = await run_command([self.docker, "stop", self.container_id])
            if not result.ok:
                logger.warning(
                    "container_stop_failed",
                    container_id=self.container_id[:12],
                    stderr=result.stderr,
                )
            else:
                logger.info("container_stopped", container_id=self.container_id[:12])

    async def __aenter__(self) -> DockerEnvironment:
        return await self.start()

    async def __aexit__(self, *exc_info: object) -> None:
        await self.stop()
