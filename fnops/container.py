"""Run a function locally in a container of its runtime image.

The workspace sources are mounted into the container and the runtime
commands install the dependencies and start the function server. The
container output can then be followed until the container exits.
"""

import asyncio
import contextlib
from collections.abc import Callable
from dataclasses import dataclass, field
import logging
from pathlib import Path
import subprocess
from typing import Protocol

from . import command
from .exceptions import ContainerException
from .runtimes import SERVER_PORT, container_env, get_runtime
from .workspace import Workspace

__all__ = [
    "RunOptions",
    "ContainerRunner",
    "run_options",
    "follow_lines",
]

_LOGGER = logging.getLogger(__name__)

DOCKER_BIN = "docker"
CONTAINER_WORKDIR = "/kubeless"

LineSink = Callable[[str], None]
"""Receives each line of container output."""


class LineReader(Protocol):
    """A stream returning one line per call and empty bytes once closed."""

    async def readline(self) -> bytes:
        """Read one line."""


@dataclass
class RunOptions:
    """Options for running a container."""

    image: str
    """The image to run."""

    name: str | None = None
    """Name of the container."""

    env: list[str] = field(default_factory=list)
    """Environment variables as `KEY=value`."""

    ports: dict[str, str] = field(default_factory=dict)
    """Container ports published on host ports, container port to host port."""

    mounts: dict[str, str] = field(default_factory=dict)
    """Host directories bound into the container, host path to container path."""

    workdir: str | None = None
    """Working directory inside the container."""

    commands: list[str] = field(default_factory=list)
    """Shell commands run in order, the image default runs when empty."""

    remove: bool = True
    """Remove the container once it exits."""

    def args(self) -> list[str]:
        """Arguments of `docker run` for these options."""
        args = ["run", "--detach"]
        if self.remove:
            args.append("--rm")
        if self.name:
            args.extend(["--name", self.name])
        for env in self.env:
            args.extend(["--env", env])
        for container_port, host_port in self.ports.items():
            args.extend(["--publish", f"{host_port}:{container_port}"])
        for host_path, container_path in self.mounts.items():
            args.extend(["--volume", f"{host_path}:{container_path}"])
        if self.workdir:
            args.extend(["--workdir", self.workdir])
        args.append(self.image)
        if self.commands:
            args.extend(["/bin/sh", "-c", " && ".join(self.commands)])
        return args


def run_options(
    workspace: Workspace,
    debug: bool = False,
    image: str | None = None,
) -> RunOptions:
    """Options for running the function of a workspace locally."""
    info = get_runtime(workspace.runtime)
    ports = {SERVER_PORT: SERVER_PORT}
    if debug:
        ports[info.debug_port] = info.debug_port
    return RunOptions(
        image=image or info.image,
        name=workspace.name,
        env=[
            f"KUBELESS_INSTALL_VOLUME={CONTAINER_WORKDIR}",
            *container_env(info, debug=debug),
        ],
        ports=ports,
        mounts={str(workspace.source_dir.absolute()): CONTAINER_WORKDIR},
        workdir=CONTAINER_WORKDIR,
        commands=list(info.commands),
    )


async def follow_lines(reader: LineReader, sink: LineSink) -> int:
    """Forward each line of the stream to the sink until the stream closes.

    Returns the number of forwarded lines. A failure reading the stream is
    raised as a ContainerException.
    """
    count = 0
    while True:
        try:
            line = await reader.readline()
        except (OSError, ValueError) as err:
            raise ContainerException(f"Error reading container output: {err}") from err
        if not line:
            return count
        sink(line.decode("utf-8", errors="replace").rstrip("\n"))
        count += 1


class ContainerRunner:
    """Runs containers through the docker command line."""

    def __init__(self, docker_bin: str = DOCKER_BIN) -> None:
        """Initialize ContainerRunner."""
        self._docker_bin = docker_bin

    async def run(self, options: RunOptions) -> str:
        """Start a container in the background, returning its id."""
        out = await command.run(
            command.Command(
                [self._docker_bin, *options.args()], exc=ContainerException
            )
        )
        container_id = out.strip()
        if not container_id:
            raise ContainerException(f"No container id returned for {options.image}")
        _LOGGER.info("Started container %s from %s", container_id[:12], options.image)
        return container_id

    async def follow(self, container_id: str, sink: LineSink) -> int:
        """Forward the output of the container to the sink until it exits."""
        proc = await asyncio.create_subprocess_exec(
            self._docker_bin,
            "logs",
            "--follow",
            container_id,
            stdout=subprocess.PIPE,
            stderr=subprocess.STDOUT,
        )
        if proc.stdout is None:
            raise ContainerException(f"Unable to attach to container {container_id}")
        try:
            return await follow_lines(proc.stdout, sink)
        finally:
            if proc.returncode is None:
                with contextlib.suppress(ProcessLookupError):
                    proc.terminate()
            await proc.wait()

    async def stop(self, container_id: str) -> None:
        """Stop the container."""
        _LOGGER.debug("Stopping container %s", container_id[:12])
        await command.run(
            command.Command(
                [self._docker_bin, "stop", container_id], exc=ContainerException
            )
        )
