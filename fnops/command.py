"""Run the kubectl, helm and docker command line tools as subprocesses.

Commands run with stdin, stdout and stderr attached to pipes. A non-zero exit
code or a timeout is raised as the exception class configured on the command,
so that callers can tell which tool failed.
"""

import asyncio
from dataclasses import dataclass
import logging
import os
import shlex
import subprocess

from .exceptions import CommandException

_LOGGER = logging.getLogger(__name__)

# Limits the number of concurrently running tools across all installs
_CONCURRENCY = 20
_SEM = asyncio.Semaphore(_CONCURRENCY)
DEFAULT_TIMEOUT = 60.0


# No public API
__all__: list[str] = []


@dataclass
class Command:
    """A command line to run."""

    cmd: list[str]
    """The program followed by its arguments."""

    exc: type[CommandException] = CommandException
    """Exception raised when the command fails."""

    env: dict[str, str] | None = None
    """Variables added to the environment of the current process."""

    timeout: float | None = DEFAULT_TIMEOUT
    """Seconds to wait for the command before failing, None waits forever."""

    def __str__(self) -> str:
        """Render as a shell command line."""
        return shlex.join(self.cmd)

    async def run(self, stdin: bytes | None = None) -> bytes:
        """Run the command, returning stdout."""
        _LOGGER.debug("Running command: %s", self)
        proc = await asyncio.create_subprocess_exec(
            *self.cmd,
            stdin=subprocess.PIPE,
            stdout=subprocess.PIPE,
            stderr=subprocess.PIPE,
            env={**os.environ, **(self.env or {})},
        )
        out, err = await proc.communicate(stdin)
        if proc.returncode:
            message = f"Command '{self}' failed with return code {proc.returncode}"
            details = [
                stream.decode("utf-8", errors="replace").strip()
                for stream in (out, err)
                if stream
            ]
            _LOGGER.debug("%s: %s", message, details)
            raise self.exc("\n".join([message, *details]))
        return out


async def run(cmd: Command, stdin: bytes | None = None) -> str:
    """Run the command and return its decoded stdout."""
    async with _SEM:
        try:
            out = await asyncio.wait_for(cmd.run(stdin), cmd.timeout)
        except TimeoutError as err:
            raise cmd.exc(f"Command '{cmd}' timed out after {cmd.timeout}s") from err
    return out.decode("utf-8") if out else ""
