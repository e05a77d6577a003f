"""Installs a batch of components with a fixed pool of workers.

Components are offered to a bounded queue without blocking. A component that
does not fit is dropped and never retried. The queue is closed once the
workers are started so that each worker exits after draining it. The whole
batch is bounded by a deadline: once it passes the dispatcher stops waiting,
signals the workers to take no further jobs and returns. Installs that are
already running are not interrupted and keep running after `run` returns.
"""

import asyncio
from dataclasses import dataclass, field
import logging
from pathlib import Path
from typing import Any

from fnops.exceptions import InputException

from .installer import Component, Installer, Release

__all__ = [
    "DispatcherConfig",
    "DispatchResult",
    "InstallDispatcher",
    "install_component",
]

_LOGGER = logging.getLogger(__name__)

DEFAULT_WORKERS = 4
DEFAULT_QUEUE_CAPACITY = 30
DEFAULT_TIMEOUT = 600.0


@dataclass
class DispatcherConfig:
    """Configuration for the install dispatcher."""

    workers: int = DEFAULT_WORKERS
    """Number of concurrent installs."""

    queue_capacity: int = DEFAULT_QUEUE_CAPACITY
    """Components accepted per batch, the rest are dropped."""

    timeout: float = DEFAULT_TIMEOUT
    """Seconds to wait for the batch before giving up."""

    def __post_init__(self) -> None:
        if self.workers < 1:
            raise InputException(f"Workers must be at least 1, got {self.workers}")
        if self.queue_capacity < 1:
            raise InputException(
                f"Queue capacity must be at least 1, got {self.queue_capacity}"
            )
        if self.timeout <= 0:
            raise InputException(f"Timeout must be positive, got {self.timeout}")


@dataclass
class DispatchResult:
    """Outcome of a dispatched batch."""

    submitted: list[Component] = field(default_factory=list)
    """Every component offered to the dispatcher."""

    dropped: list[Component] = field(default_factory=list)
    """Components rejected because the queue was full."""

    succeeded: dict[str, Release] = field(default_factory=dict)
    """Releases of the installed components, by component name."""

    failed: dict[str, str] = field(default_factory=dict)
    """Errors of the failed components, by component name."""

    timed_out: bool = False
    """True if the deadline passed before every worker finished."""

    pending: list[Component] = field(default_factory=list)
    """Accepted components that had not finished when `run` returned."""


def _unfinished(result: DispatchResult) -> list[Component]:
    dropped = {component.name for component in result.dropped}
    return [
        component
        for component in result.submitted
        if component.name not in dropped
        and component.name not in result.succeeded
        and component.name not in result.failed
    ]


async def install_component(
    installer: Installer,
    resources_dir: Path,
    component: Component,
    overrides: dict[str, Any],
) -> Release:
    """Install a single component from its directory under `resources_dir`."""
    _LOGGER.debug("Installing component %s", component)
    return await installer.install(resources_dir / component.name, component, overrides)


def _enqueue(queue: asyncio.Queue[Component], component: Component) -> bool:
    try:
        queue.put_nowait(component)
    except asyncio.QueueFull:
        return False
    return True


class InstallDispatcher:
    """Runs batches of component installs on a pool of workers."""

    def __init__(
        self,
        installer: Installer,
        resources_dir: Path,
        overrides: dict[str, Any] | None = None,
        config: DispatcherConfig | None = None,
    ) -> None:
        """Initialize InstallDispatcher."""
        self._installer = installer
        self._resources_dir = resources_dir
        self._overrides = overrides or {}
        self._config = config or DispatcherConfig()
        self._tasks: set[asyncio.Task[None]] = set()

    @property
    def outstanding(self) -> int:
        """Number of workers still running, including ones left behind on timeout."""
        return len(self._tasks)

    async def run(self, components: list[Component]) -> DispatchResult:
        """Install the components, returning once done or at the deadline."""
        result = DispatchResult()
        queue: asyncio.Queue[Component] = asyncio.Queue(
            maxsize=self._config.queue_capacity
        )
        for component in components:
            result.submitted.append(component)
            if not _enqueue(queue, component):
                _LOGGER.warning(
                    "Max capacity reached, component dismissed: %s", component.name
                )
                result.dropped.append(component)

        cancel = asyncio.Event()
        workers = []
        for i in range(self._config.workers):
            task = asyncio.create_task(
                self._worker(queue, cancel, result), name=f"install-worker-{i}"
            )
            self._tasks.add(task)
            task.add_done_callback(self._tasks.discard)
            workers.append(task)

        # Workers exit once the queue is drained
        queue.shutdown()

        _, running = await asyncio.wait(workers, timeout=self._config.timeout)
        if running:
            _LOGGER.error(
                "Timeout occurred after %ss, %d worker(s) still running",
                self._config.timeout,
                len(running),
            )
            result.timed_out = True
        cancel.set()
        result.pending = _unfinished(result)
        return result

    async def join(self) -> None:
        """Wait for workers left running by a timed out batch."""
        if self._tasks:
            await asyncio.wait(list(self._tasks))

    async def _worker(
        self,
        queue: asyncio.Queue[Component],
        cancel: asyncio.Event,
        result: DispatchResult,
    ) -> None:
        while not cancel.is_set():
            try:
                component = await queue.get()
            except asyncio.QueueShutDown:
                return
            if cancel.is_set():
                return
            try:
                release = await install_component(
                    self._installer, self._resources_dir, component, self._overrides
                )
            except Exception as err:  # pylint: disable=broad-except
                _LOGGER.error(
                    "Component installation failed! Component: %s, Error: %s",
                    component.name,
                    err,
                )
                result.failed[component.name] = str(err)
            else:
                _LOGGER.info("Installation successful! Component: %s", component.name)
                result.succeeded[component.name] = release
            finally:
                queue.task_done()
