"""Shared fixtures for fnops tests."""

import asyncio
from pathlib import Path
from typing import Any

import pytest

from fnops.client import InMemoryCluster, StatusEntry
from fnops.exceptions import HelmException
from fnops.installer import Component, Installer, Release
from fnops.manifest import FUNCTIONS, OwnerReference, Resource


@pytest.fixture(name="cluster")
def cluster_fixture() -> InMemoryCluster:
    """An empty in memory cluster."""
    return InMemoryCluster()


@pytest.fixture(name="function")
def function_fixture() -> Resource:
    """A desired Function object."""
    return Resource(
        kind=FUNCTIONS.kind,
        api_version=FUNCTIONS.api_version,
        name="hello",
        namespace="default",
        labels={"app": "hello"},
        spec={"runtime": "nodejs12", "source": "module.exports = {}"},
    )


@pytest.fixture(name="stored_function")
def stored_function_fixture(cluster: InMemoryCluster, function: Resource) -> Resource:
    """The Function object as stored in the cluster, with a uid."""
    return cluster.put(function)


@pytest.fixture(name="owner")
def owner_fixture(stored_function: Resource) -> OwnerReference:
    """A reference to the stored Function."""
    return stored_function.owner_reference()


class Recorder:
    """Records every (status, error) pair seen by a callback chain."""

    def __init__(self) -> None:
        self.calls: list[tuple[StatusEntry, Exception | None]] = []

    def __call__(
        self, status: StatusEntry, error: Exception | None
    ) -> Exception | None:
        self.calls.append((status, error))
        return error

    @property
    def entries(self) -> list[str]:
        return [str(status) for status, _ in self.calls]


@pytest.fixture(name="recorder")
def recorder_fixture() -> Recorder:
    """A pass-through callback recording what it sees."""
    return Recorder()


class FakeInstaller(Installer):
    """Records installs, optionally failing or blocking some components."""

    def __init__(
        self,
        fail: set[str] | None = None,
        block: set[str] | None = None,
        delay: float = 0.0,
    ) -> None:
        self.installed: list[str] = []
        self.paths: list[Path] = []
        self.overrides: list[dict[str, Any]] = []
        self.running = 0
        self.max_running = 0
        self.release_block = asyncio.Event()
        self._fail = fail or set()
        self._block = block or set()
        self._delay = delay

    async def install(
        self, path: Path, target: Component, overrides: dict[str, Any]
    ) -> Release:
        self.running += 1
        self.max_running = max(self.max_running, self.running)
        try:
            self.paths.append(path)
            self.overrides.append(overrides)
            if self._delay:
                await asyncio.sleep(self._delay)
            if target.name in self._block:
                await self.release_block.wait()
            if target.name in self._fail:
                raise HelmException(f"chart {target.name} is broken")
            self.installed.append(target.name)
            return Release(name=target.name, namespace=target.namespace, revision=1)
        finally:
            self.running -= 1

    async def list_releases(self) -> list[Release]:
        return [Release(name=name, namespace="ns") for name in self.installed]

    async def deployed_revision(self, target: Component) -> int:
        return 1
