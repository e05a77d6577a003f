"""Tests for the install dispatcher."""

import asyncio
from pathlib import Path
from typing import Any

import pytest

from conftest import FakeInstaller

from fnops.exceptions import InputException
from fnops.installer import Component, DispatcherConfig, InstallDispatcher

RESOURCES_DIR = Path("/resources")


def components(count: int) -> list[Component]:
    return [Component(name=f"c{i}", namespace="ns") for i in range(count)]


async def test_install_all() -> None:
    """Every component is installed from its directory."""
    installer = FakeInstaller()
    dispatcher = InstallDispatcher(installer, RESOURCES_DIR, {"global": {"a": 1}})

    result = await dispatcher.run(components(5))

    assert sorted(installer.installed) == ["c0", "c1", "c2", "c3", "c4"]
    assert sorted(result.succeeded) == ["c0", "c1", "c2", "c3", "c4"]
    assert result.succeeded["c0"].revision == 1
    assert result.failed == {}
    assert result.dropped == []
    assert not result.timed_out
    assert result.pending == []
    assert sorted(installer.paths) == [RESOURCES_DIR / f"c{i}" for i in range(5)]
    assert installer.overrides[0] == {"global": {"a": 1}}


@pytest.mark.parametrize(
    ("submitted", "capacity", "dropped"),
    [(5, 30, 0), (30, 30, 0), (31, 30, 1), (10, 3, 7)],
)
async def test_capacity(submitted: int, capacity: int, dropped: int) -> None:
    """Components beyond the queue capacity are dropped and never installed."""
    installer = FakeInstaller()
    dispatcher = InstallDispatcher(
        installer,
        RESOURCES_DIR,
        config=DispatcherConfig(workers=2, queue_capacity=capacity),
    )

    result = await dispatcher.run(components(submitted))

    assert len(result.submitted) == submitted
    assert len(result.dropped) == dropped
    assert len(result.dropped) == max(0, submitted - capacity)
    assert len(installer.installed) == submitted - dropped
    assert {c.name for c in result.dropped}.isdisjoint(installer.installed)
    # The first components fill the queue, the rest are dropped.
    assert [c.name for c in result.dropped] == [
        f"c{i}" for i in range(submitted - dropped, submitted)
    ]


async def test_dropped_is_logged(caplog: pytest.LogCaptureFixture) -> None:
    """Dropped components are logged."""
    dispatcher = InstallDispatcher(
        FakeInstaller(), RESOURCES_DIR, config=DispatcherConfig(queue_capacity=1)
    )
    await dispatcher.run(components(2))
    assert "Max capacity reached, component dismissed: c1" in caplog.text


async def test_failure_does_not_stop_workers(caplog: pytest.LogCaptureFixture) -> None:
    """A failed install is recorded and the remaining components are installed."""
    installer = FakeInstaller(fail={"c1", "c3"})
    dispatcher = InstallDispatcher(
        installer, RESOURCES_DIR, config=DispatcherConfig(workers=1)
    )

    result = await dispatcher.run(components(5))

    assert installer.installed == ["c0", "c2", "c4"]
    assert sorted(result.succeeded) == ["c0", "c2", "c4"]
    assert result.failed == {
        "c1": "chart c1 is broken",
        "c3": "chart c3 is broken",
    }
    assert "Component installation failed! Component: c1" in caplog.text


async def test_worker_pool_bound() -> None:
    """No more than the configured number of installs run at once."""
    installer = FakeInstaller(delay=0.01)
    dispatcher = InstallDispatcher(
        installer, RESOURCES_DIR, config=DispatcherConfig(workers=3)
    )

    await dispatcher.run(components(10))

    assert installer.max_running == 3
    assert len(installer.installed) == 10


async def test_timeout() -> None:
    """The dispatcher returns at the deadline without interrupting running installs."""
    installer = FakeInstaller(block={"c0"})
    dispatcher = InstallDispatcher(
        installer,
        RESOURCES_DIR,
        config=DispatcherConfig(workers=1, timeout=0.1),
    )

    result = await asyncio.wait_for(dispatcher.run(components(3)), timeout=5)

    assert result.timed_out
    assert result.succeeded == {}
    assert [c.name for c in result.pending] == ["c0", "c1", "c2"]
    assert dispatcher.outstanding == 1

    # The blocked install completes, but no further jobs are taken.
    installer.release_block.set()
    await asyncio.wait_for(dispatcher.join(), timeout=5)
    assert installer.installed == ["c0"]
    assert dispatcher.outstanding == 0
    assert [c.name for c in result.pending] == ["c0", "c1", "c2"]


async def test_empty_batch() -> None:
    """An empty batch completes immediately."""
    result = await InstallDispatcher(FakeInstaller(), RESOURCES_DIR).run([])
    assert result.submitted == []
    assert not result.timed_out


@pytest.mark.parametrize(
    "kwargs",
    [{"workers": 0}, {"queue_capacity": 0}, {"timeout": 0}],
)
def test_invalid_config(kwargs: dict[str, Any]) -> None:
    """The dispatcher requires at least one worker, slot and second."""
    with pytest.raises(InputException):
        DispatcherConfig(**kwargs)
