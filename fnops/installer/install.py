"""Install a catalog of components onto a cluster.

Prerequisites are installed one at a time, a failure is logged and the next
one is attempted. After a settle delay the remaining components are handed to
the dispatcher. Finally the installed releases are listed with their status.
"""

import asyncio
from dataclasses import dataclass, field
import logging
from pathlib import Path
from time import perf_counter
from typing import Any

from .catalog import DEFAULT_CATALOG, DEFAULT_OVERRIDES, Catalog
from .dispatcher import (
    DispatcherConfig,
    DispatchResult,
    InstallDispatcher,
    install_component,
)
from .installer import Component, Installer, Release

__all__ = [
    "InstallConfig",
    "InstallReport",
    "install_catalog",
]

_LOGGER = logging.getLogger(__name__)

DEFAULT_SETTLE_DELAY = 60.0


@dataclass
class InstallConfig:
    """Configuration for installing a catalog."""

    resources_dir: Path
    """Directory holding one chart directory per component."""

    catalog: Catalog = field(default_factory=lambda: DEFAULT_CATALOG)
    """The components to install."""

    overrides: dict[str, Any] = field(default_factory=lambda: dict(DEFAULT_OVERRIDES))
    """Values every component is installed with."""

    settle_delay: float = DEFAULT_SETTLE_DELAY
    """Seconds to wait after the prerequisites are installed."""

    dispatcher: DispatcherConfig = field(default_factory=DispatcherConfig)
    """Configuration of the concurrent install of the components."""


@dataclass
class InstallReport:
    """Outcome of installing a catalog."""

    prerequisites_failed: dict[str, str] = field(default_factory=dict)
    """Errors of the failed prerequisites, by component name."""

    dispatch: DispatchResult = field(default_factory=DispatchResult)
    """Outcome of the concurrent install of the components."""

    releases: list[Release] = field(default_factory=list)
    """Releases installed on the cluster once done."""

    revisions: dict[str, int] = field(default_factory=dict)
    """Deployed revision of each listed release, by release name."""

    duration: float = 0.0
    """Seconds spent installing, excluding the release listing."""

    dispatcher: InstallDispatcher | None = field(default=None, repr=False)
    """The dispatcher of the components, to join installs left running on timeout."""


async def _log_releases(installer: Installer, report: InstallReport) -> None:
    _LOGGER.info("Listing installed releases...")
    for release in report.releases:
        try:
            report.revisions[release.name] = await installer.deployed_revision(
                Component(name=release.name, namespace=release.namespace)
            )
        except Exception as err:  # pylint: disable=broad-except
            _LOGGER.error("Helm error: %s", err)
        _LOGGER.info("%s status: %s", release.name, release.status)


async def install_catalog(installer: Installer, config: InstallConfig) -> InstallReport:
    """Install the prerequisites and then the components of the catalog."""
    report = InstallReport()
    start = perf_counter()

    for component in config.catalog.prerequisites:
        try:
            await install_component(
                installer, config.resources_dir, component, config.overrides
            )
        except Exception as err:  # pylint: disable=broad-except
            _LOGGER.error(
                "Component installation failed! Component: %s, Error: %s",
                component.name,
                err,
            )
            report.prerequisites_failed[component.name] = str(err)
        else:
            _LOGGER.info("Installation successful! Component: %s", component.name)

    if config.settle_delay > 0:
        _LOGGER.info("Waiting %ss for prerequisites to settle", config.settle_delay)
        await asyncio.sleep(config.settle_delay)

    dispatcher = InstallDispatcher(
        installer, config.resources_dir, config.overrides, config.dispatcher
    )
    report.dispatcher = dispatcher
    report.dispatch = await dispatcher.run(config.catalog.components)
    report.duration = perf_counter() - start
    _LOGGER.info("Installation took %.1fs", report.duration)

    report.releases = await installer.list_releases()
    await _log_releases(installer, report)
    return report
