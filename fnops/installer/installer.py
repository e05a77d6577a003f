"""Install backend interface and the objects it exchanges."""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from fnops.manifest import BaseManifest

__all__ = ["Component", "Release", "Installer"]


@dataclass
class Component(BaseManifest):
    """An installation unit, looked up by name in the resources directory."""

    name: str
    """The name of the component and of its release."""

    namespace: str
    """The namespace the component is installed to."""

    def __str__(self) -> str:
        return f"{self.namespace}/{self.name}"


@dataclass
class Release(BaseManifest):
    """An installed release of a component."""

    name: str
    """The name of the release."""

    namespace: str
    """The namespace of the release."""

    revision: int = 0
    """The revision of the release, incremented on every upgrade."""

    status: str = "unknown"
    """The status reported by the backend e.g. `deployed` or `failed`."""

    chart: str | None = None
    """The chart name and version of the release."""

    app_version: str | None = None
    """The version of the application packaged in the chart."""


class Installer(ABC):
    """Installs components and reports the installed releases."""

    @abstractmethod
    async def install(
        self, path: Path, target: Component, overrides: dict[str, Any]
    ) -> Release:
        """Install or upgrade the component packaged at `path`."""

    @abstractmethod
    async def list_releases(self) -> list[Release]:
        """List the installed releases in all namespaces."""

    @abstractmethod
    async def deployed_revision(self, target: Component) -> int:
        """Return the currently deployed revision of a release."""
