"""Library for installing a catalog of components onto a cluster."""

from .catalog import (
    DEFAULT_CATALOG,
    DEFAULT_OVERRIDES,
    Catalog,
    merge_overrides,
    read_catalog,
    read_overrides,
)
from .dispatcher import (
    DispatcherConfig,
    DispatchResult,
    InstallDispatcher,
    install_component,
)
from .helm import HelmInstaller
from .install import InstallConfig, InstallReport, install_catalog
from .installer import Component, Installer, Release

__all__ = [
    "Catalog",
    "Component",
    "DEFAULT_CATALOG",
    "DEFAULT_OVERRIDES",
    "DispatchResult",
    "DispatcherConfig",
    "HelmInstaller",
    "InstallConfig",
    "InstallDispatcher",
    "InstallReport",
    "Installer",
    "Release",
    "install_catalog",
    "install_component",
    "merge_overrides",
    "read_catalog",
    "read_overrides",
]
