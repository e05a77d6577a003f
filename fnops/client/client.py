"""Resource client interface for a kubernetes style resource store."""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import StrEnum

from fnops.manifest import Resource, ResourceKind

__all__ = [
    "ResourceClient",
    "ApplyResult",
    "DeletionPropagation",
    "DRY_RUN_ALL",
]

DRY_RUN_ALL = "All"
"""Dry-run stage that runs every stage of a request without persisting it."""


class DeletionPropagation(StrEnum):
    """How the store treats the children of a deleted object."""

    FOREGROUND = "Foreground"
    BACKGROUND = "Background"
    ORPHAN = "Orphan"


@dataclass(frozen=True)
class ApplyResult:
    """The representation returned by the store after a create or update."""

    resource: Resource
    """The object as persisted (or as it would be persisted for a dry run)."""

    created: bool
    """True if the object did not exist before the call."""


class ResourceClient(ABC):
    """CRUD access to a single resource kind in a single namespace.

    Calls are idempotent by object name. A missing object is reported by
    raising `ResourceNotFoundError`.
    """

    @property
    @abstractmethod
    def kind(self) -> ResourceKind:
        """The kind of resource managed by this client."""

    @property
    @abstractmethod
    def namespace(self) -> str:
        """The namespace managed by this client."""

    @abstractmethod
    async def list_objects(
        self, labels: dict[str, str] | None = None
    ) -> list[Resource]:
        """List the objects whose labels match every key/value in `labels`."""

    @abstractmethod
    async def create_or_update(
        self, resource: Resource, dry_run: list[str] | None = None
    ) -> ApplyResult:
        """Create the object if absent, otherwise update it to match.

        Store managed fields such as the uid are preserved on update.
        """

    @abstractmethod
    async def delete(
        self,
        name: str,
        dry_run: list[str] | None = None,
        propagation: DeletionPropagation | None = None,
    ) -> None:
        """Delete the object with the specified name."""


def label_selector(labels: dict[str, str] | None) -> str:
    """Render a label dictionary as an equality based label selector."""
    if not labels:
        return ""
    return ",".join(f"{key}={value}" for key, value in labels.items())
