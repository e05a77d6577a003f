"""Status information reported after a store operation."""

from dataclasses import dataclass
from enum import StrEnum

from fnops.manifest import Resource

__all__ = ["Outcome", "StatusEntry"]


class Outcome(StrEnum):
    """Result of a single store call."""

    CREATED = "Created"
    UPDATED = "Updated"
    DELETED = "Deleted"
    FAILED = "Failed"


@dataclass(frozen=True)
class StatusEntry:
    """Snapshot of the identity of an object and the outcome of a store call.

    Entries handed to pre-callbacks describe an object before the store call
    and carry no outcome.
    """

    name: str
    uid: str | None
    api_version: str
    kind: str
    outcome: Outcome | None = None

    @classmethod
    def from_resource(
        cls, resource: Resource, outcome: Outcome | None = None
    ) -> "StatusEntry":
        """Create a StatusEntry describing the resource."""
        return cls(
            name=resource.name,
            uid=resource.uid,
            api_version=resource.api_version,
            kind=resource.kind,
            outcome=outcome,
        )

    def __str__(self) -> str:
        """Return the kind, name and outcome as a string."""
        if self.outcome is None:
            return f"{self.kind}/{self.name}"
        return f"{self.kind}/{self.name} {self.outcome}"
