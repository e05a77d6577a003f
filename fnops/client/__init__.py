"""
The client module defines the contract for the resource store that objects are
reconciled against, and the implementations of it.

- A `ResourceClient` is scoped to one resource kind in one namespace.
- `create_or_update` is idempotent by object name and reports whether the
  object was created.
- A missing object is reported with `ResourceNotFoundError`.
- A `StatusEntry` is produced by the operator after each store call.
"""

from .client import (
    ResourceClient,
    ApplyResult,
    DeletionPropagation,
    DRY_RUN_ALL,
    label_selector,
)
from .in_memory import InMemoryCluster, InMemoryResourceClient
from .kubectl import KubectlResourceClient
from .status import Outcome, StatusEntry

__all__ = [
    "ResourceClient",
    "ApplyResult",
    "DeletionPropagation",
    "DRY_RUN_ALL",
    "label_selector",
    "InMemoryCluster",
    "InMemoryResourceClient",
    "KubectlResourceClient",
    "Outcome",
    "StatusEntry",
]
