"""Module for an in memory resource store.

The store keeps every object of every kind in a single `InMemoryCluster` so
that deleting an owner can cascade to the children that reference it, the
same way the kubernetes garbage collector does. Clients scoped to a single
kind and namespace are handed out by the cluster.
"""

import copy
import itertools
import logging
import uuid

from fnops.exceptions import InputException, ResourceNotFoundError
from fnops.manifest import NamedResource, Resource, ResourceKind

from .client import ApplyResult, DeletionPropagation, ResourceClient

__all__ = ["InMemoryCluster", "InMemoryResourceClient"]

_LOGGER = logging.getLogger(__name__)


class InMemoryCluster:
    """Objects of all kinds keyed by NamedResource."""

    def __init__(self) -> None:
        """Initialize InMemoryCluster."""
        self._objects: dict[NamedResource, Resource] = {}
        self._versions = itertools.count(1)

    def client(self, kind: ResourceKind, namespace: str) -> "InMemoryResourceClient":
        """Return a client for one kind of resource in one namespace."""
        return InMemoryResourceClient(self, kind, namespace)

    def get(self, resource_id: NamedResource) -> Resource | None:
        """Return a copy of the stored object, if present."""
        if (obj := self._objects.get(resource_id)) is None:
            return None
        return copy.deepcopy(obj)

    def list_objects(
        self, kind: str | None = None, namespace: str | None = None
    ) -> list[Resource]:
        """List copies of the stored objects, optionally filtered."""
        return [
            copy.deepcopy(obj)
            for rid, obj in self._objects.items()
            if (kind is None or rid.kind == kind)
            and (namespace is None or rid.namespace == namespace)
        ]

    def names(self, kind: str, namespace: str | None = None) -> set[str]:
        """Return the names of stored objects of the specified kind."""
        return {obj.name for obj in self.list_objects(kind, namespace)}

    def put(self, resource: Resource, keep_uid: bool = False) -> Resource:
        """Store the object, assigning store managed fields.

        Existing objects keep their uid. New objects are assigned a fresh uid
        unless `keep_uid` is set and the object already carries one.
        """
        stored = self._prepare(resource, keep_uid)
        self._objects[stored.resource_id] = stored
        _LOGGER.debug("Stored %s (uid=%s)", stored.resource_id, stored.uid)
        return copy.deepcopy(stored)

    def _prepare(self, resource: Resource, keep_uid: bool = False) -> Resource:
        prepared = copy.deepcopy(resource)
        if (existing := self._objects.get(resource.resource_id)) is not None:
            prepared.uid = existing.uid
        elif not (keep_uid and prepared.uid):
            prepared.uid = str(uuid.uuid4())
        prepared.resource_version = str(next(self._versions))
        return prepared

    def exists(self, resource_id: NamedResource) -> bool:
        """Return True if the object is stored."""
        return resource_id in self._objects

    def remove(
        self,
        resource_id: NamedResource,
        propagation: DeletionPropagation = DeletionPropagation.BACKGROUND,
    ) -> None:
        """Remove the object and apply the propagation policy to its children."""
        if (obj := self._objects.pop(resource_id, None)) is None:
            raise ResourceNotFoundError(resource_id.kind, resource_id.name)
        _LOGGER.debug("Removed %s (propagation=%s)", resource_id, propagation)
        for child in self._children(obj):
            if propagation == DeletionPropagation.ORPHAN:
                child.owner_references = [
                    ref for ref in child.owner_references if ref.uid != obj.uid
                ]
                continue
            if child.resource_id in self._objects:
                self.remove(child.resource_id, propagation)

    def _children(self, owner: Resource) -> list[Resource]:
        return [
            obj
            for obj in list(self._objects.values())
            if obj.namespace == owner.namespace
            and any(ref.uid == owner.uid for ref in obj.owner_references)
        ]

    def prepare(self, resource: Resource) -> Resource:
        """Return the object as it would be stored, without storing it."""
        return copy.deepcopy(self._prepare(resource))


class InMemoryResourceClient(ResourceClient):
    """In-memory implementation of the ResourceClient interface."""

    def __init__(
        self, cluster: InMemoryCluster, kind: ResourceKind, namespace: str
    ) -> None:
        """Initialize InMemoryResourceClient."""
        self._cluster = cluster
        self._kind = kind
        self._namespace = namespace

    @property
    def kind(self) -> ResourceKind:
        """The kind of resource managed by this client."""
        return self._kind

    @property
    def namespace(self) -> str:
        """The namespace managed by this client."""
        return self._namespace

    def _resource_id(self, name: str) -> NamedResource:
        return NamedResource(self._kind.kind, self._namespace, name)

    async def list_objects(
        self, labels: dict[str, str] | None = None
    ) -> list[Resource]:
        """List the objects whose labels match every key/value in `labels`."""
        return [
            obj
            for obj in self._cluster.list_objects(self._kind.kind, self._namespace)
            if all(obj.labels.get(key) == value for key, value in (labels or {}).items())
        ]

    async def create_or_update(
        self, resource: Resource, dry_run: list[str] | None = None
    ) -> ApplyResult:
        """Create the object if absent, otherwise update it to match."""
        if resource.kind != self._kind.kind:
            raise InputException(
                f"Client for {self._kind.kind} cannot store {resource.resource_id}"
            )
        desired = copy.deepcopy(resource)
        if desired.namespace is None:
            desired.namespace = self._namespace
        elif desired.namespace != self._namespace:
            raise InputException(
                f"Client for namespace {self._namespace} cannot store {resource.resource_id}"
            )
        created = not self._cluster.exists(desired.resource_id)
        if dry_run:
            return ApplyResult(resource=self._cluster.prepare(desired), created=created)
        return ApplyResult(resource=self._cluster.put(desired), created=created)

    async def delete(
        self,
        name: str,
        dry_run: list[str] | None = None,
        propagation: DeletionPropagation | None = None,
    ) -> None:
        """Delete the object with the specified name."""
        resource_id = self._resource_id(name)
        if not self._cluster.exists(resource_id):
            raise ResourceNotFoundError(self._kind.kind, name)
        if dry_run:
            return
        self._cluster.remove(
            resource_id, propagation or DeletionPropagation.BACKGROUND
        )
