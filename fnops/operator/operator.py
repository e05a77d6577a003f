"""Operator reconciling a desired set of objects against a resource store.

An Operator owns working copies of the desired objects of a single kind and
applies or deletes them one at a time, in order, through a ResourceClient.
Every store call is surrounded by the pre and post callback chains of the
request; an error returned by a chain stops the operation immediately. Objects
already applied stay applied, rolling back is left to the caller by issuing
a delete.

Kinds that declare an owner (e.g. Triggers owned by a Function) are labeled
with the uid of their owner. Before applying them, existing children of the
same owner that are no longer desired are pruned.

Operators are not safe for concurrent use: the working copies are refreshed
with the store's representation between steps, and later objects may depend
on identity captured from earlier ones.
"""

from collections.abc import Sequence
import copy
from dataclasses import dataclass, field
import logging

from fnops.callbacks import Callback, fire
from fnops.client import (
    DeletionPropagation,
    Outcome,
    ResourceClient,
    StatusEntry,
)
from fnops.exceptions import OwnerReferenceNotFoundError
from fnops.manifest import (
    API_RULES,
    FUNCTIONS,
    TRIGGERS,
    OwnerReference,
    Resource,
    ResourceKind,
)

__all__ = [
    "Operator",
    "ApplyOptions",
    "DeleteOptions",
    "new_operator",
    "new_function_operator",
    "new_triggers_operator",
    "new_api_rules_operator",
]

_LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True)
class ApplyOptions:
    """Options for a single Operator.apply call."""

    dry_run: list[str] = field(default_factory=list)
    """Dry-run stages passed to the store, empty to persist changes."""

    owner_references: list[OwnerReference] = field(default_factory=list)
    """Owner references set on every applied object."""

    pre: Sequence[Callback] = ()
    """Callbacks fired before every store call."""

    post: Sequence[Callback] = ()
    """Callbacks fired with the outcome of every store call."""


@dataclass(frozen=True)
class DeleteOptions:
    """Options for a single Operator.delete call."""

    dry_run: list[str] = field(default_factory=list)
    """Dry-run stages passed to the store, empty to persist changes."""

    propagation: DeletionPropagation | None = None
    """How the store treats the children of deleted objects."""

    pre: Sequence[Callback] = ()
    """Callbacks fired before every store call."""

    post: Sequence[Callback] = ()
    """Callbacks fired with the outcome of every store call."""


def find_owner_uid(refs: list[OwnerReference], kind: str) -> str | None:
    """Return the uid of the first owner reference of the specified kind."""
    for ref in refs:
        if ref.kind == kind:
            return ref.uid
    return None


class Operator:
    """Applies and deletes a desired set of objects of one kind."""

    def __init__(
        self, kind: ResourceKind, client: ResourceClient, resources: list[Resource]
    ) -> None:
        """Initialize Operator.

        The operator keeps its own copy of the resources; callers observe the
        results through callbacks or the `resources` property.
        """
        self._kind = kind
        self._client = client
        self._items = [copy.deepcopy(resource) for resource in resources]

    @property
    def kind(self) -> ResourceKind:
        """The kind of resource handled by this operator."""
        return self._kind

    @property
    def resources(self) -> list[Resource]:
        """The working copies, refreshed after every successful store call."""
        return self._items

    async def apply(self, options: ApplyOptions | None = None) -> None:
        """Create or update every desired object in order."""
        options = options or ApplyOptions()
        owner_labels: dict[str, str] = {}
        if self._kind.owner_kind is not None:
            owner_uid = find_owner_uid(
                options.owner_references, self._kind.owner_kind
            )
            if owner_uid is None:
                raise OwnerReferenceNotFoundError(
                    self._kind.owner_kind, self._kind.owner_label or ""
                )
            if self._kind.owner_label:
                owner_labels[self._kind.owner_label] = owner_uid
                await self._prune(owner_labels, options)

        for item in self._items:
            if options.owner_references:
                item.owner_references = list(options.owner_references)
            if owner_labels:
                item.merge_labels(owner_labels)
            if err := fire(StatusEntry.from_resource(item), None, *options.pre):
                raise err
            try:
                result = await self._client.create_or_update(item, options.dry_run)
            except Exception as store_err:
                _LOGGER.debug("Failed to apply %s: %s", item.resource_id, store_err)
                entry = StatusEntry.from_resource(item, Outcome.FAILED)
                if err := fire(entry, store_err, *options.post):
                    raise err
                continue
            outcome = Outcome.CREATED if result.created else Outcome.UPDATED
            entry = StatusEntry.from_resource(result.resource, outcome)
            if err := fire(entry, None, *options.post):
                raise err
            item.update_from(result.resource)

    async def delete(self, options: DeleteOptions | None = None) -> None:
        """Delete every desired object in order."""
        options = options or DeleteOptions()
        for item in self._items:
            await self._delete_item(
                item, options.dry_run, options.propagation, options.pre, options.post
            )

    async def _prune(self, labels: dict[str, str], options: ApplyOptions) -> None:
        """Delete existing children of the owner that are no longer desired."""
        existing = await self._client.list_objects(labels)
        desired = {item.name for item in self._items}
        for item in existing:
            if item.name in desired:
                continue
            _LOGGER.debug("Pruning %s", item.resource_id)
            await self._delete_item(
                item,
                options.dry_run,
                DeletionPropagation.BACKGROUND,
                options.pre,
                options.post,
            )

    async def _delete_item(
        self,
        item: Resource,
        dry_run: list[str],
        propagation: DeletionPropagation | None,
        pre: Sequence[Callback],
        post: Sequence[Callback],
    ) -> None:
        if err := fire(StatusEntry.from_resource(item), None, *pre):
            raise err
        try:
            await self._client.delete(item.name, dry_run, propagation)
        except Exception as store_err:
            _LOGGER.debug("Failed to delete %s: %s", item.resource_id, store_err)
            entry = StatusEntry.from_resource(item, Outcome.FAILED)
            if err := fire(entry, store_err, *post):
                raise err
            return
        # Deleted is only reported once the store confirmed the deletion
        if err := fire(StatusEntry.from_resource(item, Outcome.DELETED), None, *post):
            raise err


def new_operator(
    kind: ResourceKind, client: ResourceClient, *resources: Resource
) -> Operator:
    """Create an Operator for the resources of the specified kind."""
    return Operator(kind, client, list(resources))


def new_function_operator(client: ResourceClient, *resources: Resource) -> Operator:
    """Create an Operator for Function objects."""
    return new_operator(FUNCTIONS, client, *resources)


def new_triggers_operator(client: ResourceClient, *resources: Resource) -> Operator:
    """Create an Operator for Trigger objects owned by a Function."""
    return new_operator(TRIGGERS, client, *resources)


def new_api_rules_operator(client: ResourceClient, *resources: Resource) -> Operator:
    """Create an Operator for APIRule objects owned by a Function."""
    return new_operator(API_RULES, client, *resources)
