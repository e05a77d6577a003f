"""Representation of the objects reconciled against a cluster.

A `Resource` is a generic addressable kubernetes object: enough metadata to
identify it, relate it to its owner and select it by label, plus an opaque
spec. Resources are parsed from and rendered to the usual kubernetes document
shape so they can be exchanged with a resource store or written out as YAML.
"""

import copy
from dataclasses import dataclass, field
import logging
from typing import Any

from mashumaro import DataClassDictMixin, field_options
from mashumaro.config import BaseConfig
import yaml

from .exceptions import InputException

__all__ = [
    "NamedResource",
    "OwnerReference",
    "Resource",
    "ResourceKind",
    "FUNCTIONS",
    "TRIGGERS",
    "API_RULES",
    "dump_resources",
]

_LOGGER = logging.getLogger(__name__)


FUNCTION_KIND = "Function"
TRIGGER_KIND = "Trigger"
API_RULE_KIND = "APIRule"
FUNCTION_DOMAIN = "serverless.kyma-project.io"
TRIGGER_DOMAIN = "eventing.knative.dev"
API_RULE_DOMAIN = "gateway.kyma-project.io"
DEFAULT_NAMESPACE = "default"

# Label set on dependent objects pointing at the uid of the owning Function.
OWNER_UID_LABEL = "functionUID"


@dataclass
class BaseManifest(DataClassDictMixin):
    """Base class for all manifest objects."""

    class Config(BaseConfig):
        omit_none = True
        serialize_by_alias = True


@dataclass(frozen=True, order=True)
class NamedResource:
    """Identifier for a kubernetes resource."""

    kind: str
    namespace: str | None
    name: str

    @property
    def namespaced_name(self) -> str:
        if self.namespace:
            return f"{self.namespace}/{self.name}"
        return self.name

    def __str__(self) -> str:
        """Return the kind and namespaced name concatenated as an id."""
        return f"{self.kind}/{self.namespaced_name}"


@dataclass(frozen=True)
class ResourceKind:
    """Metadata describing one kind of resource handled by an operator."""

    group: str
    """The API group of the resource e.g. `serverless.kyma-project.io`."""

    version: str
    """The API version within the group."""

    resource: str
    """The plural resource name used in API paths e.g. `functions`."""

    kind: str
    """The kind of the object."""

    owner_kind: str | None = None
    """The kind of the parent that must own objects of this kind, if any."""

    owner_label: str | None = None
    """Label key holding the uid of the owner, used to find children."""

    @property
    def api_version(self) -> str:
        """The apiVersion of objects of this kind."""
        if not self.group:
            return self.version
        return f"{self.group}/{self.version}"

    @property
    def dependent(self) -> bool:
        """Return True if objects of this kind are children of an owner."""
        return self.owner_kind is not None

    def __str__(self) -> str:
        if not self.group:
            return self.resource
        return f"{self.resource}.{self.group}"


FUNCTIONS = ResourceKind(
    group=FUNCTION_DOMAIN,
    version="v1alpha1",
    resource="functions",
    kind=FUNCTION_KIND,
)
TRIGGERS = ResourceKind(
    group=TRIGGER_DOMAIN,
    version="v1alpha1",
    resource="triggers",
    kind=TRIGGER_KIND,
    owner_kind=FUNCTION_KIND,
    owner_label=OWNER_UID_LABEL,
)
API_RULES = ResourceKind(
    group=API_RULE_DOMAIN,
    version="v1alpha1",
    resource="apirules",
    kind=API_RULE_KIND,
    owner_kind=FUNCTION_KIND,
    owner_label=OWNER_UID_LABEL,
)


@dataclass
class OwnerReference(BaseManifest):
    """A pointer from a child object to the object that owns it."""

    api_version: str = field(metadata=field_options(alias="apiVersion"))
    """The apiVersion of the owner."""

    kind: str
    """The kind of the owner."""

    name: str
    """The name of the owner."""

    uid: str
    """The uid of the owner."""


@dataclass
class Resource(BaseManifest):
    """A generic kubernetes object tracked by a resource store."""

    kind: str
    """The kind of the object."""

    api_version: str = field(metadata=field_options(alias="apiVersion"))
    """The apiVersion of the object."""

    name: str
    """The name of the object."""

    namespace: str | None = None
    """The namespace of the object."""

    labels: dict[str, str] = field(default_factory=dict)
    """Labels on the object."""

    owner_references: list[OwnerReference] = field(
        metadata=field_options(alias="ownerReferences"), default_factory=list
    )
    """Objects that own this object."""

    uid: str | None = None
    """Identifier assigned by the store."""

    resource_version: str | None = field(
        metadata=field_options(alias="resourceVersion"), default=None
    )
    """Version assigned by the store, changing on every write."""

    spec: dict[str, Any] = field(default_factory=dict)
    """The opaque desired state of the object."""

    @classmethod
    def parse_doc(cls, doc: dict[str, Any]) -> "Resource":
        """Parse a Resource from a raw kubernetes object."""
        if not (kind := doc.get("kind")):
            raise InputException(f"Invalid object missing kind: {doc}")
        if not (api_version := doc.get("apiVersion")):
            raise InputException(f"Invalid object missing apiVersion: {doc}")
        if not (metadata := doc.get("metadata")):
            raise InputException(f"Invalid object missing metadata: {doc}")
        if not (name := metadata.get("name")):
            raise InputException(f"Invalid object missing metadata.name: {doc}")
        return cls(
            kind=kind,
            api_version=api_version,
            name=name,
            namespace=metadata.get("namespace"),
            labels=dict(metadata.get("labels") or {}),
            owner_references=[
                OwnerReference.from_dict(ref)
                for ref in metadata.get("ownerReferences") or []
            ],
            uid=metadata.get("uid"),
            resource_version=metadata.get("resourceVersion"),
            spec=copy.deepcopy(doc.get("spec") or {}),
        )

    def to_doc(self) -> dict[str, Any]:
        """Return the kubernetes document representation of the object."""
        metadata: dict[str, Any] = {"name": self.name}
        if self.namespace:
            metadata["namespace"] = self.namespace
        if self.labels:
            metadata["labels"] = dict(self.labels)
        if self.owner_references:
            metadata["ownerReferences"] = [
                ref.to_dict() for ref in self.owner_references
            ]
        if self.uid:
            metadata["uid"] = self.uid
        if self.resource_version:
            metadata["resourceVersion"] = self.resource_version
        doc: dict[str, Any] = {
            "apiVersion": self.api_version,
            "kind": self.kind,
            "metadata": metadata,
        }
        if self.spec:
            doc["spec"] = copy.deepcopy(self.spec)
        return doc

    @property
    def resource_id(self) -> NamedResource:
        """Identity of the object."""
        return NamedResource(self.kind, self.namespace, self.name)

    def merge_labels(self, labels: dict[str, str]) -> None:
        """Add the labels to the object, replacing existing values for a key."""
        self.labels = {**self.labels, **labels}

    def update_from(self, other: "Resource") -> None:
        """Replace the contents of this object with another representation."""
        self.kind = other.kind
        self.api_version = other.api_version
        self.name = other.name
        self.namespace = other.namespace
        self.labels = dict(other.labels)
        self.owner_references = list(other.owner_references)
        self.uid = other.uid
        self.resource_version = other.resource_version
        self.spec = copy.deepcopy(other.spec)

    def owner_reference(self) -> OwnerReference:
        """Return a reference that children may use to point at this object."""
        if not self.uid:
            raise InputException(f"Object {self.resource_id} has no uid yet")
        return OwnerReference(
            api_version=self.api_version,
            kind=self.kind,
            name=self.name,
            uid=self.uid,
        )


def dump_resources(resources: list[Resource]) -> str:
    """Render the resources as a multi-document YAML string."""
    return yaml.dump_all(
        [resource.to_doc() for resource in resources],
        sort_keys=False,
        explicit_start=True,
    )
