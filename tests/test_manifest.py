"""Tests for manifest library."""

import pytest
import yaml

from fnops.exceptions import InputException
from fnops.manifest import (
    API_RULES,
    FUNCTIONS,
    TRIGGERS,
    NamedResource,
    OwnerReference,
    Resource,
    dump_resources,
)

TRIGGER_DOC = {
    "apiVersion": "eventing.knative.dev/v1alpha1",
    "kind": "Trigger",
    "metadata": {
        "name": "hello-orders",
        "namespace": "default",
        "labels": {"functionUID": "1234"},
        "ownerReferences": [
            {
                "apiVersion": "serverless.kyma-project.io/v1alpha1",
                "kind": "Function",
                "name": "hello",
                "uid": "1234",
            }
        ],
        "uid": "5678",
        "resourceVersion": "7",
    },
    "spec": {"broker": "default"},
}


def test_parse_doc() -> None:
    """A kubernetes document is parsed into a Resource."""
    resource = Resource.parse_doc(TRIGGER_DOC)
    assert resource.kind == "Trigger"
    assert resource.resource_id == NamedResource("Trigger", "default", "hello-orders")
    assert resource.owner_references == [
        OwnerReference(
            api_version="serverless.kyma-project.io/v1alpha1",
            kind="Function",
            name="hello",
            uid="1234",
        )
    ]
    assert resource.uid == "5678"
    assert resource.resource_version == "7"
    assert resource.to_doc() == TRIGGER_DOC


@pytest.mark.parametrize(
    ("doc", "match"),
    [
        ({"apiVersion": "v1", "metadata": {"name": "a"}}, "missing kind"),
        ({"kind": "Function", "metadata": {"name": "a"}}, "missing apiVersion"),
        ({"kind": "Function", "apiVersion": "v1"}, "missing metadata"),
        ({"kind": "Function", "apiVersion": "v1", "metadata": {"a": "b"}}, "missing metadata.name"),
    ],
)
def test_parse_invalid_doc(doc: dict, match: str) -> None:
    """Documents without identity are rejected."""
    with pytest.raises(InputException, match=match):
        Resource.parse_doc(doc)


def test_resource_kinds() -> None:
    """Dependent kinds are owned by a Function and labeled with its uid."""
    assert FUNCTIONS.api_version == "serverless.kyma-project.io/v1alpha1"
    assert str(FUNCTIONS) == "functions.serverless.kyma-project.io"
    assert not FUNCTIONS.dependent
    for kind in (TRIGGERS, API_RULES):
        assert kind.dependent
        assert kind.owner_kind == "Function"
        assert kind.owner_label == "functionUID"


def test_merge_labels(function: Resource) -> None:
    """Merged labels replace existing values for the same key."""
    function.merge_labels({"app": "other", "functionUID": "1"})
    assert function.labels == {"app": "other", "functionUID": "1"}


def test_update_from(function: Resource) -> None:
    """The working copy takes over the representation returned by the store."""
    stored = Resource.parse_doc(function.to_doc())
    stored.uid = "1234"
    stored.resource_version = "3"
    stored.spec["source"] = "changed"

    function.update_from(stored)

    assert function == stored
    stored.spec["source"] = "changed again"
    assert function.spec["source"] == "changed"


def test_owner_reference(function: Resource) -> None:
    """An owner reference requires a uid."""
    with pytest.raises(InputException, match="no uid"):
        function.owner_reference()
    function.uid = "1234"
    assert function.owner_reference() == OwnerReference(
        api_version=FUNCTIONS.api_version, kind="Function", name="hello", uid="1234"
    )


def test_dump_resources(function: Resource) -> None:
    """Resources are rendered as a multi-document YAML stream."""
    content = dump_resources([function, Resource.parse_doc(TRIGGER_DOC)])
    docs = list(yaml.safe_load_all(content))
    assert [doc["kind"] for doc in docs] == ["Function", "Trigger"]
    assert content.startswith("---\n")
