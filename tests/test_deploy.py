"""Tests for deploying a workspace."""

from pathlib import Path

import pytest

from fnops.client import (
    ApplyResult,
    DeletionPropagation,
    InMemoryCluster,
    InMemoryResourceClient,
    ResourceClient,
)
from fnops.deploy import DeployOptions, deploy, safe_delete, teardown
from fnops.exceptions import FnOpsException
from fnops.manifest import API_RULES, FUNCTIONS, Resource, ResourceKind
from fnops.operator import new_function_operator
from fnops.workspace import Workspace, read_workspace

CONFIG = """\
name: hello
triggers:
  - source: orders
    type: order.created
  - source: orders
    type: order.deleted
apiRules:
  - host: hello.example.com
"""


class FailingClient(InMemoryResourceClient):
    """Fails every create or update."""

    async def create_or_update(
        self, resource: Resource, dry_run: list[str] | None = None
    ) -> ApplyResult:
        raise FnOpsException(f"admission denied {resource.name}")


@pytest.fixture(name="workspace")
async def workspace_fixture(tmp_path: Path) -> Workspace:
    (tmp_path / "config.yaml").write_text(CONFIG)
    (tmp_path / "handler.js").write_text("module.exports = {}\n")
    (tmp_path / "package.json").write_text("{}\n")
    return await read_workspace(tmp_path)


async def test_deploy(cluster: InMemoryCluster, workspace: Workspace) -> None:
    """The Function is applied and owns the Triggers and APIRules."""
    deployment = await deploy(workspace, cluster.client)

    function = cluster.get(deployment.function.resource_id)
    assert function is not None
    assert function.uid == deployment.function.uid
    assert cluster.names("Trigger") == {
        "hello-orders-order-created-v1",
        "hello-orders-order-deleted-v1",
    }
    assert cluster.names("APIRule") == {"hello"}
    for child in [*deployment.triggers, *deployment.api_rules]:
        assert [ref.uid for ref in child.owner_references] == [function.uid]
        assert child.labels["functionUID"] == function.uid
    assert [r.kind for r in deployment.resources] == [
        "Function",
        "Trigger",
        "Trigger",
        "APIRule",
    ]


async def test_redeploy_prunes_removed_triggers(
    cluster: InMemoryCluster, workspace: Workspace
) -> None:
    """Triggers removed from the workspace are deleted on the next deploy."""
    first = await deploy(workspace, cluster.client)
    workspace.triggers = workspace.triggers[:1]

    second = await deploy(workspace, cluster.client)

    assert second.function.uid == first.function.uid
    assert cluster.names("Trigger") == {"hello-orders-order-created-v1"}


async def test_deploy_dry_run(cluster: InMemoryCluster, workspace: Workspace) -> None:
    """A dry-run deploy leaves the cluster untouched."""
    await deploy(workspace, cluster.client, DeployOptions(dry_run=True))

    assert cluster.list_objects() == []


async def test_deploy_rolls_back_on_child_failure(
    cluster: InMemoryCluster, workspace: Workspace
) -> None:
    """A failing APIRule deletes the Function and the Triggers it owns."""

    def client_factory(kind: ResourceKind, namespace: str) -> ResourceClient:
        if kind == API_RULES:
            return FailingClient(cluster, kind, namespace)
        return cluster.client(kind, namespace)

    with pytest.raises(FnOpsException, match="admission denied hello"):
        await deploy(workspace, client_factory)

    assert cluster.list_objects() == []


async def test_deploy_function_failure(
    cluster: InMemoryCluster, workspace: Workspace
) -> None:
    """A failing Function is reported without touching the children."""

    def client_factory(kind: ResourceKind, namespace: str) -> ResourceClient:
        if kind == FUNCTIONS:
            return FailingClient(cluster, kind, namespace)
        return cluster.client(kind, namespace)

    with pytest.raises(FnOpsException, match="admission denied hello"):
        await deploy(workspace, client_factory)

    assert cluster.list_objects() == []


async def test_safe_delete_logs_errors(
    cluster: InMemoryCluster, function: Resource, caplog: pytest.LogCaptureFixture
) -> None:
    """Rollback failures other than NotFound are logged, not raised."""

    class DenyDelete(InMemoryResourceClient):
        async def delete(
            self,
            name: str,
            dry_run: list[str] | None = None,
            propagation: DeletionPropagation | None = None,
        ) -> None:
            raise FnOpsException("forbidden")

    operator = new_function_operator(DenyDelete(cluster, FUNCTIONS, "default"), function)

    await safe_delete(operator, [])

    assert "Rollback of Function failed: forbidden" in caplog.text


async def test_safe_delete_ignores_missing(
    cluster: InMemoryCluster, function: Resource, caplog: pytest.LogCaptureFixture
) -> None:
    """Objects that are already gone are not a rollback failure."""
    operator = new_function_operator(cluster.client(FUNCTIONS, "default"), function)

    await safe_delete(operator, [])

    assert "Rollback" not in caplog.text


async def test_teardown(cluster: InMemoryCluster, workspace: Workspace) -> None:
    """Teardown deletes the Function and everything it owns."""
    await deploy(workspace, cluster.client)

    await teardown(workspace, cluster.client)

    assert cluster.list_objects() == []


async def test_teardown_missing(cluster: InMemoryCluster, workspace: Workspace) -> None:
    """Tearing down a workspace that was never deployed is not an error."""
    await teardown(workspace, cluster.client)
