"""Deploy a workspace: a Function and the objects it owns.

The Function is applied first and its status is captured so that its uid can
be set as the owner of the Triggers and APIRules applied afterwards. Any
failure rolls back by deleting the Function; the store then garbage collects
the children that reference it.
"""

from collections.abc import Callable
from dataclasses import dataclass, field
import logging

from .callbacks import LoggingInterceptor, StatusCapture, ignore_not_found
from .client import DRY_RUN_ALL, DeletionPropagation, ResourceClient
from .exceptions import FnOpsException
from .function import new_api_rules, new_function, new_triggers
from .manifest import (
    API_RULES,
    FUNCTIONS,
    TRIGGERS,
    OwnerReference,
    Resource,
    ResourceKind,
)
from .operator import (
    ApplyOptions,
    DeleteOptions,
    Operator,
    new_api_rules_operator,
    new_function_operator,
    new_triggers_operator,
)
from .workspace import Workspace

__all__ = [
    "ClientFactory",
    "DeployOptions",
    "Deployment",
    "deploy",
    "teardown",
    "safe_delete",
]

_LOGGER = logging.getLogger(__name__)


ClientFactory = Callable[[ResourceKind, str], ResourceClient]
"""Returns a client for a kind of resource in a namespace."""


@dataclass
class DeployOptions:
    """Options for deploying a workspace."""

    dry_run: bool = False
    """Validate every call with the store without persisting anything."""

    @property
    def dry_run_stages(self) -> list[str]:
        """Dry-run stages passed to the store."""
        if self.dry_run:
            return [DRY_RUN_ALL]
        return []


@dataclass
class Deployment:
    """Objects as returned by the store after a deploy."""

    function: Resource
    triggers: list[Resource] = field(default_factory=list)
    api_rules: list[Resource] = field(default_factory=list)

    @property
    def resources(self) -> list[Resource]:
        """All deployed objects, the Function first."""
        return [self.function, *self.triggers, *self.api_rules]


async def safe_delete(operator: Operator, dry_run: list[str]) -> None:
    """Delete the objects of the operator, only logging failures.

    Objects that are already gone are treated as deleted.
    """
    try:
        await operator.delete(
            DeleteOptions(
                dry_run=dry_run,
                propagation=DeletionPropagation.FOREGROUND,
                post=[ignore_not_found, LoggingInterceptor(_LOGGER)],
            )
        )
    except Exception as err:  # pylint: disable=broad-except
        _LOGGER.error("Rollback of %s failed: %s", operator.kind.kind, err)


async def deploy(
    workspace: Workspace,
    client_factory: ClientFactory,
    options: DeployOptions | None = None,
) -> Deployment:
    """Apply the Function of the workspace and then the objects it owns."""
    options = options or DeployOptions()
    stages = options.dry_run_stages
    namespace = workspace.namespace
    logger = LoggingInterceptor(_LOGGER)

    _LOGGER.debug("Generating function from workspace %s", workspace.name)
    function = await new_function(workspace)
    triggers = new_triggers(workspace)
    api_rules = new_api_rules(workspace)

    fn_operator = new_function_operator(client_factory(FUNCTIONS, namespace), function)
    capture = StatusCapture()
    try:
        await fn_operator.apply(ApplyOptions(dry_run=stages, post=[logger, capture]))
    except Exception:
        await safe_delete(fn_operator, stages)
        raise

    if capture.entry is None or not capture.entry.uid:
        await safe_delete(fn_operator, stages)
        raise FnOpsException(f"Function {workspace.name} was applied without a uid")
    owner = OwnerReference(
        api_version=capture.entry.api_version,
        kind=capture.entry.kind,
        name=capture.entry.name,
        uid=capture.entry.uid,
    )
    _LOGGER.info("Function %s applied (uid=%s)", owner.name, owner.uid)

    children: list[Operator] = [
        new_triggers_operator(client_factory(TRIGGERS, namespace), *triggers),
        new_api_rules_operator(client_factory(API_RULES, namespace), *api_rules),
    ]
    for child_operator in children:
        try:
            await child_operator.apply(
                ApplyOptions(dry_run=stages, owner_references=[owner], post=[logger])
            )
        except Exception:
            await safe_delete(fn_operator, stages)
            raise
        _LOGGER.info(
            "Applied %d %s object(s)",
            len(child_operator.resources),
            child_operator.kind.kind,
        )

    return Deployment(
        function=fn_operator.resources[0],
        triggers=children[0].resources,
        api_rules=children[1].resources,
    )


async def teardown(
    workspace: Workspace,
    client_factory: ClientFactory,
    options: DeployOptions | None = None,
) -> None:
    """Delete the Function of the workspace along with the objects it owns."""
    options = options or DeployOptions()
    function = Resource(
        kind=FUNCTIONS.kind,
        api_version=FUNCTIONS.api_version,
        name=workspace.name,
        namespace=workspace.namespace,
    )
    fn_operator = new_function_operator(
        client_factory(FUNCTIONS, workspace.namespace), function
    )
    await fn_operator.delete(
        DeleteOptions(
            dry_run=options.dry_run_stages,
            propagation=DeletionPropagation.FOREGROUND,
            post=[ignore_not_found, LoggingInterceptor(_LOGGER)],
        )
    )
