"""Library for building the objects that make up a function from a workspace.

A workspace produces:
- A `Function` holding the inline handler source and dependencies.
- One `Trigger` per event subscription, owned by the Function.
- One `APIRule` per API gateway exposure, owned by the Function.

The Triggers and APIRules get their owner references and owner label when
they are applied, once the uid of the Function is known.
"""

from dataclasses import dataclass, field
import logging
from pathlib import Path
from typing import Any

import aiofiles
from mashumaro import field_options
from slugify import slugify

from .exceptions import InputException
from .manifest import (
    API_RULES,
    FUNCTIONS,
    TRIGGERS,
    BaseManifest,
    Resource,
)
from .runtimes import get_runtime
from .workspace import SOURCE_INLINE, ApiRule, ResourceList, Trigger, Workspace

__all__ = [
    "new_function",
    "new_triggers",
    "new_api_rules",
]

_LOGGER = logging.getLogger(__name__)

DEFAULT_BROKER = "default"
MAX_NAME_LENGTH = 63


@dataclass
class AccessStrategyConfig(BaseManifest):
    """Configuration of an APIRule access strategy handler."""

    jwks_urls: list[str] | None = None
    trusted_issuers: list[str] | None = None
    required_scope: list[str] | None = None


@dataclass
class AccessStrategy(BaseManifest):
    """Access strategy applied to requests matching a rule."""

    handler: str
    config: AccessStrategyConfig | None = None


@dataclass
class Rule(BaseManifest):
    """A path and method match for an APIRule."""

    path: str
    methods: list[str]
    access_strategies: list[AccessStrategy] = field(
        metadata=field_options(alias="accessStrategies")
    )


@dataclass
class Service(BaseManifest):
    """The service exposed by an APIRule."""

    name: str
    host: str
    port: int


@dataclass
class ApiRuleSpec(BaseManifest):
    """Spec of an APIRule object."""

    gateway: str
    service: Service
    rules: list[Rule]


def _resource_list(resources: ResourceList | None) -> dict[str, str]:
    if resources is None:
        return {}
    return resources.to_dict()


async def _read_source_file(path: Path) -> str:
    try:
        async with aiofiles.open(str(path)) as source_file:
            return await source_file.read()
    except FileNotFoundError as err:
        raise InputException(f"Function source file {path} not found") from err


async def new_function(workspace: Workspace) -> Resource:
    """Build the Function object from the workspace, reading its sources."""
    if workspace.source.type != SOURCE_INLINE:
        raise InputException(
            f"Unsupported source type '{workspace.source.type}' for {workspace.name}"
        )
    runtime = get_runtime(workspace.runtime)
    source_name = workspace.source.source_handler_name or runtime.source_file
    deps_name = workspace.source.deps_handler_name or runtime.deps_file

    spec: dict[str, Any] = {"runtime": str(runtime.runtime)}
    for key, filename in (("source", source_name), ("deps", deps_name)):
        data = await _read_source_file(workspace.source_dir / filename)
        if not data:
            _LOGGER.debug("Skipping empty %s file %s", key, filename)
            continue
        spec[key] = data

    if workspace.resources is not None:
        resources: dict[str, dict[str, str]] = {}
        if limits := _resource_list(workspace.resources.limits):
            resources["limits"] = limits
        if requests := _resource_list(workspace.resources.requests):
            resources["requests"] = requests
        if resources:
            spec["resources"] = resources

    return Resource(
        kind=FUNCTIONS.kind,
        api_version=FUNCTIONS.api_version,
        name=workspace.name,
        namespace=workspace.namespace,
        labels=dict(workspace.labels),
        spec=spec,
    )


def trigger_name(workspace: Workspace, trigger: Trigger) -> str:
    """Return the name of the Trigger object for a workspace trigger."""
    return slugify(
        f"{workspace.name}-{trigger.source}-{trigger.type}-{trigger.event_type_version}",
        max_length=MAX_NAME_LENGTH,
        lowercase=True,
        separator="-",
    )


def new_triggers(workspace: Workspace) -> list[Resource]:
    """Build the Trigger objects subscribing the function to events."""
    triggers: dict[str, Resource] = {}
    for trigger in workspace.triggers:
        name = trigger_name(workspace, trigger)
        if name in triggers:
            raise InputException(f"Duplicate trigger {name} in {workspace.name}")
        triggers[name] = Resource(
            kind=TRIGGERS.kind,
            api_version=TRIGGERS.api_version,
            name=name,
            namespace=workspace.namespace,
            spec={
                "broker": DEFAULT_BROKER,
                "filter": {
                    "attributes": {
                        "eventtypeversion": trigger.event_type_version,
                        "source": trigger.source,
                        "type": trigger.type,
                    }
                },
                "subscriber": {
                    "ref": {
                        "apiVersion": "v1",
                        "kind": "Service",
                        "name": workspace.name,
                    }
                },
            },
        )
    return list(triggers.values())


def _access_strategy(rule: ApiRule) -> AccessStrategy:
    config = None
    if rule.jwks_urls or rule.trusted_issuers or rule.required_scope:
        config = AccessStrategyConfig(
            jwks_urls=rule.jwks_urls,
            trusted_issuers=rule.trusted_issuers,
            required_scope=rule.required_scope,
        )
    return AccessStrategy(handler=rule.handler, config=config)


def new_api_rules(workspace: Workspace) -> list[Resource]:
    """Build the APIRule objects exposing the function."""
    api_rules: dict[str, Resource] = {}
    for rule in workspace.api_rules:
        name = slugify(
            rule.name or workspace.name, max_length=MAX_NAME_LENGTH, separator="-"
        )
        if name in api_rules:
            raise InputException(f"Duplicate APIRule {name} in {workspace.name}")
        spec = ApiRuleSpec(
            gateway=rule.gateway,
            service=Service(name=workspace.name, host=rule.host, port=rule.port),
            rules=[
                Rule(
                    path=rule.path,
                    methods=list(rule.methods),
                    access_strategies=[_access_strategy(rule)],
                )
            ],
        )
        api_rules[name] = Resource(
            kind=API_RULES.kind,
            api_version=API_RULES.api_version,
            name=name,
            namespace=workspace.namespace,
            spec=spec.to_dict(),
        )
    return list(api_rules.values())
