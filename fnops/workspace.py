"""Workspace configuration describing a function and its dependents.

A workspace is a directory holding a `config.yaml` file and the function
sources. An example configuration:
```yaml
name: hello
namespace: default
runtime: nodejs12
labels:
  app: hello
source:
  sourceType: inline
  baseDir: .
triggers:
  - eventTypeVersion: v1
    source: orders
    type: order.created
apiRules:
  - host: hello.example.com
```
"""

from dataclasses import dataclass, field
import logging
from pathlib import Path
from typing import cast

import aiofiles
from mashumaro import field_options
from mashumaro.codecs.yaml import yaml_decode
from mashumaro.exceptions import InvalidFieldValue, MissingField
import yaml

from .exceptions import InputException
from .manifest import BaseManifest, DEFAULT_NAMESPACE
from .runtimes import DEFAULT_RUNTIME

__all__ = [
    "Workspace",
    "Source",
    "Resources",
    "ResourceList",
    "Trigger",
    "ApiRule",
    "read_workspace",
    "CONFIG_FILENAME",
]

_LOGGER = logging.getLogger(__name__)

CONFIG_FILENAME = "config.yaml"
SOURCE_INLINE = "inline"
DEFAULT_GATEWAY = "kyma-gateway.kyma-system.svc.cluster.local"


@dataclass
class Source(BaseManifest):
    """Location of the function source code."""

    type: str = field(metadata=field_options(alias="sourceType"), default=SOURCE_INLINE)
    """The kind of source, only inline sources are supported."""

    base_dir: str = field(metadata=field_options(alias="baseDir"), default=".")
    """Directory holding the source files, relative to the workspace."""

    source_handler_name: str | None = field(
        metadata=field_options(alias="sourceHandlerName"), default=None
    )
    """Overrides the runtime default handler file name."""

    deps_handler_name: str | None = field(
        metadata=field_options(alias="depsHandlerName"), default=None
    )
    """Overrides the runtime default dependencies file name."""


@dataclass
class ResourceList(BaseManifest):
    """Compute resource quantities."""

    cpu: str | None = None
    memory: str | None = None


@dataclass
class Resources(BaseManifest):
    """Compute resources for the function."""

    limits: ResourceList | None = None
    requests: ResourceList | None = None


@dataclass
class Trigger(BaseManifest):
    """An event subscription delivering events to the function."""

    source: str
    """The event source."""

    type: str
    """The event type."""

    event_type_version: str = field(
        metadata=field_options(alias="eventTypeVersion"), default="v1"
    )
    """The version of the event type."""


@dataclass
class ApiRule(BaseManifest):
    """Exposes the function through the API gateway."""

    host: str
    """The host the function is exposed on."""

    name: str | None = None
    """Name of the APIRule, defaults to the function name."""

    gateway: str = DEFAULT_GATEWAY
    """The gateway handling the traffic."""

    port: int = 80
    """The port of the function service."""

    path: str = "/.*"
    """Path pattern matched by the rule."""

    methods: list[str] = field(
        default_factory=lambda: ["GET", "POST", "PUT", "PATCH", "DELETE"]
    )
    """Allowed HTTP methods."""

    handler: str = "allow"
    """Access strategy handler e.g. `allow`, `jwt` or `oauth2_introspection`."""

    jwks_urls: list[str] | None = field(
        metadata=field_options(alias="jwksUrls"), default=None
    )
    """JWKS urls for the `jwt` handler."""

    trusted_issuers: list[str] | None = field(
        metadata=field_options(alias="trustedIssuers"), default=None
    )
    """Trusted token issuers for the `jwt` handler."""

    required_scope: list[str] | None = field(
        metadata=field_options(alias="requiredScope"), default=None
    )
    """Scopes required by the `oauth2_introspection` handler."""


@dataclass
class Workspace(BaseManifest):
    """Configuration of a function workspace."""

    name: str
    """The name of the function."""

    namespace: str = DEFAULT_NAMESPACE
    """The namespace the function is deployed to."""

    labels: dict[str, str] = field(default_factory=dict)
    """Labels set on the function."""

    runtime: str = str(DEFAULT_RUNTIME)
    """The function runtime e.g. `nodejs12`."""

    source: Source = field(default_factory=Source)
    """Location of the function source code."""

    resources: Resources | None = None
    """Compute resources for the function."""

    triggers: list[Trigger] = field(default_factory=list)
    """Event subscriptions for the function."""

    api_rules: list[ApiRule] = field(
        metadata=field_options(alias="apiRules"), default_factory=list
    )
    """API gateway exposures for the function."""

    source_path: str | None = field(metadata={"serialize": "omit"}, default=None)
    """Directory the workspace was read from."""

    @classmethod
    def parse_yaml(cls, content: str) -> "Workspace":
        """Parse a serialized workspace configuration."""
        if not content.strip():
            raise InputException("Workspace configuration is empty")
        try:
            return cast(Workspace, yaml_decode(content, cls))
        except (yaml.YAMLError, MissingField, InvalidFieldValue) as err:
            raise InputException(f"Invalid workspace configuration: {err}") from err

    @property
    def source_dir(self) -> Path:
        """Directory holding the function source files."""
        return Path(self.source_path or ".") / self.source.base_dir


async def read_workspace(path: Path) -> Workspace:
    """Read the workspace configuration from the workspace directory."""
    config_path = path / CONFIG_FILENAME
    _LOGGER.debug("Reading workspace %s", config_path)
    try:
        async with aiofiles.open(str(config_path)) as config_file:
            content = await config_file.read()
    except FileNotFoundError as err:
        raise InputException(f"Workspace configuration {config_path} not found") from err
    workspace = Workspace.parse_yaml(content)
    workspace.source_path = str(path)
    return workspace
