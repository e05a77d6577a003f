"""Catalog of the components to install and the values they are installed with.

A catalog file lists the prerequisites, installed one at a time before
anything else, and the components installed concurrently afterwards:
```yaml
prerequisites:
  - name: cluster-essentials
    namespace: kyma-system
components:
  - name: dex
    namespace: kyma-system
```

Override files are plain helm values files. They are merged in order on top
of the default overrides, nested dictionaries are merged and every other
value, lists included, is replaced.
"""

from dataclasses import dataclass, field
import logging
from pathlib import Path
from typing import Any, cast

import aiofiles
from mashumaro.codecs.yaml import yaml_decode
from mashumaro.exceptions import InvalidFieldValue, MissingField
import yaml

from fnops.exceptions import InputException
from fnops.manifest import BaseManifest

from .installer import Component

__all__ = [
    "Catalog",
    "DEFAULT_CATALOG",
    "DEFAULT_OVERRIDES",
    "read_catalog",
    "read_overrides",
    "merge_overrides",
]

_LOGGER = logging.getLogger(__name__)

KYMA_SYSTEM = "kyma-system"


@dataclass
class Catalog(BaseManifest):
    """Components to install."""

    prerequisites: list[Component] = field(default_factory=list)
    """Installed serially, in order, before the components."""

    components: list[Component] = field(default_factory=list)
    """Installed concurrently by the dispatcher."""

    @classmethod
    def parse_yaml(cls, content: str) -> "Catalog":
        """Parse a serialized catalog."""
        try:
            return cast(Catalog, yaml_decode(content, cls))
        except (yaml.YAMLError, MissingField, InvalidFieldValue) as err:
            raise InputException(f"Invalid component catalog: {err}") from err


DEFAULT_CATALOG = Catalog(
    prerequisites=[
        Component(name="cluster-essentials", namespace=KYMA_SYSTEM),
        Component(name="testing", namespace=KYMA_SYSTEM),
        Component(name="istio", namespace="istio-system"),
    ],
    components=[
        Component(name="istio-kyma-patch", namespace="istio-system"),
        Component(name="knative-serving", namespace="knative-serving"),
        Component(name="knative-eventing", namespace="knative-eventing"),
        Component(name="dex", namespace=KYMA_SYSTEM),
        Component(name="ory", namespace=KYMA_SYSTEM),
        Component(name="api-gateway", namespace=KYMA_SYSTEM),
        Component(name="rafter", namespace=KYMA_SYSTEM),
        Component(name="service-catalog", namespace=KYMA_SYSTEM),
        Component(name="service-catalog-addons", namespace=KYMA_SYSTEM),
        Component(name="nats-streaming", namespace="natss"),
        Component(name="core", namespace=KYMA_SYSTEM),
        Component(name="cluster-users", namespace=KYMA_SYSTEM),
        Component(name="permission-controller", namespace=KYMA_SYSTEM),
        Component(name="apiserver-proxy", namespace=KYMA_SYSTEM),
        Component(name="iam-kubeconfig-service", namespace=KYMA_SYSTEM),
        Component(name="serverless", namespace=KYMA_SYSTEM),
        Component(name="knative-provisioner-natss", namespace="knative-eventing"),
        Component(name="event-sources", namespace=KYMA_SYSTEM),
        Component(name="application-connector", namespace="kyma-integration"),
        Component(name="console", namespace=KYMA_SYSTEM),
    ],
)

DEFAULT_OVERRIDES: dict[str, Any] = {
    "global": {
        "isLocalEnv": True,
        "domainName": "kyma.local",
        "ingress": {
            "domainName": "kyma.local",
        },
        "environment": {
            "gardener": False,
        },
    },
}
"""Values for a local installation, TLS material is supplied by a values file."""


def merge_overrides(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """Recursively merge two value dictionaries, lists are replaced entirely."""
    result = base.copy()
    for key, override_value in override.items():
        base_value = result.get(key)
        if isinstance(base_value, dict) and isinstance(override_value, dict):
            result[key] = merge_overrides(base_value, override_value)
        else:
            result[key] = override_value
    return result


async def _read_yaml(path: Path) -> Any:
    try:
        async with aiofiles.open(str(path)) as yaml_file:
            content = await yaml_file.read()
    except FileNotFoundError as err:
        raise InputException(f"File {path} not found") from err
    try:
        return yaml.safe_load(content)
    except yaml.YAMLError as err:
        raise InputException(f"Unable to parse {path}: {err}") from err


async def read_catalog(path: Path) -> Catalog:
    """Read a component catalog file."""
    _LOGGER.debug("Reading catalog %s", path)
    try:
        async with aiofiles.open(str(path)) as catalog_file:
            content = await catalog_file.read()
    except FileNotFoundError as err:
        raise InputException(f"Catalog {path} not found") from err
    return Catalog.parse_yaml(content)


async def read_overrides(
    paths: list[Path], base: dict[str, Any] | None = None
) -> dict[str, Any]:
    """Merge the values files in order on top of the base overrides."""
    values = dict(DEFAULT_OVERRIDES if base is None else base)
    for path in paths:
        _LOGGER.debug("Reading overrides %s", path)
        doc = await _read_yaml(path)
        if doc is None:
            continue
        if not isinstance(doc, dict):
            raise InputException(f"Overrides file {path} must contain a mapping")
        values = merge_overrides(values, doc)
    return values
