"""Resource client that talks to a cluster by running `kubectl`.

This is an example that prunes and applies a set of triggers:
```python
from fnops.client import KubectlResourceClient
from fnops.manifest import TRIGGERS

client = KubectlResourceClient(TRIGGERS, "default")
for obj in await client.list_objects({"functionUID": uid}):
    print(f"Found trigger {obj.name}")
```
"""

import json
import logging
from pathlib import Path
from typing import Any

from fnops import command
from fnops.exceptions import (
    InputException,
    KubectlException,
    ResourceNotFoundError,
)
from fnops.manifest import Resource, ResourceKind

from .client import (
    ApplyResult,
    DeletionPropagation,
    ResourceClient,
    label_selector,
)

__all__ = ["KubectlResourceClient"]

_LOGGER = logging.getLogger(__name__)

KUBECTL_BIN = "kubectl"

# Substring of kubectl error output for a missing object e.g.
# `Error from server (NotFound): functions.serverless... "foo" not found`
NOT_FOUND_MARKER = "(NotFound)"


def _dry_run_args(dry_run: list[str] | None) -> list[str]:
    if not dry_run:
        return []
    return ["--dry-run=server"]


def _parse_json(output: str) -> Any:
    try:
        return json.loads(output)
    except json.JSONDecodeError as err:
        raise InputException(f"Unable to parse kubectl output: {err}") from err


class KubectlResourceClient(ResourceClient):
    """Implementation of ResourceClient backed by the kubectl CLI."""

    def __init__(
        self,
        kind: ResourceKind,
        namespace: str,
        kubeconfig: Path | None = None,
        context: str | None = None,
    ) -> None:
        """Initialize KubectlResourceClient."""
        self._kind = kind
        self._namespace = namespace
        self._flags = ["--namespace", namespace]
        if kubeconfig:
            self._flags.extend(["--kubeconfig", str(kubeconfig)])
        if context:
            self._flags.extend(["--context", context])

    @property
    def kind(self) -> ResourceKind:
        """The kind of resource managed by this client."""
        return self._kind

    @property
    def namespace(self) -> str:
        """The namespace managed by this client."""
        return self._namespace

    async def _run(self, args: list[str], stdin: bytes | None = None) -> str:
        cmd = command.Command(
            [KUBECTL_BIN, *args, *self._flags], exc=KubectlException
        )
        return await command.run(cmd, stdin)

    async def list_objects(
        self, labels: dict[str, str] | None = None
    ) -> list[Resource]:
        """List the objects whose labels match every key/value in `labels`."""
        args = ["get", str(self._kind), "--output", "json"]
        if selector := label_selector(labels):
            args.extend(["--selector", selector])
        doc = _parse_json(await self._run(args))
        return [Resource.parse_doc(item) for item in doc.get("items", [])]

    async def _exists(self, name: str) -> bool:
        out = await self._run(
            ["get", str(self._kind), name, "--ignore-not-found", "--output", "name"]
        )
        return bool(out.strip())

    async def create_or_update(
        self, resource: Resource, dry_run: list[str] | None = None
    ) -> ApplyResult:
        """Create the object if absent, otherwise update it to match."""
        created = not await self._exists(resource.name)
        doc = resource.to_doc()
        # Store managed fields are never sent back; apply merges with the
        # live object so they are preserved.
        doc["metadata"].pop("uid", None)
        doc["metadata"].pop("resourceVersion", None)
        doc["metadata"]["namespace"] = self._namespace
        args = ["apply", "--filename", "-", "--output", "json"]
        args.extend(_dry_run_args(dry_run))
        out = await self._run(args, json.dumps(doc).encode("utf-8"))
        applied = Resource.parse_doc(_parse_json(out))
        _LOGGER.debug(
            "Applied %s (created=%s, uid=%s)", applied.resource_id, created, applied.uid
        )
        return ApplyResult(resource=applied, created=created)

    async def delete(
        self,
        name: str,
        dry_run: list[str] | None = None,
        propagation: DeletionPropagation | None = None,
    ) -> None:
        """Delete the object with the specified name."""
        args = ["delete", str(self._kind), name, "--wait=false"]
        if propagation:
            args.append(f"--cascade={propagation.lower()}")
        args.extend(_dry_run_args(dry_run))
        try:
            await self._run(args)
        except KubectlException as err:
            if NOT_FOUND_MARKER in str(err):
                raise ResourceNotFoundError(self._kind.kind, name, str(err)) from err
            raise
