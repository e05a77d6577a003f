"""Install backend running `helm upgrade --install` for each component.

This is an example that installs a single chart from a local directory:
```python
from fnops.installer import Component, HelmInstaller

helm = HelmInstaller(tmp_dir=Path("/tmp/fnops"))
release = await helm.install(
    Path("resources/dex"),
    Component(name="dex", namespace="kyma-system"),
    {"global": {"domainName": "kyma.local"}},
)
print(f"Installed {release.name} revision {release.revision}")
```
"""

import json
import logging
from pathlib import Path
from typing import Any

import aiofiles
import yaml

from fnops import command
from fnops.exceptions import HelmException

from .installer import Component, Installer, Release

__all__ = ["HelmInstaller"]

_LOGGER = logging.getLogger(__name__)


HELM_BIN = "helm"
DEFAULT_INSTALL_TIMEOUT = 600.0


def _parse_json(output: str) -> Any:
    try:
        return json.loads(output)
    except json.JSONDecodeError as err:
        raise HelmException(f"Unable to parse helm output: {err}") from err


def _release_from_status(doc: dict[str, Any]) -> Release:
    """Parse the release document printed by `helm install/status -o json`."""
    chart: str | None = None
    app_version: str | None = None
    if chart_metadata := (doc.get("chart") or {}).get("metadata"):
        chart = f"{chart_metadata.get('name')}-{chart_metadata.get('version')}"
        app_version = chart_metadata.get("appVersion")
    return Release(
        name=doc["name"],
        namespace=doc.get("namespace", ""),
        revision=int(doc.get("version", 0)),
        status=(doc.get("info") or {}).get("status", "unknown"),
        chart=chart,
        app_version=app_version,
    )


def _release_from_list(doc: dict[str, Any]) -> Release:
    """Parse an entry printed by `helm list -o json`."""
    return Release(
        name=doc["name"],
        namespace=doc.get("namespace", ""),
        revision=int(doc.get("revision", 0)),
        status=doc.get("status", "unknown"),
        chart=doc.get("chart"),
        app_version=doc.get("app_version"),
    )


class HelmInstaller(Installer):
    """Installs components as helm releases."""

    def __init__(
        self,
        tmp_dir: Path,
        kubeconfig: Path | None = None,
        kube_context: str | None = None,
        timeout: float | None = DEFAULT_INSTALL_TIMEOUT,
    ) -> None:
        """Initialize HelmInstaller."""
        self._tmp_dir = tmp_dir
        self._timeout = timeout
        self._flags: list[str] = []
        if kubeconfig:
            self._flags.extend(["--kubeconfig", str(kubeconfig)])
        if kube_context:
            self._flags.extend(["--kube-context", kube_context])

    async def _run(
        self, args: list[str], timeout: float | None = command.DEFAULT_TIMEOUT
    ) -> str:
        cmd = command.Command(
            [HELM_BIN, *args, *self._flags], exc=HelmException, timeout=timeout
        )
        return await command.run(cmd)

    async def install(
        self, path: Path, target: Component, overrides: dict[str, Any]
    ) -> Release:
        """Install or upgrade the chart at `path` as a release of the component."""
        args = [
            "upgrade",
            target.name,
            str(path),
            "--install",
            "--namespace",
            target.namespace,
            "--create-namespace",
            "--output",
            "json",
        ]
        if overrides:
            values_path = self._tmp_dir / f"{target.namespace}-{target.name}-values.yaml"
            async with aiofiles.open(values_path, mode="w") as values_file:
                await values_file.write(yaml.dump(overrides, sort_keys=False))
            args.extend(["--values", str(values_path)])
        out = await self._run(args, timeout=self._timeout)
        return _release_from_status(_parse_json(out))

    async def list_releases(self) -> list[Release]:
        """List the installed releases in all namespaces."""
        out = await self._run(["list", "--all-namespaces", "--all", "--output", "json"])
        return [_release_from_list(doc) for doc in _parse_json(out) or []]

    async def deployed_revision(self, target: Component) -> int:
        """Return the currently deployed revision of a release."""
        out = await self._run(
            ["status", target.name, "--namespace", target.namespace, "--output", "json"]
        )
        return _release_from_status(_parse_json(out)).revision
