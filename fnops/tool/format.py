"""Console output of applied resources, releases and generated documents."""

from collections.abc import Generator, Iterable
import sys
from typing import Any, TextIO

import yaml

from fnops.installer import Release
from fnops.manifest import Resource

PADDING = 4

RESOURCE_KEYS = ["kind", "namespace", "name", "uid"]
RELEASE_KEYS = ["namespace", "name", "revision", "status"]


def format_columns(
    headers: list[str], rows: list[list[str]]
) -> Generator[str, None, None]:
    """Yield the headers and rows left aligned in padded columns."""
    table = [headers, *rows]
    widths = [
        max(len(row[col]) for row in table) + PADDING for col in range(len(headers))
    ]
    for row in table:
        yield "".join(value.ljust(width) for value, width in zip(row, widths))


def resource_row(resource: Resource) -> dict[str, Any]:
    """Table row for an applied resource."""
    return {
        "kind": resource.kind,
        "namespace": resource.namespace,
        "name": resource.name,
        "uid": resource.uid or "",
    }


def release_row(release: Release, revision: int | None = None) -> dict[str, Any]:
    """Table row for an installed release, preferring the deployed revision."""
    return {
        "namespace": release.namespace,
        "name": release.name,
        "revision": release.revision if revision is None else revision,
        "status": release.status,
    }


class PrintFormatter:
    """A formatter that prints human readable console output."""

    def __init__(self, keys: list[str] | None = None):
        """Initialize the PrintFormatter with optional keys to print."""
        self._keys = keys

    def format(self, data: list[dict[str, Any]]) -> Generator[str, None, None]:
        """Format the data objects, leaving missing values blank."""
        if not data:
            return
        keys = self._keys if self._keys is not None else list(data[0])
        rows = [[str(row.get(key, "")) for key in keys] for row in data]
        yield from format_columns([key.upper() for key in keys], rows)

    def print(
        self, data: Iterable[dict[str, Any]], file: TextIO | None = None
    ) -> None:
        """Output the data objects, to stdout unless a file is given."""
        for line in self.format(list(data)):
            print(line, file=file or sys.stdout)


class YamlFormatter:
    """A formatter that prints each object as a yaml document."""

    def print(self, data: list[dict[str, Any]], file: TextIO | None = None) -> None:
        """Output the data objects, to stdout unless a file is given."""
        print(
            yaml.dump_all(data, sort_keys=False, explicit_start=True),
            end="",
            file=file or sys.stdout,
        )
