"""Common flags shared by the fnops actions."""

from argparse import ArgumentParser, BooleanOptionalAction
import pathlib

from fnops.client import KubectlResourceClient, ResourceClient
from fnops.deploy import ClientFactory
from fnops.manifest import ResourceKind


def add_workspace_flags(args: ArgumentParser) -> None:
    """Add the positional workspace directory argument."""
    args.add_argument(
        "path",
        type=pathlib.Path,
        help="Path to the function workspace holding a config.yaml file",
    )


def add_cluster_flags(args: ArgumentParser) -> None:
    """Add flags selecting the cluster to talk to."""
    args.add_argument(
        "--kubeconfig",
        type=pathlib.Path,
        default=None,
        help="Path to the kubeconfig file, defaults to the kubectl default",
    )
    args.add_argument(
        "--context",
        type=str,
        default=None,
        help="The kubeconfig context to use",
    )


def add_dry_run_flags(args: ArgumentParser) -> None:
    """Add the flag to validate changes without persisting them."""
    args.add_argument(
        "--dry-run",
        action=BooleanOptionalAction,
        default=False,
        help="Validate every change with the cluster without persisting it",
    )


def client_factory(
    kubeconfig: pathlib.Path | None = None, context: str | None = None
) -> ClientFactory:
    """Return a factory of kubectl backed clients for the selected cluster."""

    def factory(kind: ResourceKind, namespace: str) -> ResourceClient:
        return KubectlResourceClient(
            kind, namespace, kubeconfig=kubeconfig, context=context
        )

    return factory
