"""Fnops apply action."""

from argparse import ArgumentParser, _SubParsersAction as SubParsersAction
import logging
import pathlib
from typing import cast

from fnops.deploy import DeployOptions, deploy
from fnops.workspace import read_workspace

from . import selector
from .format import RESOURCE_KEYS, PrintFormatter, resource_row

_LOGGER = logging.getLogger(__name__)


class ApplyAction:
    """Fnops apply action."""

    @classmethod
    def register(
        cls, subparsers: SubParsersAction  # type: ignore[type-arg]
    ) -> ArgumentParser:
        """Register the subparser commands."""
        args = cast(
            ArgumentParser,
            subparsers.add_parser(
                "apply",
                help="Deploy the function of a workspace to a cluster",
                description="""Applies the Function of the workspace, then the
                    Triggers and APIRules it owns. Triggers and APIRules that
                    are no longer part of the workspace are deleted. A failure
                    rolls back by deleting the Function.""",
            ),
        )
        selector.add_workspace_flags(args)
        selector.add_dry_run_flags(args)
        selector.add_cluster_flags(args)
        args.set_defaults(cls=cls)
        return args

    async def run(  # type: ignore[no-untyped-def]
        self,
        path: pathlib.Path,
        dry_run: bool,
        kubeconfig: pathlib.Path | None,
        context: str | None,
        **kwargs,  # pylint: disable=unused-argument
    ) -> None:
        """Async Action implementation."""
        workspace = await read_workspace(path)
        deployment = await deploy(
            workspace,
            selector.client_factory(kubeconfig, context),
            DeployOptions(dry_run=dry_run),
        )
        PrintFormatter(keys=RESOURCE_KEYS).print(
            resource_row(resource) for resource in deployment.resources
        )
