"""Fnops delete action."""

from argparse import ArgumentParser, _SubParsersAction as SubParsersAction
import logging
import pathlib
from typing import cast

from fnops.deploy import DeployOptions, teardown
from fnops.workspace import read_workspace

from . import selector

_LOGGER = logging.getLogger(__name__)


class DeleteAction:
    """Fnops delete action."""

    @classmethod
    def register(
        cls, subparsers: SubParsersAction  # type: ignore[type-arg]
    ) -> ArgumentParser:
        """Register the subparser commands."""
        args = cast(
            ArgumentParser,
            subparsers.add_parser(
                "delete",
                help="Delete the function of a workspace from a cluster",
                description="""Deletes the Function of the workspace, waiting
                    on the Triggers and APIRules it owns. A Function that does
                    not exist is not an error.""",
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
        await teardown(
            workspace,
            selector.client_factory(kubeconfig, context),
            DeployOptions(dry_run=dry_run),
        )
        print(f"Deleted function {workspace.namespace}/{workspace.name}")
