"""Fnops run action."""

from argparse import (
    ArgumentParser,
    _SubParsersAction as SubParsersAction,
    BooleanOptionalAction,
)
import asyncio
import logging
import pathlib
from typing import cast

from fnops.container import ContainerRunner, run_options
from fnops.workspace import read_workspace

from . import selector

_LOGGER = logging.getLogger(__name__)


class RunAction:
    """Fnops run action."""

    @classmethod
    def register(
        cls, subparsers: SubParsersAction  # type: ignore[type-arg]
    ) -> ArgumentParser:
        """Register the subparser commands."""
        args = cast(
            ArgumentParser,
            subparsers.add_parser(
                "run",
                help="Run the function of a workspace in a local container",
                description="""Starts a container of the runtime image with the
                    workspace sources mounted and prints its output until the
                    container exits. Interrupting the command stops the
                    container.""",
            ),
        )
        selector.add_workspace_flags(args)
        args.add_argument(
            "--debug",
            action=BooleanOptionalAction,
            default=False,
            help="Enable the runtime debugger and publish its port",
        )
        args.add_argument(
            "--image",
            type=str,
            default=None,
            help="Overrides the runtime image",
        )
        args.add_argument(
            "--detach",
            action=BooleanOptionalAction,
            default=False,
            help="Return once the container is started instead of following its output",
        )
        args.set_defaults(cls=cls)
        return args

    async def run(  # type: ignore[no-untyped-def]
        self,
        path: pathlib.Path,
        debug: bool,
        image: str | None,
        detach: bool,
        **kwargs,  # pylint: disable=unused-argument
    ) -> None:
        """Async Action implementation."""
        workspace = await read_workspace(path)
        runner = ContainerRunner()
        container_id = await runner.run(run_options(workspace, debug=debug, image=image))
        print(container_id)
        if detach:
            return
        try:
            await runner.follow(container_id, print)
        except asyncio.CancelledError:
            _LOGGER.info("Stopping container %s", container_id[:12])
            await runner.stop(container_id)
            raise
