"""Fnops build action."""

from argparse import ArgumentParser, _SubParsersAction as SubParsersAction
import logging
import pathlib
from typing import cast

from fnops.function import new_api_rules, new_function, new_triggers
from fnops.workspace import read_workspace

from . import selector
from .format import YamlFormatter

_LOGGER = logging.getLogger(__name__)


class BuildAction:
    """Fnops build action."""

    @classmethod
    def register(
        cls, subparsers: SubParsersAction  # type: ignore[type-arg]
    ) -> ArgumentParser:
        """Register the subparser commands."""
        args = cast(
            ArgumentParser,
            subparsers.add_parser(
                "build",
                help="Build the objects of a workspace without applying them",
                description="""Prints the Function, Triggers and APIRules
                    generated from the workspace as YAML documents. Owner
                    references are only set when the objects are applied.""",
            ),
        )
        selector.add_workspace_flags(args)
        args.add_argument(
            "--output-file",
            type=str,
            default="/dev/stdout",
            help="Output file for the results of the command",
        )
        args.set_defaults(cls=cls)
        return args

    async def run(  # type: ignore[no-untyped-def]
        self,
        path: pathlib.Path,
        output_file: str,
        **kwargs,  # pylint: disable=unused-argument
    ) -> None:
        """Async Action implementation."""
        workspace = await read_workspace(path)
        resources = [
            await new_function(workspace),
            *new_triggers(workspace),
            *new_api_rules(workspace),
        ]
        _LOGGER.debug("Built %d object(s) for %s", len(resources), workspace.name)
        with open(output_file, "w") as file:
            YamlFormatter().print([resource.to_doc() for resource in resources], file)
