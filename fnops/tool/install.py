"""Fnops install action."""

from argparse import ArgumentParser, _SubParsersAction as SubParsersAction
import logging
import pathlib
import tempfile
from typing import cast

from fnops.exceptions import FnOpsException
from fnops.installer import (
    DEFAULT_CATALOG,
    DispatcherConfig,
    HelmInstaller,
    InstallConfig,
    install_catalog,
    read_catalog,
    read_overrides,
)
from fnops.installer.dispatcher import (
    DEFAULT_QUEUE_CAPACITY,
    DEFAULT_TIMEOUT,
    DEFAULT_WORKERS,
)
from fnops.installer.install import DEFAULT_SETTLE_DELAY

from .format import RELEASE_KEYS, PrintFormatter, release_row

_LOGGER = logging.getLogger(__name__)


class InstallAction:
    """Fnops install action."""

    @classmethod
    def register(
        cls, subparsers: SubParsersAction  # type: ignore[type-arg]
    ) -> ArgumentParser:
        """Register the subparser commands."""
        args = cast(
            ArgumentParser,
            subparsers.add_parser(
                "install",
                help="Install a catalog of components with helm",
                description="""Installs the prerequisites one at a time, then
                    the remaining components concurrently. Components that do
                    not fit in the queue are skipped and the install gives up
                    waiting once the timeout passes.""",
            ),
        )
        args.add_argument(
            "--resources-dir",
            type=pathlib.Path,
            default=pathlib.Path("resources"),
            help="Directory holding one chart directory per component",
        )
        args.add_argument(
            "--catalog",
            type=pathlib.Path,
            default=None,
            help="YAML file listing prerequisites and components, defaults to the built-in catalog",
        )
        args.add_argument(
            "--values",
            type=pathlib.Path,
            action="append",
            default=[],
            help="Helm values file merged into the overrides, may be repeated",
        )
        args.add_argument(
            "--workers",
            type=int,
            default=DEFAULT_WORKERS,
            help="Number of components installed concurrently",
        )
        args.add_argument(
            "--queue-capacity",
            type=int,
            default=DEFAULT_QUEUE_CAPACITY,
            help="Maximum number of components accepted, the rest are skipped",
        )
        args.add_argument(
            "--timeout",
            type=float,
            default=DEFAULT_TIMEOUT,
            help="Seconds to wait for the components to install",
        )
        args.add_argument(
            "--settle-delay",
            type=float,
            default=DEFAULT_SETTLE_DELAY,
            help="Seconds to wait after installing the prerequisites",
        )
        args.add_argument(
            "--kubeconfig",
            type=pathlib.Path,
            default=None,
            help="Path to the kubeconfig file, defaults to the helm default",
        )
        args.set_defaults(cls=cls)
        return args

    async def run(  # type: ignore[no-untyped-def]
        self,
        resources_dir: pathlib.Path,
        catalog: pathlib.Path | None,
        values: list[pathlib.Path],
        workers: int,
        queue_capacity: int,
        timeout: float,
        settle_delay: float,
        kubeconfig: pathlib.Path | None,
        **kwargs,  # pylint: disable=unused-argument
    ) -> None:
        """Async Action implementation."""
        config = InstallConfig(
            resources_dir=resources_dir,
            catalog=await read_catalog(catalog) if catalog else DEFAULT_CATALOG,
            overrides=await read_overrides(values),
            settle_delay=settle_delay,
            dispatcher=DispatcherConfig(
                workers=workers, queue_capacity=queue_capacity, timeout=timeout
            ),
        )
        with tempfile.TemporaryDirectory() as tmp_dir:
            installer = HelmInstaller(
                tmp_dir=pathlib.Path(tmp_dir), kubeconfig=kubeconfig
            )
            report = await install_catalog(installer, config)
            if report.dispatcher is not None and report.dispatcher.outstanding:
                # Running installs write their values files to tmp_dir
                _LOGGER.warning(
                    "Waiting for %d install worker(s) still running",
                    report.dispatcher.outstanding,
                )
                await report.dispatcher.join()

        PrintFormatter(keys=RELEASE_KEYS).print(
            release_row(release, report.revisions.get(release.name))
            for release in report.releases
        )

        problems = []
        if report.prerequisites_failed or report.dispatch.failed:
            failed = [*report.prerequisites_failed, *report.dispatch.failed]
            problems.append(f"failed: {', '.join(failed)}")
        if report.dispatch.dropped:
            dropped = [component.name for component in report.dispatch.dropped]
            problems.append(f"skipped: {', '.join(dropped)}")
        if report.dispatch.timed_out:
            pending = [component.name for component in report.dispatch.pending]
            problems.append(f"timed out waiting for: {', '.join(pending)}")
        if problems:
            raise FnOpsException(f"Installation incomplete, {'; '.join(problems)}")
