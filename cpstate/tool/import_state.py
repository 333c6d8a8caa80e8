"""cpstate import action."""

import logging
from argparse import (
    ArgumentParser,
    BooleanOptionalAction,
    _SubParsersAction as SubParsersAction,
)
import sys
from typing import cast

from cpstate.exceptions import MigrationException
from cpstate.importer import ControlPlaneStateImporter, ImportSummary
from cpstate.live import KubectlClient
from cpstate.progress import ConsolePrinter

from . import flags
from .format import PrintFormatter, print_diagnostics
from .preflight import FAIL

_LOGGER = logging.getLogger(__name__)


def summary_rows(summary: ImportSummary) -> list[dict[str, str]]:
    """Return one output row per imported group resource."""
    rows = []
    for phase, result in (("base", summary.base), ("remaining", summary.remaining)):
        for group_resource, count in result.counts.items():
            rows.append(
                {"group": group_resource, "objects": str(count), "phase": phase}
            )
    return rows


class ImportAction:
    """cpstate import action."""

    @classmethod
    def register(
        cls, subparsers: SubParsersAction  # type: ignore[type-arg]
    ) -> ArgumentParser:
        """Register the subparser commands."""
        args = cast(
            ArgumentParser,
            subparsers.add_parser(
                "import",
                help="Import an exported control plane state",
                description="""Import the objects of an export archive into the
                    control plane of the current kubeconfig context. Claims,
                    composites and managed resources are imported paused;
                    composites and claims are unpaused once the import
                    completes.""",
            ),
        )
        flags.add_archive_flags(args)
        flags.add_kubectl_flags(args)
        args.add_argument(
            "--unpause-after-import",
            type=bool,
            action=BooleanOptionalAction,
            default=False,
            help="Unpause managed resources after the import completes",
        )
        args.add_argument(
            "--wait-timeout",
            type=float,
            default=None,
            help="Seconds to wait for definitions and packages to become ready",
        )
        args.add_argument(
            "--poll-interval",
            type=float,
            default=None,
            help="Seconds between readiness checks",
        )
        args.add_argument(
            "--skip-legacy-revision-wait",
            type=bool,
            action=BooleanOptionalAction,
            default=False,
            help="Do not wait for package revisions (only needed for engines before v1.14)",
        )
        args.add_argument(
            "--skip-preflight",
            type=bool,
            action=BooleanOptionalAction,
            default=False,
            help="Do not compare the exported and target control planes first",
        )
        args.add_argument(
            "--yes",
            "-y",
            type=bool,
            action=BooleanOptionalAction,
            default=False,
            help="Import even when preflight checks report problems",
        )
        args.add_argument(
            "--verbose",
            "-v",
            type=bool,
            action=BooleanOptionalAction,
            default=False,
            help="Print progress updates while waiting",
        )
        args.set_defaults(cls=cls)
        return args

    async def run(  # type: ignore[no-untyped-def]
        self,
        skip_preflight: bool,
        yes: bool,
        verbose: bool,
        **kwargs,  # pylint: disable=unused-argument
    ) -> None:
        """Async Action implementation."""
        client = KubectlClient(flags.build_kubectl_config(**kwargs))
        importer = ControlPlaneStateImporter(
            client,
            flags.build_options(**kwargs),
            ConsolePrinter(verbose=verbose),
        )

        if not skip_preflight:
            if diagnostics := await importer.preflight_checks():
                print_diagnostics(diagnostics, FAIL, "", file=sys.stderr)
                if not yes:
                    raise MigrationException(
                        f"{len(diagnostics)} preflight check(s) failed, "
                        "use --yes to import anyway"
                    )
                _LOGGER.warning("Continuing despite failed preflight checks")

        summary = await importer.import_state()
        PrintFormatter(["group", "objects", "phase"]).print(summary_rows(summary))
        print(f"{summary.total} resources imported")
