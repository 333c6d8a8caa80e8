"""Command line tool for checking a control plane can receive an export."""

import logging
from argparse import ArgumentParser, _SubParsersAction as SubParsersAction
from typing import cast

from cpstate.exceptions import MigrationException
from cpstate.importer import ControlPlaneStateImporter
from cpstate.live import KubectlClient

from . import flags
from .format import print_diagnostics

_LOGGER = logging.getLogger(__name__)

FAIL = "[PREFLIGHT FAIL]"
OK = "[PREFLIGHT OK]"


class PreflightAction:
    """cpstate preflight action."""

    @classmethod
    def register(
        cls, subparsers: SubParsersAction  # type: ignore[type-arg]
    ) -> ArgumentParser:
        """Register the subparser commands."""
        args = cast(
            ArgumentParser,
            subparsers.add_parser(
                "preflight",
                help="Compare an export with the target control plane",
                description="""Compare the engine version and feature flags
                    recorded in the export archive with the target control
                    plane and print every mismatch.""",
            ),
        )
        flags.add_archive_flags(args)
        flags.add_kubectl_flags(args)
        args.set_defaults(cls=cls)
        return args

    async def run(  # type: ignore[no-untyped-def]
        self,
        **kwargs,  # pylint: disable=unused-argument
    ) -> None:
        """Async Action implementation."""
        client = KubectlClient(flags.build_kubectl_config(**kwargs))
        importer = ControlPlaneStateImporter(client, flags.build_options(**kwargs))
        diagnostics = await importer.preflight_checks()
        print_diagnostics(diagnostics, FAIL, OK)
        if diagnostics:
            raise MigrationException(f"{len(diagnostics)} preflight check(s) failed")
