"""Command line tool for printing the contents of an export archive."""

import logging
from argparse import ArgumentParser, _SubParsersAction as SubParsersAction
import pathlib
from typing import cast

from cpstate import archive
from cpstate.importer import StateReader, is_base_resource
from cpstate.importer.importer import DEFAULT_ARCHIVE
from cpstate.state import InMemoryState

from .format import PrintFormatter

_LOGGER = logging.getLogger(__name__)


class InspectAction:
    """cpstate inspect action."""

    @classmethod
    def register(
        cls, subparsers: SubParsersAction  # type: ignore[type-arg]
    ) -> ArgumentParser:
        """Register the subparser commands."""
        args = cast(
            ArgumentParser,
            subparsers.add_parser(
                "inspect",
                help="Print the contents of an export archive",
                description="""Print the export metadata and the number of
                    objects per group resource without contacting a control
                    plane.""",
            ),
        )
        args.add_argument(
            "--input",
            "-i",
            type=pathlib.Path,
            default=DEFAULT_ARCHIVE,
            help="Path to the export archive",
        )
        args.set_defaults(cls=cls)
        return args

    async def run(  # type: ignore[no-untyped-def]
        self,
        input: pathlib.Path,  # pylint: disable=redefined-builtin
        **kwargs,  # pylint: disable=unused-argument
    ) -> None:
        """Async Action implementation."""
        state = InMemoryState()
        await archive.extract(input, state)
        meta = await state.read_export_meta()
        print(f"Engine version: {meta.engine_version}")
        print(f"Feature flags: {', '.join(meta.feature_flags) or '-'}")

        reader = StateReader(state)
        results = []
        for group_resource in await state.list_groups():
            group = await reader.read_resources(group_resource)
            results.append(
                {
                    "group": group_resource,
                    "objects": len(group.objects),
                    "base": str(is_base_resource(group_resource)).lower(),
                }
            )
        PrintFormatter(["group", "objects", "base"]).print(results)
