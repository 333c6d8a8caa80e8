"""Command line tool for importing exported control plane state."""

import argparse
import asyncio
import logging
import sys
import traceback

from cpstate.exceptions import MigrationException
from . import import_state, inspect_archive, preflight

_LOGGER = logging.getLogger(__name__)


def _make_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Command line utility for importing exported control plane state.",
    )
    parser.add_argument(
        "--log-level", choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
    )

    subparsers = parser.add_subparsers(dest="command", help="Command", required=True)

    import_state.ImportAction.register(subparsers)
    preflight.PreflightAction.register(subparsers)
    inspect_archive.InspectAction.register(subparsers)
    return parser


def main() -> None:
    """cpstate command line tool main entry point."""
    parser = _make_parser()
    args = parser.parse_args()

    if args.log_level:
        logging.basicConfig(level=args.log_level)

    action = args.cls()
    try:
        asyncio.run(action.run(**vars(args)))
    except MigrationException as err:
        if args.log_level == "DEBUG":
            traceback.print_exc(file=sys.stderr)
        print(f"cpstate error: {err}", file=sys.stderr)
        sys.exit(1)
    except KeyboardInterrupt:
        print("cpstate: interrupted", file=sys.stderr)
        sys.exit(130)


if __name__ == "__main__":
    main()
