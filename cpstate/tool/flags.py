"""Flags shared by the cpstate command line actions."""

from argparse import ArgumentParser
import pathlib
from typing import Any

from cpstate.importer import Options
from cpstate.importer.importer import DEFAULT_ARCHIVE
from cpstate.live import KubectlConfig


def add_archive_flags(args: ArgumentParser) -> None:
    """Add flags selecting the export archive."""
    args.add_argument(
        "--input",
        "-i",
        type=pathlib.Path,
        default=DEFAULT_ARCHIVE,
        help="Path to the export archive to import",
    )
    args.add_argument(
        "--extract-dir",
        type=pathlib.Path,
        default=None,
        help="Extract the archive into this directory instead of memory",
    )


def add_kubectl_flags(args: ArgumentParser) -> None:
    """Add flags for reaching the target control plane."""
    args.add_argument(
        "--context",
        type=str,
        default=None,
        help="The kubeconfig context of the target control plane",
    )
    args.add_argument(
        "--kubeconfig",
        type=str,
        default=None,
        help="Path to the kubeconfig file",
    )
    args.add_argument(
        "--kubectl-timeout",
        type=float,
        default=60.0,
        help="Seconds before a single kubectl call is abandoned",
    )


def build_kubectl_config(
    context: str | None = None,
    kubeconfig: str | None = None,
    kubectl_timeout: float = 60.0,
    **kwargs: Any,  # pylint: disable=unused-argument
) -> KubectlConfig:
    """Build the kubectl configuration from the command line flags."""
    return KubectlConfig(context=context, kubeconfig=kubeconfig, timeout=kubectl_timeout)


def build_options(
    input: pathlib.Path = DEFAULT_ARCHIVE,  # pylint: disable=redefined-builtin
    extract_dir: pathlib.Path | None = None,
    unpause_after_import: bool = False,
    wait_timeout: float | None = None,
    poll_interval: float | None = None,
    skip_legacy_revision_wait: bool = False,
    **kwargs: Any,  # pylint: disable=unused-argument
) -> Options:
    """Build the import options from the command line flags."""
    defaults = Options()
    return Options(
        input_archive=input,
        extract_dir=extract_dir,
        unpause_after_import=unpause_after_import,
        wait_timeout=wait_timeout if wait_timeout is not None else defaults.wait_timeout,
        poll_interval=(
            poll_interval if poll_interval is not None else defaults.poll_interval
        ),
        skip_legacy_revision_wait=skip_legacy_revision_wait,
    )
