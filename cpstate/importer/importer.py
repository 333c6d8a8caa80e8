"""Importer for exported control plane state.

The import runs as a strict sequence of phases, each completing before the
next begins:

1. Extract the archive, unless preflight checks already did.
2. Import the base group resources, which depend on nothing else.
3. Wait for composite resource definitions to be established.
4. Wait for packages (and, for older engines, their revisions) to be
   installed and healthy.
5. Reset the discovery cache so kinds introduced by packages and
   definitions become resolvable.
6. Import all remaining group resources with claims, composites and managed
   resources paused.
7. Finalize by unpausing composites, then claims, and optionally managed
   resources.

A failing phase ends the run. Nothing is rolled back; since object creation
is idempotent the import can be run again.
"""

from dataclasses import dataclass, field
import logging
from pathlib import Path
from typing import Any

from cpstate import archive
from cpstate.context import trace_context
from cpstate.exceptions import InputException, MigrationException
from cpstate.live import LiveClient
from cpstate.manifest import (
    CATEGORY_CLAIM,
    CATEGORY_COMPOSITE,
    CATEGORY_MANAGED,
    PAUSED_ANNOTATION,
    ConditionSpec,
    GroupKind,
    ImportResult,
    remove_annotations,
)
from cpstate.progress import LoggingPrinter, Printer
from cpstate.state import DirectoryState, ExportedState, InMemoryState

from .category import CategoryModifier
from .resources import PausingResourceImporter, ResourceApplier, StateReader
from .waiter import (
    DEFAULT_INTERVAL_SECONDS,
    DEFAULT_TIMEOUT_SECONDS,
    ConditionWaiter,
)

_LOGGER = logging.getLogger(__name__)

__all__ = [
    "Options",
    "ImportSummary",
    "ControlPlaneStateImporter",
    "BASE_RESOURCES",
    "is_base_resource",
]

DEFAULT_ARCHIVE = Path("xp-state.tar.gz")

# Group resources that do not depend on packages or composite resource
# definitions, imported in this order before anything else.
BASE_RESOURCES = [
    # Core resources
    "namespaces",
    "configmaps",
    "secrets",
    # Runtime
    "controllerconfigs.pkg.crossplane.io",
    "deploymentruntimeconfigs.pkg.crossplane.io",
    "storeconfigs.secrets.crossplane.io",
    # Compositions
    "compositionrevisions.apiextensions.crossplane.io",
    "compositions.apiextensions.crossplane.io",
    "compositeresourcedefinitions.apiextensions.crossplane.io",
    # Packages
    "providers.pkg.crossplane.io",
    "functions.pkg.crossplane.io",
    "configurations.pkg.crossplane.io",
]

DEFINITION_WAIT = ConditionSpec(
    GroupKind("apiextensions.crossplane.io", "CompositeResourceDefinition"),
    ("Established",),
)

PACKAGE_WAITS = [
    ConditionSpec(GroupKind("pkg.crossplane.io", kind), ("Installed", "Healthy"))
    for kind in ("Provider", "Function", "Configuration")
]

# Engines before v1.14 could report packages healthy before their revisions,
# so revisions are checked explicitly. Remove once v1.13 is no longer supported.
LEGACY_REVISION_WAITS = [
    ConditionSpec(GroupKind("pkg.crossplane.io", kind), ("Healthy",))
    for kind in ("ProviderRevision", "FunctionRevision", "ConfigurationRevision")
]

# Composites are released before the claims that own them.
FINALIZE_CATEGORIES = [CATEGORY_COMPOSITE, CATEGORY_CLAIM]


def is_base_resource(group_resource: str) -> bool:
    """Return True if the group resource is imported in the base phase."""
    return group_resource in BASE_RESOURCES


def unpause(obj: dict[str, Any]) -> None:
    """Remove the pause marker from an object."""
    remove_annotations(obj, PAUSED_ANNOTATION)


@dataclass(frozen=True)
class Options:
    """Options for an import run."""

    input_archive: Path = DEFAULT_ARCHIVE
    """Path to the archive to import."""

    unpause_after_import: bool = False
    """Whether to unpause managed resources once the import is finalized."""

    extract_dir: Path | None = None
    """Extract the archive to this directory instead of memory."""

    wait_timeout: float = DEFAULT_TIMEOUT_SECONDS
    """Seconds to wait for each kind to reach its conditions."""

    poll_interval: float = DEFAULT_INTERVAL_SECONDS
    """Seconds between readiness polls."""

    skip_legacy_revision_wait: bool = False
    """Skip the package revision checks needed by engines before v1.14."""


@dataclass
class ImportSummary:
    """Outcome of a completed import."""

    base: ImportResult = field(default_factory=ImportResult)
    """Objects imported in the base phase."""

    remaining: ImportResult = field(default_factory=ImportResult)
    """Objects imported in the remaining phase."""

    unpaused: dict[str, int] = field(default_factory=dict)
    """Objects unpaused per category during finalize."""

    @property
    def total(self) -> int:
        """Total number of objects imported."""
        return self.base.total + self.remaining.total


class ControlPlaneStateImporter:
    """Imports an exported control plane state into a live control plane."""

    def __init__(
        self,
        client: LiveClient,
        options: Options | None = None,
        printer: Printer | None = None,
    ) -> None:
        """Initialize the ControlPlaneStateImporter."""
        self._client = client
        self._options = options or Options()
        self._printer = printer or LoggingPrinter()
        self._state: ExportedState | None = None

    @property
    def state(self) -> ExportedState | None:
        """The extracted state, once extraction has happened."""
        return self._state

    async def extract(self) -> ExportedState:
        """Extract the archive once, reusing the state on later calls.

        Raises:
            InputException: If the archive cannot be extracted or the extract
                directory already holds files.
        """
        if self._state is not None:
            return self._state
        state: ExportedState
        if self._options.extract_dir is not None:
            state = DirectoryState(self._options.extract_dir)
            # The store must hold only the entries of the archive
            if await state.exists("/") and await state.list_dir("/"):
                raise InputException(
                    f"extract directory {str(self._options.extract_dir)!r} is not empty"
                )
        else:
            state = InMemoryState()
        await archive.extract(self._options.input_archive, state)
        self._state = state
        return state

    async def preflight_checks(self) -> list[str]:
        """Compare the exported control plane with the target control plane.

        All mismatches are returned together. A single diagnostic is returned
        when the target or the exported metadata cannot be read at all.
        """
        try:
            observed = await self._client.collect_info()
        except MigrationException as err:
            return [f"Cannot get engine info: {err}"]

        try:
            state = await self.extract()
        except InputException as err:
            return [f"Cannot unarchive export archive: {err}"]
        try:
            meta = await state.read_export_meta()
        except InputException as err:
            return [f"Cannot read export metadata: {err}"]

        errors = []
        if observed.version != meta.engine_version:
            errors.append(
                f"Engine version {observed.version!r} does not match exported "
                f"version {meta.engine_version!r}"
            )
        for flag in meta.feature_flags:
            if flag not in observed.feature_flags:
                errors.append(
                    f"Feature flag {flag!r} was set in the exported control plane "
                    "but is not set in the target control plane for import."
                )
        return errors

    async def import_state(self) -> ImportSummary:
        """Run all import phases.

        Raises:
            MigrationException: If any phase fails. Earlier phases are not
                rolled back.
        """
        with trace_context("Import"):
            msg = "Reading state from the archive... "
            with self._printer.start(msg) as step:
                state = await self.extract()
                step.success("Done!")

            importer = PausingResourceImporter(
                StateReader(state), ResourceApplier(self._client), self._client
            )
            summary = ImportSummary()
            summary.base = await self._import_base(state, importer)
            await self._wait_for_definitions()
            await self._wait_for_packages()

            # Kinds introduced by packages and definitions are only mapped
            # after the discovery cache is dropped.
            self._client.reset_mapping()

            summary.remaining = await self._import_remaining(state, importer)
            summary.unpaused = await self._finalize()
        _LOGGER.info("Imported %d objects", summary.total)
        return summary

    async def _import_base(
        self, state: ExportedState, importer: PausingResourceImporter
    ) -> ImportResult:
        result = ImportResult()
        msg = "Importing base resources... "
        with trace_context("Base"), self._printer.start(msg) as step:
            for i, group_resource in enumerate(BASE_RESOURCES):
                step.update(
                    f"({i} / {len(BASE_RESOURCES)}) Importing {group_resource}..."
                )
                if not await state.exists(group_resource):
                    continue
                count = await importer.import_resources(group_resource, pause=False)
                result.add(group_resource, count)
            step.success(f"{result.total} resources imported!")
        return result

    def _waiter(self) -> ConditionWaiter:
        return ConditionWaiter(
            self._client,
            timeout=self._options.wait_timeout,
            interval=self._options.poll_interval,
        )

    async def _wait_for_definitions(self) -> None:
        msg = "Waiting for XRDs... "
        with trace_context("XRDs"), self._printer.start(msg) as step:
            await self._waiter().wait_for_conditions(DEFINITION_WAIT, step)
            step.success("Established!")

    async def _wait_for_packages(self) -> None:
        waiter = self._waiter()
        specs = list(PACKAGE_WAITS)
        if not self._options.skip_legacy_revision_wait:
            specs.extend(LEGACY_REVISION_WAITS)
        msg = "Waiting for Packages... "
        with trace_context("Packages"), self._printer.start(msg) as step:
            for spec in specs:
                await waiter.wait_for_conditions(spec, step)
            step.success("Installed and Healthy!")

    async def _import_remaining(
        self, state: ExportedState, importer: PausingResourceImporter
    ) -> ImportResult:
        result = ImportResult()
        msg = "Importing remaining resources... "
        with trace_context("Remaining"), self._printer.start(msg) as step:
            groups = [
                g for g in await state.list_groups() if not is_base_resource(g)
            ]
            for i, group_resource in enumerate(groups):
                step.update(f"({i} / {len(groups)}) Importing {group_resource}...")
                count = await importer.import_resources(group_resource, pause=True)
                result.add(group_resource, count)
            step.success(f"{result.total} resources imported!")
        return result

    async def _finalize(self) -> dict[str, int]:
        unpaused: dict[str, int] = {}
        modifier = CategoryModifier(self._client)
        msg = "Finalizing import... "
        with trace_context("Finalize"), self._printer.start(msg) as step:
            for category in FINALIZE_CATEGORIES:
                unpaused[category] = await modifier.modify_resources(category, unpause)
            step.success("Done!")

        if self._options.unpause_after_import:
            msg = "Unpausing managed resources... "
            with self._printer.start(msg) as step:
                unpaused[CATEGORY_MANAGED] = await modifier.modify_resources(
                    CATEGORY_MANAGED, unpause
                )
                step.success("Done!")
        return unpaused
