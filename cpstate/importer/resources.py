"""Import the objects of one group resource from the exported state.

The `PausingResourceImporter` reads every manifest stored for a group
resource and creates it in the live control plane. Objects of kinds in a
pausable category (claims, composites and managed resources) can be created
with the `crossplane.io/paused` annotation so they are not reconciled until
the import is finalized.
"""

from dataclasses import dataclass, field
import logging
import posixpath
from typing import Any

from cpstate.exceptions import (
    AlreadyExistsError,
    ImportException,
    InputException,
    MigrationException,
)
from cpstate.live import LiveClient, ResourceMapping
from cpstate.manifest import (
    GROUP_META_FILE,
    PAUSABLE_CATEGORIES,
    PAUSED_ANNOTATION,
    GroupMeta,
    GroupResource,
    NamedResource,
    add_annotations,
    parse_object,
    strip_server_metadata,
)
from cpstate.state import ExportedState

_LOGGER = logging.getLogger(__name__)

__all__ = [
    "GroupResources",
    "StateReader",
    "ResourceApplier",
    "PausingResourceImporter",
]


@dataclass
class GroupResources:
    """The objects stored for a group resource."""

    group_resource: str
    """The name of the group directory."""

    meta: GroupMeta | None = None
    """The optional group metadata record."""

    objects: list[dict[str, Any]] = field(default_factory=list)
    """The parsed objects, ordered by file name."""


class StateReader:
    """Reads the objects of a group resource from the exported state."""

    def __init__(self, state: ExportedState) -> None:
        """Initialize the StateReader."""
        self._state = state

    async def read_resources(self, group_resource: str) -> GroupResources:
        """Read and parse the objects stored for a group resource.

        A group that is not present in the state has no objects.

        Raises:
            InputException: If a stored file cannot be parsed.
        """
        result = GroupResources(group_resource=group_resource)
        if not await self._state.exists(group_resource):
            _LOGGER.debug("No exported objects for %s", group_resource)
            return result
        for entry in await self._state.list_dir(group_resource):
            path = posixpath.join(group_resource, entry.name)
            if entry.is_dir:
                raise InputException(f"unexpected directory {path!r} in exported state")
            content = await self._state.read_file(path)
            if entry.name == GROUP_META_FILE:
                result.meta = GroupMeta.parse_yaml(content)
                continue
            result.objects.append(parse_object(content, path))
        return result


class ResourceApplier:
    """Creates exported objects in the live control plane.

    Creation is idempotent: an object that already exists is left untouched,
    so an interrupted import may be run again.
    """

    def __init__(self, client: LiveClient) -> None:
        """Initialize the ResourceApplier."""
        self._client = client

    async def apply(
        self, mapping: ResourceMapping, obj: dict[str, Any], with_status: bool = False
    ) -> bool:
        """Create the object, returning False if it already existed."""
        resource_id = NamedResource.from_object(obj)
        status = obj.pop("status", None)
        strip_server_metadata(obj)
        try:
            created = await self._client.create_object(mapping, obj)
        except AlreadyExistsError:
            _LOGGER.debug("%s already exists, skipping", resource_id)
            return False
        _LOGGER.debug("Created %s", resource_id)
        if with_status and status:
            created["status"] = status
            await self._client.update_status(mapping, created)
        return True


class PausingResourceImporter:
    """Imports group resources, optionally pausing pausable kinds."""

    def __init__(
        self, reader: StateReader, applier: ResourceApplier, client: LiveClient
    ) -> None:
        """Initialize the PausingResourceImporter."""
        self._reader = reader
        self._applier = applier
        self._client = client

    async def import_resources(self, group_resource: str, pause: bool) -> int:
        """Import all objects of the group resource and return how many were applied.

        The first failing object aborts the group; objects applied before it
        are not rolled back.

        Raises:
            ImportException: If the group could not be read or an object
                could not be applied.
        """
        try:
            group = await self._reader.read_resources(group_resource)
            if not group.objects:
                return 0
            mapping = await self._client.resolve_resource(
                GroupResource.parse(group_resource)
            )
            categories = set(
                group.meta.categories
                if group.meta and group.meta.categories
                else mapping.categories
            )
            should_pause = pause and bool(categories & PAUSABLE_CATEGORIES)
            with_status = bool(group.meta and group.meta.with_status_subresource)

            count = 0
            for obj in group.objects:
                if should_pause:
                    add_annotations(obj, {PAUSED_ANNOTATION: "true"})
                await self._applier.apply(mapping, obj, with_status=with_status)
                count += 1
        except MigrationException as err:
            _LOGGER.error("Failed to import %s: %s", group_resource, err)
            raise ImportException(group_resource, str(err)) from err
        _LOGGER.info(
            "Imported %d %s%s", count, group_resource, " (paused)" if should_pause else ""
        )
        return count
