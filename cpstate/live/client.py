"""Interface for reading and writing objects in a live control plane."""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any

from cpstate.manifest import GroupKind, GroupResource


@dataclass(frozen=True)
class ResourceMapping:
    """The API resource serving a kind, as reported by discovery."""

    group_resource: GroupResource
    """The plural resource and its group, e.g. `providers.pkg.crossplane.io`."""

    kind: str
    """The kind of the objects served by the resource."""

    version: str
    """The preferred version of the resource."""

    namespaced: bool = False
    """Whether objects of the resource live in a namespace."""

    categories: tuple[str, ...] = field(default_factory=tuple)
    """Categories the resource belongs to, e.g. `managed` or `claim`."""

    @property
    def group_kind(self) -> GroupKind:
        """The group and kind served by the resource."""
        return GroupKind(group=self.group_resource.group, kind=self.kind)

    @property
    def api_version(self) -> str:
        """The apiVersion used by objects of the resource."""
        if self.group_resource.group:
            return f"{self.group_resource.group}/{self.version}"
        return self.version

    def __str__(self) -> str:
        return str(self.group_resource)


@dataclass(frozen=True)
class EngineInfo:
    """Information about the engine running in the control plane."""

    version: str
    """Version of the engine, e.g. `v1.14.0`."""

    feature_flags: tuple[str, ...] = field(default_factory=tuple)
    """Feature flags enabled on the engine."""


class LiveClient(ABC):
    """Abstract base class for the live control plane an import targets."""

    @abstractmethod
    async def resolve_kind(self, group_kind: GroupKind) -> ResourceMapping:
        """Return the resource serving the kind.

        Raises:
            MappingException: If no resource serves the kind.
        """

    @abstractmethod
    async def resolve_resource(self, group_resource: GroupResource) -> ResourceMapping:
        """Return the discovery details of a group resource.

        Raises:
            MappingException: If the resource is not served.
        """

    @abstractmethod
    async def resolve_category(self, category: str) -> list[ResourceMapping]:
        """Return all resources currently registered in the category."""

    @abstractmethod
    def reset_mapping(self) -> None:
        """Forget cached discovery results so new kinds become resolvable."""

    @abstractmethod
    async def list_objects(self, mapping: ResourceMapping) -> list[dict[str, Any]]:
        """List all objects of the resource across namespaces."""

    @abstractmethod
    async def create_object(
        self, mapping: ResourceMapping, obj: dict[str, Any]
    ) -> dict[str, Any]:
        """Create the object and return it as stored.

        Raises:
            AlreadyExistsError: If an object with the same identity exists.
        """

    @abstractmethod
    async def update_object(
        self, mapping: ResourceMapping, obj: dict[str, Any]
    ) -> dict[str, Any]:
        """Replace an existing object and return it as stored."""

    @abstractmethod
    async def update_status(self, mapping: ResourceMapping, obj: dict[str, Any]) -> None:
        """Write the status of the object through the status subresource."""

    @abstractmethod
    async def collect_info(self) -> EngineInfo:
        """Return information about the engine running in the control plane."""
