"""Representation of an exported control plane state.

The exported state holds one metadata record describing the source control
plane and a directory of serialized objects per group resource. The types in
this module describe those records, identify kinds and objects, and provide
helpers for working with unstructured objects (plain dictionaries as returned
by `yaml.safe_load` or `kubectl get -o json`).
"""

from dataclasses import dataclass, field
import logging
from typing import Any

import yaml
from mashumaro import DataClassDictMixin, field_options
from mashumaro.config import BaseConfig
from mashumaro.exceptions import MissingField, InvalidFieldValue

from .exceptions import InputException

__all__ = [
    "GroupKind",
    "GroupResource",
    "NamedResource",
    "ExportMeta",
    "GroupMeta",
    "ConditionSpec",
    "ImportResult",
    "parse_object",
]

_LOGGER = logging.getLogger(__name__)


EXPORT_META_FILE = "export.yaml"
GROUP_META_FILE = "metadata.yaml"

PAUSED_ANNOTATION = "crossplane.io/paused"

CATEGORY_CLAIM = "claim"
CATEGORY_COMPOSITE = "composite"
CATEGORY_MANAGED = "managed"

# Categories whose objects are created paused and released on finalize.
PAUSABLE_CATEGORIES = frozenset({CATEGORY_CLAIM, CATEGORY_COMPOSITE, CATEGORY_MANAGED})

CONDITION_TRUE = "True"

# Fields assigned by the API server that must not be sent on create.
SERVER_METADATA_FIELDS = [
    "resourceVersion",
    "uid",
    "creationTimestamp",
    "managedFields",
    "generation",
    "selfLink",
]


@dataclass
class BaseManifest(DataClassDictMixin):
    """Base class for all serializable records."""

    class Config(BaseConfig):
        omit_none = True
        serialize_by_alias = True


@dataclass(frozen=True, order=True)
class GroupKind:
    """Identifies a kind of object within an API group."""

    group: str
    kind: str

    def __str__(self) -> str:
        """Return the kind qualified by its group, e.g. `Provider.pkg.crossplane.io`."""
        if self.group:
            return f"{self.kind}.{self.group}"
        return self.kind


@dataclass(frozen=True, order=True)
class GroupResource:
    """Identifies a plural API resource within an API group."""

    group: str
    resource: str

    @classmethod
    def parse(cls, value: str) -> "GroupResource":
        """Parse a string such as `compositions.apiextensions.crossplane.io`.

        Core resources have no group, e.g. `namespaces`.
        """
        if not value:
            raise InputException("Invalid empty group resource")
        resource, _, group = value.partition(".")
        return cls(group=group, resource=resource)

    def __str__(self) -> str:
        """Return the group resource in the form used as a directory name."""
        if self.group:
            return f"{self.resource}.{self.group}"
        return self.resource


@dataclass(frozen=True, order=True)
class NamedResource:
    """Identifier for a kubernetes resource."""

    kind: str
    namespace: str | None
    name: str

    @classmethod
    def from_object(cls, obj: dict[str, Any]) -> "NamedResource":
        """Return the identifier of an unstructured object."""
        metadata = obj.get("metadata") or {}
        return cls(
            kind=obj.get("kind", ""),
            namespace=metadata.get("namespace"),
            name=metadata.get("name", ""),
        )

    @property
    def namespaced_name(self) -> str:
        if self.namespace:
            return f"{self.namespace}/{self.name}"
        return self.name

    def __str__(self) -> str:
        """Return the kind and namespaced name concatenated as an id."""
        return f"{self.kind}/{self.namespaced_name}"


@dataclass
class ExportMeta(BaseManifest):
    """Metadata record describing the control plane a state was exported from."""

    engine_version: str = field(metadata=field_options(alias="engineVersion"))
    """Version of the engine running in the source control plane."""

    feature_flags: list[str] = field(
        metadata=field_options(alias="featureFlags"), default_factory=list
    )
    """Feature flags enabled in the source control plane."""

    version: str | None = None
    """Version of the export format."""

    exported_at: str | None = field(
        metadata=field_options(alias="exportedAt"), default=None
    )
    """Time the export was taken."""

    stats: dict[str, Any] | None = None
    """Summary statistics recorded by the exporter."""

    @classmethod
    def parse_doc(cls, doc: Any) -> "ExportMeta":
        """Parse the export metadata from a loaded yaml document.

        Older exports nest the engine details under a `crossplane` key, which
        is accepted as well.
        """
        if not isinstance(doc, dict):
            raise InputException(f"Invalid export metadata, expected a mapping: {doc}")
        if isinstance(engine := doc.get("crossplane"), dict):
            doc = {
                **{k: v for k, v in doc.items() if k != "crossplane"},
                "engineVersion": engine.get("version"),
                "featureFlags": engine.get("featureFlags") or [],
            }
        if not doc.get("engineVersion"):
            raise InputException(f"Invalid export metadata missing engineVersion: {doc}")
        try:
            return cls.from_dict(doc)
        except (MissingField, InvalidFieldValue) as err:
            raise InputException(f"Invalid export metadata: {err}") from err

    @classmethod
    def parse_yaml(cls, content: str | bytes) -> "ExportMeta":
        """Parse a serialized export metadata record."""
        try:
            doc = yaml.safe_load(content)
        except yaml.YAMLError as err:
            raise InputException(f"Cannot parse export metadata: {err}") from err
        return cls.parse_doc(doc)


@dataclass
class GroupMeta(BaseManifest):
    """Optional metadata stored alongside the objects of one group resource."""

    group_resource: str | None = field(
        metadata=field_options(alias="groupResource"), default=None
    )
    """The group resource the directory holds."""

    categories: list[str] = field(default_factory=list)
    """Categories the kind belonged to in the source control plane."""

    with_status_subresource: bool = field(
        metadata=field_options(alias="withStatusSubresource"), default=False
    )
    """Whether status must be written through the status subresource."""

    @classmethod
    def parse_yaml(cls, content: str | bytes) -> "GroupMeta":
        """Parse a serialized group metadata record."""
        try:
            doc = yaml.safe_load(content) or {}
        except yaml.YAMLError as err:
            raise InputException(f"Cannot parse group metadata: {err}") from err
        if not isinstance(doc, dict):
            raise InputException(f"Invalid group metadata, expected a mapping: {doc}")
        try:
            return cls.from_dict(doc)
        except (MissingField, InvalidFieldValue) as err:
            raise InputException(f"Invalid group metadata: {err}") from err


@dataclass(frozen=True)
class ConditionSpec:
    """A kind and the status conditions all of its objects must satisfy."""

    group_kind: GroupKind
    conditions: tuple[str, ...]

    def describe(self) -> str:
        """Return the condition types as a human readable list."""
        return format_conditions(self.conditions)


@dataclass
class ImportResult(BaseManifest):
    """Number of objects imported per group resource."""

    counts: dict[str, int] = field(default_factory=dict)

    def add(self, group_resource: str, count: int) -> None:
        """Record the number of objects imported for a group resource."""
        self.counts[group_resource] = count

    @property
    def total(self) -> int:
        """Total number of objects imported."""
        return sum(self.counts.values())


def format_conditions(conditions: tuple[str, ...] | list[str]) -> str:
    """Join condition types into a sentence, e.g. `Installed and Healthy`."""
    if not conditions:
        return ""
    if len(conditions) == 1:
        return conditions[0]
    if len(conditions) == 2:
        return f"{conditions[0]} and {conditions[1]}"
    return f"{', '.join(conditions[:-1])}, and {conditions[-1]}"


def parse_object(content: str | bytes, source: str) -> dict[str, Any]:
    """Parse a single serialized object, validating the minimum identity fields."""
    try:
        obj = yaml.safe_load(content)
    except yaml.YAMLError as err:
        raise InputException(f"Cannot parse {source}: {err}") from err
    if not isinstance(obj, dict):
        raise InputException(f"Invalid object in {source}, expected a mapping")
    if not obj.get("apiVersion"):
        raise InputException(f"Invalid object in {source} missing apiVersion")
    if not obj.get("kind"):
        raise InputException(f"Invalid object in {source} missing kind")
    if not (obj.get("metadata") or {}).get("name"):
        raise InputException(f"Invalid object in {source} missing metadata.name")
    return obj


def get_annotations(obj: dict[str, Any]) -> dict[str, str]:
    """Return the annotations of an unstructured object."""
    return (obj.get("metadata") or {}).get("annotations") or {}


def add_annotations(obj: dict[str, Any], annotations: dict[str, str]) -> None:
    """Add annotations to an unstructured object in place."""
    metadata = obj.setdefault("metadata", {})
    existing = metadata.get("annotations") or {}
    existing.update(annotations)
    metadata["annotations"] = existing


def remove_annotations(obj: dict[str, Any], *keys: str) -> None:
    """Remove annotations from an unstructured object in place."""
    metadata = obj.get("metadata") or {}
    if not (annotations := metadata.get("annotations")):
        return
    for key in keys:
        annotations.pop(key, None)
    if not annotations:
        del metadata["annotations"]


def is_paused(obj: dict[str, Any]) -> bool:
    """Return True if the object carries the pause marker."""
    return get_annotations(obj).get(PAUSED_ANNOTATION) == "true"


def strip_server_metadata(obj: dict[str, Any]) -> None:
    """Remove fields the API server owns so the object can be created again."""
    metadata = obj.get("metadata") or {}
    for key in SERVER_METADATA_FIELDS:
        metadata.pop(key, None)


def condition_status(obj: dict[str, Any], condition_type: str) -> str:
    """Return the status of a named condition, or `Unknown` when it is absent."""
    status = obj.get("status")
    if not isinstance(status, dict):
        return "Unknown"
    for condition in status.get("conditions") or []:
        if isinstance(condition, dict) and condition.get("type") == condition_type:
            return str(condition.get("status", "Unknown"))
    return "Unknown"


def conditions_met(obj: dict[str, Any], conditions: tuple[str, ...]) -> bool:
    """Return True if every named condition of the object is True."""
    return all(condition_status(obj, c) == CONDITION_TRUE for c in conditions)
