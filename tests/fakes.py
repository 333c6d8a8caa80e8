"""Fake control plane and helpers shared by the cpstate tests."""

from collections import defaultdict
from collections.abc import Callable
import copy
import io
import pathlib
import tarfile
from typing import Any

from cpstate.exceptions import AlreadyExistsError, KubectlException, MappingException
from cpstate.live import EngineInfo, LiveClient, ResourceMapping
from cpstate.manifest import GroupKind, GroupResource, NamedResource
from cpstate.progress import Printer, StepEvent

TESTDATA_DIR = pathlib.Path(__file__).parent / "testdata"
TESTDATA_ARCHIVE = TESTDATA_DIR / "xp-state.tar.gz"


def mapping(
    resource: str,
    kind: str,
    version: str = "v1",
    namespaced: bool = False,
    categories: tuple[str, ...] = (),
) -> ResourceMapping:
    """Build a ResourceMapping from a group resource string."""
    return ResourceMapping(
        group_resource=GroupResource.parse(resource),
        kind=kind,
        version=version,
        namespaced=namespaced,
        categories=categories,
    )


DEFAULT_MAPPINGS = [
    mapping("namespaces", "Namespace"),
    mapping("configmaps", "ConfigMap", namespaced=True),
    mapping("secrets", "Secret", namespaced=True),
    mapping("compositions.apiextensions.crossplane.io", "Composition"),
    mapping(
        "compositeresourcedefinitions.apiextensions.crossplane.io",
        "CompositeResourceDefinition",
    ),
    mapping("providers.pkg.crossplane.io", "Provider"),
    mapping("functions.pkg.crossplane.io", "Function", version="v1beta1"),
    mapping("configurations.pkg.crossplane.io", "Configuration"),
    mapping("providerrevisions.pkg.crossplane.io", "ProviderRevision"),
    mapping("functionrevisions.pkg.crossplane.io", "FunctionRevision", version="v1beta1"),
    mapping("configurationrevisions.pkg.crossplane.io", "ConfigurationRevision"),
    mapping(
        "widgets.example.io",
        "Widget",
        version="v1alpha1",
        categories=("crossplane", "managed"),
    ),
    mapping(
        "xnetworks.example.io",
        "XNetwork",
        version="v1alpha1",
        categories=("composite",),
    ),
    mapping(
        "networks.example.io",
        "Network",
        version="v1alpha1",
        namespaced=True,
        categories=("claim",),
    ),
]


def make_object(
    api_version: str,
    kind: str,
    name: str,
    namespace: str | None = None,
    annotations: dict[str, str] | None = None,
    conditions: dict[str, str] | None = None,
) -> dict[str, Any]:
    """Build an unstructured object."""
    metadata: dict[str, Any] = {"name": name}
    if namespace:
        metadata["namespace"] = namespace
    if annotations:
        metadata["annotations"] = dict(annotations)
    obj: dict[str, Any] = {"apiVersion": api_version, "kind": kind, "metadata": metadata}
    if conditions is not None:
        obj["status"] = {
            "conditions": [{"type": t, "status": s} for t, s in conditions.items()]
        }
    return obj


class FakeLiveClient(LiveClient):
    """In memory control plane that records every call."""

    def __init__(
        self,
        mappings: list[ResourceMapping] | None = None,
        engine: EngineInfo | None = EngineInfo("v1.14.0", ("--enable-usages",)),
    ) -> None:
        self.mappings = list(DEFAULT_MAPPINGS if mappings is None else mappings)
        self.engine = engine
        self.objects: dict[GroupResource, dict[NamedResource, dict[str, Any]]] = (
            defaultdict(dict)
        )
        self.calls: list[tuple[str, ...]] = []
        self.list_failures: dict[GroupResource, int] = defaultdict(int)
        self.fail_create: set[str] = set()
        self.fail_update: set[str] = set()
        self.on_list: Callable[[ResourceMapping], None] | None = None

    def add(self, resource: str, obj: dict[str, Any]) -> None:
        """Add an object to the fake control plane."""
        self.objects[GroupResource.parse(resource)][NamedResource.from_object(obj)] = obj

    def get(self, resource: str, name: str, namespace: str | None = None) -> dict[str, Any]:
        """Return a stored object by name."""
        for resource_id, obj in self.objects[GroupResource.parse(resource)].items():
            if resource_id.name == name and resource_id.namespace == namespace:
                return obj
        raise KeyError(name)

    def calls_of(self, name: str) -> list[tuple[str, ...]]:
        """Return the recorded calls of one method."""
        return [call for call in self.calls if call[0] == name]

    async def resolve_kind(self, group_kind: GroupKind) -> ResourceMapping:
        self.calls.append(("resolve_kind", str(group_kind)))
        for m in self.mappings:
            if m.group_kind == group_kind:
                return m
        raise MappingException(f"cannot get REST mapping for {str(group_kind)!r}")

    async def resolve_resource(self, group_resource: GroupResource) -> ResourceMapping:
        self.calls.append(("resolve_resource", str(group_resource)))
        for m in self.mappings:
            if m.group_resource == group_resource:
                return m
        raise MappingException(f"cannot get REST mapping for {str(group_resource)!r}")

    async def resolve_category(self, category: str) -> list[ResourceMapping]:
        self.calls.append(("resolve_category", category))
        return [m for m in self.mappings if category in m.categories]

    def reset_mapping(self) -> None:
        self.calls.append(("reset_mapping",))

    async def list_objects(self, mapping: ResourceMapping) -> list[dict[str, Any]]:
        self.calls.append(("list", str(mapping)))
        if self.on_list is not None:
            self.on_list(mapping)
        if self.list_failures[mapping.group_resource] > 0:
            self.list_failures[mapping.group_resource] -= 1
            raise KubectlException("connection refused")
        return [copy.deepcopy(o) for o in self.objects[mapping.group_resource].values()]

    async def create_object(
        self, mapping: ResourceMapping, obj: dict[str, Any]
    ) -> dict[str, Any]:
        resource_id = NamedResource.from_object(obj)
        self.calls.append(("create", str(mapping), str(resource_id)))
        if resource_id.name in self.fail_create:
            raise KubectlException(f"admission webhook denied {resource_id}")
        existing = self.objects[mapping.group_resource]
        if resource_id in existing:
            raise AlreadyExistsError(f"{resource_id} already exists")
        existing[resource_id] = copy.deepcopy(obj)
        return copy.deepcopy(obj)

    async def update_object(
        self, mapping: ResourceMapping, obj: dict[str, Any]
    ) -> dict[str, Any]:
        resource_id = NamedResource.from_object(obj)
        self.calls.append(("update", str(mapping), str(resource_id)))
        if resource_id.name in self.fail_update:
            raise KubectlException(f"conflict updating {resource_id}")
        self.objects[mapping.group_resource][resource_id] = copy.deepcopy(obj)
        return copy.deepcopy(obj)

    async def update_status(self, mapping: ResourceMapping, obj: dict[str, Any]) -> None:
        resource_id = NamedResource.from_object(obj)
        self.calls.append(("update_status", str(mapping), str(resource_id)))
        stored = self.objects[mapping.group_resource][resource_id]
        stored["status"] = copy.deepcopy(obj.get("status"))

    async def collect_info(self) -> EngineInfo:
        self.calls.append(("collect_info",))
        if self.engine is None:
            raise KubectlException("No engine deployment found in the control plane")
        return self.engine


class RecordingPrinter(Printer):
    """Printer that records all progress events."""

    def __init__(self) -> None:
        self.events: list[tuple[StepEvent, str]] = []

    def emit(self, event: StepEvent, text: str) -> None:
        self.events.append((event, text))

    def texts(self, event: StepEvent) -> list[str]:
        return [text for e, text in self.events if e == event]


def write_archive(
    path: pathlib.Path,
    entries: list[tuple[str, str | bytes | None]],
    symlinks: dict[str, str] | None = None,
) -> pathlib.Path:
    """Write a gzip compressed tar archive.

    Entries with None content are written as directories.
    """
    with tarfile.open(path, mode="w:gz") as tar:
        for name, content in entries:
            info = tarfile.TarInfo(name)
            if content is None:
                info.type = tarfile.DIRTYPE
                info.mode = 0o755
                tar.addfile(info)
                continue
            data = content.encode() if isinstance(content, str) else content
            info.size = len(data)
            info.mode = 0o644
            tar.addfile(info, io.BytesIO(data))
        for name, target in (symlinks or {}).items():
            info = tarfile.TarInfo(name)
            info.type = tarfile.SYMTYPE
            info.linkname = target
            tar.addfile(info)
    return path


EXPORT_META = """\
version: v1alpha1
engineVersion: v1.14.0
featureFlags:
  - --enable-usages
"""
