"""Library for running `kubectl` against the live control plane.

This is an example that lists all providers in the control plane:
```python
from cpstate.live import KubectlClient
from cpstate.manifest import GroupKind

client = KubectlClient()
mapping = await client.resolve_kind(GroupKind("pkg.crossplane.io", "Provider"))
for obj in await client.list_objects(mapping):
    print(obj["metadata"]["name"])
```
"""

from dataclasses import dataclass
import json
import logging
from typing import Any

from cpstate import command
from cpstate.exceptions import (
    AlreadyExistsError,
    KubectlException,
    MappingException,
)
from cpstate.manifest import GroupKind, GroupResource, NamedResource

from .client import EngineInfo, LiveClient, ResourceMapping

_LOGGER = logging.getLogger(__name__)

__all__ = [
    "KubectlClient",
    "KubectlConfig",
]

KUBECTL_BIN = "kubectl"
ENGINE_SELECTOR = "app=crossplane"
FEATURE_FLAG_PREFIX = "--enable-"

_API_RESOURCE_COLUMNS = [
    "NAME",
    "SHORTNAMES",
    "APIVERSION",
    "NAMESPACED",
    "KIND",
    "VERBS",
    "CATEGORIES",
]


@dataclass
class KubectlConfig:
    """Configuration for invoking kubectl."""

    kubectl_bin: str = KUBECTL_BIN
    """Path or name of the kubectl binary."""

    context: str | None = None
    """The kubeconfig context to use, or the current context."""

    kubeconfig: str | None = None
    """Path to the kubeconfig file, or the kubectl default."""

    timeout: float = 60.0
    """Seconds before a single kubectl invocation is abandoned."""

    engine_selector: str = ENGINE_SELECTOR
    """Label selector of the engine deployment."""

    def global_args(self) -> list[str]:
        """Return the arguments passed to every kubectl invocation."""
        args = [self.kubectl_bin]
        if self.kubeconfig:
            args.extend(["--kubeconfig", self.kubeconfig])
        if self.context:
            args.extend(["--context", self.context])
        return args


def parse_api_resources(output: str) -> list[ResourceMapping]:
    """Parse the table printed by `kubectl api-resources -o wide`.

    Columns are located by the offsets of the header names since the
    SHORTNAMES and CATEGORIES cells may be empty and VERBS contains spaces.
    """
    lines = [line for line in output.splitlines() if line.strip()]
    if not lines:
        return []
    header = lines[0]
    offsets = []
    for name in _API_RESOURCE_COLUMNS:
        if (offset := header.find(name)) < 0:
            raise KubectlException(f"Unexpected api-resources header: {header}")
        offsets.append(offset)
    bounds = list(zip(offsets, offsets[1:] + [None]))

    mappings = []
    for line in lines[1:]:
        cells = dict(
            zip(_API_RESOURCE_COLUMNS, [line[start:end].strip() for start, end in bounds])
        )
        group, _, version = cells["APIVERSION"].rpartition("/")
        categories = tuple(c for c in cells["CATEGORIES"].split(",") if c)
        mappings.append(
            ResourceMapping(
                group_resource=GroupResource(group=group, resource=cells["NAME"]),
                kind=cells["KIND"],
                version=version,
                namespaced=cells["NAMESPACED"].lower() == "true",
                categories=categories,
            )
        )
    return mappings


def parse_engine_info(deployments: dict[str, Any]) -> EngineInfo:
    """Derive engine information from the engine Deployment list."""
    if not (items := deployments.get("items")):
        raise KubectlException("No engine deployment found in the control plane")
    if len(items) > 1:
        _LOGGER.warning(
            "Found %d engine deployments, using %s",
            len(items),
            NamedResource.from_object(items[0]),
        )
    containers = items[0].get("spec", {}).get("template", {}).get("spec", {}).get(
        "containers"
    ) or []
    if not containers:
        raise KubectlException("Engine deployment has no containers")
    container = containers[0]
    image = container.get("image", "")
    # Drop any digest, then take the tag following the last path component
    image = image.split("@", 1)[0]
    name = image.rsplit("/", 1)[-1]
    version = name.split(":", 1)[1] if ":" in name else ""
    if not version:
        raise KubectlException(f"Cannot determine engine version from image {image!r}")
    flags = tuple(
        arg.split("=", 1)[0]
        for arg in container.get("args") or []
        if arg.startswith(FEATURE_FLAG_PREFIX)
    )
    return EngineInfo(version=version, feature_flags=flags)


class KubectlClient(LiveClient):
    """LiveClient implementation that runs kubectl commands."""

    def __init__(self, config: KubectlConfig | None = None) -> None:
        """Initialize the KubectlClient."""
        self._config = config or KubectlConfig()
        self._mappings: list[ResourceMapping] | None = None

    async def _run(self, args: list[str], stdin: str | None = None) -> str:
        cmd = command.Command(
            self._config.global_args() + args,
            exc=KubectlException,
            timeout=self._config.timeout,
        )
        return await command.run(cmd, stdin=stdin)

    async def _run_json(self, args: list[str], stdin: str | None = None) -> Any:
        out = await self._run(args + ["-o", "json"], stdin=stdin)
        try:
            return json.loads(out)
        except json.JSONDecodeError as err:
            raise KubectlException(f"Unable to parse kubectl output: {err}") from err

    async def _discover(self) -> list[ResourceMapping]:
        if self._mappings is None:
            out = await self._run(["api-resources", "-o", "wide"])
            self._mappings = parse_api_resources(out)
            _LOGGER.debug("Discovered %d API resources", len(self._mappings))
        return self._mappings

    async def resolve_kind(self, group_kind: GroupKind) -> ResourceMapping:
        """Return the resource serving the kind."""
        for mapping in await self._discover():
            if mapping.group_kind == group_kind:
                return mapping
        raise MappingException(f"cannot get REST mapping for {str(group_kind)!r}")

    async def resolve_resource(self, group_resource: GroupResource) -> ResourceMapping:
        """Return the discovery details of a group resource."""
        for mapping in await self._discover():
            if mapping.group_resource == group_resource:
                return mapping
        raise MappingException(f"cannot get REST mapping for {str(group_resource)!r}")

    async def resolve_category(self, category: str) -> list[ResourceMapping]:
        """Return all resources currently registered in the category."""
        return [m for m in await self._discover() if category in m.categories]

    def reset_mapping(self) -> None:
        """Forget cached discovery results so new kinds become resolvable."""
        _LOGGER.debug("Resetting discovery cache")
        self._mappings = None

    async def list_objects(self, mapping: ResourceMapping) -> list[dict[str, Any]]:
        """List all objects of the resource across namespaces."""
        result = await self._run_json(["get", str(mapping), "--all-namespaces"])
        return list(result.get("items") or [])

    async def create_object(
        self, mapping: ResourceMapping, obj: dict[str, Any]
    ) -> dict[str, Any]:
        """Create the object and return it as stored."""
        try:
            return dict(await self._run_json(["create", "-f", "-"], stdin=json.dumps(obj)))
        except KubectlException as err:
            if "AlreadyExists" in str(err) or "already exists" in str(err):
                raise AlreadyExistsError(
                    f"{NamedResource.from_object(obj)} already exists"
                ) from err
            raise

    async def update_object(
        self, mapping: ResourceMapping, obj: dict[str, Any]
    ) -> dict[str, Any]:
        """Replace an existing object and return it as stored."""
        return dict(await self._run_json(["replace", "-f", "-"], stdin=json.dumps(obj)))

    async def update_status(self, mapping: ResourceMapping, obj: dict[str, Any]) -> None:
        """Write the status of the object through the status subresource."""
        resource_id = NamedResource.from_object(obj)
        args = ["patch", str(mapping), resource_id.name]
        if resource_id.namespace:
            args.extend(["--namespace", resource_id.namespace])
        args.extend(
            [
                "--subresource=status",
                "--type=merge",
                "--patch",
                json.dumps({"status": obj.get("status") or {}}),
            ]
        )
        await self._run(args)

    async def collect_info(self) -> EngineInfo:
        """Return information about the engine running in the control plane."""
        deployments = await self._run_json(
            [
                "get",
                "deployments",
                "--all-namespaces",
                "--selector",
                self._config.engine_selector,
            ]
        )
        return parse_engine_info(deployments)
