"""Store module for holding the extracted export archive."""

from abc import ABC, abstractmethod
from dataclasses import dataclass
import posixpath

from cpstate.exceptions import InputException
from cpstate.manifest import EXPORT_META_FILE, ExportMeta


@dataclass(frozen=True, order=True)
class Entry:
    """A named entry of a directory in the store."""

    name: str
    is_dir: bool


def normalize_path(path: str) -> str:
    """Return the absolute form of a store path.

    Archive members are usually relative (`./namespaces/` or `namespaces/`);
    both resolve to `/namespaces`. Paths escaping the root are rejected.
    """
    parts = [p for p in path.replace("\\", "/").split("/") if p not in ("", ".")]
    if ".." in parts:
        raise InputException(f"Invalid path {path!r} escapes the state root")
    return posixpath.join("/", *parts)


class ExportedState(ABC):
    """Abstract base class for the store of an extracted export."""

    @abstractmethod
    async def mkdir(self, path: str) -> None:
        """Create a directory; parents are created as needed."""

    @abstractmethod
    async def write_file(self, path: str, content: bytes) -> None:
        """Write the full content of a file, replacing any existing content."""

    @abstractmethod
    async def read_file(self, path: str) -> bytes:
        """Return the content of a file.

        Raises:
            FileNotFoundError: If the file does not exist.
        """

    @abstractmethod
    async def list_dir(self, path: str) -> list[Entry]:
        """List the entries of a directory sorted by name.

        Raises:
            FileNotFoundError: If the directory does not exist.
        """

    @abstractmethod
    async def exists(self, path: str) -> bool:
        """Return True if a file or directory exists at the path."""

    async def read_export_meta(self) -> ExportMeta:
        """Read and parse the export metadata record at the root."""
        try:
            content = await self.read_file(EXPORT_META_FILE)
        except FileNotFoundError as err:
            raise InputException(
                f"Cannot read export metadata {EXPORT_META_FILE!r}"
            ) from err
        return ExportMeta.parse_yaml(content)

    async def list_groups(self) -> list[str]:
        """Return the group resources present at the root.

        Raises:
            InputException: If the root holds a file other than the metadata record.
        """
        groups = []
        for entry in await self.list_dir("/"):
            if entry.name == EXPORT_META_FILE:
                continue
            if not entry.is_dir:
                raise InputException(
                    f"unexpected file {entry.name!r} in root directory of exported state"
                )
            groups.append(entry.name)
        return groups
