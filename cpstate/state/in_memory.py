"""Module for in memory exported state."""

import logging
import posixpath

from .state import ExportedState, Entry, normalize_path

_LOGGER = logging.getLogger(__name__)


class InMemoryState(ExportedState):
    """In-memory implementation of the ExportedState interface.

    An export is a set of small yaml files, so holding it in memory is the
    default.
    """

    def __init__(self) -> None:
        """Initialize the InMemoryState."""
        self._dirs: set[str] = {"/"}
        self._files: dict[str, bytes] = {}

    async def mkdir(self, path: str) -> None:
        """Create a directory; parents are created as needed."""
        path = normalize_path(path)
        missing = []
        while path not in self._dirs:
            if path in self._files:
                raise FileExistsError(f"File exists at {path}")
            missing.append(path)
            path = posixpath.dirname(path)
        self._dirs.update(missing)

    async def write_file(self, path: str, content: bytes) -> None:
        """Write the full content of a file, replacing any existing content."""
        path = normalize_path(path)
        if path in self._dirs:
            raise IsADirectoryError(f"Directory exists at {path}")
        await self.mkdir(posixpath.dirname(path))
        _LOGGER.debug("Writing %s (%d bytes)", path, len(content))
        self._files[path] = bytes(content)

    async def read_file(self, path: str) -> bytes:
        """Return the content of a file."""
        path = normalize_path(path)
        if (content := self._files.get(path)) is None:
            raise FileNotFoundError(f"No such file {path}")
        return content

    async def list_dir(self, path: str) -> list[Entry]:
        """List the entries of a directory sorted by name."""
        path = normalize_path(path)
        if path not in self._dirs:
            raise FileNotFoundError(f"No such directory {path}")
        entries = [
            Entry(name=posixpath.basename(d), is_dir=True)
            for d in self._dirs
            if d != "/" and posixpath.dirname(d) == path
        ]
        entries.extend(
            Entry(name=posixpath.basename(f), is_dir=False)
            for f in self._files
            if posixpath.dirname(f) == path
        )
        return sorted(entries)

    async def exists(self, path: str) -> bool:
        """Return True if a file or directory exists at the path."""
        path = normalize_path(path)
        return path in self._dirs or path in self._files
