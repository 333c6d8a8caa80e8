"""Module for exported state extracted to a local directory."""

import logging
import os
from pathlib import Path

import aiofiles
import aiofiles.os
from aiofiles.os import wrap
from aiofiles.ospath import exists, isdir

from .state import ExportedState, Entry, normalize_path

_LOGGER = logging.getLogger(__name__)

_chmod = wrap(os.chmod)


class DirectoryState(ExportedState):
    """ExportedState backed by a directory on the local filesystem.

    This keeps the extracted archive around after the run, which is useful
    for inspecting an export or resuming an interrupted import by hand.
    """

    def __init__(self, root: Path) -> None:
        """Initialize the DirectoryState rooted at the given path."""
        self._root = root

    @property
    def root(self) -> Path:
        """The local directory holding the state."""
        return self._root

    def _local_path(self, path: str) -> Path:
        return self._root / normalize_path(path).lstrip("/")

    async def mkdir(self, path: str) -> None:
        """Create a directory; parents are created as needed."""
        local = self._local_path(path)
        await aiofiles.os.makedirs(local, mode=0o700, exist_ok=True)

    async def write_file(self, path: str, content: bytes) -> None:
        """Write the full content of a file, replacing any existing content."""
        local = self._local_path(path)
        await aiofiles.os.makedirs(local.parent, mode=0o700, exist_ok=True)
        _LOGGER.debug("Writing %s (%d bytes)", local, len(content))
        async with aiofiles.open(local, mode="wb") as fd:
            await fd.write(content)
        await _chmod(local, 0o600)

    async def read_file(self, path: str) -> bytes:
        """Return the content of a file."""
        async with aiofiles.open(self._local_path(path), mode="rb") as fd:
            return await fd.read()

    async def list_dir(self, path: str) -> list[Entry]:
        """List the entries of a directory sorted by name."""
        local = self._local_path(path)
        if not await isdir(local):
            raise FileNotFoundError(f"No such directory {local}")
        entries = []
        for name in await aiofiles.os.listdir(local):
            entries.append(Entry(name=name, is_dir=await isdir(local / name)))
        return sorted(entries)

    async def exists(self, path: str) -> bool:
        """Return True if a file or directory exists at the path."""
        return bool(await exists(self._local_path(path)))
