"""Library for extracting an export archive into an exported state store.

An export archive is a gzip compressed tar stream. Its root holds the
`export.yaml` metadata record and one directory per group resource:

```
export.yaml
namespaces/
namespaces/default.yaml
compositions.apiextensions.crossplane.io/
compositions.apiextensions.crossplane.io/xnetworks.yaml
```

Extraction copies directories and regular files into the store as they are:
```python
from cpstate import archive
from cpstate.state import InMemoryState

state = InMemoryState()
await archive.extract(Path("xp-state.tar.gz"), state)
print(await state.list_groups())
```
"""

import asyncio
import gzip
import logging
from pathlib import Path
import tarfile
import zlib

from .context import trace_context
from .exceptions import ArchiveException, InputException
from .state import ExportedState

_LOGGER = logging.getLogger(__name__)

__all__ = [
    "extract",
]

# Errors raised by the gzip and tar readers on a corrupt or truncated stream.
_STREAM_ERRORS = (tarfile.TarError, gzip.BadGzipFile, zlib.error, EOFError, OSError)


async def extract(archive_path: Path, state: ExportedState) -> None:
    """Extract the archive into the store.

    Cancellation is checked before each archive entry.

    Raises:
        ArchiveException: If the archive cannot be opened, decompressed, read
            or written to the store, or holds an entry that is neither a
            directory nor a regular file.
    """
    with trace_context(f"Extract '{archive_path}'"):
        try:
            fileobj = archive_path.open("rb")
        except OSError as err:
            raise ArchiveException(
                f"cannot open archive {str(archive_path)!r}: {err}"
            ) from err
        with fileobj:
            try:
                gzip_stream = gzip.GzipFile(fileobj=fileobj, mode="rb")
                tar = tarfile.open(fileobj=gzip_stream, mode="r|")
            except _STREAM_ERRORS as err:
                raise ArchiveException(
                    f"cannot create gzip reader for {str(archive_path)!r}: {err}"
                ) from err
            with tar:
                count = await _extract_members(archive_path, tar, state)
        _LOGGER.info("Extracted %d entries from %s", count, archive_path)


async def _extract_members(
    archive_path: Path, tar: tarfile.TarFile, state: ExportedState
) -> int:
    count = 0
    while True:
        # Yield to the event loop so a cancelled run stops between entries
        await asyncio.sleep(0)
        try:
            member = tar.next()
        except _STREAM_ERRORS as err:
            raise ArchiveException(
                f"cannot read archive {str(archive_path)!r}: {err}"
            ) from err
        if member is None:
            return count
        count += 1

        if member.isdir():
            try:
                await state.mkdir(member.name)
            except (OSError, InputException) as err:
                raise ArchiveException(
                    f"cannot create directory {member.name!r}: {err}"
                ) from err
            continue

        if not member.isfile():
            raise ArchiveException(
                f"unsupported entry {member.name!r} in archive "
                f"{str(archive_path)!r}: only directories and regular files are allowed"
            )

        try:
            if (reader := tar.extractfile(member)) is None:
                raise ArchiveException(f"cannot read file {member.name!r}")
            content = reader.read()
        except _STREAM_ERRORS as err:
            raise ArchiveException(
                f"cannot read file {member.name!r} from {str(archive_path)!r}: {err}"
            ) from err
        try:
            await state.write_file(member.name, content)
        except (OSError, InputException) as err:
            raise ArchiveException(f"cannot write file {member.name!r}: {err}") from err
