"""
The state module provides the addressable store an export archive is
extracted into.

- The root holds one metadata record (`export.yaml`) and a directory per
  group resource, each containing one serialized object per file.
- Paths are slash separated and rooted at `/`.
- The store is written once during extraction and only read afterwards.

This abstract interface allows for in-memory and on-disk implementations.
"""

from .state import ExportedState, Entry, normalize_path
from .in_memory import InMemoryState
from .directory import DirectoryState

__all__ = [
    "ExportedState",
    "Entry",
    "InMemoryState",
    "DirectoryState",
    "normalize_path",
]
