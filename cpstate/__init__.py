"""
cpstate restores an exported control plane state into a live control plane.

The library extracts an export archive, imports its objects in dependency
order, waits for packages and definitions to become ready, and finally
releases the pause on claims and composites.
"""

__all__ = [
    "archive",
    "manifest",
    "importer",
    "live",
    "state",
    "exceptions",
    # Note this is exposed for CLI documentation, not to be used as a library
    "tool",
]
