"""Exceptions related to cpstate."""

__all__ = [
    "MigrationException",
    "InputException",
    "ArchiveException",
    "CommandException",
    "KubectlException",
    "AlreadyExistsError",
    "MappingException",
    "ImportException",
    "ConditionTimeoutError",
    "CategoryException",
]


class MigrationException(Exception):
    """Generic base exception used for this library."""


class InputException(MigrationException):
    """Raised when the exported state is not formatted as expected."""


class ArchiveException(InputException):
    """Raised when an export archive cannot be read or extracted."""


class CommandException(MigrationException):
    """Raised when there is a failure running a subcommand."""


class KubectlException(CommandException):
    """Raised when there is a failure running a kubectl command."""


class AlreadyExistsError(KubectlException):
    """Raised when creating an object that already exists in the control plane."""


class MappingException(MigrationException):
    """Raised when a kind or category cannot be resolved to API resources."""


class ImportException(MigrationException):
    """Raised when the resources of a group could not be imported."""

    def __init__(self, group_resource: str, message: str | None = None) -> None:
        super().__init__(
            f"cannot import {group_resource!r} resources: {message or 'Unknown error'}"
        )
        self.group_resource = group_resource


class ConditionTimeoutError(MigrationException):
    """Raised when resources do not reach the expected conditions in time."""

    def __init__(self, group_kind: str, conditions: str) -> None:
        super().__init__(
            f"timeout waiting for conditions {conditions!r} to be satisfied "
            f"for all {group_kind!r}"
        )
        self.group_kind = group_kind
        self.conditions = conditions


class CategoryException(MigrationException):
    """Raised when resources of a category could not be modified."""

    def __init__(self, category: str, message: str | None = None) -> None:
        super().__init__(
            f"cannot modify resources of category {category!r}: "
            f"{message or 'Unknown error'}"
        )
        self.category = category
