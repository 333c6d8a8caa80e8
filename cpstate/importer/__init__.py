"""Importer for exported control plane state.

This package restores the objects of an export archive into a live control
plane in dependency order, waiting on readiness of packages and definitions
before importing the objects that depend on them.
"""

from .category import CategoryModifier
from .importer import (
    BASE_RESOURCES,
    ControlPlaneStateImporter,
    ImportSummary,
    Options,
    is_base_resource,
)
from .resources import PausingResourceImporter, ResourceApplier, StateReader
from .waiter import ConditionWaiter

__all__ = [
    "BASE_RESOURCES",
    "CategoryModifier",
    "ConditionWaiter",
    "ControlPlaneStateImporter",
    "ImportSummary",
    "Options",
    "PausingResourceImporter",
    "ResourceApplier",
    "StateReader",
    "is_base_resource",
]
