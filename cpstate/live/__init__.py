"""Access to the live control plane an export is imported into.

The importer only depends on the `LiveClient` interface. `KubectlClient`
implements it by running `kubectl`, which picks up the usual kubeconfig
and context selection.
"""

from .client import LiveClient, ResourceMapping, EngineInfo
from .kubectl import KubectlClient, KubectlConfig

__all__ = [
    "LiveClient",
    "ResourceMapping",
    "EngineInfo",
    "KubectlClient",
    "KubectlConfig",
]
