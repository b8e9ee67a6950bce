"""
nsreload - dependency-ordered module reloading core

Tracks "module A depends on module B" relationships as modules change
and produces the order in which modules must be unloaded and reloaded.
"""

from nsreload.dependencies import (
    DependencyGraph,
    Tracker,
    ReloadSession,
    TransitionLog,
    new_tracker,
)
from nsreload.errors import (
    CyclicDependencyError,
    DependencyGraphError,
    DrainError,
    NsReloadError,
)

__version__ = "0.1.0"

__all__ = [
    "DependencyGraph",
    "Tracker",
    "ReloadSession",
    "TransitionLog",
    "new_tracker",
    "CyclicDependencyError",
    "DependencyGraphError",
    "DrainError",
    "NsReloadError",
    "__version__",
]
