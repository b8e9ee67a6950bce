"""
errors/ - Error Taxonomy

Structured exceptions raised by the dependency graph, the tracker
and the reload session.
"""

from .taxonomy import (
    ErrorCode,
    NsReloadError,
    DependencyGraphError,
    CyclicDependencyError,
    SnapshotError,
    DrainError,
)

__all__ = [
    "ErrorCode",
    "NsReloadError",
    "DependencyGraphError",
    "CyclicDependencyError",
    "SnapshotError",
    "DrainError",
]
