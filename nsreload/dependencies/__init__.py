"""
nsreload Dependency Core

Provides:
- DependencyGraph: immutable DAG of module dependencies
- Tracker: pending unload/load sequences maintained across updates
- ReloadSession: single owner of a Tracker, with drain support
- TransitionLog: audit trail of tracker transitions
- GraphSnapshot / TrackerSnapshot: pydantic interchange models
"""

from .graph import (
    DependencyGraph,
    GraphEditor,
    Name,
    Depmap,
    Comparator,
    depend,
    remove_edge,
    remove_node,
    remove_all,
    topological_comparator,
    topological_sort,
)
from .tracker import (
    Tracker,
    new_tracker,
    add,
    remove,
    acknowledge,
    affected,
    dedupe_keep_first,
)
from .session import (
    ReloadSession,
    get_default_session,
    reset_default_session,
)
from .transition_log import (
    TransitionLog,
    TransitionEntry,
    TransitionType,
)
from .snapshot import (
    GraphSnapshot,
    TrackerSnapshot,
)

__all__ = [
    # Graph
    "DependencyGraph",
    "GraphEditor",
    "Name",
    "Depmap",
    "Comparator",
    "depend",
    "remove_edge",
    "remove_node",
    "remove_all",
    "topological_comparator",
    "topological_sort",
    # Tracker
    "Tracker",
    "new_tracker",
    "add",
    "remove",
    "acknowledge",
    "affected",
    "dedupe_keep_first",
    # Session
    "ReloadSession",
    "get_default_session",
    "reset_default_session",
    # Transition Log
    "TransitionLog",
    "TransitionEntry",
    "TransitionType",
    # Snapshots
    "GraphSnapshot",
    "TrackerSnapshot",
]
