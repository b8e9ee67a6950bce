"""
nsreload Tracker

Turns a stream of "these modules changed" / "these modules are gone"
updates into two pending sequences:

- unload: most-dependent first, so nothing is unloaded before the
  modules that depend on it
- load: least-dependent first, so nothing is loaded before the modules
  it depends on

Trackers are frozen values. add() and remove() return a new tracker;
the caller threads it through and calls acknowledge() once a drain of
both sequences has succeeded.
"""

from __future__ import annotations
from dataclasses import dataclass, field, replace
from itertools import chain
from typing import FrozenSet, Iterable, Tuple
import logging

from nsreload.errors import SnapshotError

from .graph import DependencyGraph, Depmap, Name
from .snapshot import TrackerSnapshot

logger = logging.getLogger(__name__)


def dedupe_keep_first(names: Iterable[Name]) -> Tuple[Name, ...]:
    """Drop repeated names, keeping each one at its first position."""
    return tuple(dict.fromkeys(names))


def affected(graph: DependencyGraph, names: Iterable[Name]) -> FrozenSet[Name]:
    """``names`` plus everything in ``graph`` that depends on one of them."""
    names = list(names)
    return graph.transitive_dependents_set(names).union(names)


@dataclass(frozen=True)
class Tracker:
    """Dependency graph plus the names still pending unload and load."""
    graph: DependencyGraph = field(default_factory=DependencyGraph)
    unload: Tuple[Name, ...] = ()
    load: Tuple[Name, ...] = ()

    @property
    def pending(self) -> bool:
        return bool(self.unload or self.load)

    def add(self, depmap: Depmap) -> "Tracker":
        """
        Record new dependency information for the names in ``depmap``.

        Each key's previous dependencies are discarded and replaced by the
        given set. The keys and everything that now depends on them are
        queued for unload and load, ahead of anything already pending.

        Raises:
            CyclicDependencyError: if the new edges would close a cycle;
                the receiver is unaffected
        """
        old_graph = self.graph
        names = list(depmap)

        # All stale edges go before any new edge is checked, otherwise an
        # edge from the previous generation can report a false cycle.
        editor = old_graph.edit()
        for name in names:
            editor.remove_node(name)
        for name in names:
            editor.add_node(name)
        for name, deps in depmap.items():
            for dep in deps:
                editor.depend(name, dep)
        new_graph = editor.freeze()

        changed = affected(new_graph, names)

        # An empty graph carries no ordering at all.
        unload_graph = new_graph if len(old_graph) == 0 else old_graph

        unload = dedupe_keep_first(chain(
            reversed(unload_graph.topological_sort(changed)),
            self.unload,
        ))
        load = dedupe_keep_first(chain(
            new_graph.topological_sort(changed),
            self.load,
        ))

        logger.debug(
            f"Tracker add: {len(names)} names, {len(changed)} changed, "
            f"{len(unload)} pending unload, {len(load)} pending load"
        )
        return Tracker(graph=new_graph, unload=unload, load=load)

    def remove(self, names: Iterable[Name]) -> "Tracker":
        """
        Forget ``names`` entirely.

        Names the graph does not know are ignored. The removed names and
        their transitive dependents are queued for unload; only the
        dependents are queued for load.
        """
        old_graph = self.graph
        known = frozenset(name for name in names if name in old_graph)
        changed = affected(old_graph, known)

        editor = old_graph.edit()
        for name in known:
            editor.remove_all(name)
        new_graph = editor.freeze()

        # Removed names have no rank in new_graph, so order the unload
        # against the graph they were still part of.
        unload = dedupe_keep_first(chain(
            reversed(old_graph.topological_sort(changed)),
            self.unload,
        ))
        load = dedupe_keep_first(
            name
            for name in chain(new_graph.topological_sort(changed), self.load)
            if name not in known
        )

        logger.debug(
            f"Tracker remove: {len(known)} known names, {len(changed)} changed, "
            f"{len(unload)} pending unload, {len(load)} pending load"
        )
        return Tracker(graph=new_graph, unload=unload, load=load)

    def acknowledge(self) -> "Tracker":
        """Clear both pending sequences after a successful drain."""
        if not self.pending:
            return self
        return replace(self, unload=(), load=())

    def to_snapshot(self) -> TrackerSnapshot:
        for name in chain(self.unload, self.load):
            if not isinstance(name, str):
                raise SnapshotError(f"Cannot snapshot non-string name {name!r}")

        return TrackerSnapshot(
            graph=self.graph.to_snapshot(),
            unload=list(self.unload),
            load=list(self.load),
        )

    @classmethod
    def from_snapshot(cls, snapshot: TrackerSnapshot) -> "Tracker":
        return cls(
            graph=DependencyGraph.from_snapshot(snapshot.graph),
            unload=tuple(snapshot.unload),
            load=tuple(snapshot.load),
        )


# =============================================================================
# FUNCTIONAL API
# =============================================================================

def new_tracker() -> Tracker:
    return Tracker()


def add(tracker: Tracker, depmap: Depmap) -> Tracker:
    return tracker.add(depmap)


def remove(tracker: Tracker, names: Iterable[Name]) -> Tracker:
    return tracker.remove(names)


def acknowledge(tracker: Tracker) -> Tracker:
    return tracker.acknowledge()
