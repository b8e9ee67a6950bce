"""
nsreload Dependency Graph

Directed acyclic relation over module names: "A depends on B".

Graphs are values. Every operation returns a new DependencyGraph and
leaves the receiver untouched, so an old graph stays valid after both
successful and failed edits. Batched edits go through GraphEditor, which
works on private copies and only produces a graph when frozen.
"""

from __future__ import annotations
from functools import cmp_to_key
from types import MappingProxyType
from typing import (
    Callable, Dict, FrozenSet, Hashable, Iterable, List, Mapping,
    Optional, Tuple,
)
import heapq
import logging

from nsreload.errors import CyclicDependencyError, SnapshotError

from .snapshot import GraphSnapshot

logger = logging.getLogger(__name__)

Name = Hashable
Depmap = Mapping[Name, Iterable[Name]]
Comparator = Callable[[Name, Name], int]

_EMPTY: FrozenSet[Name] = frozenset()


def _tie_key(name: Name) -> Tuple[str, str]:
    """Order for names the edges do not constrain."""
    return (type(name).__name__, str(name))


def _transitive(edges: Mapping[Name, FrozenSet[Name]], names: Iterable[Name]) -> FrozenSet[Name]:
    """Everything reachable from ``names`` by following ``edges``."""
    result = set()
    to_process = list(names)

    while to_process:
        current = to_process.pop()
        for neighbor in edges.get(current, _EMPTY):
            if neighbor not in result:
                result.add(neighbor)
                to_process.append(neighbor)

    return frozenset(result)


def _find_path(
    edges: Mapping[Name, FrozenSet[Name]],
    start: Name,
    goal: Name,
) -> Optional[List[Name]]:
    """Shortest path from start to goal along edges, or None."""
    if start == goal:
        return [start]

    parents: Dict[Name, Name] = {start: start}
    frontier = [start]

    while frontier:
        next_frontier = []
        for current in frontier:
            for neighbor in edges.get(current, _EMPTY):
                if neighbor in parents:
                    continue
                parents[neighbor] = current
                if neighbor == goal:
                    path = [goal]
                    while path[-1] != start:
                        path.append(parents[path[-1]])
                    path.reverse()
                    return path
                next_frontier.append(neighbor)
        frontier = next_frontier

    return None


# =============================================================================
# GRAPH EDITOR
# =============================================================================

class GraphEditor:
    """
    Mutable working copy of a DependencyGraph.

    Used for batched edits: all changes land on private dict copies and
    become visible only through freeze(). If an edit raises, the editor
    is simply discarded and the source graph is unaffected.
    """

    def __init__(self, graph: Optional["DependencyGraph"] = None):
        if graph is None:
            self._dependencies: Dict[Name, FrozenSet[Name]] = {}
            self._dependents: Dict[Name, FrozenSet[Name]] = {}
        else:
            self._dependencies = dict(graph._dependencies)
            self._dependents = dict(graph._dependents)

    def add_node(self, node: Name) -> "GraphEditor":
        """Declare ``node`` with no dependencies if it has none yet."""
        self._dependencies.setdefault(node, _EMPTY)
        return self

    def depend(self, node: Name, dep: Name) -> "GraphEditor":
        """Add the edge node -> dep, rejecting anything that closes a cycle."""
        if node == dep:
            raise CyclicDependencyError(node, dep)

        path = _find_path(self._dependencies, dep, node)
        if path is not None:
            raise CyclicDependencyError(node, dep, [node] + path)

        self._dependencies[node] = self._dependencies.get(node, _EMPTY) | {dep}
        self._dependents[dep] = self._dependents.get(dep, _EMPTY) | {node}
        return self

    def remove_edge(self, node: Name, dep: Name) -> "GraphEditor":
        if dep not in self._dependencies.get(node, _EMPTY):
            return self

        self._dependencies[node] = self._dependencies[node] - {dep}
        self._discard_dependent(dep, node)
        return self

    def remove_node(self, node: Name) -> "GraphEditor":
        """Forget what ``node`` depends on; leave its dependents alone."""
        deps = self._dependencies.pop(node, None)
        if deps is None:
            return self

        for dep in deps:
            self._discard_dependent(dep, node)
        return self

    def remove_all(self, node: Name) -> "GraphEditor":
        """Expunge ``node`` entirely, including every edge pointing at it."""
        self.remove_node(node)

        for dependent in self._dependents.pop(node, _EMPTY):
            self._dependencies[dependent] = self._dependencies[dependent] - {node}
        return self

    def _discard_dependent(self, dep: Name, node: Name) -> None:
        remaining = self._dependents.get(dep, _EMPTY) - {node}
        if remaining:
            self._dependents[dep] = remaining
        else:
            self._dependents.pop(dep, None)

    def freeze(self) -> "DependencyGraph":
        return DependencyGraph._from_maps(dict(self._dependencies), dict(self._dependents))


# =============================================================================
# DEPENDENCY GRAPH
# =============================================================================

class DependencyGraph:
    """
    Immutable directed acyclic graph of module dependencies.

    A name is a node when it is a declared key (possibly with no
    dependencies) or when some node depends on it. Acyclicity is enforced
    on every edge insertion; there is no after-the-fact validation.
    """

    __slots__ = ("_dependencies", "_dependents", "_ranks")

    def __init__(self):
        self._dependencies: Dict[Name, FrozenSet[Name]] = {}
        self._dependents: Dict[Name, FrozenSet[Name]] = {}
        self._ranks: Optional[Dict[Name, int]] = None

    @classmethod
    def _from_maps(
        cls,
        dependencies: Dict[Name, FrozenSet[Name]],
        dependents: Dict[Name, FrozenSet[Name]],
    ) -> "DependencyGraph":
        graph = cls()
        graph._dependencies = dependencies
        graph._dependents = dependents
        return graph

    @classmethod
    def from_depmap(cls, depmap: Depmap) -> "DependencyGraph":
        """Build a graph from a name -> dependencies mapping."""
        editor = GraphEditor()
        for node, deps in depmap.items():
            editor.add_node(node)
            for dep in deps:
                editor.depend(node, dep)

        graph = editor.freeze()
        logger.debug(f"Dependency graph built: {len(graph)} names, {len(graph.edges())} edges")
        return graph

    def edit(self) -> GraphEditor:
        return GraphEditor(self)

    # -------------------------------------------------------------------------
    # Edits
    # -------------------------------------------------------------------------

    def add_node(self, node: Name) -> "DependencyGraph":
        if node in self._dependencies:
            return self
        return self.edit().add_node(node).freeze()

    def depend(self, node: Name, dep: Name) -> "DependencyGraph":
        """
        Return a graph with the edge node -> dep added.

        Raises:
            CyclicDependencyError: if node == dep, or dep already depends
                on node directly or transitively
        """
        if dep in self._dependencies.get(node, _EMPTY):
            return self
        return self.edit().depend(node, dep).freeze()

    def remove_edge(self, node: Name, dep: Name) -> "DependencyGraph":
        if dep not in self._dependencies.get(node, _EMPTY):
            return self
        return self.edit().remove_edge(node, dep).freeze()

    def remove_node(self, node: Name) -> "DependencyGraph":
        """
        Return a graph where ``node`` has no outgoing edges.

        Nodes that depend on ``node`` keep that edge, so ``node`` remains
        in the graph whenever something still depends on it.
        """
        if node not in self._dependencies:
            return self
        return self.edit().remove_node(node).freeze()

    def remove_all(self, node: Name) -> "DependencyGraph":
        """Return a graph with ``node`` and every edge touching it removed."""
        if node not in self:
            return self
        return self.edit().remove_all(node).freeze()

    # -------------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------------

    @property
    def dependencies(self) -> Mapping[Name, FrozenSet[Name]]:
        return MappingProxyType(self._dependencies)

    @property
    def dependents(self) -> Mapping[Name, FrozenSet[Name]]:
        return MappingProxyType(self._dependents)

    def nodes(self) -> FrozenSet[Name]:
        return frozenset(self._dependencies).union(self._dependents)

    def edges(self) -> List[Tuple[Name, Name]]:
        """All (node, dependency) pairs in a stable order."""
        pairs = [
            (node, dep)
            for node, deps in self._dependencies.items()
            for dep in deps
        ]
        return sorted(pairs, key=lambda pair: (_tie_key(pair[0]), _tie_key(pair[1])))

    def immediate_dependencies(self, node: Name) -> FrozenSet[Name]:
        return self._dependencies.get(node, _EMPTY)

    def immediate_dependents(self, node: Name) -> FrozenSet[Name]:
        return self._dependents.get(node, _EMPTY)

    def transitive_dependencies(self, node: Name) -> FrozenSet[Name]:
        return _transitive(self._dependencies, [node])

    def transitive_dependents(self, node: Name) -> FrozenSet[Name]:
        return _transitive(self._dependents, [node])

    def transitive_dependencies_set(self, names: Iterable[Name]) -> FrozenSet[Name]:
        return _transitive(self._dependencies, names)

    def transitive_dependents_set(self, names: Iterable[Name]) -> FrozenSet[Name]:
        """
        Everything that depends on any of ``names``, directly or through
        a chain. A seed only appears in the result when it depends on
        another seed.
        """
        return _transitive(self._dependents, names)

    def depends(self, x: Name, y: Name) -> bool:
        """True if x depends on y, directly or transitively."""
        return x != y and _find_path(self._dependencies, x, y) is not None

    def dependent(self, x: Name, y: Name) -> bool:
        """True if y is a direct or transitive dependent of x."""
        return self.depends(y, x)

    # -------------------------------------------------------------------------
    # Ordering
    # -------------------------------------------------------------------------

    def _topological_ranks(self) -> Dict[Name, int]:
        """
        Rank every node with Kahn's algorithm, dependencies first.

        Among nodes that become ready together the smallest _tie_key wins,
        which makes the ranking independent of set iteration order.
        """
        if self._ranks is not None:
            return self._ranks

        ordered = sorted(self.nodes(), key=_tie_key)
        position = {node: i for i, node in enumerate(ordered)}
        in_degree = {node: len(self._dependencies.get(node, _EMPTY)) for node in ordered}

        ready = [position[node] for node in ordered if in_degree[node] == 0]
        heapq.heapify(ready)
        ranks: Dict[Name, int] = {}

        while ready:
            node = ordered[heapq.heappop(ready)]
            ranks[node] = len(ranks)
            for dependent in self._dependents.get(node, _EMPTY):
                in_degree[dependent] -= 1
                if in_degree[dependent] == 0:
                    heapq.heappush(ready, position[dependent])

        self._ranks = ranks
        return ranks

    def topological_comparator(self) -> Comparator:
        """
        Return cmp(a, b) ordering dependencies before their dependents.

        Names outside the graph carry no constraints; they sort ahead of
        every node of the graph, ordered among themselves by name.
        """
        ranks = self._topological_ranks()

        def compare(a: Name, b: Name) -> int:
            key_a = (ranks.get(a, -1), _tie_key(a))
            key_b = (ranks.get(b, -1), _tie_key(b))
            return (key_a > key_b) - (key_a < key_b)

        return compare

    def topological_sort(self, names: Optional[Iterable[Name]] = None) -> List[Name]:
        """Sort ``names`` (default: every node) dependencies-first."""
        if names is None:
            names = self.nodes()
        return sorted(names, key=cmp_to_key(self.topological_comparator()))

    # -------------------------------------------------------------------------
    # Serialization
    # -------------------------------------------------------------------------

    def to_snapshot(self) -> GraphSnapshot:
        """Describe the graph as a pydantic model. Names must be strings."""
        for node in self.nodes():
            if not isinstance(node, str):
                raise SnapshotError(f"Cannot snapshot non-string name {node!r}")

        return GraphSnapshot(
            dependencies={
                node: sorted(deps)
                for node, deps in sorted(self._dependencies.items())
            }
        )

    @classmethod
    def from_snapshot(cls, snapshot: GraphSnapshot) -> "DependencyGraph":
        """Rebuild a graph, re-validating every edge."""
        return cls.from_depmap(snapshot.dependencies)

    # -------------------------------------------------------------------------
    # Value semantics
    # -------------------------------------------------------------------------

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, DependencyGraph):
            return NotImplemented
        return self._dependencies == other._dependencies and self._dependents == other._dependents

    def __hash__(self) -> int:
        return hash(frozenset(self._dependencies.items()))

    def __len__(self) -> int:
        return len(self.nodes())

    def __contains__(self, name: object) -> bool:
        return name in self._dependencies or name in self._dependents

    def __repr__(self) -> str:
        return f"DependencyGraph(nodes={len(self)}, edges={len(self.edges())})"


# =============================================================================
# FUNCTIONAL API
# =============================================================================

def depend(graph: DependencyGraph, node: Name, dep: Name) -> DependencyGraph:
    return graph.depend(node, dep)


def remove_edge(graph: DependencyGraph, node: Name, dep: Name) -> DependencyGraph:
    return graph.remove_edge(node, dep)


def remove_node(graph: DependencyGraph, node: Name) -> DependencyGraph:
    return graph.remove_node(node)


def remove_all(graph: DependencyGraph, node: Name) -> DependencyGraph:
    return graph.remove_all(node)


def topological_comparator(graph: DependencyGraph) -> Comparator:
    return graph.topological_comparator()


def topological_sort(graph: DependencyGraph, names: Optional[Iterable[Name]] = None) -> List[Name]:
    return graph.topological_sort(names)
