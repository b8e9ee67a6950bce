"""
Unit tests for dependencies/tracker.py

Tests the add/remove transitions, pending sequence ordering and the
keep-first deduplication of newly computed and previously pending names.
"""

import pytest
from hypothesis import given
from hypothesis import strategies as st

from nsreload.dependencies.graph import DependencyGraph
from nsreload.dependencies.snapshot import GraphSnapshot, TrackerSnapshot
from nsreload.dependencies.tracker import (
    Tracker,
    acknowledge,
    add,
    affected,
    dedupe_keep_first,
    new_tracker,
    remove,
)
from nsreload.errors import CyclicDependencyError


NAMES = ["m0", "m1", "m2", "m3", "m4", "m5", "m6"]


@st.composite
def depmaps(draw):
    """Depmaps whose edges always point at lower-numbered names, so any
    sequence of them stays acyclic."""
    keys = draw(st.lists(st.sampled_from(NAMES), unique=True, max_size=5))
    depmap = {}
    for key in keys:
        lower = NAMES[:NAMES.index(key)]
        if lower:
            depmap[key] = set(draw(st.lists(st.sampled_from(lower), max_size=3)))
        else:
            depmap[key] = set()
    return depmap


class TestDedupeKeepFirst:
    """Test the keep-first deduplication helper."""

    def test_keeps_first_occurrence(self):
        assert dedupe_keep_first(["b", "a", "b", "c", "a"]) == ("b", "a", "c")

    def test_empty(self):
        assert dedupe_keep_first([]) == ()


class TestNewTracker:
    """Test tracker construction."""

    def test_new_tracker_is_empty(self):
        tracker = new_tracker()

        assert tracker.graph == DependencyGraph()
        assert tracker.unload == ()
        assert tracker.load == ()
        assert not tracker.pending

    def test_trackers_are_frozen(self):
        tracker = new_tracker()

        with pytest.raises(AttributeError):
            tracker.load = ("a",)


class TestAdd:
    """Test Tracker.add."""

    def test_first_population(self, populated_tracker):
        """Test explicit keys are queued and pure dependencies are not."""
        assert populated_tracker.load == ("beta", "alpha")
        assert populated_tracker.unload == ("alpha", "beta")
        assert {"gamma", "delta"} <= populated_tracker.graph.nodes()
        assert "gamma" not in populated_tracker.load
        assert "delta" not in populated_tracker.unload

    def test_cycle_leaves_tracker_unchanged(self):
        """Test a rejected add is not observable on the input tracker."""
        tracker = new_tracker().add({"a": {"b"}})

        with pytest.raises(CyclicDependencyError):
            tracker.add({"b": {"a"}})

        assert tracker == new_tracker().add({"a": {"b"}})
        assert tracker.graph.immediate_dependencies("a") == {"b"}
        assert tracker.load == ("a",)

    def test_self_reference_in_depmap(self):
        with pytest.raises(CyclicDependencyError):
            new_tracker().add({"a": {"a"}})

    def test_stale_dependency_replaced(self):
        """Test a key's previous dependencies are forgotten."""
        tracker = new_tracker().add({"x": {"y"}}).add({"x": {"z"}})

        assert tracker.graph.immediate_dependencies("x") == {"z"}
        assert ("x", "y") not in tracker.graph.edges()
        assert "y" not in tracker.graph

    def test_reversed_edge_in_one_update(self):
        """Test swapping a dependency direction is not a false cycle."""
        tracker = new_tracker().add({"a": {"b"}, "b": set()})
        updated = tracker.add({"a": set(), "b": {"a"}})

        assert updated.graph.immediate_dependencies("b") == {"a"}
        assert updated.graph.immediate_dependencies("a") == frozenset()

    def test_dependents_are_requeued(self):
        """Test changing a dependency queues everything depending on it."""
        tracker = new_tracker().add({
            "app": {"lib"},
            "lib": {"core"},
            "core": set(),
        }).acknowledge()

        updated = tracker.add({"core": set()})

        assert updated.load == ("core", "lib", "app")
        assert updated.unload == ("app", "lib", "core")

    def test_new_names_go_ahead_of_pending(self):
        """Test a refreshed name moves to its newly computed position."""
        tracker = new_tracker().add({"a": set(), "b": set()})
        assert tracker.unload == ("b", "a")

        updated = tracker.add({"a": set()})

        assert updated.unload == ("a", "b")
        assert updated.load == ("a", "b")

    def test_isolated_key_is_a_node(self):
        tracker = new_tracker().add({"solo": set()})

        assert "solo" in tracker.graph
        assert tracker.load == ("solo",)
        assert tracker.unload == ("solo",)

    def test_undeclared_dependency_becomes_node(self):
        tracker = new_tracker().add({"a": {"external"}})

        assert "external" in tracker.graph
        assert tracker.load == ("a",)

    def test_add_does_not_mutate_input(self, populated_tracker):
        before_graph = populated_tracker.graph
        populated_tracker.add({"alpha": set()})

        assert populated_tracker.graph is before_graph
        assert populated_tracker.load == ("beta", "alpha")

    def test_add_is_idempotent_for_graph(self):
        depmap = {"a": {"b"}, "b": {"c"}}
        once = new_tracker().add(depmap)
        twice = once.add(depmap)

        assert twice.graph == once.graph
        assert twice.load == once.load
        assert twice.unload == once.unload

    def test_empty_depmap(self, populated_tracker):
        assert populated_tracker.add({}) == populated_tracker


class TestRemove:
    """Test Tracker.remove."""

    def test_unknown_names_ignored(self):
        assert new_tracker().remove({"nonexistent"}) == new_tracker()

    def test_remove_puts_name_at_front_of_unload(self, populated_tracker):
        result = populated_tracker.remove({"alpha"})

        assert result.unload[0] == "alpha"
        assert result.unload == ("alpha", "beta")
        assert "alpha" not in result.load
        assert result.load == ("beta",)
        assert "alpha" not in result.graph

    def test_remove_queues_dependents(self, layered_tracker):
        result = layered_tracker.remove({"lib"})

        assert result.unload == ("app", "lib")
        assert result.load == ("app",)
        assert "lib" not in result.graph
        assert result.graph.immediate_dependencies("app") == frozenset()
        assert "core" in result.graph

    def test_removed_names_dropped_from_pending_load(self):
        tracker = new_tracker().add({"app": {"lib"}, "lib": set()})
        assert "lib" in tracker.load

        result = tracker.remove({"lib"})
        assert "lib" not in result.load
        assert result.load == ("app",)

    def test_remove_accepts_any_iterable(self, layered_tracker):
        assert layered_tracker.remove(["lib"]) == layered_tracker.remove({"lib"})

    def test_remove_does_not_mutate_input(self, layered_tracker):
        layered_tracker.remove({"core"})

        assert "core" in layered_tracker.graph
        assert not layered_tracker.pending


class TestAcknowledge:
    """Test clearing of pending sequences."""

    def test_acknowledge_keeps_graph(self, populated_tracker):
        result = populated_tracker.acknowledge()

        assert result.graph == populated_tracker.graph
        assert result.unload == ()
        assert result.load == ()

    def test_acknowledge_without_pending_returns_self(self, layered_tracker):
        assert layered_tracker.acknowledge() is layered_tracker

    def test_backlog_persists_without_acknowledge(self, populated_tracker):
        result = populated_tracker.add({"omega": set()})

        assert result.load == ("omega", "beta", "alpha")


class TestAffected:
    def test_includes_names_and_dependents(self, layered_tracker):
        assert affected(layered_tracker.graph, ["core"]) == {"core", "lib", "app"}


class TestFunctionalApi:
    def test_aliases_match_methods(self, populated_tracker):
        assert add(new_tracker(), {"a": {"b"}}) == new_tracker().add({"a": {"b"}})
        assert remove(populated_tracker, {"beta"}) == populated_tracker.remove({"beta"})
        assert acknowledge(populated_tracker) == populated_tracker.acknowledge()


class TestTrackerSnapshot:
    """Test pydantic snapshot conversion."""

    def test_round_trip(self, populated_tracker):
        snapshot = populated_tracker.to_snapshot()

        assert snapshot.unload == ["alpha", "beta"]
        assert snapshot.load == ["beta", "alpha"]
        assert Tracker.from_snapshot(snapshot) == populated_tracker

    def test_snapshot_serializes_to_json(self, populated_tracker):
        data = populated_tracker.to_snapshot().model_dump()
        assert data["graph"]["dependencies"]["beta"] == ["delta", "gamma"]

    def test_duplicate_pending_rejected(self):
        with pytest.raises(ValueError):
            TrackerSnapshot(unload=["a", "a"])

    def test_cyclic_snapshot_rejected(self):
        snapshot = TrackerSnapshot(graph=GraphSnapshot(dependencies={"a": ["b"], "b": ["a"]}))

        with pytest.raises(CyclicDependencyError):
            Tracker.from_snapshot(snapshot)


class TestTrackerProperties:
    """Property-based invariants."""

    @given(st.lists(depmaps(), min_size=1, max_size=4))
    def test_pending_sequences_have_no_duplicates(self, updates):
        tracker = new_tracker()
        for depmap in updates:
            tracker = tracker.add(depmap)

        assert len(set(tracker.load)) == len(tracker.load)
        assert len(set(tracker.unload)) == len(tracker.unload)

    @given(depmaps())
    def test_repeated_add_same_graph(self, depmap):
        once = new_tracker().add(depmap)
        assert once.add(depmap).graph == once.graph

    @given(depmaps())
    def test_first_add_load_respects_edges(self, depmap):
        tracker = new_tracker().add(depmap)
        position = {name: i for i, name in enumerate(tracker.load)}

        for node, dep in tracker.graph.edges():
            if node in position and dep in position:
                assert position[dep] < position[node]

        unload_position = {name: i for i, name in enumerate(tracker.unload)}
        for node, dep in tracker.graph.edges():
            if node in unload_position and dep in unload_position:
                assert unload_position[node] < unload_position[dep]

    @given(st.lists(depmaps(), min_size=1, max_size=3), st.sets(st.sampled_from(NAMES)))
    def test_removed_names_never_pending_load(self, updates, names):
        tracker = new_tracker()
        for depmap in updates:
            tracker = tracker.add(depmap)

        result = tracker.remove(names)

        assert not set(result.load) & names
        for name in names:
            assert name not in result.graph
