"""
nsreload Test Configuration and Fixtures
"""

import pytest

from nsreload.bootstrap.config import reset_config
from nsreload.dependencies.graph import DependencyGraph
from nsreload.dependencies.session import reset_default_session
from nsreload.dependencies.tracker import Tracker, new_tracker


@pytest.fixture(autouse=True)
def _reset_globals():
    """Module-level config and session never leak between tests."""
    reset_config()
    reset_default_session()
    yield
    reset_config()
    reset_default_session()


@pytest.fixture
def chain_graph() -> DependencyGraph:
    """a -> b -> c"""
    return DependencyGraph().depend("a", "b").depend("b", "c")


@pytest.fixture
def diamond_graph() -> DependencyGraph:
    """app depends on http and db, both of which depend on core."""
    return DependencyGraph.from_depmap({
        "app": ["http", "db"],
        "http": ["core"],
        "db": ["core"],
        "core": [],
    })


@pytest.fixture
def populated_tracker() -> Tracker:
    """Fresh tracker after one add: alpha -> beta -> {gamma, delta}."""
    return new_tracker().add({
        "alpha": {"beta"},
        "beta": {"gamma", "delta"},
    })


@pytest.fixture
def layered_tracker() -> Tracker:
    """app -> lib -> core, with nothing pending."""
    return new_tracker().add({
        "app": {"lib"},
        "lib": {"core"},
        "core": set(),
    }).acknowledge()
