"""
Pytest fixtures for Kiln tests.
"""

import pytest

from ..catalog import default_catalog, starter_catalog
from ..engine_core.action import Catalog, CharacterStats
from ..engine_core.conditions import ConditionContext
from ..engine_core.reducer import Reducer
from ..engine_core.state import CraftState, Targets
from ..optimizer.evaluator import Pace
from ..optimizer.profiles import SearchConfig


@pytest.fixture
def starter() -> Catalog:
    """Fusion, refine and stabilize with 22 control and 22 intensity."""
    return starter_catalog(control=22, intensity=22)


@pytest.fixture
def full_catalog() -> Catalog:
    """All default techniques at default stats."""
    return default_catalog()


@pytest.fixture
def targets() -> Targets:
    """130 completion, 130 perfection, 59 starting stability."""
    return Targets(completion=130, perfection=130, initial_max_stability=59)


@pytest.fixture
def fresh_state() -> CraftState:
    """A new craft: full pool, full stability, no progress."""
    return CraftState.start(pool_max=194, max_stability=59)


@pytest.fixture
def neutral() -> ConditionContext:
    return ConditionContext.neutral()


@pytest.fixture
def reducer(starter: Catalog) -> Reducer:
    return Reducer(starter)


@pytest.fixture
def starter_pace() -> Pace:
    """Pace of the starter catalog: 22 progress and 10 stability per turn."""
    return Pace(progress_per_turn=22, stability_per_turn=10)


@pytest.fixture
def exhaustive_config() -> SearchConfig:
    """Deep search limited only by nodes, so results depend on inputs alone."""
    return SearchConfig(
        name="test",
        depth=20,
        time_budget=None,
        node_budget=400_000,
        iterative_deepening=False,
    )


def low_stability_state(stability: int, max_stability: int = 50) -> CraftState:
    """A fresh-pool craft with reduced stability."""
    return CraftState.start(pool_max=194, max_stability=max_stability).with_changes(
        stability=stability,
    )


def custom_catalog(*actions) -> Catalog:
    """A catalog of hand-built actions at 10 control and 10 intensity."""
    return Catalog(actions=tuple(actions), stats=CharacterStats(control=10, intensity=10))
