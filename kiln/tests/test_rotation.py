"""
Tests for rotation reconstruction, replay and diagnostics.
"""

import pytest

from ..catalog import default_catalog
from ..engine_core.conditions import ConditionContext, ConditionProfile
from ..engine_core.errors import BlockReason
from ..engine_core.reducer import Reducer
from ..optimizer.evaluator import Pace
from ..optimizer.profiles import SearchConfig
from ..optimizer.rotation import (
    ProjectedEndState,
    diagnose,
    reconstruct_rotation,
    replay_rotation,
)
from ..optimizer.search import SearchEngine
from .conftest import low_stability_state


class TestReconstructRotation:
    """The rotation is exactly the table's best-action chain."""

    @pytest.fixture(params=[False, True], ids=["most_likely", "branching"])
    def searched(self, request, starter, targets, fresh_state):
        """Branching searches average over conditions; the rotation still follows the most likely ones."""
        config = SearchConfig(
            name="test",
            depth=6 if request.param else 8,
            time_budget=None,
            node_budget=50_000,
            iterative_deepening=False,
            condition_branching=request.param,
        )
        context = ConditionContext.build(
            "positive", ConditionProfile.PERFECTABLE, ["negative", "very_positive"]
        )
        engine = SearchEngine(starter, targets, config)
        outcome = engine.search(fresh_state, context)
        return engine, outcome, context

    def test_matches_table_chain(self, searched, fresh_state):
        engine, outcome, context = searched
        rotation = reconstruct_rotation(
            outcome.table, engine.reducer, fresh_state, context, outcome.depth
        )

        assert rotation
        assert rotation[0] == outcome.best_action_key

        state, depth = fresh_state, outcome.depth
        for key in rotation:
            entry = outcome.table.lookup(state, context, depth)
            assert entry.best_action_key == key
            state, _ = engine.reducer.apply(state, engine.reducer.catalog.get(key), context)
            context = context.advance()
            depth -= 1

        if depth > 0:
            tail = outcome.table.lookup(state, context, depth)
            assert tail is None or tail.best_action_key is None

    def test_bounded_by_depth(self, searched, fresh_state):
        engine, outcome, context = searched
        rotation = reconstruct_rotation(
            outcome.table, engine.reducer, fresh_state, context, outcome.depth
        )
        assert len(rotation) <= outcome.depth

    def test_rotation_replays_cleanly(self, searched, fresh_state):
        engine, outcome, context = searched
        rotation = reconstruct_rotation(
            outcome.table, engine.reducer, fresh_state, context, outcome.depth
        )
        replay = replay_rotation(engine.reducer, fresh_state, context, rotation)

        assert replay.stopped_at is None
        assert len(replay.states) == len(rotation)
        assert replay.final_state.history == tuple(rotation)

    def test_empty_table(self, searched, fresh_state):
        engine, outcome, context = searched
        other = fresh_state.with_changes(completion=1)

        assert reconstruct_rotation(outcome.table, engine.reducer, other, context, 8) == []


class TestReplay:
    """Tests for replay_rotation."""

    def test_stops_at_unplayable(self, reducer, neutral):
        state = low_stability_state(15)
        replay = replay_rotation(reducer, state, neutral, ["simple_fusion", "simple_fusion", "stabilize"])

        assert replay.stopped_at == 1
        assert len(replay.states) == 1
        assert replay.final_state.stability == 5

    def test_min_stability(self, reducer, neutral):
        state = low_stability_state(30)
        replay = replay_rotation(reducer, state, neutral, ["simple_fusion", "simple_fusion", "stabilize"])

        assert replay.min_stability == 10
        assert replay.final_state.stability == 30

    def test_empty_rotation(self, reducer, fresh_state, neutral):
        replay = replay_rotation(reducer, fresh_state, neutral, [])

        assert replay.final_state is fresh_state
        assert replay.min_stability == fresh_state.stability


class TestProjectedEndState:
    """Tests for the projected end state."""

    def test_from_replay(self, reducer, targets, fresh_state, neutral, starter_pace):
        replay = replay_rotation(reducer, fresh_state, neutral, ["simple_fusion", "simple_refine"])
        projected = ProjectedEndState.from_replay(replay, targets, starter_pace)

        assert projected.completion == 22
        assert projected.perfection == 22
        assert not projected.targets_met
        assert projected.turns_remaining == 10

    def test_to_dict(self, reducer, targets, fresh_state, neutral):
        replay = replay_rotation(reducer, fresh_state, neutral, [])
        data = ProjectedEndState.from_replay(replay, targets, Pace()).to_dict()

        assert data["pool"] == 194
        assert data["targets_met"] is False
        assert set(data) == {
            "completion", "perfection", "stability", "max_stability",
            "pool", "toxicity", "targets_met", "turns_remaining",
        }


class TestDiagnose:
    """Diagnostics when nothing is playable."""

    def test_nothing_to_report_when_playable(self, reducer, fresh_state, neutral):
        assert diagnose(reducer, fresh_state, neutral) == []

    def test_all_blocked_on_stability(self, neutral):
        catalog = default_catalog(control=22, intensity=22, keys=("simple_fusion", "simple_refine"))
        blocked = diagnose(Reducer(catalog), low_stability_state(5), neutral)

        assert [b.action_key for b in blocked] == ["simple_fusion", "simple_refine"]
        assert all(b.reason == BlockReason.STABILITY for b in blocked)

    def test_mixed_reasons(self, reducer, neutral):
        state = low_stability_state(5).with_changes(pool=5)
        reasons = {b.action_key: b.reason for b in diagnose(reducer, state, neutral)}

        assert reasons == {
            "simple_fusion": BlockReason.STABILITY,
            "simple_refine": BlockReason.POOL,
            "stabilize": BlockReason.POOL,
        }
