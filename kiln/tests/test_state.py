"""
Tests for the craft state model.

Tests:
- Construction and immutability
- Buff aging
- Targets
- Canonical signatures and progress bucketing
"""

import pytest

from ..engine_core.state import (
    Buff,
    BuffKind,
    CraftState,
    Targets,
    bucket_progress,
    parse_buff_kind,
)


class TestCraftState:
    """Tests for CraftState."""

    def test_start_is_full(self):
        """A fresh craft has full pool and stability and no progress."""
        state = CraftState.start(pool_max=194, max_stability=59)

        assert state.pool == 194
        assert state.stability == 59
        assert state.max_stability == 59
        assert state.initial_max_stability == 59
        assert state.completion == 0
        assert state.perfection == 0
        assert state.step == 0
        assert state.history == ()

    def test_initial_max_defaults_to_max(self):
        """initial_max_stability falls back to max_stability."""
        state = CraftState(pool=10, pool_max=10, stability=30, max_stability=40)
        assert state.initial_max_stability == 40

    def test_with_changes_returns_copy(self, fresh_state):
        """with_changes never mutates the original."""
        changed = fresh_state.with_changes(completion=50)

        assert changed.completion == 50
        assert fresh_state.completion == 0

    def test_frozen(self, fresh_state):
        """Fields cannot be assigned."""
        with pytest.raises(AttributeError):
            fresh_state.pool = 0

    def test_is_dead_at_floor(self, fresh_state):
        """Stability at or below the floor is dead."""
        assert not fresh_state.is_dead
        assert fresh_state.with_changes(stability=0).is_dead

        floored = fresh_state.with_changes(min_stability=5, stability=5)
        assert floored.is_dead
        assert not floored.with_changes(stability=6).is_dead

    def test_inactive_buff_is_ignored(self, fresh_state):
        """A buff with no turns left is not returned."""
        state = fresh_state.with_changes(
            buffs={BuffKind.CONTROL: Buff(BuffKind.CONTROL, turns=0, multiplier=1.4)}
        )
        assert state.buff(BuffKind.CONTROL) is None
        assert state.buff_multiplier(BuffKind.CONTROL) == 1.0

    def test_stacks(self, fresh_state):
        state = fresh_state.with_changes(
            buffs={BuffKind.CHARGE: Buff(BuffKind.CHARGE, turns=None, stacks=3)}
        )
        assert state.stacks(BuffKind.CHARGE) == 3
        assert state.stacks(BuffKind.CONTROL) == 0


class TestBuffs:
    """Tests for buff aging and parsing."""

    def test_timed_buff_ages(self):
        buff = Buff(BuffKind.INTENSITY, turns=2, multiplier=1.4)

        once = buff.aged()
        assert once.turns == 1
        assert once.aged() is None

    def test_stack_counter_never_expires(self):
        buff = Buff(BuffKind.CHARGE, turns=None, stacks=2)
        assert buff.aged() is buff

    def test_parse_aliases(self):
        assert parse_buff_kind("Empower-Control") == BuffKind.CONTROL
        assert parse_buff_kind("stacks") == BuffKind.CHARGE
        assert parse_buff_kind(BuffKind.INTENSITY) == BuffKind.INTENSITY

    def test_parse_unknown(self):
        with pytest.raises(ValueError, match="Unknown buff kind"):
            parse_buff_kind("haste")


class TestTargets:
    """Tests for Targets."""

    def test_magnitude(self, targets):
        assert targets.magnitude == 260.0

    def test_magnitude_never_zero(self):
        assert Targets(0, 0, 50).magnitude == 1.0

    def test_met_requires_both(self, targets, fresh_state):
        assert not targets.met(fresh_state.with_changes(completion=130))
        assert targets.met(fresh_state.with_changes(completion=130, perfection=131))

    def test_remaining_work(self):
        targets = Targets(completion=100, perfection=100, initial_max_stability=60)
        state = CraftState.start(pool_max=100, max_stability=60).with_changes(completion=50)

        assert targets.remaining_work(state) == pytest.approx(0.75)


class TestSignature:
    """Tests for canonical state signatures."""

    def test_history_and_step_excluded(self, fresh_state):
        """States reached by different paths share a signature."""
        a = fresh_state.with_changes(step=3, history=("a", "b", "c"))
        b = fresh_state.with_changes(step=5, history=("c",))

        assert a.signature() == b.signature()

    def test_buffs_included(self, fresh_state):
        buffed = fresh_state.with_changes(
            buffs={BuffKind.CONTROL: Buff(BuffKind.CONTROL, turns=2, multiplier=1.4)}
        )
        assert buffed.signature() != fresh_state.signature()

    def test_completion_bonus_included(self, fresh_state):
        assert fresh_state.with_changes(completion_bonus=1).signature() != fresh_state.signature()

    def test_expired_cooldowns_excluded(self, fresh_state):
        stale = fresh_state.with_changes(cooldowns={"simple_fusion": 0})
        assert stale.signature() == fresh_state.signature()

    def test_large_progress_collapses(self):
        """Nearby large progress values share a bucket."""
        targets = Targets(completion=10_000, perfection=10_000, initial_max_stability=60)
        state = CraftState.start(pool_max=100, max_stability=60)

        a = state.with_changes(completion=5_010)
        b = state.with_changes(completion=5_060)
        assert a.signature(targets) == b.signature(targets)


class TestBucketProgress:
    """Tests for progress quantization."""

    def test_small_values_exact(self):
        assert bucket_progress(999, 5_000) == 999

    def test_far_from_goal(self):
        assert bucket_progress(5_000, 10_000) == 50

    def test_near_goal_is_finer(self):
        assert bucket_progress(9_950, 10_000) == ("near", 5)

    def test_past_goal_keyed_by_overshoot(self):
        assert bucket_progress(10_150, 10_000) == ("met", 1)

    def test_bucketing_disabled(self):
        assert bucket_progress(5_055, 10_000, bucket_size=1) == 5_055
