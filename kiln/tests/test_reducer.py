"""
Tests for the reducer (state transitions) and the action generator.

Tests:
- Action application and effect order
- Ceiling decay and clamping
- Buffs and cooldowns
- Eligibility and IneligibleAction
- Legal action listing and blocked diagnostics
"""

import pytest

from ..engine_core.action import (
    ActionDefinition,
    ActionKind,
    BuffCost,
    BuffGrant,
    Catalog,
    CharacterStats,
    Gain,
    ScalingStat,
)
from ..engine_core.action_generator import ActionGenerator, blocked_reasons, legal_actions
from ..engine_core.conditions import ConditionContext, ConditionKind
from ..engine_core.errors import BlockReason, IneligibleAction
from ..engine_core.reducer import Reducer, apply_action
from ..engine_core.state import Buff, BuffKind, CraftState, Targets
from .conftest import custom_catalog


class TestApply:
    """Tests for applying starter actions."""

    def test_fusion(self, reducer, fresh_state, neutral):
        """Fusion adds completion, spends stability and decays the ceiling."""
        action = reducer.catalog.get("simple_fusion")
        new_state, gains = reducer.apply(fresh_state, action, neutral)

        assert new_state.completion == 22
        assert new_state.stability == 49
        assert new_state.max_stability == 58
        assert new_state.pool == 194
        assert new_state.step == 1
        assert new_state.history == ("simple_fusion",)

        assert gains.completion == 22
        assert gains.stability == -10
        assert gains.max_stability == -1

    def test_original_state_untouched(self, reducer, fresh_state, neutral):
        reducer.apply(fresh_state, reducer.catalog.get("simple_refine"), neutral)

        assert fresh_state.perfection == 0
        assert fresh_state.pool == 194
        assert fresh_state.step == 0

    def test_refine_spends_pool(self, reducer, fresh_state, neutral):
        new_state, gains = reducer.apply(fresh_state, reducer.catalog.get("simple_refine"), neutral)

        assert new_state.perfection == 22
        assert new_state.pool == 176
        assert gains.pool == -18

    def test_stabilize_prevents_decay(self, reducer, neutral):
        state = CraftState.start(pool_max=194, max_stability=50).with_changes(stability=20)
        new_state, gains = reducer.apply(state, reducer.catalog.get("stabilize"), neutral)

        assert new_state.stability == 40
        assert new_state.max_stability == 50
        assert gains.stability == 20

    def test_stabilize_clamps_to_ceiling(self, reducer, neutral):
        """Reported gains are the clamped deltas."""
        state = CraftState.start(pool_max=194, max_stability=50).with_changes(stability=45)
        new_state, gains = reducer.apply(state, reducer.catalog.get("stabilize"), neutral)

        assert new_state.stability == 50
        assert gains.stability == 5

    def test_landing_on_floor_is_allowed(self, reducer, neutral):
        state = CraftState.start(pool_max=194, max_stability=50).with_changes(stability=10)
        new_state, _ = reducer.apply(state, reducer.catalog.get("simple_fusion"), neutral)

        assert new_state.stability == 0
        assert new_state.is_dead

    def test_apply_action_by_key(self, starter, fresh_state, neutral):
        new_state, gains = apply_action(starter, fresh_state, "simple_refine", neutral)
        assert gains.perfection == 22
        assert new_state.step == 1


    def test_transition_matches_apply(self, reducer, fresh_state, neutral):
        refine = reducer.catalog.get("simple_refine")
        applied = reducer.apply(fresh_state, refine, neutral)
        assert reducer.transition(fresh_state, refine, neutral) == applied

    def test_transition_skips_validation(self, reducer, neutral):
        """Callers of transition() have already run check()."""
        state = CraftState.start(pool_max=194, max_stability=50).with_changes(stability=5)
        fusion = reducer.catalog.get("simple_fusion")

        with pytest.raises(IneligibleAction):
            reducer.apply(state, fusion, neutral)
        new_state, _ = reducer.transition(state, fusion, neutral)
        assert new_state.stability == 0


class TestCompletionBonus:
    """Overshooting the completion goal earns control tiers."""

    def test_tier_earned_past_threshold(self, starter, fresh_state, targets, neutral):
        reducer = Reducer(starter, targets)
        state = fresh_state.with_changes(completion=280)

        new_state, _ = reducer.apply(state, starter.get("simple_fusion"), neutral)
        assert new_state.completion == 302
        assert new_state.completion_bonus == 1

        _, gains = reducer.apply(new_state, starter.get("simple_refine"), neutral)
        assert gains.perfection == 24

    def test_without_targets_tiers_are_kept(self, reducer, fresh_state, neutral):
        state = fresh_state.with_changes(completion=280, completion_bonus=3)
        new_state, _ = reducer.apply(state, reducer.catalog.get("simple_fusion"), neutral)

        assert new_state.completion_bonus == 3

    def test_below_threshold_no_tier(self, starter, fresh_state, targets, neutral):
        reducer = Reducer(starter, targets)
        new_state, _ = reducer.apply(
            fresh_state.with_changes(completion=130), starter.get("simple_fusion"), neutral
        )
        assert new_state.completion_bonus == 0

class TestIneligible:
    """Blocked actions raise IneligibleAction."""

    def test_insufficient_pool(self, reducer, fresh_state, neutral):
        state = fresh_state.with_changes(pool=5)

        with pytest.raises(IneligibleAction) as exc:
            reducer.apply(state, reducer.catalog.get("simple_refine"), neutral)

        assert exc.value.reason == BlockReason.POOL
        assert exc.value.action_key == "simple_refine"

    def test_insufficient_stability(self, reducer, fresh_state, neutral):
        state = fresh_state.with_changes(stability=9)
        assert reducer.check(state, reducer.catalog.get("simple_fusion"), neutral) == BlockReason.STABILITY

    def test_min_stability_floor(self, reducer, fresh_state, neutral):
        state = fresh_state.with_changes(stability=20, min_stability=15)
        assert not reducer.can_apply(state, reducer.catalog.get("simple_fusion"), neutral)

    def test_zero_cost_ignores_floor(self, reducer, fresh_state, neutral):
        """An action with no stability cost is never blocked on stability."""
        state = fresh_state.with_changes(stability=0)
        assert reducer.can_apply(state, reducer.catalog.get("stabilize"), neutral)

    def test_toxicity_cap(self, fresh_state, neutral):
        catalog = custom_catalog(ActionDefinition(
            key="brew", name="Brew", kind=ActionKind.FUSION,
            toxicity_cost=3, completion=Gain(10, ScalingStat.FLAT),
        ))
        reducer = Reducer(catalog)
        state = fresh_state.with_changes(toxicity=3, max_toxicity=5)

        assert reducer.check(state, catalog.get("brew"), neutral) == BlockReason.TOXICITY

    def test_condition_requirement(self, fresh_state, neutral):
        catalog = custom_catalog(ActionDefinition(
            key="seize", name="Seize", kind=ActionKind.FUSION,
            completion=Gain(10, ScalingStat.FLAT),
            condition_requirement=ConditionKind.POSITIVE,
        ))
        reducer = Reducer(catalog)
        action = catalog.get("seize")

        assert reducer.check(fresh_state, action, neutral) == BlockReason.CONDITION
        assert reducer.can_apply(fresh_state, action, ConditionContext.build("positive"))

    def test_buff_stack_requirement(self, fresh_state, neutral):
        catalog = custom_catalog(ActionDefinition(
            key="release", name="Release", kind=ActionKind.FUSION,
            completion=Gain(10, ScalingStat.FLAT),
            buff_cost=BuffCost(BuffKind.CHARGE, amount=2),
        ))
        reducer = Reducer(catalog)
        state = fresh_state.with_changes(
            buffs={BuffKind.CHARGE: Buff(BuffKind.CHARGE, turns=None, stacks=1)}
        )

        assert reducer.check(state, catalog.get("release"), neutral) == BlockReason.BUFF


class TestBuffs:
    """Buff grants, aging and consumption."""

    def test_grant_then_age(self, full_catalog, fresh_state, neutral):
        reducer = Reducer(full_catalog)

        state, _ = reducer.apply(fresh_state, full_catalog.get("cycling_fusion"), neutral)
        assert state.buff(BuffKind.CONTROL).turns == 2

        state, _ = reducer.apply(state, full_catalog.get("simple_fusion"), neutral)
        assert state.buff(BuffKind.CONTROL).turns == 1

        state, _ = reducer.apply(state, full_catalog.get("simple_fusion"), neutral)
        assert state.buff(BuffKind.CONTROL) is None

    def test_granted_buff_not_used_by_its_own_action(self, fresh_state, neutral):
        """Gains read the buffs held before the action."""
        catalog = custom_catalog(ActionDefinition(
            key="focus", name="Focus", kind=ActionKind.REFINE,
            perfection=Gain(1.0, ScalingStat.CONTROL),
            buff_grant=BuffGrant(BuffKind.CONTROL, duration=2, multiplier=1.4),
        ))
        reducer = Reducer(catalog)

        state, gains = reducer.apply(fresh_state, catalog.get("focus"), neutral)
        assert gains.perfection == 10

        _, gains = reducer.apply(state, catalog.get("focus"), neutral)
        assert gains.perfection == 14

    def test_consumer_uses_and_removes_buffs(self, full_catalog, fresh_state, neutral):
        reducer = Reducer(full_catalog)
        buffed = fresh_state.with_changes(
            buffs={BuffKind.CONTROL: Buff(BuffKind.CONTROL, turns=2, multiplier=1.4)}
        )

        state, gains = reducer.apply(buffed, full_catalog.get("disciplined_touch"), neutral)

        assert gains.perfection == 11  # 0.5 x 16 x 1.4
        assert gains.completion == 6
        assert state.buff(BuffKind.CONTROL) is None

    def test_stacks_accumulate_and_spend(self, fresh_state, neutral):
        catalog = custom_catalog(
            ActionDefinition(
                key="gather", name="Gather", kind=ActionKind.SUPPORT,
                buff_grant=BuffGrant(BuffKind.CHARGE, duration=None, stacks=1),
            ),
            ActionDefinition(
                key="release", name="Release", kind=ActionKind.FUSION,
                completion=Gain(5, ScalingStat.FLAT),
                buff_cost=BuffCost(BuffKind.CHARGE, consume_all=True, scales_gains=True),
            ),
        )
        reducer = Reducer(catalog)

        state = fresh_state
        for _ in range(3):
            state, _ = reducer.apply(state, catalog.get("gather"), neutral)
        assert state.stacks(BuffKind.CHARGE) == 3

        state, gains = reducer.apply(state, catalog.get("release"), neutral)
        assert gains.completion == 15
        assert state.stacks(BuffKind.CHARGE) == 0


class TestCooldowns:
    """Cooldowns count down once per action."""

    def test_cooldown_blocks_then_expires(self, fresh_state, neutral):
        catalog = custom_catalog(
            ActionDefinition(
                key="surge", name="Surge", kind=ActionKind.FUSION,
                completion=Gain(10, ScalingStat.FLAT), cooldown=2,
            ),
            ActionDefinition(
                key="tap", name="Tap", kind=ActionKind.FUSION,
                completion=Gain(1, ScalingStat.FLAT),
            ),
        )
        reducer = Reducer(catalog)
        surge = catalog.get("surge")
        tap = catalog.get("tap")

        state, _ = reducer.apply(fresh_state, surge, neutral)
        assert state.cooldown("surge") == 2
        assert reducer.check(state, surge, neutral) == BlockReason.COOLDOWN

        state, _ = reducer.apply(state, tap, neutral)
        assert state.cooldown("surge") == 1
        assert not reducer.can_apply(state, surge, neutral)

        state, _ = reducer.apply(state, tap, neutral)
        assert state.cooldown("surge") == 0
        assert "surge" not in state.cooldowns
        assert reducer.can_apply(state, surge, neutral)


class TestClamping:
    """Bounded fields stay in range."""

    def test_progress_caps(self, fresh_state, neutral):
        catalog = Catalog(
            actions=(ActionDefinition(
                key="push", name="Push", kind=ActionKind.FUSION,
                completion=Gain(50, ScalingStat.FLAT),
            ),),
            stats=CharacterStats(control=10, intensity=10, completion_cap=60),
        )
        reducer = Reducer(catalog)

        state, _ = reducer.apply(fresh_state, catalog.get("push"), neutral)
        state, gains = reducer.apply(state, catalog.get("push"), neutral)

        assert state.completion == 60
        assert gains.completion == 10

    def test_pool_restore_clamps(self, fresh_state, neutral):
        catalog = custom_catalog(ActionDefinition(
            key="breathe", name="Breathe", kind=ActionKind.SUPPORT, pool_restore=50,
        ))
        state = fresh_state.with_changes(pool=180)

        new_state, gains = Reducer(catalog).apply(state, catalog.get("breathe"), neutral)

        assert new_state.pool == 194
        assert gains.pool == 14

    def test_ceiling_decay_pulls_stability_down(self, fresh_state, neutral):
        catalog = custom_catalog(ActionDefinition(
            key="breathe", name="Breathe", kind=ActionKind.SUPPORT, pool_restore=5,
        ))
        new_state, _ = Reducer(catalog).apply(fresh_state, catalog.get("breathe"), neutral)

        assert new_state.max_stability == 58
        assert new_state.stability == 58

    def test_restore_max_stability(self, fresh_state, neutral):
        catalog = custom_catalog(ActionDefinition(
            key="reset", name="Reset", kind=ActionKind.STABILIZE,
            restores_max_stability=True,
        ))
        state = fresh_state.with_changes(max_stability=40, stability=30)

        new_state, gains = Reducer(catalog).apply(state, catalog.get("reset"), neutral)

        assert new_state.max_stability == 59
        assert gains.max_stability == 19


class TestActionGenerator:
    """Legal actions and blocked diagnostics."""

    def test_all_legal_at_start(self, starter, fresh_state, neutral):
        keys = [a.key for a in legal_actions(starter, fresh_state, neutral)]
        assert keys == ["simple_fusion", "simple_refine", "stabilize"]

    def test_catalog_order_preserved(self, starter, fresh_state, neutral):
        state = fresh_state.with_changes(pool=5)
        keys = [a.key for a in legal_actions(starter, state, neutral)]
        assert keys == ["simple_fusion"]

    def test_blocked_reasons(self, starter, fresh_state, neutral):
        state = fresh_state.with_changes(pool=5, stability=5)

        assert blocked_reasons(starter, state, neutral) == {
            "simple_fusion": BlockReason.STABILITY,
            "simple_refine": BlockReason.POOL,
            "stabilize": BlockReason.POOL,
        }

    def test_blocked_detail(self, reducer, fresh_state, neutral):
        state = fresh_state.with_changes(stability=5)
        blocked = ActionGenerator(reducer).blocked(state, neutral)

        fusion = next(b for b in blocked if b.action_key == "simple_fusion")
        assert fusion.action_name == "Simple Fusion"
        assert "costs 10 stability" in fusion.detail
