"""
Move Ordering - Ranks actions before the search expands them.

Ordering decides which actions survive beam pruning, so it uses the
same condition- and buff-adjusted gains the reducer would produce.
Nothing is ever dropped: ineligible or poor actions sink to the bottom
of the ranking but stay in it.

The stall penalty is separate from ordering. It discourages provably
wasteful actions (a stabilize that restores nothing, pool recovery at
full pool) and is only ever subtracted from top-level recommendation
scores, never from search node values.

A stabilize-class action is protected from the stall penalty when it
can raise stability and either:
- every playable progress action would drop stability to the floor, or
- the turns needed to finish exceed the stability runway.
"""

from __future__ import annotations
from dataclasses import dataclass

from ..engine_core.action import ActionDefinition, AppliedGains
from ..engine_core.conditions import ConditionContext
from ..engine_core.errors import BlockReason
from ..engine_core.reducer import Reducer
from ..engine_core.state import BuffKind, CraftState, Targets
from .evaluator import Pace

# Ordering bonuses, as multiples of the combined target magnitude.
FINISHER_BONUS = 2.0
PROTECTED_BONUS = 1.0
LETHAL_MALUS = 1.0
CONSUMER_BONUS = 0.5
GRANTER_BONUS = 0.4
AT_CEILING_MALUS = 0.5
WASTE_MALUS = 0.4
POOL_FULL_MALUS = 0.5
BUFFED_BONUS = 0.1

# Clamp waste at or above this ratio makes a restore action wasteful.
WASTE_RATIO = 0.35
POOL_NEAR_FULL = 0.9


@dataclass
class RankedAction:
    """An action with its ordering priority."""
    action: ActionDefinition
    priority: float
    gains: AppliedGains
    block_reason: BlockReason | None = None
    protected: bool = False

    @property
    def eligible(self) -> bool:
        return self.block_reason is None

    @property
    def key(self) -> str:
        return self.action.key


class ActionOrderer:
    """
    Ranks actions and computes stall penalties.

    One orderer is created per search call; its preview cache lives and
    dies with it.
    """

    def __init__(
        self,
        reducer: Reducer,
        targets: Targets,
        pace: Pace | None = None,
        stall_weight: float = 0.25,
    ):
        self.reducer = reducer
        self.targets = targets
        self.pace = pace or Pace()
        self.stall_weight = stall_weight
        self.magnitude = targets.magnitude
        self._previews: dict[tuple, AppliedGains] = {}

    # =========================================================================
    # Gains
    # =========================================================================

    def preview(
        self,
        state: CraftState,
        action: ActionDefinition,
        context: ConditionContext,
    ) -> AppliedGains:
        """Condition- and buff-adjusted expected gains, cached per call."""
        return self._preview(state, action, context, self._gain_key(state))

    def _gain_key(self, state: CraftState) -> tuple:
        """The parts of a state that change an action's gains."""
        if not state.buffs:
            return (state.completion_bonus,)
        return (state.completion_bonus,) + tuple(sorted(
            (kind.value, buff.turns, buff.multiplier, buff.stacks)
            for kind, buff in state.buffs.items()
        ))

    def _preview(
        self,
        state: CraftState,
        action: ActionDefinition,
        context: ConditionContext,
        gain_key: tuple,
    ) -> AppliedGains:
        key = (action.key, gain_key, context.signature())
        gains = self._previews.get(key)
        if gains is None:
            gains = self.reducer.resolver.preview(state, action, context)
            self._previews[key] = gains
        return gains

    def _advances_targets(self, state: CraftState, gains: AppliedGains) -> bool:
        return (
            (gains.completion > 0 and not self.targets.completion_met(state))
            or (gains.perfection > 0 and not self.targets.perfection_met(state))
        )

    def _finishes(self, state: CraftState, gains: AppliedGains) -> bool:
        return (
            state.completion + gains.completion >= self.targets.completion
            and state.perfection + gains.perfection >= self.targets.perfection
        )

    # =========================================================================
    # Ordering
    # =========================================================================

    def order_actions(
        self,
        state: CraftState,
        actions: list[ActionDefinition],
        context: ConditionContext,
    ) -> list[RankedAction]:
        """
        Rank every action, most promising first.

        Eligible actions come before ineligible ones. Ties keep the input
        order. The output always has the same length as the input.

        Gains and eligibility are resolved once per action, and stabilize
        protection once per call, against the progress actions in actions.
        """
        gain_key = self._gain_key(state)
        checked = [
            (
                action,
                self._preview(state, action, context, gain_key),
                self.reducer.check(state, action, context),
            )
            for action in actions
        ]
        options = [
            (action, gains)
            for action, gains, reason in checked
            if reason is None and action.advances_progress and self._advances_targets(state, gains)
        ]

        needs_stability = None
        ranked = []
        for action, gains, reason in checked:
            protected = False
            if self._can_restore(state, action):
                if needs_stability is None:
                    needs_stability = self._needs_stability(state, options)
                protected = needs_stability
            ranked.append(RankedAction(
                action=action,
                priority=self._priority(state, action, gains, context, protected),
                gains=gains,
                block_reason=reason,
                protected=protected,
            ))

        return sorted(ranked, key=lambda r: (not r.eligible, -r.priority))

    def _priority(
        self,
        state: CraftState,
        action: ActionDefinition,
        gains: AppliedGains,
        context: ConditionContext,
        protected: bool,
    ) -> float:
        m = self.magnitude
        need_completion = not self.targets.completion_met(state)
        need_perfection = not self.targets.perfection_met(state)

        priority = 0.0
        if need_completion:
            priority += 2.0 * gains.completion
        if need_perfection:
            priority += 2.0 * gains.perfection

        if action.advances_progress and self._finishes(state, gains):
            priority += FINISHER_BONUS * m
        elif state.stability + gains.stability <= state.min_stability:
            priority -= LETHAL_MALUS * m

        if action.is_stabilize:
            if protected:
                priority += PROTECTED_BONUS * m
            elif state.stability >= state.max_stability:
                priority -= AT_CEILING_MALUS * m
            else:
                priority -= WASTE_MALUS * m * self._waste_ratio(state, action)

        if action.is_pool_recovery and state.pool >= state.pool_max * POOL_NEAR_FULL:
            priority -= POOL_FULL_MALUS * m

        has_stat_buff = state.buff(BuffKind.CONTROL) or state.buff(BuffKind.INTENSITY)
        if action.consumes_buffs and has_stat_buff:
            priority += CONSUMER_BONUS * m
        elif action.scales_with_buffs and has_stat_buff and gains.progress > 0:
            priority += BUFFED_BONUS * m

        grant = action.buff_grant
        if grant is not None and not state.buff(grant.kind):
            if grant.kind == BuffKind.CONTROL and need_perfection:
                priority += GRANTER_BONUS * m
            elif grant.kind == BuffKind.INTENSITY and need_completion:
                priority += GRANTER_BONUS * m

        return priority

    # =========================================================================
    # Stall penalty
    # =========================================================================

    def _waste_ratio(self, state: CraftState, action: ActionDefinition) -> float:
        """Share of the restore that would be clamped away."""
        if action.is_pool_recovery:
            nominal = action.pool_restore
            effective = min(nominal, max(0, state.pool_max - state.pool))
        else:
            nominal = max(1, action.stability_gain)
            effective = min(action.stability_gain, max(0, state.max_stability - state.stability))
        if nominal <= 0:
            return 0.0
        return max(0.0, 1.0 - effective / nominal)

    def _progress_options(
        self,
        state: CraftState,
        context: ConditionContext,
    ) -> list[tuple[ActionDefinition, AppliedGains]]:
        gain_key = self._gain_key(state)
        options = []
        for action in self.reducer.catalog:
            if not action.advances_progress:
                continue
            if not self.reducer.can_apply(state, action, context):
                continue
            gains = self._preview(state, action, context, gain_key)
            if self._advances_targets(state, gains):
                options.append((action, gains))
        return options

    def _can_restore(self, state: CraftState, action: ActionDefinition) -> bool:
        # A stabilize that cannot raise stability never helps.
        return (
            action.is_stabilize
            and state.stability < state.max_stability
            and action.stability_gain > 0
        )

    def _needs_stability(
        self,
        state: CraftState,
        options: list[tuple[ActionDefinition, AppliedGains]],
    ) -> bool:
        """Every progress option is lethal, or the pace outruns the stability runway."""
        all_lethal = all(
            state.stability + gains.stability <= state.min_stability
            for _, gains in options
        )
        if all_lethal:
            return True
        return self.pace.turns_needed(state, self.targets) > self.pace.runway(state)

    def is_protected(
        self,
        state: CraftState,
        action: ActionDefinition,
        context: ConditionContext,
    ) -> bool:
        """Whether a stabilize-class action is exempt from the stall penalty."""
        if not self._can_restore(state, action):
            return False
        return self._needs_stability(state, self._progress_options(state, context))

    def stall_penalty(
        self,
        state: CraftState,
        action: ActionDefinition,
        context: ConditionContext,
    ) -> float:
        """
        Penalty (>= 0) to subtract from a top-level recommendation score.

        Only non-progress actions can be penalized, and only while some
        playable action still advances an unmet target.
        """
        if self.targets.met(state) or action.advances_progress:
            return 0.0

        options = self._progress_options(state, context)
        if not options:
            return 0.0

        penalty = self.stall_weight * self.magnitude

        if action.is_stabilize:
            if self.is_protected(state, action, context):
                return 0.0
            finisher_available = any(self._finishes(state, gains) for _, gains in options)
            if finisher_available or self._waste_ratio(state, action) >= WASTE_RATIO:
                return penalty
            return 0.0

        if action.is_pool_recovery and self._waste_ratio(state, action) >= WASTE_RATIO:
            return penalty

        return 0.0
