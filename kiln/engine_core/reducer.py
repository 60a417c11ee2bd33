"""
Reducer - Applies actions to craft state.

The reducer is the single point of state transition.
All state changes go through Reducer.apply(), or Reducer.transition()
for callers that already ran check() on the same state and condition.

Design principles:
- Pure function: (state, action, condition) -> (new_state, gains)
- Validates before applying; ineligible actions raise IneligibleAction
- Deterministic: success and crit rolls resolve to their expected value
- Delegates all stat math to EffectResolver

Effect order for one action:
1. toxicity delta
2. consume required buff stacks
3. compute scaled gains
4. pool / stability deltas
5. age existing buffs, grant new buff
6. decrement cooldowns, start own cooldown
7. stability ceiling decay (unless prevented)
8. clamp bounded fields, recount completion bonus tiers
9. step + 1
"""

from __future__ import annotations
from dataclasses import dataclass, field, replace

from .action import ActionDefinition, AppliedGains, Catalog
from .conditions import ConditionContext
from .effect_resolver import EffectResolver, completion_bonus_tiers
from .errors import BlockReason, IneligibleAction
from .state import Buff, BuffKind, CraftState, Targets


@dataclass
class Reducer:
    """
    Reducer applies actions to craft state.

    Stateless - all state is in CraftState.
    The catalog provides the actions and the stats they scale with.
    With targets set, completion bonus tiers are recounted after every
    action; without them the state keeps the tiers it came in with.
    """
    catalog: Catalog
    targets: Targets | None = None
    resolver: EffectResolver = field(init=False)

    def __post_init__(self):
        self.resolver = EffectResolver(self.catalog.stats)

    def check(
        self,
        state: CraftState,
        action: ActionDefinition,
        context: ConditionContext,
    ) -> BlockReason | None:
        """
        Check that an action can be played in the current state.

        Returns the first reason it is blocked, None if playable.
        """
        if state.cooldown(action.key) > 0:
            return BlockReason.COOLDOWN

        if action.condition_requirement is not None:
            if context.kind != action.condition_requirement:
                return BlockReason.CONDITION

        if action.buff_requirement is not None:
            if state.stacks(action.buff_requirement.kind) < action.buff_requirement.amount:
                return BlockReason.BUFF
        if action.buff_cost is not None:
            if state.stacks(action.buff_cost.kind) < action.buff_cost.amount:
                return BlockReason.BUFF

        if state.pool < self.resolver.pool_cost(action, context):
            return BlockReason.POOL

        stability_cost = self.resolver.stability_cost(action, context)
        if stability_cost > 0 and state.stability - stability_cost < state.min_stability:
            return BlockReason.STABILITY

        if state.max_toxicity > 0 and action.toxicity_cost > 0:
            if state.toxicity + action.toxicity_cost > state.max_toxicity:
                return BlockReason.TOXICITY

        return None

    def can_apply(
        self,
        state: CraftState,
        action: ActionDefinition,
        context: ConditionContext,
    ) -> bool:
        return self.check(state, action, context) is None

    def apply(
        self,
        state: CraftState,
        action: ActionDefinition,
        context: ConditionContext,
    ) -> tuple[CraftState, AppliedGains]:
        """
        Apply an action to the craft state.

        Returns (new_state, gains). Raises IneligibleAction if blocked.
        """
        reason = self.check(state, action, context)
        if reason is not None:
            raise IneligibleAction(action.key, reason)
        return self.transition(state, action, context)

    def transition(
        self,
        state: CraftState,
        action: ActionDefinition,
        context: ConditionContext,
    ) -> tuple[CraftState, AppliedGains]:
        """Apply an action check() has already cleared. Nothing is validated."""
        resolver = self.resolver
        buffs = dict(state.buffs)

        # 1. Toxicity
        toxicity = max(0, state.toxicity + action.toxicity_cost - action.toxicity_cleanse)

        # 2. Buff stacks
        stacks_used = resolver.stacks_to_consume(state, action)
        if action.buff_cost is not None and stacks_used > 0:
            kind = action.buff_cost.kind
            remaining = state.stacks(kind) - stacks_used
            if remaining > 0:
                buffs[kind] = replace(buffs[kind], stacks=remaining)
            else:
                buffs.pop(kind, None)

        # 3. Gains, read against the buffs held before this action
        completion_gain, perfection_gain = resolver.progress_gains(
            state, action, context, stacks_used
        )
        if action.consumes_buffs:
            buffs.pop(BuffKind.CONTROL, None)
            buffs.pop(BuffKind.INTENSITY, None)

        # 4. Pool and stability
        pool = state.pool - resolver.pool_cost(action, context) + action.pool_restore
        pool = max(0, min(state.pool_max, pool))
        stability = state.stability - resolver.stability_cost(action, context) + action.stability_gain

        # 5. Buffs
        buffs = self._age_buffs(buffs)
        if action.buff_grant is not None:
            buffs = self._grant_buff(buffs, action)

        # 6. Cooldowns
        cooldowns = {k: v - 1 for k, v in state.cooldowns.items() if v > 1}
        if action.cooldown > 0:
            cooldowns[action.key] = action.cooldown

        # 7. Ceiling decay
        max_stability = state.max_stability
        if not action.prevents_decay:
            max_stability -= 1
        max_stability += action.max_stability_change
        if action.restores_max_stability:
            max_stability = state.initial_max_stability
        max_stability = max(0, min(state.initial_max_stability, max_stability))

        # 8. Clamp
        stability = max(0, min(max_stability, stability))
        completion = state.completion + completion_gain
        perfection = state.perfection + perfection_gain
        stats = self.catalog.stats
        if stats.completion_cap is not None:
            completion = min(completion, stats.completion_cap)
        if stats.perfection_cap is not None:
            perfection = min(perfection, stats.perfection_cap)
        completion_bonus = state.completion_bonus
        if self.targets is not None:
            completion_bonus = completion_bonus_tiers(completion, self.targets.completion)

        # 9. Step
        new_state = replace(
            state,
            pool=pool,
            stability=stability,
            max_stability=max_stability,
            completion=completion,
            perfection=perfection,
            completion_bonus=completion_bonus,
            toxicity=toxicity,
            buffs=buffs,
            cooldowns=cooldowns,
            step=state.step + 1,
            history=state.history + (action.key,),
        )

        gains = AppliedGains(
            completion=completion - state.completion,
            perfection=perfection - state.perfection,
            stability=stability - state.stability,
            pool=pool - state.pool,
            toxicity=toxicity - state.toxicity,
            max_stability=max_stability - state.max_stability,
        )
        return new_state, gains

    def _age_buffs(self, buffs: dict[BuffKind, Buff]) -> dict[BuffKind, Buff]:
        aged = {}
        for kind, buff in buffs.items():
            next_buff = buff.aged()
            if next_buff is not None:
                aged[kind] = next_buff
        return aged

    def _grant_buff(self, buffs: dict[BuffKind, Buff], action: ActionDefinition) -> dict[BuffKind, Buff]:
        grant = action.buff_grant
        existing = buffs.get(grant.kind)
        stacks = grant.stacks + (existing.stacks if existing else 0)
        buffs[grant.kind] = Buff(
            kind=grant.kind,
            turns=grant.duration,
            multiplier=grant.multiplier,
            stacks=stacks,
        )
        return buffs


def apply_action(
    catalog: Catalog,
    state: CraftState,
    action_key: str,
    context: ConditionContext,
    targets: Targets | None = None,
) -> tuple[CraftState, AppliedGains]:
    """Convenience function to apply an action by key."""
    reducer = Reducer(catalog, targets)
    return reducer.apply(state, catalog.get(action_key), context)
