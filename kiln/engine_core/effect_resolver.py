"""
Effect Resolver - Turns an action definition plus a state into numbers.

The resolver owns all the stat math:
- effective stat = base x (1 + mastery bonus) x buff multiplier x condition multiplier,
  with control also raised by completion bonus tiers
- expected success and critical-hit factors (rolls are never drawn live)
- stack scaling for actions that spend buff stacks
- condition and mastery adjusted costs

Rounding convention: every gain and every cost is computed as one float
product and floored once at the end. Nothing is rounded midway.
"""

from __future__ import annotations
import math
from dataclasses import dataclass

from .action import ActionDefinition, AppliedGains, CharacterStats, Gain, ScalingStat
from .conditions import ConditionContext
from .state import BuffKind, CraftState

# Crit chance above 100% converts into extra crit multiplier at this rate.
EXCESS_CRIT_RATIO = 3.0

# Control gained per completion bonus tier.
COMPLETION_BONUS_PER_TIER = 0.1

# Each completion threshold past the goal is the previous one times this, floored.
BONUS_THRESHOLD_GROWTH = 1.3

_EPSILON = 1e-9


def floor_amount(value: float) -> int:
    """Floor a non-negative product, tolerating float noise (7.0000001 -> 7, 6.9999999 -> 7)."""
    if value <= 0:
        return 0
    return int(math.floor(value + _EPSILON))


def completion_bonus_tiers(completion: int, goal: int) -> int:
    """
    Bonus tiers earned by overshooting the completion goal.

    Reaching the goal passes the first threshold. Every further threshold
    grows by BONUS_THRESHOLD_GROWTH and counts as one tier, so a goal of
    130 earns its first tier at 130 + 169 = 299.
    """
    threshold = goal
    remaining = completion
    reached = 0
    while threshold > 0 and remaining >= threshold:
        remaining -= threshold
        reached += 1
        threshold = int(math.floor(threshold * BONUS_THRESHOLD_GROWTH))
    return max(0, reached - 1)


_STAT_BUFFS = {
    ScalingStat.CONTROL: BuffKind.CONTROL,
    ScalingStat.INTENSITY: BuffKind.INTENSITY,
}


@dataclass
class EffectResolver:
    """
    Computes gains and costs for actions.

    Stateless apart from the character stats it scales against.
    """
    stats: CharacterStats

    # =========================================================================
    # Stats
    # =========================================================================

    def effective_stat(
        self,
        state: CraftState,
        action: ActionDefinition,
        stat: ScalingStat,
        context: ConditionContext,
    ) -> float:
        if stat == ScalingStat.FLAT:
            return 1.0

        if stat == ScalingStat.CONTROL:
            mastery = action.mastery.control_bonus
            condition = context.modifiers.control
        else:
            mastery = action.mastery.intensity_bonus
            condition = context.modifiers.intensity

        value = self.stats.base(stat) * (1.0 + mastery)
        if stat == ScalingStat.CONTROL:
            value *= 1.0 + COMPLETION_BONUS_PER_TIER * state.completion_bonus
        value *= state.buff_multiplier(_STAT_BUFFS[stat])
        value *= max(0.0, condition)
        return value

    def success_chance(self, action: ActionDefinition, context: ConditionContext) -> float:
        chance = (
            action.success_chance
            + self.stats.success_chance_bonus
            + action.mastery.success_chance_bonus
            + context.modifiers.success_bonus
        )
        return min(1.0, max(0.0, chance))

    def crit_factor(self, action: ActionDefinition) -> float:
        """Expected multiplier from critical hits: 1 - p + p x multiplier."""
        chance = self.stats.crit_chance + action.mastery.crit_chance_bonus
        multiplier = self.stats.crit_multiplier + action.mastery.crit_multiplier_bonus
        if chance > 100:
            multiplier += (chance - 100) / EXCESS_CRIT_RATIO
            chance = 100.0
        p = max(0.0, chance) / 100.0
        return 1.0 - p + p * (multiplier / 100.0)

    # =========================================================================
    # Costs
    # =========================================================================

    def pool_cost(self, action: ActionDefinition, context: ConditionContext) -> int:
        base = max(0, action.pool_cost - action.mastery.pool_cost_reduction)
        return floor_amount(base * context.modifiers.pool_cost)

    def stability_cost(self, action: ActionDefinition, context: ConditionContext) -> int:
        base = max(0, action.stability_cost - action.mastery.stability_cost_reduction)
        return floor_amount(base * context.modifiers.stability_cost)

    def stacks_to_consume(self, state: CraftState, action: ActionDefinition) -> int:
        if action.buff_cost is None:
            return 0
        available = state.stacks(action.buff_cost.kind)
        if action.buff_cost.consume_all:
            return available
        return action.buff_cost.amount

    # =========================================================================
    # Gains
    # =========================================================================

    def scaled_gain(
        self,
        state: CraftState,
        action: ActionDefinition,
        gain: Gain,
        context: ConditionContext,
        stacks_used: int = 0,
    ) -> int:
        if gain.is_zero:
            return 0

        value = gain.amount * self.effective_stat(state, action, gain.stat, context)
        value *= self.success_chance(action, context)
        if gain.stat != ScalingStat.FLAT:
            value *= self.crit_factor(action)
        if action.buff_cost is not None and action.buff_cost.scales_gains:
            value *= max(1, stacks_used)
        return floor_amount(value)

    def progress_gains(
        self,
        state: CraftState,
        action: ActionDefinition,
        context: ConditionContext,
        stacks_used: int | None = None,
    ) -> tuple[int, int]:
        """(completion, perfection) the action is expected to add."""
        if stacks_used is None:
            stacks_used = self.stacks_to_consume(state, action)
        completion = self.scaled_gain(state, action, action.completion, context, stacks_used)
        perfection = self.scaled_gain(state, action, action.perfection, context, stacks_used)
        return completion, perfection

    def preview(
        self,
        state: CraftState,
        action: ActionDefinition,
        context: ConditionContext,
    ) -> AppliedGains:
        """
        Expected deltas without applying the action.

        Used for move ordering. Stability/pool deltas ignore clamping.
        """
        completion, perfection = self.progress_gains(state, action, context)
        return AppliedGains(
            completion=completion,
            perfection=perfection,
            stability=action.stability_gain - self.stability_cost(action, context),
            pool=action.pool_restore - self.pool_cost(action, context),
            toxicity=action.toxicity_cost - action.toxicity_cleanse,
            max_stability=action.max_stability_change,
        )
