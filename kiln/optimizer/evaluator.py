"""
Heuristic Evaluator - Scores craft states for the search.

The score is a sum of ordered layers. Each layer is independent of the
others and every weight is a ratio of the combined target magnitude, so
the same weights work for a 100-point craft and a 100 000-point craft.

Layers (in order):
1. progress        - progress toward each target, capped at the target
2. target_met      - large bonus once both targets are met
3. buffs           - unused beneficial buffs, while work remains
4. resources       - tiny leftover pool/stability tiebreak
5. overshoot       - progress past a target is wasted effort
6. survivability   - low stability, death, short runway (skipped once targets are met)
7. steps           - small cost per elapsed step
8. toxicity        - grows as the toxicity cap gets close

The death penalty is always larger than the target-met bonus, so dying
is never preferable to finishing.
"""

from __future__ import annotations
import math
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from ..engine_core.conditions import ConditionContext
from ..engine_core.effect_resolver import EffectResolver
from ..engine_core.state import BuffKind, CraftState, Targets

if TYPE_CHECKING:
    from ..engine_core.action import Catalog


@dataclass
class ScoringWeights:
    """
    Weights for the layered evaluator.

    Unless noted, each weight is a multiple of the combined target
    magnitude.
    """
    # Layer 2
    target_met_bonus: float = 2.0

    # Layer 3
    buff_value: float = 0.05  # Per buff-turn per point of multiplier above 1
    charge_value: float = 0.01  # Per stack

    # Layer 4 (absolute, per point of pool or stability)
    resource_tiebreak: float = 0.001

    # Layer 5 (absolute, per point past a target)
    overshoot_per_point: float = 0.3

    # Layer 6
    death_penalty: float = 4.0
    low_stability: float = 0.45
    runway_per_turn: float = 0.02
    runway_cap: float = 0.2

    # Layer 7
    step_penalty: float = 0.005
    max_penalized_steps: int = 100

    # Layer 8
    toxicity: float = 0.1
    toxicity_danger: float = 0.1
    toxicity_danger_ratio: float = 0.8

    def __post_init__(self):
        if self.death_penalty <= self.target_met_bonus:
            raise ValueError("death_penalty must exceed target_met_bonus")


@dataclass(frozen=True)
class Pace:
    """
    Static estimate of how fast a craft moves, used for runway checks.

    Derived from the catalog alone: a fresh state with no buffs on a
    neutral turn. Never from search depth, the root condition or the
    buffs held at the root.
    """
    progress_per_turn: float = 15.0
    stability_per_turn: float = 10.0

    @classmethod
    def estimate(cls, catalog: Catalog) -> Pace:
        """Average progress and cheapest stability cost over progress actions."""
        resolver = EffectResolver(catalog.stats)
        state = CraftState.start(pool_max=0, max_stability=0)
        context = ConditionContext.neutral()
        gains = []
        costs = []
        for action in catalog:
            if not action.advances_progress:
                continue
            completion, perfection = resolver.progress_gains(state, action, context)
            if completion + perfection > 0:
                gains.append(completion + perfection)
            cost = resolver.stability_cost(action, context)
            if cost > 0:
                costs.append(cost)

        if not gains:
            return cls()
        return cls(
            progress_per_turn=max(1.0, sum(gains) / len(gains)),
            stability_per_turn=float(min(costs)) if costs else cls.stability_per_turn,
        )

    def turns_needed(self, state: CraftState, targets: Targets) -> int:
        missing = (
            max(0, targets.completion - state.completion)
            + max(0, targets.perfection - state.perfection)
        )
        return math.ceil(missing / self.progress_per_turn)

    def runway(self, state: CraftState) -> int:
        """Turns of stability left before reaching the floor."""
        return max(0, int((state.stability - state.min_stability) // self.stability_per_turn))


@dataclass
class StateEvaluation:
    """
    Result of evaluating a craft state.
    """
    total_score: float
    targets_met: bool = False
    feature_breakdown: dict[str, float] = field(default_factory=dict)


class StateScorer:
    """
    Evaluates craft states against fixed targets.

    Pure: the score depends only on the state, the targets, the weights
    and the pace estimate.
    """

    def __init__(
        self,
        targets: Targets,
        weights: ScoringWeights | None = None,
        pace: Pace | None = None,
    ):
        self.targets = targets
        self.weights = weights or ScoringWeights()
        self.pace = pace or Pace()
        self.magnitude = targets.magnitude

    @property
    def target_met_bonus(self) -> float:
        return self.weights.target_met_bonus * self.magnitude

    @property
    def death_penalty(self) -> float:
        return self.weights.death_penalty * self.magnitude

    def score(self, state: CraftState) -> float:
        """Same total as evaluate(), without building the breakdown."""
        met = self.targets.met(state)
        total = self._progress(state)
        total += self.target_met_bonus if met else 0.0
        total += 0.0 if met else self._buffs(state)
        total += self._resources(state)
        total += self._overshoot(state)
        total += 0.0 if met else self._survivability(state)
        total += self._steps(state)
        total += self._toxicity(state)
        return total

    def dead_end_score(self, state: CraftState) -> float:
        """Score of an unfinished state with nothing left to play."""
        if self.targets.met(state) or state.is_dead:
            return self.score(state)
        return self.score(state) - self.death_penalty

    def evaluate(self, state: CraftState) -> StateEvaluation:
        """Score a state and report each layer's contribution."""
        met = self.targets.met(state)
        features = {
            "progress": self._progress(state),
            "target_met": self.target_met_bonus if met else 0.0,
            "buffs": 0.0 if met else self._buffs(state),
            "resources": self._resources(state),
            "overshoot": self._overshoot(state),
            "survivability": 0.0 if met else self._survivability(state),
            "steps": self._steps(state),
            "toxicity": self._toxicity(state),
        }
        return StateEvaluation(
            total_score=sum(features.values()),
            targets_met=met,
            feature_breakdown=features,
        )

    # =========================================================================
    # Layers
    # =========================================================================

    def _progress(self, state: CraftState) -> float:
        targets = self.targets
        missing_completion = max(0, targets.completion - state.completion)
        missing_perfection = max(0, targets.perfection - state.perfection)
        missing = missing_completion + missing_perfection

        # The track with more work left is worth more per point.
        completion_share = missing_completion / missing if missing else 0.0
        perfection_share = missing_perfection / missing if missing else 0.0

        return (
            min(state.completion, targets.completion) * (1.0 + completion_share)
            + min(state.perfection, targets.perfection) * (1.0 + perfection_share)
        )

    def _buffs(self, state: CraftState) -> float:
        remaining = self.targets.remaining_work(state)
        value = 0.0
        for kind, buff in state.buffs.items():
            if kind == BuffKind.CHARGE:
                value += buff.stacks * self.weights.charge_value
            elif buff.is_active and buff.turns is not None:
                value += buff.turns * max(0.0, buff.multiplier - 1.0) * self.weights.buff_value
        return value * self.magnitude * remaining

    def _resources(self, state: CraftState) -> float:
        leftover = state.pool
        if not self.targets.met(state):
            # Once finished, stability no longer counts for anything.
            leftover += state.stability
        tiebreak = self.weights.resource_tiebreak * leftover
        # Never worth as much as a step.
        ceiling = 0.5 * self.weights.step_penalty * self.magnitude
        return min(tiebreak, ceiling)

    def _overshoot(self, state: CraftState) -> float:
        over = (
            max(0, state.completion - self.targets.completion)
            + max(0, state.perfection - self.targets.perfection)
        )
        return -self.weights.overshoot_per_point * over

    def _survivability(self, state: CraftState) -> float:
        weights = self.weights
        if state.is_dead:
            return -(self.death_penalty + weights.low_stability * self.magnitude)

        remaining = self.targets.remaining_work(state)
        reference = max(1, self.targets.initial_max_stability)
        threshold = reference * (0.25 + 0.45 * remaining)
        penalty = 0.0

        if state.stability < threshold:
            risk = (threshold - state.stability) / threshold
            penalty += weights.low_stability * self.magnitude * risk * risk

        shortfall = self.pace.turns_needed(state, self.targets) - self.pace.runway(state)
        if shortfall > 0:
            penalty += min(
                weights.runway_cap * self.magnitude,
                weights.runway_per_turn * self.magnitude * shortfall,
            )

        return -penalty

    def _steps(self, state: CraftState) -> float:
        steps = min(state.step, self.weights.max_penalized_steps)
        return -self.weights.step_penalty * self.magnitude * steps

    def _toxicity(self, state: CraftState) -> float:
        if state.max_toxicity <= 0 or state.toxicity <= 0:
            return 0.0
        ratio = min(1.0, state.toxicity / state.max_toxicity)
        penalty = self.weights.toxicity * self.magnitude * ratio * ratio
        if ratio >= self.weights.toxicity_danger_ratio:
            penalty += self.weights.toxicity_danger * self.magnitude
        return -penalty


def score_state(
    state: CraftState,
    targets: Targets,
    weights: ScoringWeights | None = None,
    pace: Pace | None = None,
) -> float:
    """Convenience function to score one state."""
    return StateScorer(targets, weights, pace).score(state)
