"""
Rotation - Reads the search's verdict back out of the transposition table.

The rotation is the chain of best_action_key entries starting at the
root: apply the recorded best action, advance the condition forecast,
look up the child at one less depth, repeat. It ends where the table has
no entry or the entry has no best action (a leaf).

Nothing here re-scores or re-ranks states; the rotation is exactly what
the search concluded.
"""

from __future__ import annotations
from dataclasses import dataclass, field

from ..engine_core.action import AppliedGains
from ..engine_core.action_generator import ActionGenerator, BlockedAction
from ..engine_core.conditions import ConditionContext
from ..engine_core.errors import IneligibleAction
from ..engine_core.reducer import Reducer
from ..engine_core.state import CraftState, Targets
from .evaluator import Pace
from .search import TranspositionTable


def reconstruct_rotation(
    table: TranspositionTable,
    reducer: Reducer,
    state: CraftState,
    context: ConditionContext,
    depth: int,
) -> list[str]:
    """Walk best_action_key entries from (state, depth) down to a leaf."""
    rotation: list[str] = []
    while depth > 0:
        entry = table.lookup(state, context, depth)
        if entry is None or entry.best_action_key is None:
            break
        action = reducer.catalog.get(entry.best_action_key)
        state, _ = reducer.apply(state, action, context)
        rotation.append(action.key)
        context = context.advance()
        depth -= 1
    return rotation


@dataclass
class Replay:
    """States visited while replaying a rotation."""
    final_state: CraftState
    states: list[CraftState] = field(default_factory=list)
    gains: list[AppliedGains] = field(default_factory=list)
    stopped_at: int | None = None  # Index of the first unplayable action

    @property
    def min_stability(self) -> int:
        return min(s.stability for s in self.states) if self.states else self.final_state.stability


def replay_rotation(
    reducer: Reducer,
    state: CraftState,
    context: ConditionContext,
    rotation: list[str],
) -> Replay:
    """Apply a rotation action by action with the forecast conditions."""
    replay = Replay(final_state=state)
    for index, key in enumerate(rotation):
        try:
            state, gains = reducer.apply(state, reducer.catalog.get(key), context)
        except IneligibleAction:
            replay.stopped_at = index
            break
        replay.states.append(state)
        replay.gains.append(gains)
        context = context.advance()
    replay.final_state = state
    return replay


@dataclass(frozen=True)
class ProjectedEndState:
    """Where the rotation leaves the craft."""
    completion: int
    perfection: int
    stability: int
    max_stability: int
    pool: int
    toxicity: int
    targets_met: bool
    turns_remaining: int

    @classmethod
    def from_replay(cls, replay: Replay, targets: Targets, pace: Pace) -> ProjectedEndState:
        final = replay.final_state
        return cls(
            completion=final.completion,
            perfection=final.perfection,
            stability=final.stability,
            max_stability=final.max_stability,
            pool=final.pool,
            toxicity=final.toxicity,
            targets_met=targets.met(final),
            turns_remaining=pace.turns_needed(final, targets),
        )

    def to_dict(self) -> dict[str, int | bool]:
        return {
            "completion": self.completion,
            "perfection": self.perfection,
            "stability": self.stability,
            "max_stability": self.max_stability,
            "pool": self.pool,
            "toxicity": self.toxicity,
            "targets_met": self.targets_met,
            "turns_remaining": self.turns_remaining,
        }


def diagnose(reducer: Reducer, state: CraftState, context: ConditionContext) -> list[BlockedAction]:
    """Why every action is blocked; empty when something is playable."""
    generator = ActionGenerator(reducer)
    if generator.generate(state, context):
        return []
    return generator.blocked(state, context)
