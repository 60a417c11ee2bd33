"""
Action Generator - Lists playable actions and explains blocked ones.

The action generator is used by:
1. The search, to enumerate moves at each node
2. Diagnostics, when nothing at all is playable
3. Hosts that want to grey out unavailable actions
"""

from __future__ import annotations
from dataclasses import dataclass

from .action import ActionDefinition, Catalog
from .conditions import ConditionContext
from .errors import BlockReason
from .reducer import Reducer
from .state import CraftState


@dataclass(frozen=True)
class BlockedAction:
    """One action that cannot be played, and why."""
    action_key: str
    action_name: str
    reason: BlockReason
    detail: str = ""


@dataclass
class ActionGenerator:
    """
    Generates legal actions for the current craft state.

    Catalog order is preserved so results are deterministic.
    """
    reducer: Reducer

    @property
    def catalog(self) -> Catalog:
        return self.reducer.catalog

    def generate(self, state: CraftState, context: ConditionContext) -> list[ActionDefinition]:
        """Return every action that can be played right now."""
        return [a for a in self.catalog if self.reducer.can_apply(state, a, context)]

    def blocked(self, state: CraftState, context: ConditionContext) -> list[BlockedAction]:
        """Return every action that cannot be played, with a reason."""
        blocked = []
        for action in self.catalog:
            reason = self.reducer.check(state, action, context)
            if reason is None:
                continue
            blocked.append(BlockedAction(
                action_key=action.key,
                action_name=action.name,
                reason=reason,
                detail=self._describe(state, action, context, reason),
            ))
        return blocked

    def _describe(
        self,
        state: CraftState,
        action: ActionDefinition,
        context: ConditionContext,
        reason: BlockReason,
    ) -> str:
        resolver = self.reducer.resolver
        if reason == BlockReason.COOLDOWN:
            return f"on cooldown for {state.cooldown(action.key)} more turn(s)"
        if reason == BlockReason.CONDITION:
            return (
                f"requires {action.condition_requirement.value} condition, "
                f"current is {context.kind.value}"
            )
        if reason == BlockReason.BUFF:
            requirement = action.buff_requirement or action.buff_cost
            return (
                f"needs {requirement.amount} {requirement.kind.value} stack(s), "
                f"has {state.stacks(requirement.kind)}"
            )
        if reason == BlockReason.POOL:
            return f"needs {resolver.pool_cost(action, context)} pool, has {state.pool}"
        if reason == BlockReason.STABILITY:
            return (
                f"costs {resolver.stability_cost(action, context)} stability, "
                f"has {state.stability - state.min_stability} above the floor"
            )
        return (
            f"would raise toxicity to {state.toxicity + action.toxicity_cost}, "
            f"cap is {state.max_toxicity}"
        )


def legal_actions(
    catalog: Catalog,
    state: CraftState,
    context: ConditionContext,
) -> list[ActionDefinition]:
    """Convenience function to get legal actions."""
    return ActionGenerator(Reducer(catalog)).generate(state, context)


def blocked_reasons(
    catalog: Catalog,
    state: CraftState,
    context: ConditionContext,
) -> dict[str, BlockReason]:
    """Map each blocked action key to the reason it is blocked."""
    generator = ActionGenerator(Reducer(catalog))
    return {b.action_key: b.reason for b in generator.blocked(state, context)}
