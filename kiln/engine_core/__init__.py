"""
Engine Core - Deterministic craft state and action resolution.

The engine is the runtime that:
1. Holds the immutable CraftState
2. Describes actions declaratively (ActionDefinition, Catalog)
3. Resolves stat, condition and mastery math (EffectResolver)
4. Applies actions via the reducer
5. Lists legal actions and explains blocked ones
"""

from .state import CraftState, Buff, BuffKind, Targets, parse_buff_kind
from .conditions import (
    ConditionContext,
    ConditionKind,
    ConditionModifiers,
    ConditionProfile,
    parse_condition_kind,
)
from .action import (
    ActionDefinition,
    ActionKind,
    AppliedGains,
    BuffCost,
    BuffGrant,
    Catalog,
    CharacterStats,
    Gain,
    Mastery,
    ScalingStat,
)
from .effect_resolver import EffectResolver, completion_bonus_tiers
from .errors import BlockReason, EngineError, IneligibleAction, MalformedCatalogEntry
from .reducer import Reducer, apply_action
from .action_generator import ActionGenerator, BlockedAction, blocked_reasons, legal_actions

__all__ = [
    "CraftState",
    "Buff",
    "BuffKind",
    "Targets",
    "parse_buff_kind",
    "ConditionContext",
    "ConditionKind",
    "ConditionModifiers",
    "ConditionProfile",
    "parse_condition_kind",
    "ActionDefinition",
    "ActionKind",
    "AppliedGains",
    "BuffCost",
    "BuffGrant",
    "Catalog",
    "CharacterStats",
    "Gain",
    "Mastery",
    "ScalingStat",
    "EffectResolver",
    "completion_bonus_tiers",
    "BlockReason",
    "EngineError",
    "IneligibleAction",
    "MalformedCatalogEntry",
    "Reducer",
    "apply_action",
    "ActionGenerator",
    "BlockedAction",
    "blocked_reasons",
    "legal_actions",
]
