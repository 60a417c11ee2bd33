"""
Action System - Catalog entries, character stats, and applied gains.

An ActionDefinition is a declarative, immutable description of one
technique: what it costs, what it produces, which stat its gains scale
with, which buffs it grants or spends, and its cooldown.

The Catalog bundles the definitions with the character stats they scale
against. Catalogs are built by kiln.catalog.load_catalog, which resolves
every name-based tag into an enum once.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from enum import Enum

from .conditions import ConditionKind
from .state import BuffKind


class ActionKind(Enum):
    """Broad families of actions."""
    FUSION = "fusion"  # Raises completion
    REFINE = "refine"  # Raises perfection
    STABILIZE = "stabilize"  # Restores stability
    SUPPORT = "support"  # Buffs, pool recovery, cleansing


class ScalingStat(Enum):
    """The character stat a gain multiplies against."""
    CONTROL = "control"
    INTENSITY = "intensity"
    FLAT = "flat"


@dataclass(frozen=True)
class Gain:
    """Base gain: amount x the scaling stat (FLAT gains use amount as-is)."""
    amount: float = 0.0
    stat: ScalingStat = ScalingStat.FLAT

    @property
    def is_zero(self) -> bool:
        return self.amount == 0


@dataclass(frozen=True)
class BuffGrant:
    """A buff the action grants after resolving."""
    kind: BuffKind
    duration: int | None = 2
    multiplier: float = 1.4
    stacks: int = 0


@dataclass(frozen=True)
class BuffCost:
    """
    Buff stacks the action spends.

    With consume_all the action spends every stack it finds (at least
    amount). With scales_gains its gains are multiplied by stacks spent.
    """
    kind: BuffKind
    amount: int = 1
    consume_all: bool = False
    scales_gains: bool = False


@dataclass(frozen=True)
class Mastery:
    """Static per-action bonuses from technique mastery."""
    control_bonus: float = 0.0  # +10% = 0.1
    intensity_bonus: float = 0.0
    pool_cost_reduction: int = 0
    stability_cost_reduction: int = 0
    success_chance_bonus: float = 0.0
    crit_chance_bonus: float = 0.0  # Percentage points
    crit_multiplier_bonus: float = 0.0  # Percentage points


@dataclass(frozen=True)
class ActionDefinition:
    """
    An immutable catalog entry.

    Costs are non-negative. Gains are base amounts, scaled by the effect
    resolver at apply time.
    """
    key: str
    name: str
    kind: ActionKind

    # Costs
    pool_cost: int = 0
    stability_cost: int = 0
    toxicity_cost: int = 0

    # Scaled gains
    completion: Gain = field(default_factory=Gain)
    perfection: Gain = field(default_factory=Gain)
    success_chance: float = 1.0

    # Flat effects
    stability_gain: int = 0
    pool_restore: int = 0
    toxicity_cleanse: int = 0
    max_stability_change: int = 0
    restores_max_stability: bool = False
    prevents_decay: bool = False

    # Buffs
    buff_grant: BuffGrant | None = None
    buff_cost: BuffCost | None = None
    buff_requirement: BuffCost | None = None
    consumes_buffs: bool = False

    cooldown: int = 0
    condition_requirement: ConditionKind | None = None
    mastery: Mastery = field(default_factory=Mastery)

    @property
    def advances_progress(self) -> bool:
        return not (self.completion.is_zero and self.perfection.is_zero)

    @property
    def restores_stability(self) -> bool:
        return (
            self.stability_gain > 0
            or self.max_stability_change > 0
            or self.restores_max_stability
        )

    @property
    def is_stabilize(self) -> bool:
        """Stabilize-class: restores stability without advancing progress."""
        return self.restores_stability and not self.advances_progress

    @property
    def is_pool_recovery(self) -> bool:
        """Only gives pool back."""
        return (
            self.pool_restore > 0
            and not self.advances_progress
            and not self.restores_stability
            and self.buff_grant is None
        )

    @property
    def scales_with_buffs(self) -> bool:
        stats = {self.completion.stat, self.perfection.stat}
        return ScalingStat.CONTROL in stats or ScalingStat.INTENSITY in stats


@dataclass(frozen=True)
class CharacterStats:
    """The stats every action scales against."""
    control: float
    intensity: float
    crit_chance: float = 0.0  # Percent, may exceed 100
    crit_multiplier: float = 150.0  # Percent
    success_chance_bonus: float = 0.0
    completion_cap: int | None = None
    perfection_cap: int | None = None

    def base(self, stat: ScalingStat) -> float:
        if stat == ScalingStat.CONTROL:
            return self.control
        if stat == ScalingStat.INTENSITY:
            return self.intensity
        return 1.0


@dataclass(frozen=True)
class Catalog:
    """Ordered action definitions plus character stats."""
    actions: tuple[ActionDefinition, ...]
    stats: CharacterStats

    def __post_init__(self):
        keys = [a.key for a in self.actions]
        if len(keys) != len(set(keys)):
            raise ValueError(f"Duplicate action keys in catalog: {keys}")

    def get(self, key: str) -> ActionDefinition:
        for action in self.actions:
            if action.key == key:
                return action
        raise KeyError(key)

    def __iter__(self):
        return iter(self.actions)

    def __len__(self) -> int:
        return len(self.actions)

    @property
    def keys(self) -> list[str]:
        return [a.key for a in self.actions]


@dataclass(frozen=True)
class AppliedGains:
    """Expected deltas produced by one action."""
    completion: int = 0
    perfection: int = 0
    stability: int = 0
    pool: int = 0
    toxicity: int = 0
    max_stability: int = 0

    @property
    def progress(self) -> int:
        return self.completion + self.perfection

    def to_dict(self) -> dict[str, int]:
        return {
            "completion": self.completion,
            "perfection": self.perfection,
            "stability": self.stability,
            "pool": self.pool,
            "toxicity": self.toxicity,
            "max_stability": self.max_stability,
        }
