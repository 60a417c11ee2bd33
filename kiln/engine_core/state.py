"""
Craft State - Immutable snapshot of every variable of a craft.

Design principles:
- Immutable: transitions build a new CraftState, nothing is mutated in place
- Host-agnostic: built fresh from a host snapshot each turn
- Canonical: signature() collapses near-duplicate states for memoization

Invariants:
- 0 <= stability <= max_stability
- max_stability only decreases, unless an action raises or restores it
- pool >= 0, completion >= 0, perfection >= 0
- completion_bonus counts the tiers earned by overshooting the completion goal
"""

from __future__ import annotations
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any


class BuffKind(Enum):
    """Buff kinds known to the engine."""
    CONTROL = "control"  # Multiplies control
    INTENSITY = "intensity"  # Multiplies intensity
    CHARGE = "charge"  # Stack counter spent by finisher actions


BUFF_ALIASES: dict[str, BuffKind] = {
    "control": BuffKind.CONTROL,
    "empower_control": BuffKind.CONTROL,
    "intensity": BuffKind.INTENSITY,
    "empower_intensity": BuffKind.INTENSITY,
    "charge": BuffKind.CHARGE,
    "stack": BuffKind.CHARGE,
    "stacks": BuffKind.CHARGE,
}


def parse_buff_kind(name: str | BuffKind) -> BuffKind:
    """Resolve a buff name to a BuffKind. Raises ValueError for unknown names."""
    if isinstance(name, BuffKind):
        return name
    normalized = name.strip().lower().replace("-", "_").replace(" ", "_")
    if normalized not in BUFF_ALIASES:
        raise ValueError(f"Unknown buff kind: {name}")
    return BUFF_ALIASES[normalized]


@dataclass(frozen=True)
class Buff:
    """
    An active buff.

    turns is the number of upcoming actions the buff still applies to.
    None means the buff does not expire (stack counters).
    """
    kind: BuffKind
    turns: int | None = None
    multiplier: float = 1.0
    stacks: int = 0

    @property
    def is_active(self) -> bool:
        if self.turns is None:
            return self.stacks > 0
        return self.turns > 0

    def aged(self) -> Buff | None:
        """Buff after one turn passes, or None if it expired."""
        if self.turns is None:
            return self
        remaining = self.turns - 1
        if remaining <= 0:
            return None
        return replace(self, turns=remaining)


@dataclass(frozen=True)
class Targets:
    """
    Static goals of a craft.

    magnitude is the scale every scoring weight is multiplied by.
    """
    completion: int
    perfection: int
    initial_max_stability: int

    @property
    def magnitude(self) -> float:
        return float(max(1, self.completion + self.perfection))

    def completion_met(self, state: CraftState) -> bool:
        return state.completion >= self.completion

    def perfection_met(self, state: CraftState) -> bool:
        return state.perfection >= self.perfection

    def met(self, state: CraftState) -> bool:
        return self.completion_met(state) and self.perfection_met(state)

    def remaining_work(self, state: CraftState) -> float:
        """Fraction (0..1) of the combined target still missing."""
        missing = (
            max(0, self.completion - state.completion)
            + max(0, self.perfection - state.perfection)
        )
        return missing / self.magnitude


@dataclass(frozen=True)
class CraftState:
    """
    One snapshot of a craft in progress.

    Buffs and cooldowns are plain dicts, replaced wholesale on every
    transition.
    """
    pool: int
    pool_max: int
    stability: int
    max_stability: int
    initial_max_stability: int | None = None
    min_stability: int = 0

    completion: int = 0
    perfection: int = 0
    completion_bonus: int = 0

    toxicity: int = 0
    max_toxicity: int = 0

    buffs: dict[BuffKind, Buff] = field(default_factory=dict)
    cooldowns: dict[str, int] = field(default_factory=dict)

    step: int = 0
    history: tuple[str, ...] = ()

    def __post_init__(self):
        if self.initial_max_stability is None:
            object.__setattr__(self, "initial_max_stability", self.max_stability)

    @classmethod
    def start(
        cls,
        pool_max: int,
        max_stability: int,
        toxicity_cap: int = 0,
        min_stability: int = 0,
    ) -> CraftState:
        """A fresh craft: full pool, full stability, no progress."""
        return cls(
            pool=pool_max,
            pool_max=pool_max,
            stability=max_stability,
            max_stability=max_stability,
            initial_max_stability=max_stability,
            min_stability=min_stability,
            max_toxicity=toxicity_cap,
        )

    def with_changes(self, **kwargs: Any) -> CraftState:
        """Return a copy with some fields changed."""
        return replace(self, **kwargs)

    # =========================================================================
    # Queries
    # =========================================================================

    def buff(self, kind: BuffKind) -> Buff | None:
        buff = self.buffs.get(kind)
        if buff is not None and buff.is_active:
            return buff
        return None

    def buff_multiplier(self, kind: BuffKind) -> float:
        buff = self.buff(kind)
        return buff.multiplier if buff else 1.0

    def stacks(self, kind: BuffKind) -> int:
        buff = self.buffs.get(kind)
        return buff.stacks if buff else 0

    def cooldown(self, action_key: str) -> int:
        return self.cooldowns.get(action_key, 0)

    @property
    def is_dead(self) -> bool:
        """Stability has reached the floor."""
        return self.stability <= self.min_stability

    # =========================================================================
    # Canonical signature
    # =========================================================================

    def signature(self, targets: Targets | None = None, bucket_size: int = 100) -> tuple:
        """
        Canonical key for memoization.

        History and step are left out. Progress values are bucketed once
        they get large so that states differing by a few points collapse.
        """
        if targets is None:
            completion_key: Any = self.completion
            perfection_key: Any = self.perfection
        else:
            completion_key = bucket_progress(self.completion, targets.completion, bucket_size)
            perfection_key = bucket_progress(self.perfection, targets.perfection, bucket_size)

        buffs = tuple(sorted(
            (kind.value, buff.turns, round(buff.multiplier, 3), buff.stacks)
            for kind, buff in self.buffs.items()
            if buff.is_active or buff.stacks
        ))
        cooldowns = tuple(sorted((k, v) for k, v in self.cooldowns.items() if v > 0))

        return (
            self.pool,
            self.stability,
            self.max_stability,
            completion_key,
            perfection_key,
            self.completion_bonus,
            self.toxicity,
            buffs,
            cooldowns,
        )


def bucket_progress(value: int, goal: int, bucket_size: int = 100) -> Any:
    """
    Quantize a progress value for the state signature.

    Small values stay exact. Large values are bucketed, with finer buckets
    close to the goal, and anything past the goal keyed by its overshoot.
    """
    if value < 1000 or bucket_size <= 1:
        return value
    if goal > 0 and value >= goal:
        return ("met", (value - goal) // bucket_size)
    distance = goal - value
    if goal > 0 and distance <= min(200, goal * 0.1):
        fine = max(1, bucket_size // 10)
        return ("near", distance // fine)
    return value // bucket_size
