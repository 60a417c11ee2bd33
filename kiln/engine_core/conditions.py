"""
Crafting conditions - per-turn external modifiers and their forecast.

Every turn of a craft runs under a condition (neutral, positive, ...).
What a condition actually does depends on the recipe's condition profile:
a "perfectable" recipe boosts control on positive turns, an "energised"
recipe makes pool costs cheaper, and so on.

Condition names coming from a host are resolved to ConditionKind once,
when the context is built. Nothing downstream compares strings.

Past the visible forecast, conditions follow a simple cycle: a change is
always followed by a neutral turn, and every further neutral turn makes a
change more likely. Lookahead follows the most likely turn, or averages
over the likely ones when asked to branch.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from enum import Enum


class ConditionKind(Enum):
    """The five condition tiers."""
    NEUTRAL = "neutral"
    POSITIVE = "positive"
    NEGATIVE = "negative"
    VERY_POSITIVE = "very_positive"
    VERY_NEGATIVE = "very_negative"


class ConditionProfile(Enum):
    """Recipe condition profiles: which modifier a condition tier moves."""
    PERFECTABLE = "perfectable"  # Control
    FUSEABLE = "fuseable"  # Intensity
    FLOWING = "flowing"  # Both stats
    ENERGISED = "energised"  # Pool cost
    STABLE = "stable"  # Stability cost
    FORTUITOUS = "fortuitous"  # Success chance


CONDITION_ALIASES: dict[str, ConditionKind] = {
    "neutral": ConditionKind.NEUTRAL,
    "balanced": ConditionKind.NEUTRAL,
    "positive": ConditionKind.POSITIVE,
    "harmonious": ConditionKind.POSITIVE,
    "negative": ConditionKind.NEGATIVE,
    "resistant": ConditionKind.NEGATIVE,
    "very_positive": ConditionKind.VERY_POSITIVE,
    "verypositive": ConditionKind.VERY_POSITIVE,
    "brilliant": ConditionKind.VERY_POSITIVE,
    "excellent": ConditionKind.VERY_POSITIVE,
    "very_negative": ConditionKind.VERY_NEGATIVE,
    "verynegative": ConditionKind.VERY_NEGATIVE,
    "corrupted": ConditionKind.VERY_NEGATIVE,
}


def parse_condition_kind(name: str | ConditionKind) -> ConditionKind:
    """
    Resolve a host condition name to a ConditionKind.

    Raises ValueError for unknown names.
    """
    if isinstance(name, ConditionKind):
        return name
    normalized = name.strip().lower().replace("-", "_").replace(" ", "_")
    if normalized not in CONDITION_ALIASES:
        raise ValueError(f"Unknown condition: {name}")
    return CONDITION_ALIASES[normalized]


# Stat deltas are additive to a 1.0 base; cost values are absolute multipliers.
_STAT_DELTAS = {
    ConditionKind.NEUTRAL: 0.0,
    ConditionKind.POSITIVE: 0.5,
    ConditionKind.NEGATIVE: -0.5,
    ConditionKind.VERY_POSITIVE: 1.0,
    ConditionKind.VERY_NEGATIVE: -1.0,
}

_COST_MULTIPLIERS = {
    ConditionKind.NEUTRAL: 1.0,
    ConditionKind.POSITIVE: 0.7,
    ConditionKind.NEGATIVE: 1.3,
    ConditionKind.VERY_POSITIVE: 0.4,
    ConditionKind.VERY_NEGATIVE: 1.6,
}

_CHANCE_BONUSES = {
    ConditionKind.NEUTRAL: 0.0,
    ConditionKind.POSITIVE: 0.25,
    ConditionKind.NEGATIVE: -0.25,
    ConditionKind.VERY_POSITIVE: 0.5,
    ConditionKind.VERY_NEGATIVE: -0.5,
}


@dataclass(frozen=True)
class ConditionModifiers:
    """Concrete multipliers one condition applies for one turn."""
    control: float = 1.0
    intensity: float = 1.0
    pool_cost: float = 1.0
    stability_cost: float = 1.0
    success_bonus: float = 0.0

    @classmethod
    def for_profile(cls, profile: ConditionProfile, kind: ConditionKind) -> ConditionModifiers:
        """Fallback table of what each profile does under each condition."""
        if profile == ConditionProfile.PERFECTABLE:
            return cls(control=1.0 + _STAT_DELTAS[kind])
        if profile == ConditionProfile.FUSEABLE:
            return cls(intensity=1.0 + _STAT_DELTAS[kind])
        if profile == ConditionProfile.FLOWING:
            delta = _STAT_DELTAS[kind] / 2
            return cls(control=1.0 + delta, intensity=1.0 + delta)
        if profile == ConditionProfile.ENERGISED:
            return cls(pool_cost=_COST_MULTIPLIERS[kind])
        if profile == ConditionProfile.STABLE:
            return cls(stability_cost=_COST_MULTIPLIERS[kind])
        if profile == ConditionProfile.FORTUITOUS:
            return cls(success_bonus=_CHANCE_BONUSES[kind])
        return cls()

    def signature(self) -> tuple:
        return (
            round(self.control, 3),
            round(self.intensity, 3),
            round(self.pool_cost, 3),
            round(self.stability_cost, 3),
            round(self.success_bonus, 3),
        )


@dataclass(frozen=True)
class ConditionContext:
    """
    The condition for the current turn plus the visible forecast.

    The forecast is consumed one entry per turn during lookahead via
    advance(). A generated context keeps the visible queue full: every
    advance appends the most likely condition after the queue (see
    generated_distribution). A steady context, built by neutral(), has no
    condition cycle and plays neutral turns once its forecast runs out.
    """
    kind: ConditionKind = ConditionKind.NEUTRAL
    modifiers: ConditionModifiers = field(default_factory=ConditionModifiers)
    profile: ConditionProfile = ConditionProfile.PERFECTABLE
    forecast: tuple[ConditionContext, ...] = ()
    generated: bool = True

    _signature: tuple = field(init=False, repr=False, compare=False, default=())
    _transitions: dict = field(init=False, repr=False, compare=False, default_factory=dict)

    MAX_FORECAST = 3

    def __post_init__(self):
        object.__setattr__(self, "_signature", (
            self.kind.value,
            self.modifiers.signature(),
            tuple((c.kind.value, c.modifiers.signature()) for c in self.forecast),
            self.generated,
        ))

    @classmethod
    def neutral(cls, profile: ConditionProfile = ConditionProfile.PERFECTABLE) -> ConditionContext:
        """A steady context: neutral now and on every later turn."""
        return cls(kind=ConditionKind.NEUTRAL, profile=profile, generated=False)

    @classmethod
    def build(
        cls,
        kind: str | ConditionKind,
        profile: ConditionProfile = ConditionProfile.PERFECTABLE,
        forecast: list[str | ConditionKind] | None = None,
        generated: bool = True,
    ) -> ConditionContext:
        """
        Build a context from condition names using the profile table.

        Forecast entries beyond MAX_FORECAST are ignored. A generated
        context tops a short forecast up to MAX_FORECAST entries.
        """
        current = parse_condition_kind(kind)
        kinds = [parse_condition_kind(name) for name in (forecast or [])[: cls.MAX_FORECAST]]
        if generated:
            kinds = top_up_forecast(current, kinds, cls.MAX_FORECAST)
        return cls._make(current, profile, kinds, generated)

    @classmethod
    def _make(
        cls,
        kind: ConditionKind,
        profile: ConditionProfile,
        queue: list[ConditionKind],
        generated: bool,
    ) -> ConditionContext:
        return cls(
            kind=kind,
            modifiers=ConditionModifiers.for_profile(profile, kind),
            profile=profile,
            forecast=tuple(cls._single(k, profile) for k in queue),
            generated=generated,
        )

    @classmethod
    def _single(cls, kind: ConditionKind, profile: ConditionProfile) -> ConditionContext:
        return cls(
            kind=kind,
            modifiers=ConditionModifiers.for_profile(profile, kind),
            profile=profile,
        )

    @property
    def queue(self) -> list[ConditionKind]:
        return [c.kind for c in self.forecast]

    def advance(self) -> ConditionContext:
        """The context for the next turn, assuming the most likely outcome."""
        return self.transitions()[0][0]

    def transitions(
        self,
        branch: bool = False,
        min_probability: float = 0.15,
        limit: int = 2,
    ) -> list[tuple[ConditionContext, float]]:
        """
        Possible contexts for the next turn with their probabilities.

        Without branching there is exactly one: the most likely outcome,
        with probability 1. With branching, outcomes below min_probability
        are dropped (unless nothing is left), at most limit are kept and
        their probabilities renormalized. Most likely first.
        """
        cache_key = (branch, min_probability, limit)
        cached = self._transitions.get(cache_key)
        if cached is not None:
            return cached

        queue = self.queue
        if not self.generated:
            if queue:
                outcomes = [(self._make(queue[0], self.profile, queue[1:], False), 1.0)]
            else:
                outcomes = [(ConditionContext.neutral(self.profile), 1.0)]
        elif queue:
            head, shifted = queue[0], queue[1:]
            outcomes = [
                (self._make(head, self.profile, shifted + [appended], True), probability)
                for appended, probability in pick_branches(
                    generated_distribution(head, shifted), branch, min_probability, limit
                )
            ]
        else:
            outcomes = [
                (self._make(following, self.profile, [most_likely(following, [])], True), probability)
                for following, probability in pick_branches(
                    generated_distribution(self.kind, []), branch, min_probability, limit
                )
            ]

        self._transitions[cache_key] = outcomes
        return outcomes

    def signature(self) -> tuple:
        return self._signature


# =============================================================================
# Condition generation
# =============================================================================

# Chance, per trailing neutral turn in the queue, that the next turn changes.
CHANGE_CHANCE_PER_NEUTRAL = 0.15


def generated_distribution(
    current: ConditionKind,
    queue: list[ConditionKind],
) -> list[tuple[ConditionKind, float]]:
    """
    Distribution of the condition generated after current and queue.

    A non-neutral turn is always followed by a neutral one. After a run of
    neutral turns a change gets more likely, and an outlook that is neutral
    throughout always changes. Positive and negative changes are equally
    likely. Sorted most likely first; ties keep neutral, positive, negative
    order.
    """
    last = queue[-1] if queue else None
    if last is not None and last != ConditionKind.NEUTRAL:
        return [(ConditionKind.NEUTRAL, 1.0)]

    if current == ConditionKind.NEUTRAL and all(k == ConditionKind.NEUTRAL for k in queue):
        change = 1.0
    else:
        trailing = 0
        for kind in reversed(queue):
            if kind != ConditionKind.NEUTRAL:
                break
            trailing += 1
        change = min(1.0, CHANGE_CHANCE_PER_NEUTRAL * trailing)

    entries = [
        (ConditionKind.NEUTRAL, 1.0 - change),
        (ConditionKind.POSITIVE, change / 2),
        (ConditionKind.NEGATIVE, change / 2),
    ]
    return sorted(
        [(kind, p) for kind, p in entries if p > 0],
        key=lambda entry: -entry[1],
    )


def most_likely(current: ConditionKind, queue: list[ConditionKind]) -> ConditionKind:
    return generated_distribution(current, queue)[0][0]


def top_up_forecast(
    current: ConditionKind,
    queue: list[ConditionKind],
    length: int,
) -> list[ConditionKind]:
    """Extend a visible forecast to length with the most likely conditions."""
    queue = list(queue[:length])
    while len(queue) < length:
        queue.append(most_likely(current, queue))
    return queue


def pick_branches(
    distribution: list[tuple[ConditionKind, float]],
    branch: bool,
    min_probability: float,
    limit: int,
) -> list[tuple[ConditionKind, float]]:
    if not branch:
        return [(distribution[0][0], 1.0)]
    kept = [entry for entry in distribution if entry[1] >= min_probability] or distribution
    kept = kept[: max(1, limit)]
    total = sum(p for _, p in kept)
    return [(kind, p / total) for kind, p in kept]
