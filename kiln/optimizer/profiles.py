"""
Search Profiles - Configurable search budgets.

Profiles adjust:
- Depth (how far ahead the search looks)
- Budgets (wall-clock and node limits, both soft)
- Beam width (how many ranked actions each node expands)
- Deepening schedule, and whether lookahead branches on future conditions
"""

from __future__ import annotations
import math
from dataclasses import dataclass, field, replace
from typing import Any

from .evaluator import ScoringWeights


@dataclass
class SearchConfig:
    """
    Budgets and shape of one search call.

    time_budget is in seconds; None disables the wall-clock limit, which
    makes results depend only on the inputs.
    """
    name: str = "balanced"
    depth: int = 16
    time_budget: float | None = 0.5
    node_budget: int = 85_000
    beam_width: int = 6
    min_beam_width: int = 2

    # Iterative deepening from min_depth up to depth, each iteration
    # deepening_factor times deeper than the last
    iterative_deepening: bool = True
    min_depth: int = 3
    deepening_factor: float = 1.5

    # Average over the likely next-turn conditions instead of following
    # only the most likely one
    condition_branching: bool = False
    branch_limit: int = 2
    branch_min_probability: float = 0.15

    # Progress values above 1000 are bucketed in state signatures
    progress_bucket_size: int = 100

    # Stall penalty, as a multiple of the combined target magnitude
    stall_weight: float = 0.25

    weights: ScoringWeights = field(default_factory=ScoringWeights)

    def __post_init__(self):
        if self.depth < 1:
            raise ValueError("depth must be >= 1")
        if self.node_budget < 1:
            raise ValueError("node_budget must be >= 1")
        if self.time_budget is not None and self.time_budget <= 0:
            raise ValueError("time_budget must be positive")
        if self.min_beam_width < 1 or self.beam_width < self.min_beam_width:
            raise ValueError("beam_width must be >= min_beam_width >= 1")
        if self.min_depth < 1:
            raise ValueError("min_depth must be >= 1")
        if self.deepening_factor <= 1.0:
            raise ValueError("deepening_factor must be > 1")
        if self.branch_limit < 1:
            raise ValueError("branch_limit must be >= 1")
        if not 0.0 <= self.branch_min_probability <= 1.0:
            raise ValueError("branch_min_probability must be within [0, 1]")

    def with_changes(self, **kwargs: Any) -> SearchConfig:
        return replace(self, **kwargs)

    def beam_width_at(self, remaining_depth: int) -> int:
        """Beam width for a node; deep remaining searches get narrower beams."""
        if remaining_depth <= 6:
            return self.beam_width
        if remaining_depth <= 12:
            return min(self.beam_width, max(self.min_beam_width + 1, int(self.beam_width * 0.75)))
        return min(self.beam_width, max(self.min_beam_width, int(self.beam_width * 0.5)))

    def deepening_depths(self, depth_budget: int) -> list[int]:
        """
        Depths of the iterations for one search, shallowest first.

        Always ends at depth_budget. Without iterative deepening that is
        the only iteration.
        """
        if not self.iterative_deepening:
            return [depth_budget]
        depth = min(self.min_depth, depth_budget)
        depths = [depth]
        while depth < depth_budget:
            depth = min(depth_budget, max(depth + 1, math.ceil(depth * self.deepening_factor)))
            depths.append(depth)
        return depths


# ============================================================================
# Predefined Profiles
# ============================================================================

FAST = SearchConfig(
    name="fast",
    depth=10,
    time_budget=0.25,
    node_budget=25_000,
    beam_width=4,
)

BALANCED = SearchConfig(
    time_budget=1.0,
    beam_width=4,
)

THOROUGH = SearchConfig(
    name="thorough",
    depth=24,
    time_budget=2.0,
    node_budget=300_000,
    beam_width=8,
)


PROFILES: dict[str, SearchConfig] = {
    "fast": FAST,
    "balanced": BALANCED,
    "thorough": THOROUGH,
}


def get_profile(name: str) -> SearchConfig:
    """Get a predefined profile by name."""
    key = name.lower()
    if key not in PROFILES:
        raise ValueError(f"Unknown profile: {name}. Available: {list(PROFILES.keys())}")
    return PROFILES[key]
