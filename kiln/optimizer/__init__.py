"""
Optimizer module - Scoring, ordering, search and recommendations.

Provides:
- StateScorer: Layered craft state scoring
- ActionOrderer: Move ordering and stall penalties
- SearchEngine: Bounded memoized search
- CraftAdvisor: Recommendation, alternatives and rotation
- SearchConfig: Search budgets and named profiles
"""

from .evaluator import Pace, ScoringWeights, StateEvaluation, StateScorer, score_state
from .ordering import ActionOrderer, RankedAction
from .profiles import PROFILES, SearchConfig, get_profile
from .search import (
    SearchEngine,
    SearchMetrics,
    SearchOutcome,
    SearchStatus,
    TranspositionEntry,
    TranspositionTable,
    search,
)
from .rotation import ProjectedEndState, Replay, diagnose, reconstruct_rotation, replay_rotation
from .policy import CraftAdvisor, Rationale, Recommendation, SearchResult

__all__ = [
    "Pace",
    "ScoringWeights",
    "StateEvaluation",
    "StateScorer",
    "score_state",
    "ActionOrderer",
    "RankedAction",
    "PROFILES",
    "SearchConfig",
    "get_profile",
    "SearchEngine",
    "SearchMetrics",
    "SearchOutcome",
    "SearchStatus",
    "TranspositionEntry",
    "TranspositionTable",
    "search",
    "ProjectedEndState",
    "Replay",
    "diagnose",
    "reconstruct_rotation",
    "replay_rotation",
    "CraftAdvisor",
    "Rationale",
    "Recommendation",
    "SearchResult",
]
