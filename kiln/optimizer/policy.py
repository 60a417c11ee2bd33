"""
Craft Advisor - Turns a search into a recommendation.

A recommendation includes:
- The action to take, with its expected gains
- A rationale tag and a short explanation
- The follow-up action the search expects next
- Alternatives, each with a 0-100 quality rating
- The rotation and the end state it leads to

Stall penalties are applied here, on top of searched values, and nowhere
else.
"""

from __future__ import annotations
import logging
from dataclasses import dataclass, field
from enum import Enum

from ..engine_core.action import ActionDefinition, ActionKind, AppliedGains, Catalog
from ..engine_core.action_generator import BlockedAction
from ..engine_core.conditions import ConditionContext
from ..engine_core.state import BuffKind, CraftState, Targets
from .profiles import SearchConfig
from .rotation import ProjectedEndState, diagnose, reconstruct_rotation, replay_rotation
from .search import SearchEngine, SearchMetrics, SearchStatus

logger = logging.getLogger(__name__)

# Scores closer than this are treated as tied when diversifying alternatives.
DIVERSITY_WINDOW = 1.0


class Rationale(Enum):
    """Why an action is worth playing."""
    FINISH = "finish"
    EMERGENCY_STABILIZE = "emergency_stabilize"
    STABILIZE = "stabilize"
    BUFF_PAYOFF = "buff_payoff"
    BUFF_SETUP = "buff_setup"
    BALANCED = "balanced"
    COMPLETION = "completion"
    PERFECTION = "perfection"
    RECOVER = "recover"
    SUPPORT = "support"


@dataclass
class Recommendation:
    """
    One rated action.

    score is the searched value minus the stall penalty.
    """
    action_key: str
    action_name: str
    kind: ActionKind
    expected_gains: AppliedGains
    score: float
    rationale: Rationale
    reasoning: str = ""
    follow_up: str | None = None
    quality: float = 100.0
    stall_penalty: float = 0.0
    protected: bool = False


@dataclass
class SearchResult:
    """
    Everything the advisor returns to its host.

    recommendation is None when the craft is finished or nothing is
    playable; blocked then explains why.
    """
    status: SearchStatus
    recommendation: Recommendation | None = None
    alternatives: list[Recommendation] = field(default_factory=list)
    rotation: list[str] = field(default_factory=list)
    projected: ProjectedEndState | None = None
    blocked: list[BlockedAction] = field(default_factory=list)
    metrics: SearchMetrics = field(default_factory=SearchMetrics)
    search_score: float = 0.0
    depth: int = 0

    @property
    def is_terminal(self) -> bool:
        return self.recommendation is None


@dataclass
class _Candidate:
    action: ActionDefinition
    child: CraftState
    gains: AppliedGains
    value: float
    stall: float
    protected: bool
    dead: bool

    @property
    def score(self) -> float:
        return self.value - self.stall


class CraftAdvisor:
    """
    Recommends the next action for a craft.

    Usage:
        advisor = CraftAdvisor(catalog, targets, get_profile("balanced"))
        result = advisor.recommend(state, context)
        result.recommendation.action_key
    """

    def __init__(
        self,
        catalog: Catalog,
        targets: Targets,
        config: SearchConfig | None = None,
    ):
        self.catalog = catalog
        self.targets = targets
        self.config = config or SearchConfig()
        self.engine = SearchEngine(catalog, targets, self.config)

    def recommend(self, state: CraftState, context: ConditionContext) -> SearchResult:
        """Search from state and build the full recommendation."""
        engine = self.engine
        reducer = engine.reducer
        outcome = engine.search(state, context)
        pace = engine.scorer.pace

        if outcome.status == SearchStatus.TARGETS_MET:
            return SearchResult(
                status=outcome.status,
                projected=ProjectedEndState.from_replay(
                    replay_rotation(reducer, state, context, []), self.targets, pace
                ),
                metrics=outcome.metrics,
                search_score=outcome.score,
            )

        if outcome.status == SearchStatus.NO_LEGAL_ACTION:
            return SearchResult(
                status=outcome.status,
                blocked=diagnose(reducer, state, context),
                metrics=outcome.metrics,
                search_score=outcome.score,
                depth=outcome.depth,
            )

        candidates = self._candidates(state, context, outcome.root_values)
        ranked = rank_candidates(candidates)

        next_context = context.advance()
        best = ranked[0]
        scores = [c.score for c in ranked]
        recommendations = [
            self._to_recommendation(
                state,
                candidate,
                quality_rating(candidate.score, max(scores), min(scores)),
                self._follow_up(outcome.table, candidate.child, next_context, outcome.depth - 1),
            )
            for candidate in ranked
        ]

        rotation = [best.action.key] + reconstruct_rotation(
            outcome.table, reducer, best.child, next_context, outcome.depth - 1
        )
        replay = replay_rotation(reducer, state, context, rotation)

        primary = recommendations[0]
        logger.debug(
            "Recommend %s (score %.2f, rotation %d steps)",
            primary.action_key, primary.score, len(rotation),
        )

        return SearchResult(
            status=outcome.status,
            recommendation=primary,
            alternatives=recommendations[1:],
            rotation=rotation,
            projected=ProjectedEndState.from_replay(replay, self.targets, pace),
            metrics=outcome.metrics,
            search_score=outcome.score,
            depth=outcome.depth,
        )

    # =========================================================================
    # Candidates
    # =========================================================================

    def _candidates(
        self,
        state: CraftState,
        context: ConditionContext,
        root_values: dict[str, float],
    ) -> list[_Candidate]:
        reducer = self.engine.reducer
        orderer = self.engine.orderer
        candidates = []
        for key, value in root_values.items():
            action = self.catalog.get(key)
            child, gains = reducer.apply(state, action, context)
            candidates.append(_Candidate(
                action=action,
                child=child,
                gains=gains,
                value=value,
                stall=orderer.stall_penalty(state, action, context),
                protected=orderer.is_protected(state, action, context),
                dead=child.is_dead and not self.targets.met(child),
            ))

        # Never offer a move that ends the craft unfinished if another move survives.
        survivable = [c for c in candidates if not c.dead]
        return survivable or candidates

    def _follow_up(
        self,
        table,
        child: CraftState,
        context: ConditionContext,
        depth: int,
    ) -> str | None:
        if depth <= 0:
            return None
        entry = table.lookup(child, context, depth)
        return entry.best_action_key if entry else None

    def _to_recommendation(
        self,
        state: CraftState,
        candidate: _Candidate,
        quality: float,
        follow_up: str | None,
    ) -> Recommendation:
        rationale = self._rationale(state, candidate)
        return Recommendation(
            action_key=candidate.action.key,
            action_name=candidate.action.name,
            kind=candidate.action.kind,
            expected_gains=candidate.gains,
            score=candidate.score,
            rationale=rationale,
            reasoning=explain(candidate.action, state, candidate.gains, self.targets, rationale),
            follow_up=follow_up,
            quality=quality,
            stall_penalty=candidate.stall,
            protected=candidate.protected,
        )

    def _rationale(self, state: CraftState, candidate: _Candidate) -> Rationale:
        action = candidate.action
        gains = candidate.gains
        has_stat_buff = bool(state.buff(BuffKind.CONTROL) or state.buff(BuffKind.INTENSITY))

        if self.targets.met(candidate.child):
            return Rationale.FINISH
        if action.is_stabilize:
            return Rationale.EMERGENCY_STABILIZE if candidate.protected else Rationale.STABILIZE
        if has_stat_buff and gains.progress > 0 and (action.consumes_buffs or action.scales_with_buffs):
            return Rationale.BUFF_PAYOFF
        if action.buff_grant is not None:
            return Rationale.BUFF_SETUP
        if gains.completion > 0 and gains.perfection > 0:
            return Rationale.BALANCED
        if gains.completion > 0:
            return Rationale.COMPLETION
        if gains.perfection > 0:
            return Rationale.PERFECTION
        if action.is_pool_recovery:
            return Rationale.RECOVER
        return Rationale.SUPPORT


def rank_candidates(candidates: list[_Candidate]) -> list[_Candidate]:
    """
    Sort by score, then diversify near-ties.

    Among candidates within DIVERSITY_WINDOW of the next best score, one
    of a kind not yet listed is preferred.
    """
    ordered = sorted(candidates, key=lambda c: -c.score)
    if len(ordered) <= 2:
        return ordered

    result = [ordered[0]]
    remaining = ordered[1:]
    seen_kinds = {ordered[0].action.kind}
    while remaining:
        top = remaining[0].score
        window = [c for c in remaining if top - c.score <= DIVERSITY_WINDOW]
        pick = next((c for c in window if c.action.kind not in seen_kinds), remaining[0])
        remaining.remove(pick)
        result.append(pick)
        seen_kinds.add(pick.action.kind)
    return result


def quality_rating(score: float, best: float, worst: float) -> float:
    """Linear 0-100 rating between the worst and best alternative."""
    if best - worst <= 1e-9:
        return 100.0
    return round(100.0 * (score - worst) / (best - worst), 1)


def explain(
    action: ActionDefinition,
    state: CraftState,
    gains: AppliedGains,
    targets: Targets,
    rationale: Rationale,
) -> str:
    """Short human-readable reasons for an action."""
    reasons = []

    if rationale == Rationale.FINISH:
        reasons.append("Completes both targets")
    if action.is_stabilize:
        if rationale == Rationale.EMERGENCY_STABILIZE:
            reasons.append("Low stability runway - must restore")
        else:
            reasons.append("Restore stability for more actions")

    if state.buff(BuffKind.CONTROL) and gains.perfection > 0:
        reasons.append("Control buff active - maximize perfection")
    if state.buff(BuffKind.INTENSITY) and gains.completion > 0:
        reasons.append("Intensity buff active - maximize completion")
    if action.consumes_buffs:
        reasons.append("Converts buffs to both completion and perfection")

    grant = action.buff_grant
    if grant is not None and grant.kind != BuffKind.CHARGE:
        reasons.append(f"Grants {grant.kind.value} buff for next turns")
    elif grant is not None:
        reasons.append(f"Builds {grant.stacks} {grant.kind.value} stack(s)")

    if gains.completion > 0 and state.completion < targets.completion:
        reasons.append(f"+{gains.completion} completion toward target")
    if gains.perfection > 0 and state.perfection < targets.perfection:
        reasons.append(f"+{gains.perfection} perfection toward target")
    if gains.pool > 0:
        reasons.append(f"+{gains.pool} pool")
    if gains.toxicity < 0:
        reasons.append(f"Cleanses {-gains.toxicity} toxicity")

    return "; ".join(reasons) if reasons else "Best available option"
