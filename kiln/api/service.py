"""
API Service - Business logic layer between the HTTP app and the engine.

The service:
1. Translates host snapshots into engine values
2. Loads (or defaults) the action catalog
3. Runs the advisor
4. Formats the result for the host

Nothing is cached between requests: every call builds a fresh catalog,
state and search. This layer is framework-agnostic.
"""

from __future__ import annotations
import logging
from dataclasses import dataclass
from typing import Any

from .schemas import (
    BlockedInfo,
    CatalogValidationResponse,
    ErrorCode,
    ErrorResponse,
    GainsInfo,
    ProjectedInfo,
    RecommendationInfo,
    RecommendRequest,
    RecommendResponse,
    StateSnapshot,
)
from ..catalog import default_catalog, dump_catalog, load_catalog
from ..engine_core import (
    Buff,
    Catalog,
    ConditionContext,
    ConditionProfile,
    CraftState,
    MalformedCatalogEntry,
    Targets,
    completion_bonus_tiers,
    parse_buff_kind,
)
from ..optimizer import CraftAdvisor, Recommendation, SearchResult, get_profile

logger = logging.getLogger(__name__)


@dataclass
class AdvisorService:
    """
    Main API service.

    Usage:
        service = AdvisorService()
        response = service.recommend(request)
    """
    default_profile: str = "balanced"

    def recommend(self, request: RecommendRequest) -> RecommendResponse | ErrorResponse:
        """Build a recommendation for one turn."""
        try:
            config = get_profile(request.profile or self.default_profile)
        except ValueError as e:
            return ErrorResponse(error=str(e), error_code=ErrorCode.UNKNOWN_PROFILE)

        try:
            catalog = self._catalog(request.catalog)
        except MalformedCatalogEntry as e:
            return ErrorResponse(
                error="Action catalog failed validation",
                error_code=ErrorCode.MALFORMED_CATALOG,
                details={"errors": e.errors},
            )

        try:
            state = snapshot_to_state(request.state)
            context = ConditionContext.build(
                request.condition.current,
                ConditionProfile(request.condition.profile.lower()),
                request.condition.forecast,
                generated=request.condition.generated,
            )
        except ValueError as e:
            return ErrorResponse(error=str(e), error_code=ErrorCode.INVALID_REQUEST)

        targets = Targets(
            completion=request.targets.completion,
            perfection=request.targets.perfection,
            initial_max_stability=(
                request.targets.initial_max_stability or state.initial_max_stability
            ),
        )
        if request.state.completion_bonus is None:
            state = state.with_changes(
                completion_bonus=completion_bonus_tiers(state.completion, targets.completion)
            )

        result = CraftAdvisor(catalog, targets, config).recommend(state, context)
        logger.info(
            "Recommendation %s: %s (%d nodes)",
            result.status.value,
            result.recommendation.action_key if result.recommendation else "-",
            result.metrics.nodes,
        )
        return result_to_response(result)

    def validate_catalog(self, raw: dict[str, Any]) -> CatalogValidationResponse:
        """Check a raw catalog without running anything."""
        try:
            catalog = load_catalog(raw)
        except MalformedCatalogEntry as e:
            return CatalogValidationResponse(valid=False, errors=e.errors)
        return CatalogValidationResponse(
            valid=True,
            action_count=len(catalog),
            action_keys=catalog.keys,
        )

    def default_catalog(self) -> dict[str, Any]:
        """The built-in catalog in raw form."""
        return dump_catalog(default_catalog())

    def _catalog(self, raw: dict[str, Any] | None) -> Catalog:
        if raw is None:
            return default_catalog()
        return load_catalog(raw)


def snapshot_to_state(snapshot: StateSnapshot) -> CraftState:
    """Build a CraftState from a host snapshot. Raises ValueError on bad data."""
    if snapshot.stability > snapshot.max_stability:
        raise ValueError("stability cannot exceed max_stability")
    if snapshot.pool > snapshot.pool_max:
        raise ValueError("pool cannot exceed pool_max")
    if (
        snapshot.initial_max_stability is not None
        and snapshot.max_stability > snapshot.initial_max_stability
    ):
        raise ValueError("max_stability cannot exceed initial_max_stability")

    buffs = {}
    for info in snapshot.buffs:
        kind = parse_buff_kind(info.kind)
        buffs[kind] = Buff(kind=kind, turns=info.turns, multiplier=info.multiplier, stacks=info.stacks)

    return CraftState(
        pool=snapshot.pool,
        pool_max=snapshot.pool_max,
        stability=snapshot.stability,
        max_stability=snapshot.max_stability,
        initial_max_stability=snapshot.initial_max_stability,
        min_stability=snapshot.min_stability,
        completion=snapshot.completion,
        perfection=snapshot.perfection,
        completion_bonus=snapshot.completion_bonus or 0,
        toxicity=snapshot.toxicity,
        max_toxicity=snapshot.max_toxicity,
        buffs=buffs,
        cooldowns={k: v for k, v in snapshot.cooldowns.items() if v > 0},
        step=snapshot.step,
    )


def _recommendation_info(rec: Recommendation) -> RecommendationInfo:
    return RecommendationInfo(
        action_key=rec.action_key,
        action_name=rec.action_name,
        kind=rec.kind.value,
        expected_gains=GainsInfo(**rec.expected_gains.to_dict()),
        score=rec.score,
        rationale=rec.rationale.value,
        reasoning=rec.reasoning,
        follow_up=rec.follow_up,
        quality=rec.quality,
        stall_penalty=rec.stall_penalty,
        protected=rec.protected,
    )


def result_to_response(result: SearchResult) -> RecommendResponse:
    """Convert an advisor result to its API form."""
    return RecommendResponse(
        status=result.status.value,
        recommendation=(
            _recommendation_info(result.recommendation) if result.recommendation else None
        ),
        alternatives=[_recommendation_info(r) for r in result.alternatives],
        rotation=result.rotation,
        projected=ProjectedInfo(**result.projected.to_dict()) if result.projected else None,
        blocked=[
            BlockedInfo(
                action_key=b.action_key,
                action_name=b.action_name,
                reason=b.reason.value,
                detail=b.detail,
            )
            for b in result.blocked
        ],
        metrics=result.metrics.to_dict(),
    )
