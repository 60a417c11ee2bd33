"""
API Module - HTTP interface for crafting hosts.

Exposes the advisor via REST. A host (game client, overlay, bot):
1. Optionally validates its action catalog
2. Posts the current snapshot each turn
3. Receives the recommended action, alternatives and rotation

Every request is self-contained. Nothing is stored between calls.
"""

from .schemas import (
    # Requests
    BuffInfo,
    StateSnapshot,
    ConditionInfo,
    TargetsInfo,
    RecommendRequest,
    # Responses
    ErrorCode,
    ErrorResponse,
    GainsInfo,
    RecommendationInfo,
    BlockedInfo,
    ProjectedInfo,
    RecommendResponse,
    CatalogValidationResponse,
    HealthResponse,
)
from .service import AdvisorService, snapshot_to_state, result_to_response
from .app import create_app

__all__ = [
    # Requests
    "BuffInfo",
    "StateSnapshot",
    "ConditionInfo",
    "TargetsInfo",
    "RecommendRequest",
    # Responses
    "ErrorCode",
    "ErrorResponse",
    "GainsInfo",
    "RecommendationInfo",
    "BlockedInfo",
    "ProjectedInfo",
    "RecommendResponse",
    "CatalogValidationResponse",
    "HealthResponse",
    # Service
    "AdvisorService",
    "snapshot_to_state",
    "result_to_response",
    "create_app",
]
