"""
Pydantic Schemas for API - Request/response models for OpenAPI.

These models define the contract between a crafting host (game client,
overlay, bot) and the engine. The host sends a snapshot every turn; the
engine keeps nothing between calls.

Error Codes:
- MALFORMED_CATALOG: The supplied action catalog failed validation
- INVALID_REQUEST: Unknown condition, buff kind or inconsistent state
- UNKNOWN_PROFILE: The requested search profile does not exist
"""

from enum import Enum
from typing import Optional, Any
from pydantic import BaseModel, Field


# =============================================================================
# Enums
# =============================================================================

class ErrorCode(str, Enum):
    """Machine-readable error codes."""
    MALFORMED_CATALOG = "MALFORMED_CATALOG"
    INVALID_REQUEST = "INVALID_REQUEST"
    UNKNOWN_PROFILE = "UNKNOWN_PROFILE"


# =============================================================================
# Request Models
# =============================================================================

class BuffInfo(BaseModel):
    """An active buff in a host snapshot."""
    kind: str = Field(..., description="control, intensity or charge")
    turns: Optional[int] = Field(None, ge=0, description="Turns left; null for stack counters")
    multiplier: float = Field(1.0, gt=0)
    stacks: int = Field(0, ge=0)


class StateSnapshot(BaseModel):
    """The craft as the host sees it this turn."""
    pool: int = Field(..., ge=0)
    pool_max: int = Field(..., ge=0)
    stability: int = Field(..., ge=0)
    max_stability: int = Field(..., ge=0)
    initial_max_stability: Optional[int] = Field(
        None, ge=0, description="Ceiling at craft start; defaults to max_stability"
    )
    min_stability: int = Field(0, ge=0)
    completion: int = Field(0, ge=0)
    perfection: int = Field(0, ge=0)
    completion_bonus: Optional[int] = Field(
        None, ge=0, description="Completion bonus tiers; derived from completion when omitted"
    )
    toxicity: int = Field(0, ge=0)
    max_toxicity: int = Field(0, ge=0)
    buffs: list[BuffInfo] = Field(default_factory=list)
    cooldowns: dict[str, int] = Field(default_factory=dict)
    step: int = Field(0, ge=0)


class ConditionInfo(BaseModel):
    """Current condition and the visible forecast."""
    current: str = Field("neutral", description="neutral, positive, negative, very_positive, very_negative")
    profile: str = Field("perfectable", description="Recipe condition profile")
    forecast: list[str] = Field(default_factory=list, max_length=3)
    generated: bool = Field(
        True, description="Extend the forecast with the most likely upcoming conditions"
    )


class TargetsInfo(BaseModel):
    """Craft goals."""
    completion: int = Field(..., ge=0)
    perfection: int = Field(..., ge=0)
    initial_max_stability: Optional[int] = Field(None, ge=0)


class RecommendRequest(BaseModel):
    """Request a recommendation for the current turn."""
    state: StateSnapshot
    targets: TargetsInfo
    condition: ConditionInfo = Field(default_factory=ConditionInfo)
    catalog: Optional[dict[str, Any]] = Field(
        None, description="Raw action catalog; the built-in set is used when omitted"
    )
    profile: Optional[str] = Field(None, description="fast, balanced or thorough")


# =============================================================================
# Response Models
# =============================================================================

class ErrorResponse(BaseModel):
    """Standard error response."""
    error: str = Field(..., description="Human-readable error message")
    error_code: ErrorCode = Field(..., description="Machine-readable error code")
    details: Optional[dict[str, Any]] = Field(None, description="Additional error context")
    api_version: str = Field("v1", description="API version")


class GainsInfo(BaseModel):
    """Expected deltas of one action."""
    completion: int = 0
    perfection: int = 0
    stability: int = 0
    pool: int = 0
    toxicity: int = 0
    max_stability: int = 0


class RecommendationInfo(BaseModel):
    """One rated action."""
    action_key: str
    action_name: str
    kind: str
    expected_gains: GainsInfo
    score: float
    rationale: str
    reasoning: str = ""
    follow_up: Optional[str] = None
    quality: float = Field(100.0, ge=0, le=100)
    stall_penalty: float = 0.0
    protected: bool = False


class BlockedInfo(BaseModel):
    """Why an action cannot be played."""
    action_key: str
    action_name: str
    reason: str
    detail: str = ""


class ProjectedInfo(BaseModel):
    """End state the rotation leads to."""
    completion: int
    perfection: int
    stability: int
    max_stability: int
    pool: int
    toxicity: int
    targets_met: bool
    turns_remaining: int


class RecommendResponse(BaseModel):
    """Recommendation, alternatives, rotation and diagnostics."""
    status: str
    recommendation: Optional[RecommendationInfo] = None
    alternatives: list[RecommendationInfo] = Field(default_factory=list)
    rotation: list[str] = Field(default_factory=list)
    projected: Optional[ProjectedInfo] = None
    blocked: list[BlockedInfo] = Field(default_factory=list)
    metrics: dict[str, Any] = Field(default_factory=dict)
    api_version: str = "v1"


class CatalogValidationResponse(BaseModel):
    """Result of validating a raw catalog."""
    valid: bool
    action_count: int = 0
    action_keys: list[str] = Field(default_factory=list)
    errors: list[str] = Field(default_factory=list)


class HealthResponse(BaseModel):
    """Health check response."""
    status: str
    service: str
    version: str
