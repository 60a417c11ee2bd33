"""
Engine errors.

Only two conditions are raised as exceptions:
- IneligibleAction: an action cannot be applied to the current state.
  The search recovers from it locally by excluding the action.
- MalformedCatalogEntry: a catalog entry is missing required cost or
  effect fields. Fatal at load time.

"No legal action" and "budget exceeded" are reported as search statuses,
not raised.
"""

from __future__ import annotations
from enum import Enum


class BlockReason(Enum):
    """Why an action cannot be played right now."""
    COOLDOWN = "cooldown"
    CONDITION = "condition"
    BUFF = "buff"
    POOL = "pool"
    STABILITY = "stability"
    TOXICITY = "toxicity"


class EngineError(Exception):
    """Base class for engine errors."""


class IneligibleAction(EngineError):
    """The action cannot be applied in the current state."""

    def __init__(self, action_key: str, reason: BlockReason, message: str = ""):
        self.action_key = action_key
        self.reason = reason
        super().__init__(message or f"{action_key} is blocked: {reason.value}")


class MalformedCatalogEntry(EngineError):
    """Raised when catalog data fails validation."""

    def __init__(self, errors: list[str]):
        self.errors = errors
        super().__init__(f"Catalog validation failed: {errors}")
