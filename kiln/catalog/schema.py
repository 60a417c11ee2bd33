"""
Catalog Schemas - Pydantic models for raw catalog data.

Raw catalogs arrive as JSON-like dicts from a host or a file. These
models check shape and ranges; kiln.catalog.loader then resolves tags
(kinds, stats, buffs, conditions) into engine enums.

Cost fields are required on every entry: an action whose costs are
unknown would be silently scored as free.
"""

from typing import Optional
from pydantic import BaseModel, Field, model_validator


class GainSchema(BaseModel):
    """A base gain and the stat it scales with."""
    amount: float = Field(..., ge=0, description="Base multiplier or flat amount")
    stat: str = Field("flat", description="control, intensity or flat")


class BuffGrantSchema(BaseModel):
    """A buff granted by an action."""
    kind: str
    duration: Optional[int] = Field(2, ge=1, description="Turns; null for stack counters")
    multiplier: float = Field(1.4, gt=0)
    stacks: int = Field(0, ge=0)


class BuffCostSchema(BaseModel):
    """Buff stacks spent or required by an action."""
    kind: str
    amount: int = Field(1, ge=1)
    consume_all: bool = False
    scales_gains: bool = False


class MasterySchema(BaseModel):
    """Per-action mastery bonuses."""
    control_bonus: float = Field(0.0, ge=0)
    intensity_bonus: float = Field(0.0, ge=0)
    pool_cost_reduction: int = Field(0, ge=0)
    stability_cost_reduction: int = Field(0, ge=0)
    success_chance_bonus: float = 0.0
    crit_chance_bonus: float = 0.0
    crit_multiplier_bonus: float = 0.0


class ActionEntrySchema(BaseModel):
    """One raw catalog entry."""
    key: str = Field(..., min_length=1)
    name: Optional[str] = None
    kind: str

    pool_cost: int = Field(..., ge=0)
    stability_cost: int = Field(..., ge=0)
    toxicity_cost: int = Field(0, ge=0)

    completion: Optional[GainSchema] = None
    perfection: Optional[GainSchema] = None
    success_chance: float = Field(1.0, ge=0, le=1)

    stability_gain: int = Field(0, ge=0)
    pool_restore: int = Field(0, ge=0)
    toxicity_cleanse: int = Field(0, ge=0)
    max_stability_change: int = 0
    restores_max_stability: bool = False
    prevents_decay: bool = False

    buff_grant: Optional[BuffGrantSchema] = None
    buff_cost: Optional[BuffCostSchema] = None
    buff_requirement: Optional[BuffCostSchema] = None
    consumes_buffs: bool = False

    cooldown: int = Field(0, ge=0)
    condition: Optional[str] = Field(None, description="Required condition, if any")
    mastery: MasterySchema = Field(default_factory=MasterySchema)

    @model_validator(mode="after")
    def check_has_effect(self):
        has_effect = any([
            self.completion is not None and self.completion.amount > 0,
            self.perfection is not None and self.perfection.amount > 0,
            self.stability_gain > 0,
            self.pool_restore > 0,
            self.toxicity_cleanse > 0,
            self.max_stability_change != 0,
            self.restores_max_stability,
            self.buff_grant is not None,
        ])
        if not has_effect:
            raise ValueError(f"action '{self.key}' has no effect")
        return self


class StatsSchema(BaseModel):
    """Character stats actions scale with."""
    control: float = Field(..., ge=0)
    intensity: float = Field(..., ge=0)
    crit_chance: float = Field(0.0, ge=0)
    crit_multiplier: float = Field(150.0, ge=100)
    success_chance_bonus: float = 0.0
    completion_cap: Optional[int] = Field(None, ge=0)
    perfection_cap: Optional[int] = Field(None, ge=0)


class CatalogSchema(BaseModel):
    """A complete raw catalog."""
    stats: StatsSchema
    actions: list[ActionEntrySchema] = Field(..., min_length=1)
