"""
Catalog Loader - Validates raw catalog data and builds a Catalog.

Validates that:
1. Every entry has the required cost fields and at least one effect (pydantic)
2. Kind, stat, buff and condition names resolve to engine enums
3. Action keys are unique

Any failure is fatal: MalformedCatalogEntry carries every error found.
"""

from __future__ import annotations
import logging
from dataclasses import asdict
from typing import Any

from pydantic import ValidationError

from ..engine_core.action import (
    ActionDefinition,
    ActionKind,
    BuffCost,
    BuffGrant,
    Catalog,
    CharacterStats,
    Gain,
    Mastery,
    ScalingStat,
)
from ..engine_core.conditions import parse_condition_kind
from ..engine_core.errors import MalformedCatalogEntry
from ..engine_core.state import parse_buff_kind
from .schema import ActionEntrySchema, BuffCostSchema, CatalogSchema, GainSchema

logger = logging.getLogger(__name__)


def load_catalog(raw: dict[str, Any]) -> Catalog:
    """
    Build a Catalog from raw data.

    Raises MalformedCatalogEntry listing every problem found.
    """
    try:
        parsed = CatalogSchema.model_validate(raw)
    except ValidationError as e:
        errors = [_format_error(err) for err in e.errors()]
        logger.warning("Rejected catalog: %d error(s)", len(errors))
        raise MalformedCatalogEntry(errors) from e

    errors: list[str] = []
    actions: list[ActionDefinition] = []
    seen: set[str] = set()

    for entry in parsed.actions:
        if entry.key in seen:
            errors.append(f"Action '{entry.key}': duplicate key")
            continue
        seen.add(entry.key)

        entry_errors: list[str] = []
        action = _build_action(entry, entry_errors)
        errors.extend(f"Action '{entry.key}': {e}" for e in entry_errors)
        if action is not None:
            actions.append(action)

    if errors:
        logger.warning("Rejected catalog: %d error(s)", len(errors))
        raise MalformedCatalogEntry(errors)

    stats = parsed.stats
    return Catalog(
        actions=tuple(actions),
        stats=CharacterStats(
            control=stats.control,
            intensity=stats.intensity,
            crit_chance=stats.crit_chance,
            crit_multiplier=stats.crit_multiplier,
            success_chance_bonus=stats.success_chance_bonus,
            completion_cap=stats.completion_cap,
            perfection_cap=stats.perfection_cap,
        ),
    )


def _format_error(err: dict[str, Any]) -> str:
    location = ".".join(str(part) for part in err.get("loc", ()))
    return f"{location}: {err.get('msg', 'invalid')}" if location else err.get("msg", "invalid")


def _build_action(entry: ActionEntrySchema, errors: list[str]) -> ActionDefinition | None:
    """Resolve one validated entry; append problems to errors."""
    try:
        kind = ActionKind(entry.kind.strip().lower())
    except ValueError:
        errors.append(f"unknown kind '{entry.kind}'")
        kind = None

    completion = _build_gain(entry.completion, errors)
    perfection = _build_gain(entry.perfection, errors)

    buff_grant = None
    if entry.buff_grant is not None:
        try:
            buff_grant = BuffGrant(
                kind=parse_buff_kind(entry.buff_grant.kind),
                duration=entry.buff_grant.duration,
                multiplier=entry.buff_grant.multiplier,
                stacks=entry.buff_grant.stacks,
            )
        except ValueError as e:
            errors.append(str(e))

    buff_cost = _build_buff_cost(entry.buff_cost, errors)
    buff_requirement = _build_buff_cost(entry.buff_requirement, errors)

    condition = None
    if entry.condition is not None:
        try:
            condition = parse_condition_kind(entry.condition)
        except ValueError as e:
            errors.append(str(e))

    if errors:
        return None

    return ActionDefinition(
        key=entry.key,
        name=entry.name or entry.key.replace("_", " ").title(),
        kind=kind,
        pool_cost=entry.pool_cost,
        stability_cost=entry.stability_cost,
        toxicity_cost=entry.toxicity_cost,
        completion=completion,
        perfection=perfection,
        success_chance=entry.success_chance,
        stability_gain=entry.stability_gain,
        pool_restore=entry.pool_restore,
        toxicity_cleanse=entry.toxicity_cleanse,
        max_stability_change=entry.max_stability_change,
        restores_max_stability=entry.restores_max_stability,
        prevents_decay=entry.prevents_decay,
        buff_grant=buff_grant,
        buff_cost=buff_cost,
        buff_requirement=buff_requirement,
        consumes_buffs=entry.consumes_buffs,
        cooldown=entry.cooldown,
        condition_requirement=condition,
        mastery=Mastery(**entry.mastery.model_dump()),
    )


def _build_gain(gain: GainSchema | None, errors: list[str]) -> Gain:
    if gain is None:
        return Gain()
    try:
        stat = ScalingStat(gain.stat.strip().lower())
    except ValueError:
        errors.append(f"unknown scaling stat '{gain.stat}'")
        return Gain()
    return Gain(amount=gain.amount, stat=stat)


def _build_buff_cost(cost: BuffCostSchema | None, errors: list[str]) -> BuffCost | None:
    if cost is None:
        return None
    try:
        kind = parse_buff_kind(cost.kind)
    except ValueError as e:
        errors.append(str(e))
        return None
    return BuffCost(
        kind=kind,
        amount=cost.amount,
        consume_all=cost.consume_all,
        scales_gains=cost.scales_gains,
    )


def dump_catalog(catalog: Catalog) -> dict[str, Any]:
    """Inverse of load_catalog: the raw dict form of a catalog."""
    stats = catalog.stats
    return {
        "stats": {
            "control": stats.control,
            "intensity": stats.intensity,
            "crit_chance": stats.crit_chance,
            "crit_multiplier": stats.crit_multiplier,
            "success_chance_bonus": stats.success_chance_bonus,
            "completion_cap": stats.completion_cap,
            "perfection_cap": stats.perfection_cap,
        },
        "actions": [_dump_action(a) for a in catalog.actions],
    }


def _dump_action(action: ActionDefinition) -> dict[str, Any]:
    raw: dict[str, Any] = {
        "key": action.key,
        "name": action.name,
        "kind": action.kind.value,
        "pool_cost": action.pool_cost,
        "stability_cost": action.stability_cost,
        "toxicity_cost": action.toxicity_cost,
        "success_chance": action.success_chance,
        "stability_gain": action.stability_gain,
        "pool_restore": action.pool_restore,
        "toxicity_cleanse": action.toxicity_cleanse,
        "max_stability_change": action.max_stability_change,
        "restores_max_stability": action.restores_max_stability,
        "prevents_decay": action.prevents_decay,
        "consumes_buffs": action.consumes_buffs,
        "cooldown": action.cooldown,
        "condition": action.condition_requirement.value if action.condition_requirement else None,
        "mastery": asdict(action.mastery),
    }
    for name in ("completion", "perfection"):
        gain = getattr(action, name)
        raw[name] = None if gain.is_zero else {"amount": gain.amount, "stat": gain.stat.value}
    grant = action.buff_grant
    raw["buff_grant"] = None if grant is None else {
        "kind": grant.kind.value,
        "duration": grant.duration,
        "multiplier": grant.multiplier,
        "stacks": grant.stacks,
    }
    for name in ("buff_cost", "buff_requirement"):
        cost = getattr(action, name)
        raw[name] = None if cost is None else {
            "kind": cost.kind.value,
            "amount": cost.amount,
            "consume_all": cost.consume_all,
            "scales_gains": cost.scales_gains,
        }
    return raw
