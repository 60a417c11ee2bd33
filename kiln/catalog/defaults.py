"""
Default Catalogs - Built-in technique sets.

DEFAULT_ACTIONS is the standard fusion/refine/stabilize family. STARTER
keys pick the three techniques every crafter starts with.

Gains are multipliers on the scaling stat: 1.0 x intensity of 12 gives
12 completion.
"""

from __future__ import annotations
from copy import deepcopy
from typing import Any

from ..engine_core.action import Catalog
from .loader import load_catalog

DEFAULT_STATS: dict[str, Any] = {
    "control": 16,
    "intensity": 12,
    "crit_chance": 0,
    "crit_multiplier": 150,
}

DEFAULT_POOL_MAX = 194
DEFAULT_MAX_STABILITY = 60


DEFAULT_ACTIONS: list[dict[str, Any]] = [
    {
        "key": "simple_fusion",
        "name": "Simple Fusion",
        "kind": "fusion",
        "pool_cost": 0,
        "stability_cost": 10,
        "completion": {"amount": 1.0, "stat": "intensity"},
    },
    {
        "key": "energised_fusion",
        "name": "Energised Fusion",
        "kind": "fusion",
        "pool_cost": 10,
        "stability_cost": 10,
        "completion": {"amount": 1.8, "stat": "intensity"},
    },
    {
        "key": "cycling_fusion",
        "name": "Cycling Fusion",
        "kind": "fusion",
        "pool_cost": 10,
        "stability_cost": 10,
        "completion": {"amount": 0.75, "stat": "intensity"},
        "buff_grant": {"kind": "control", "duration": 2, "multiplier": 1.4},
    },
    {
        "key": "disciplined_touch",
        "name": "Disciplined Touch",
        "kind": "fusion",
        "pool_cost": 10,
        "stability_cost": 10,
        "completion": {"amount": 0.5, "stat": "intensity"},
        "perfection": {"amount": 0.5, "stat": "control"},
        "consumes_buffs": True,
    },
    {
        "key": "cycling_refine",
        "name": "Cycling Refine",
        "kind": "refine",
        "pool_cost": 10,
        "stability_cost": 10,
        "perfection": {"amount": 0.75, "stat": "control"},
        "buff_grant": {"kind": "intensity", "duration": 2, "multiplier": 1.4},
    },
    {
        "key": "simple_refine",
        "name": "Simple Refine",
        "kind": "refine",
        "pool_cost": 18,
        "stability_cost": 10,
        "perfection": {"amount": 1.0, "stat": "control"},
    },
    {
        "key": "stabilize",
        "name": "Stabilize",
        "kind": "stabilize",
        "pool_cost": 10,
        "stability_cost": 0,
        "stability_gain": 20,
        "prevents_decay": True,
    },
]

STARTER_KEYS = ("simple_fusion", "simple_refine", "stabilize")


def default_catalog(
    control: float | None = None,
    intensity: float | None = None,
    keys: tuple[str, ...] | None = None,
) -> Catalog:
    """
    Build a catalog from the default technique set.

    Args:
        control: Override the control stat
        intensity: Override the intensity stat
        keys: Restrict to these action keys, in this order
    """
    stats = dict(DEFAULT_STATS)
    if control is not None:
        stats["control"] = control
    if intensity is not None:
        stats["intensity"] = intensity

    actions = deepcopy(DEFAULT_ACTIONS)
    if keys is not None:
        by_key = {a["key"]: a for a in actions}
        actions = [by_key[k] for k in keys]

    return load_catalog({"stats": stats, "actions": actions})


def starter_catalog(control: float | None = None, intensity: float | None = None) -> Catalog:
    """The three-technique starter set."""
    return default_catalog(control=control, intensity=intensity, keys=STARTER_KEYS)
