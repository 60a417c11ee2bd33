"""Action catalogs - raw schema, validation and built-in technique sets."""

from .schema import CatalogSchema, ActionEntrySchema, StatsSchema
from .loader import load_catalog, dump_catalog
from .defaults import (
    DEFAULT_ACTIONS,
    DEFAULT_MAX_STABILITY,
    DEFAULT_POOL_MAX,
    default_catalog,
    starter_catalog,
)

__all__ = [
    "CatalogSchema",
    "ActionEntrySchema",
    "StatsSchema",
    "load_catalog",
    "dump_catalog",
    "DEFAULT_ACTIONS",
    "DEFAULT_MAX_STABILITY",
    "DEFAULT_POOL_MAX",
    "default_catalog",
    "starter_catalog",
]
