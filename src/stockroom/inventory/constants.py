from __future__ import annotations

from typing import Tuple

from ..domain.models import DEFAULT_CATEGORY, DEFAULT_MIN_STOCK

# Activity log entry types.
ACTIVITY_IN = "IN"
ACTIVITY_OUT = "OUT"
ACTIVITY_ADJUSTMENT = "ADJUSTMENT"
ACTIVITY_IMPORT = "IMPORT"

ACTIVITY_TYPES: Tuple[str, ...] = (
    ACTIVITY_IN,
    ACTIVITY_OUT,
    ACTIVITY_ADJUSTMENT,
    ACTIVITY_IMPORT,
)

# Placeholder stored when an invoice carries no tax identifier.
NO_RIF = "N/A"

UNKNOWN_PRODUCT_NAME = "Unknown product"
UNCATEGORIZED = "Uncategorized"

__all__ = [
    "ACTIVITY_IN",
    "ACTIVITY_OUT",
    "ACTIVITY_ADJUSTMENT",
    "ACTIVITY_IMPORT",
    "ACTIVITY_TYPES",
    "DEFAULT_CATEGORY",
    "DEFAULT_MIN_STOCK",
    "NO_RIF",
    "UNKNOWN_PRODUCT_NAME",
    "UNCATEGORIZED",
]
