"""Normalization helpers.

Centralizes defensive parsing of loosely-typed payload values.
"""

from __future__ import annotations

import math
from typing import Any


def safe_float(value: Any) -> float | None:
    if value is None or value == "":
        return None
    if isinstance(value, bool):
        return None
    try:
        result = float(value)
    except (TypeError, ValueError):
        return None
    if math.isnan(result) or math.isinf(result):
        return None
    return result


def safe_str(value: Any) -> str | None:
    if value is None:
        return None
    text = str(value)
    return text if text else None


def matches_category(category: str, supported: str) -> bool:
    """Hierarchical category match: equal, or a dotted sub-category of *supported*."""
    return category == supported or category.startswith(supported + ".")


def first_supported_category(categories: list[str], supported: tuple[str, ...] | frozenset[str]) -> str | None:
    """Return the first of *categories* that matches any supported root."""
    for category in categories:
        if any(matches_category(category, root) for root in supported):
            return category
    return None
