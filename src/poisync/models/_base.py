"""Base model shared by every poisync data model.

Every model inherits from :class:`PoiSyncBaseModel` which provides:

* ``alias_generator=to_camel`` so persisted blobs use camelCase keys
  (``isVisible``, ``createdAt``) while attributes stay snake_case.
* A ``model_validator(mode="before")`` that applies per-class key
  aliases (older storage layouts) and drops empty placeholders
  (``None``, ``""``, NaN) so the field default is used instead.
"""

from __future__ import annotations

import math
from datetime import UTC, datetime
from typing import Any, ClassVar

from pydantic import BaseModel, ConfigDict, model_validator
from pydantic.alias_generators import to_camel


def utcnow() -> datetime:
    return datetime.now(UTC)


def ensure_aware(value: datetime) -> datetime:
    """Treat naive datetimes as UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value


class PoiSyncBaseModel(BaseModel):
    """Frozen camelCase-aliased model with placeholder cleaning."""

    _KEY_ALIASES: ClassVar[dict[str, str]] = {}
    """``{"oldKey": "newKey"}`` renames applied before validation."""

    model_config = ConfigDict(
        frozen=True,
        extra="ignore",
        populate_by_name=True,
        alias_generator=to_camel,
    )

    @staticmethod
    def _clean_dict(values: dict[str, Any], aliases: dict[str, str] | None = None) -> dict[str, Any]:
        working = dict(values)
        if aliases:
            for old_key, new_key in aliases.items():
                if old_key in working and new_key not in working:
                    working[new_key] = working.pop(old_key)

        cleaned: dict[str, Any] = {}
        for key, value in working.items():
            if value is None:
                continue
            if isinstance(value, str) and not value.strip():
                continue
            if isinstance(value, float) and math.isnan(value):
                continue
            cleaned[key] = value
        return cleaned

    @model_validator(mode="before")
    @classmethod
    def _clean_values(cls, values: Any) -> Any:
        if not isinstance(values, dict):
            return values
        aliases: dict[str, str] = getattr(cls, "_KEY_ALIASES", {})
        return PoiSyncBaseModel._clean_dict(values, aliases)
