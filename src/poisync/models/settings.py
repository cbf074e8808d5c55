"""User settings model."""

from __future__ import annotations

from enum import StrEnum
from typing import Any, ClassVar

from pydantic import Field, field_serializer, field_validator
from pydantic.alias_generators import to_camel

from poisync._constants import SUPPORTED_CATEGORIES
from poisync.models._base import PoiSyncBaseModel


class MapType(StrEnum):
    STANDARD = "standard"
    SATELLITE = "satellite"
    HYBRID = "hybrid"


class Settings(PoiSyncBaseModel):
    """User-editable settings.

    ``search_radius_meters`` and ``categories`` parameterize each fetch;
    ``fetch_trigger_distance_meters`` is the movement threshold that makes a
    new fetch due.  ``auto_save`` turns store persistence on mutation on or off.
    """

    _KEY_ALIASES: ClassVar[dict[str, str]] = {
        "searchRadius": "searchRadiusMeters",
        "poiFetchDistance": "fetchTriggerDistanceMeters",
        "poiCategories": "categories",
        "defaultMapType": "mapType",
        "autoSaveChanges": "autoSave",
    }

    search_radius_meters: float = Field(default=1000.0, gt=0.0, allow_inf_nan=False)
    fetch_trigger_distance_meters: float = Field(default=500.0, ge=0.0, allow_inf_nan=False)
    categories: frozenset[str] = Field(default_factory=lambda: frozenset(SUPPORTED_CATEGORIES))
    map_type: MapType = MapType.STANDARD
    auto_save: bool = True
    enable_notifications: bool = True

    @field_validator("categories", mode="before")
    @classmethod
    def _strip_categories(cls, value: Any) -> Any:
        if isinstance(value, str):
            value = value.split(",")
        if isinstance(value, (list, tuple, set, frozenset)):
            return frozenset(str(item).strip() for item in value if str(item).strip())
        return value

    @field_serializer("categories")
    def _serialize_categories(self, value: frozenset[str]) -> list[str]:
        return sorted(value)

    @classmethod
    def accepted_keys(cls) -> frozenset[str]:
        """Field names, their camelCase aliases and the legacy key names."""
        names = set(cls.model_fields)
        return frozenset(names | {to_camel(name) for name in names} | set(cls._KEY_ALIASES))

    def merged(self, **changes: Any) -> Settings:
        """Return a validated copy with *changes* applied (snake_case or camelCase keys).

        Raises
        ------
        ValueError
            A key is not a settings field; nothing is silently dropped.
        """
        unknown = sorted(set(changes) - self.accepted_keys())
        if unknown:
            raise ValueError(f"Unknown settings: {unknown}")
        data = self.model_dump()
        data.update(changes)
        return Settings.model_validate(data)
