"""Coordinate and location observation models."""

from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import Field, field_validator, model_validator

from poisync.models._base import PoiSyncBaseModel, ensure_aware, utcnow


class Coordinate(PoiSyncBaseModel):
    """A latitude/longitude pair in decimal degrees (value type)."""

    latitude: float = Field(ge=-90.0, le=90.0, allow_inf_nan=False)
    longitude: float = Field(ge=-180.0, le=180.0, allow_inf_nan=False)

    def __str__(self) -> str:
        return f"{self.latitude:.4f},{self.longitude:.4f}"


class Location(PoiSyncBaseModel):
    """One observed position of the tracked observer.

    Parameters
    ----------
    coordinate : Coordinate
        Observed position.
    accuracy : float or None
        Horizontal accuracy radius in meters, when the provider reports one.
    timestamp : datetime
        Time of the observation (tz-aware, defaults to now).
    """

    coordinate: Coordinate
    accuracy: float | None = Field(default=None, ge=0.0)
    timestamp: datetime = Field(default_factory=utcnow)

    @model_validator(mode="before")
    @classmethod
    def _nest_flat_coordinate(cls, values: Any) -> Any:
        # Providers commonly emit flat {latitude, longitude, accuracy, timestamp}.
        if not isinstance(values, dict) or "coordinate" in values:
            return values
        if "latitude" in values and "longitude" in values:
            merged = dict(values)
            merged["coordinate"] = {
                "latitude": merged.pop("latitude"),
                "longitude": merged.pop("longitude"),
            }
            return merged
        return values

    @field_validator("timestamp")
    @classmethod
    def _ensure_tz_aware(cls, value: datetime) -> datetime:
        return ensure_aware(value)

    @classmethod
    def at(
        cls,
        latitude: float,
        longitude: float,
        *,
        accuracy: float | None = None,
        timestamp: datetime | None = None,
    ) -> Location:
        """Shorthand constructor from bare degrees."""
        values: dict[str, Any] = {
            "coordinate": Coordinate(latitude=latitude, longitude=longitude),
            "accuracy": accuracy,
        }
        if timestamp is not None:
            values["timestamp"] = timestamp
        return cls.model_validate(values)

    @property
    def latitude(self) -> float:
        return self.coordinate.latitude

    @property
    def longitude(self) -> float:
        return self.coordinate.longitude
