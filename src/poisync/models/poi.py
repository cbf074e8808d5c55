"""Point-of-interest model."""

from __future__ import annotations

from datetime import datetime
from enum import StrEnum
from typing import Any, ClassVar

from pydantic import Field, field_validator, model_validator

from poisync.models._base import PoiSyncBaseModel, ensure_aware, utcnow
from poisync.models.location import Coordinate


class PoiSource(StrEnum):
    MANUAL = "manual"
    REMOTE = "remote"


class PointOfInterest(PoiSyncBaseModel):
    """A named, categorized location, either user-created or fetched.

    Parameters
    ----------
    id : str
        Identifier, unique across manual and remote POIs.
    name : str
        Display name.
    coordinate : Coordinate
        Position of the place.
    category : str
        Dotted category path (``tourism.attraction``).
    is_visible : bool
        Whether the POI is shown.
    created_at : datetime
        Creation time (fetch time for remote POIs).
    source : PoiSource
        ``manual`` for user-created entries, ``remote`` for fetched ones.
    address : str or None
        Formatted address, when known.
    remote_id : str or None
        The places API identifier.  Required for remote POIs; it is the
        deduplication key across a fetch cycle.
    """

    _KEY_ALIASES: ClassVar[dict[str, str]] = {"placeId": "remoteId"}

    id: str = Field(min_length=1)
    name: str
    coordinate: Coordinate
    category: str = "unknown"
    is_visible: bool = True
    created_at: datetime = Field(default_factory=utcnow)
    source: PoiSource = PoiSource.MANUAL
    address: str | None = None
    remote_id: str | None = None

    @model_validator(mode="before")
    @classmethod
    def _normalize_legacy_layout(cls, values: Any) -> Any:
        if not isinstance(values, dict):
            return values
        # Older stored blobs name the provider instead of the source kind.
        if str(values.get("source", "")).lower() == "geoapify":
            values = {**values, "source": PoiSource.REMOTE.value}
        if "coordinate" in values:
            return values
        if "latitude" in values and "longitude" in values:
            merged = dict(values)
            merged["coordinate"] = {
                "latitude": merged.pop("latitude"),
                "longitude": merged.pop("longitude"),
            }
            return merged
        return values

    @field_validator("created_at")
    @classmethod
    def _ensure_tz_aware(cls, value: datetime) -> datetime:
        return ensure_aware(value)

    @model_validator(mode="after")
    def _remote_requires_remote_id(self) -> PointOfInterest:
        if self.source == PoiSource.REMOTE and not self.remote_id:
            raise ValueError("remote POIs must carry a remote_id")
        return self

    @property
    def is_remote(self) -> bool:
        return self.source == PoiSource.REMOTE

    @property
    def latitude(self) -> float:
        return self.coordinate.latitude

    @property
    def longitude(self) -> float:
        return self.coordinate.longitude
