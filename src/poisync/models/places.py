"""Raw places API feature model.

The places API answers with a GeoJSON ``FeatureCollection``; each feature
looks like::

    {
      "type": "Feature",
      "properties": {
        "name": "...", "formatted": "...",
        "categories": ["tourism", "tourism.attraction"],
        "place_id": "51a0..."
      },
      "geometry": {"type": "Point", "coordinates": [lon, lat]}
    }

:class:`PlaceFeature` flattens that shape.  Normalization into the internal
:class:`~poisync.models.poi.PointOfInterest` lives in ``poisync._api.places``.
"""

from __future__ import annotations

from typing import Any

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator, model_validator

from poisync.ingestion.normalize import safe_float, safe_str


class PlaceFeature(BaseModel):
    """One place returned by the remote API.

    Parameters
    ----------
    place_id : str or None
        Remote identifier (``properties.place_id``, falling back to the
        feature-level ``place_id``).
    name : str or None
        Place name.
    formatted : str or None
        Formatted address line.
    categories : list of str
        Dotted category paths reported for the place.
    latitude, longitude : float or None
        Position taken from ``geometry.coordinates`` (``[lon, lat]``) or
        ``properties.lat``/``properties.lon``.
    raw : dict
        The feature as received.
    """

    model_config = ConfigDict(
        frozen=True,
        extra="ignore",
        populate_by_name=True,
    )

    place_id: str | None = Field(default=None, validation_alias=AliasChoices("place_id", "placeId"))
    name: str | None = None
    formatted: str | None = Field(default=None, validation_alias=AliasChoices("formatted", "address_line1"))
    categories: list[str] = Field(default_factory=list)
    latitude: float | None = Field(default=None, validation_alias=AliasChoices("latitude", "lat"))
    longitude: float | None = Field(default=None, validation_alias=AliasChoices("longitude", "lon", "lng"))
    raw: dict[str, Any] = Field(default_factory=dict)

    @model_validator(mode="before")
    @classmethod
    def _flatten_geojson(cls, values: Any) -> Any:
        if not isinstance(values, dict):
            return values
        properties = values.get("properties")
        if isinstance(properties, dict):
            merged: dict[str, Any] = dict(properties)
        else:
            merged = {k: v for k, v in values.items() if k not in ("geometry", "type")}
        if not merged.get("place_id") and values.get("place_id") is not None:
            merged["place_id"] = values["place_id"]

        geometry = values.get("geometry")
        if isinstance(geometry, dict):
            coords = geometry.get("coordinates")
            if isinstance(coords, (list, tuple)) and len(coords) >= 2:
                merged["longitude"] = coords[0]
                merged["latitude"] = coords[1]

        merged.setdefault("raw", values)
        return merged

    @field_validator("latitude", "longitude", mode="before")
    @classmethod
    def _coerce_floats(cls, value: Any) -> float | None:
        return safe_float(value)

    @field_validator("place_id", "name", "formatted", mode="before")
    @classmethod
    def _coerce_strings(cls, value: Any) -> str | None:
        text = safe_str(value)
        if text is None:
            return None
        return text.strip() or None

    @field_validator("categories", mode="before")
    @classmethod
    def _coerce_categories(cls, value: Any) -> list[str]:
        if value is None:
            return []
        if isinstance(value, str):
            return [value]
        if isinstance(value, (list, tuple)):
            return [str(item) for item in value if item]
        return []

    @property
    def has_position(self) -> bool:
        return self.latitude is not None and self.longitude is not None
