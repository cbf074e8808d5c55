"""Data models for poisync."""

from poisync.models.location import Coordinate, Location
from poisync.models.places import PlaceFeature
from poisync.models.poi import PointOfInterest, PoiSource
from poisync.models.settings import MapType, Settings

__all__ = [
    "Coordinate",
    "Location",
    "MapType",
    "PlaceFeature",
    "PoiSource",
    "PointOfInterest",
    "Settings",
]
