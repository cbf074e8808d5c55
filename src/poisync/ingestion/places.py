"""Places API feature -> PointOfInterest conversion."""

from __future__ import annotations

import logging
from collections.abc import Iterable
from datetime import datetime
from typing import Any

from pydantic import ValidationError

from poisync._constants import REMOTE_ID_PREFIX, UNNAMED_PLACE
from poisync.ingestion.normalize import first_supported_category
from poisync.models._base import utcnow
from poisync.models.location import Coordinate
from poisync.models.places import PlaceFeature
from poisync.models.poi import PointOfInterest, PoiSource

_logger = logging.getLogger(__name__)


def remote_poi_id(remote_id: str) -> str:
    """Deterministic POI id for a remote place (stable across fetches)."""
    return f"{REMOTE_ID_PREFIX}{remote_id}"


def parse_features(payload: Any, *, category: str = "") -> list[PlaceFeature]:
    """Parse the ``features`` list of a ``FeatureCollection`` payload.

    Malformed individual features are skipped; a payload that is not a
    mapping or lacks a ``features`` list yields an empty list.
    """
    if not isinstance(payload, dict):
        return []
    raw_features = payload.get("features")
    if not isinstance(raw_features, list):
        return []

    features: list[PlaceFeature] = []
    for raw in raw_features:
        try:
            features.append(PlaceFeature.model_validate(raw))
        except ValidationError:
            _logger.debug("Skipping malformed feature for category=%s", category, exc_info=True)
    return features


def feature_to_poi(
    feature: PlaceFeature,
    supported: tuple[str, ...] | frozenset[str],
    *,
    now: datetime | None = None,
) -> PointOfInterest | None:
    """Normalize *feature* into a remote POI.

    Returns ``None`` when the feature cannot be represented: it has no remote
    identifier or position, or none of its categories falls under a
    supported root.
    """
    if not feature.place_id or not feature.has_position:
        return None
    category = first_supported_category(feature.categories, supported)
    if category is None:
        return None
    try:
        coordinate = Coordinate(latitude=feature.latitude, longitude=feature.longitude)
    except ValidationError:
        return None

    return PointOfInterest(
        id=remote_poi_id(feature.place_id),
        name=feature.name or feature.formatted or UNNAMED_PLACE,
        coordinate=coordinate,
        category=category,
        is_visible=True,
        created_at=now or utcnow(),
        source=PoiSource.REMOTE,
        address=feature.formatted,
        remote_id=feature.place_id,
    )


def dedupe_by_remote_id(pois: Iterable[PointOfInterest]) -> list[PointOfInterest]:
    """Keep the first POI for each remote identifier, preserving order."""
    seen: set[str] = set()
    unique: list[PointOfInterest] = []
    for poi in pois:
        key = poi.remote_id or poi.id
        if key in seen:
            continue
        seen.add(key)
        unique.append(poi)
    return unique
