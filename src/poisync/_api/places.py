"""Places endpoint.

Endpoint:
  - GET /places?categories=<cat>&filter=rect:<bbox>&limit=<n>&apiKey=<key>

One query is issued per category; per-category failures are isolated so a
single failing category never aborts the whole fetch.
"""

from __future__ import annotations

import asyncio
import logging
from collections import Counter
from collections.abc import Iterable

from poisync._constants import PLACES_ENDPOINT
from poisync._transport import Transport
from poisync.config import PoiSyncConfig
from poisync.exceptions import PoiSyncConfigError, PoiSyncError, PoiSyncUpstreamError
from poisync.geo import BoundingBox, bounding_box
from poisync.ingestion.places import dedupe_by_remote_id, feature_to_poi, parse_features
from poisync.models._base import utcnow
from poisync.models.location import Coordinate
from poisync.models.places import PlaceFeature
from poisync.models.poi import PointOfInterest

_logger = logging.getLogger(__name__)


def build_places_params(
    config: PoiSyncConfig,
    category: str,
    bbox: BoundingBox,
    limit: int,
) -> dict[str, str]:
    """Build the query parameters for one per-category request."""
    return {
        "categories": category,
        "filter": bbox.to_rect_filter(),
        "limit": str(limit),
        "apiKey": config.api_key,
    }


async def fetch_category_features(
    config: PoiSyncConfig,
    transport: Transport,
    category: str,
    bbox: BoundingBox,
    *,
    limit: int,
) -> list[PlaceFeature]:
    """Fetch raw features for a single category inside *bbox*."""
    params = build_places_params(config, category, bbox, limit)
    payload = await transport.get_json(PLACES_ENDPOINT, params)
    if not isinstance(payload, dict) or not isinstance(payload.get("features"), list):
        raise PoiSyncUpstreamError(
            f"{PLACES_ENDPOINT} returned no feature collection for category={category}",
            status_code=200,
            endpoint=PLACES_ENDPOINT,
        )
    return parse_features(payload, category=category)


async def fetch_nearby(
    config: PoiSyncConfig,
    transport: Transport,
    center: Coordinate,
    radius_meters: float,
    categories: Iterable[str],
    *,
    limit: int | None = None,
) -> list[PointOfInterest]:
    """Fetch remote POIs around *center* for every category.

    Parameters
    ----------
    config : PoiSyncConfig
        Library configuration (API key, supported categories, pacing).
    transport : Transport
        HTTP transport.
    center : Coordinate
        Search center.
    radius_meters : float
        Search radius; the query area is the enclosing bounding box.
    categories : iterable of str
        Categories to query, one request each, in order.  Sets are
        queried in sorted order.
    limit : int or None
        Requested results per category, capped at
        ``config.max_results_per_category``.

    Returns
    -------
    list of PointOfInterest
        Remote POIs deduplicated by remote identifier (first occurrence
        wins).  Empty when every category failed.

    Raises
    ------
    PoiSyncConfigError
        No categories were given, so no request can be attempted.
    """
    if isinstance(categories, (set, frozenset)):
        # Unordered input: request order (and so dedup precedence) must not depend on hashing.
        categories = sorted(categories)
    ordered = list(dict.fromkeys(c.strip() for c in categories if c and c.strip()))
    if not ordered:
        raise PoiSyncConfigError("No POI categories configured")

    per_category = config.max_results_per_category
    if limit is not None:
        per_category = max(1, min(limit, per_category))

    bbox = bounding_box(center, radius_meters)
    supported = config.supported_categories

    _logger.debug(
        "Fetching POIs center=%s radius=%.0fm categories=%s",
        center,
        radius_meters,
        ordered,
    )

    collected: list[PointOfInterest] = []
    for index, category in enumerate(ordered):
        if index > 0 and config.category_delay > 0:
            await asyncio.sleep(config.category_delay)
        try:
            features = await fetch_category_features(config, transport, category, bbox, limit=per_category)
        except PoiSyncError as exc:
            _logger.warning("Fetching category %s failed: %s", category, exc)
            continue

        now = utcnow()
        converted = [poi for poi in (feature_to_poi(f, supported, now=now) for f in features) if poi is not None]
        _logger.debug(
            "category=%s features=%d kept=%d",
            category,
            len(features),
            len(converted),
        )
        collected.extend(converted)

    unique = dedupe_by_remote_id(collected)
    if _logger.isEnabledFor(logging.DEBUG):
        by_category = Counter(poi.category for poi in unique)
        _logger.debug(
            "Fetched %d unique POIs (%d before dedup): %s",
            len(unique),
            len(collected),
            dict(by_category),
        )
    return unique
