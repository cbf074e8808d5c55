"""High-level async client for the remote places API."""

from __future__ import annotations

import logging
from collections.abc import Iterable
from typing import Any

import aiohttp

from poisync._api import places as _places_api
from poisync._transport import HttpTransport, Transport
from poisync.config import PoiSyncConfig
from poisync.exceptions import PoiSyncConfigError, PoiSyncError
from poisync.geo import bounding_box
from poisync.models.location import Coordinate
from poisync.models.poi import PointOfInterest

_logger = logging.getLogger(__name__)

# Reference point used by test_connection().
_PROBE_CENTER = Coordinate(latitude=48.1351, longitude=11.5820)


class PlacesClient:
    """Async client for category-scoped nearby-place queries.

    Usage::

        async with PlacesClient(config) as client:
            pois = await client.fetch_nearby(center, 1000, {"tourism.attraction"})
    """

    def __init__(
        self,
        config: PoiSyncConfig,
        *,
        session: aiohttp.ClientSession | None = None,
        transport: Transport | None = None,
    ) -> None:
        self._config = config
        self._external_session = session is not None
        self._http_session = session
        self._transport: Transport | None = transport

    # ------------------------------------------------------------------
    # Context manager lifecycle
    # ------------------------------------------------------------------

    async def __aenter__(self) -> PlacesClient:
        if not self._config.api_key:
            raise PoiSyncConfigError("A places API key is required (set POISYNC_API_KEY)")
        if self._transport is None:
            if self._http_session is None:
                self._http_session = aiohttp.ClientSession()
            self._transport = HttpTransport(self._config, self._http_session)
        return self

    async def __aexit__(self, *exc: Any) -> None:
        if not self._external_session and self._http_session is not None:
            await self._http_session.close()
            self._http_session = None
            self._transport = None

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _require_transport(self) -> Transport:
        if self._transport is None:
            raise PoiSyncError("Client not initialized. Use 'async with PlacesClient(...) as client:'")
        return self._transport

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    @property
    def supported_categories(self) -> tuple[str, ...]:
        """Category roots accepted from the remote API."""
        return self._config.supported_categories

    async def fetch_nearby(
        self,
        center: Coordinate,
        radius_meters: float,
        categories: Iterable[str],
        *,
        limit: int | None = None,
    ) -> list[PointOfInterest]:
        """Fetch remote POIs within *radius_meters* of *center*.

        One request per category, sequentially.  Failures of single
        categories are logged and skipped; the result is deduplicated by
        remote identifier.
        """
        transport = self._require_transport()
        return await _places_api.fetch_nearby(
            self._config,
            transport,
            center,
            radius_meters,
            categories,
            limit=limit,
        )

    async def test_connection(self) -> bool:
        """Probe the API with a single-result query; ``True`` when it answers."""
        transport = self._require_transport()
        bbox = bounding_box(_PROBE_CENTER, 1000.0)
        try:
            await _places_api.fetch_category_features(
                self._config,
                transport,
                next(iter(self._config.supported_categories), "tourism"),
                bbox,
                limit=1,
            )
        except PoiSyncError:
            _logger.debug("Places API connection test failed", exc_info=True)
            return False
        return True
