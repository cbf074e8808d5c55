"""In-memory POI store with best-effort durable persistence.

This is the only component allowed to mutate settings and POI lists.  Every
mutation is synchronous and immediately visible to subsequent reads.
"""

from __future__ import annotations

import json
import logging
import secrets
from collections.abc import Callable, Iterable, Mapping
from datetime import datetime
from typing import Any

from pydantic import TypeAdapter, ValidationError

from poisync._constants import MANUAL_ID_PREFIX, STORAGE_KEY_POIS, STORAGE_KEY_SETTINGS, STORAGE_KEYS
from poisync.geo import distance_meters
from poisync.ingestion.places import dedupe_by_remote_id
from poisync.models._base import utcnow
from poisync.models.location import Coordinate, Location
from poisync.models.poi import PointOfInterest, PoiSource
from poisync.models.settings import Settings
from poisync.persistence import DurableStore
from poisync.state.events import StoreChange

_logger = logging.getLogger(__name__)

_POI_LIST = TypeAdapter(list[PointOfInterest])

# Fields that identify a POI; update_poi() refuses to change them.
_IMMUTABLE_POI_FIELDS = frozenset({"id", "source", "remote_id", "remoteId"})

StoreListener = Callable[[StoreChange], None]


def _new_manual_id(now: datetime) -> str:
    return f"{MANUAL_ID_PREFIX}{int(now.timestamp() * 1000)}_{secrets.token_hex(5)}"


class PoiStore:
    """Holds settings, manual POIs, remote POIs and the last known location.

    Parameters
    ----------
    durable : DurableStore or None
        Persistence adapter.  ``None`` disables persistence entirely.
    settings : Settings or None
        Initial settings (defaults when omitted).
    clock : callable
        Returns the current tz-aware time; used for manual POI creation.
    """

    def __init__(
        self,
        durable: DurableStore | None = None,
        *,
        settings: Settings | None = None,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self._durable = durable
        self._clock = clock
        self._settings = settings or Settings()
        self._manual: list[PointOfInterest] = []
        self._remote: list[PointOfInterest] = []
        self._last_location: Location | None = None
        self._listeners: list[StoreListener] = []

    # ------------------------------------------------------------------
    # Change notification
    # ------------------------------------------------------------------

    def subscribe(self, listener: StoreListener) -> Callable[[], None]:
        """Register *listener* for every mutation; returns an unsubscribe callable."""
        self._listeners.append(listener)

        def _unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _unsubscribe

    def _mutated(self, change: StoreChange) -> None:
        """On-mutation hook: auto-save, then notify listeners."""
        if change not in (StoreChange.LOCATION, StoreChange.LOADED, StoreChange.RESET) and self._settings.auto_save:
            self.save()
        for listener in list(self._listeners):
            try:
                listener(change)
            except Exception:
                _logger.warning("Store listener failed for change=%s", change, exc_info=True)

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    @property
    def settings(self) -> Settings:
        return self._settings

    @property
    def last_location(self) -> Location | None:
        return self._last_location

    @property
    def manual_pois(self) -> tuple[PointOfInterest, ...]:
        return tuple(self._manual)

    @property
    def remote_pois(self) -> tuple[PointOfInterest, ...]:
        return tuple(self._remote)

    def all_pois(self) -> list[PointOfInterest]:
        """Manual POIs followed by remote POIs, each in insertion order."""
        return [*self._manual, *self._remote]

    def visible_pois(self) -> list[PointOfInterest]:
        return [poi for poi in self.all_pois() if poi.is_visible]

    def pois_by_category(self, category: str) -> list[PointOfInterest]:
        return [poi for poi in self.all_pois() if poi.category == category]

    def get_poi(self, poi_id: str) -> PointOfInterest | None:
        for poi in self.all_pois():
            if poi.id == poi_id:
                return poi
        return None

    def categories(self) -> list[str]:
        """Distinct categories across all POIs, in first-seen order."""
        return list(dict.fromkeys(poi.category for poi in self.all_pois()))

    def category_count(self, category: str) -> int:
        return len(self.pois_by_category(category))

    def visible_category_count(self, category: str) -> int:
        return sum(1 for poi in self.pois_by_category(category) if poi.is_visible)

    def search_by_radius(self, center: Coordinate, radius_meters: float | None = None) -> list[PointOfInterest]:
        """Visible POIs within *radius_meters* of *center* (defaults to the search radius)."""
        radius = radius_meters if radius_meters is not None else self._settings.search_radius_meters
        return [poi for poi in self.visible_pois() if distance_meters(center, poi.coordinate) <= radius]

    def search_by_name(self, query: str) -> list[PointOfInterest]:
        """Visible POIs whose name contains *query*, case-insensitively."""
        needle = query.casefold()
        return [poi for poi in self.visible_pois() if needle in poi.name.casefold()]

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    def add_manual_poi(self, poi: PointOfInterest) -> PointOfInterest:
        """Append a user-created POI.

        Raises
        ------
        ValueError
            *poi* is not a manual POI or its id is already taken.
        """
        if poi.source != PoiSource.MANUAL:
            raise ValueError(f"add_manual_poi expects a manual POI, got source={poi.source}")
        if self.get_poi(poi.id) is not None:
            raise ValueError(f"POI id already exists: {poi.id}")
        self._manual.append(poi)
        self._mutated(StoreChange.MANUAL_POIS)
        return poi

    def create_manual_poi(
        self,
        name: str,
        coordinate: Coordinate,
        category: str,
        *,
        is_visible: bool = True,
        address: str | None = None,
    ) -> PointOfInterest:
        """Build a manual POI with a generated id and creation time, then add it."""
        now = self._clock()
        poi_id = _new_manual_id(now)
        while self.get_poi(poi_id) is not None:
            poi_id = _new_manual_id(now)
        poi = PointOfInterest(
            id=poi_id,
            name=name,
            coordinate=coordinate,
            category=category,
            is_visible=is_visible,
            created_at=now,
            source=PoiSource.MANUAL,
            address=address,
        )
        return self.add_manual_poi(poi)

    def remove_manual_poi(self, poi_id: str) -> bool:
        """Remove a manual POI; ``False`` when no manual POI has that id."""
        for index, poi in enumerate(self._manual):
            if poi.id == poi_id:
                del self._manual[index]
                self._mutated(StoreChange.MANUAL_POIS)
                return True
        return False

    def _replace_poi(
        self,
        poi_id: str,
        build: Callable[[PointOfInterest], PointOfInterest],
        change: StoreChange | None = None,
    ) -> PointOfInterest | None:
        buckets = ((self._manual, StoreChange.MANUAL_POIS), (self._remote, StoreChange.REMOTE_POIS))
        for bucket, bucket_change in buckets:
            for index, poi in enumerate(bucket):
                if poi.id == poi_id:
                    updated = build(poi)
                    bucket[index] = updated
                    self._mutated(change or bucket_change)
                    return updated
        return None

    def update_poi(self, poi_id: str, **changes: Any) -> PointOfInterest | None:
        """Apply *changes* to the POI with *poi_id* (manual or remote).

        Returns the updated POI, or ``None`` when the id is unknown.

        Raises
        ------
        ValueError
            *changes* touch an identifying field or fail validation.
        """
        forbidden = _IMMUTABLE_POI_FIELDS.intersection(changes)
        if forbidden:
            raise ValueError(f"Cannot change identifying fields: {sorted(forbidden)}")

        def _build(poi: PointOfInterest) -> PointOfInterest:
            data = poi.model_dump()
            data.update(changes)
            return PointOfInterest.model_validate(data)

        return self._replace_poi(poi_id, _build)

    def set_visibility(self, poi_id: str, visible: bool) -> bool:
        """Show or hide a POI; ``False`` when the id is unknown."""
        updated = self._replace_poi(
            poi_id,
            lambda poi: poi.model_copy(update={"is_visible": visible}),
            StoreChange.VISIBILITY,
        )
        return updated is not None

    def toggle_visibility(self, poi_id: str) -> bool | None:
        """Flip visibility; returns the new value, or ``None`` for an unknown id."""
        poi = self.get_poi(poi_id)
        if poi is None:
            return None
        self.set_visibility(poi_id, not poi.is_visible)
        return not poi.is_visible

    def replace_remote_pois(self, pois: Iterable[PointOfInterest]) -> None:
        """Replace the whole remote POI set with *pois*.

        Entries repeating a remote identifier, or clashing with a manual POI
        id, are dropped so the id and remote-id invariants always hold.

        Raises
        ------
        ValueError
            One of *pois* is not a remote POI.
        """
        incoming = list(pois)
        for poi in incoming:
            if poi.source != PoiSource.REMOTE:
                raise ValueError(f"replace_remote_pois expects remote POIs, got {poi.id} source={poi.source}")

        manual_ids = {poi.id for poi in self._manual}
        unique: list[PointOfInterest] = []
        for poi in dedupe_by_remote_id(incoming):
            if poi.id in manual_ids:
                _logger.warning("Dropping remote POI %s: id clashes with a manual POI", poi.id)
                continue
            unique.append(poi)

        self._remote = unique
        _logger.debug("Remote POIs replaced: %d entries", len(unique))
        self._mutated(StoreChange.REMOTE_POIS)

    def update_settings(self, **changes: Any) -> Settings:
        """Merge *changes* into the settings and return the new value.

        Raises
        ------
        ValueError
            A key is not a settings field, or the merged settings are invalid
            (``pydantic.ValidationError``); the current settings are kept.
        """
        self._settings = self._settings.merged(**changes)
        self._mutated(StoreChange.SETTINGS)
        return self._settings

    def update_location(self, location: Location) -> None:
        """Record the most recent observation; never persisted."""
        self._last_location = location
        self._mutated(StoreChange.LOCATION)

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    def save(self) -> bool:
        """Persist settings and manual POIs; ``False`` when persistence failed.

        Remote POIs are fetch-cycle ephemeral and never persisted.  Adapter
        failures of any kind are logged; in-memory state is never affected.
        """
        if self._durable is None:
            return False
        try:
            self._durable.save(STORAGE_KEY_SETTINGS, self._settings.model_dump_json(by_alias=True))
            self._durable.save(STORAGE_KEY_POIS, _POI_LIST.dump_json(self._manual, by_alias=True).decode("utf-8"))
        except Exception:
            _logger.warning("Failed to persist store state", exc_info=True)
            return False
        return True

    def _load_blob(self, key: str) -> str | None:
        assert self._durable is not None  # noqa: S101
        try:
            return self._durable.load(key)
        except Exception:
            _logger.warning("Failed to load %s from durable storage", key, exc_info=True)
            return None

    def _parse_settings(self, blob: str | None) -> Settings:
        if blob is None:
            return Settings()
        try:
            return Settings.model_validate_json(blob)
        except ValidationError:
            _logger.warning("Stored settings are invalid; using defaults", exc_info=True)
            return Settings()

    def _parse_pois(self, blob: str | None) -> list[PointOfInterest]:
        if blob is None:
            return []
        try:
            items = json.loads(blob)
        except json.JSONDecodeError:
            _logger.warning("Stored POIs are not JSON; starting empty")
            return []
        if not isinstance(items, list):
            return []

        pois: list[PointOfInterest] = []
        seen: set[str] = set()
        for item in items:
            try:
                poi = PointOfInterest.model_validate(item)
            except ValidationError:
                _logger.debug("Skipping invalid stored POI: %r", item, exc_info=True)
                continue
            if poi.source != PoiSource.MANUAL or poi.id in seen:
                continue
            seen.add(poi.id)
            pois.append(poi)
        return pois

    def load(self) -> None:
        """Restore settings and manual POIs from durable storage.

        Missing or corrupt data falls back to defaults; remote POIs and the
        last location always start empty.
        """
        if self._durable is None:
            return
        self._settings = self._parse_settings(self._load_blob(STORAGE_KEY_SETTINGS))
        self._manual = self._parse_pois(self._load_blob(STORAGE_KEY_POIS))
        self._remote = []
        self._last_location = None
        _logger.debug("Loaded %d manual POIs from durable storage", len(self._manual))
        self._mutated(StoreChange.LOADED)

    def reset_all(self) -> None:
        """Clear durable storage and restore defaults in memory."""
        if self._durable is not None:
            try:
                self._durable.clear()
            except Exception:
                _logger.warning("Failed to clear durable storage", exc_info=True)
        self._settings = Settings()
        self._manual = []
        self._remote = []
        self._mutated(StoreChange.RESET)

    def storage_info(self) -> Mapping[str, int | None]:
        """Size in characters of each stored blob (``None`` when absent)."""
        if self._durable is None:
            return {}
        info: dict[str, int | None] = {}
        for key in STORAGE_KEYS:
            blob = self._load_blob(key)
            info[key] = len(blob) if blob is not None else None
        return info
