"""Location-driven refresh engine.

Consumes position observations, decides when the remote POI set is stale,
and refreshes it through a :class:`PlacesFetcher`.

Three mechanisms bound the fetch rate:

* movement threshold: an observation only makes a fetch due once the
  observer is ``settings.fetch_trigger_distance_meters`` away from the
  location the previous fetch was issued for (or on the first observation).
  While a debounce is pending, distance is measured from the observation
  that scheduled it instead;
* trailing-edge debounce: a due fetch waits ``debounce_delay`` seconds and
  every further qualifying observation restarts the wait, so a burst of
  samples produces one fetch for the latest position;
* single flight: at most one fetch runs at a time.  A debounce firing or a
  manual refresh during a fetch is dropped, never queued.  A started fetch
  always runs to completion, even when the awaiting caller is cancelled.

Everything runs on one asyncio event loop; handlers interleave only at
``await`` points, so no locking is needed.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
from collections.abc import AsyncIterable, AsyncIterator, Callable, Iterable
from datetime import datetime
from typing import Any, Protocol

from poisync._constants import WATCH_TIME_INTERVAL_S
from poisync.exceptions import PoiSyncError, PoiSyncPermissionDeniedError
from poisync.models._base import utcnow
from poisync.models.location import Coordinate, Location
from poisync.models.poi import PointOfInterest
from poisync.state.events import SyncPhase, SyncStatus
from poisync.state.policy import movement_meters, should_fetch
from poisync.state.store import PoiStore

_logger = logging.getLogger(__name__)

StatusListener = Callable[[SyncStatus], None]


class PlacesFetcher(Protocol):
    """What the engine needs from a places client."""

    async def fetch_nearby(
        self,
        center: Coordinate,
        radius_meters: float,
        categories: Iterable[str],
    ) -> list[PointOfInterest]:
        ...


class LocationProvider(Protocol):
    """Source of position observations (a platform location service)."""

    async def request_permission(self) -> bool:
        ...

    async def current_location(self) -> Location:
        ...

    def watch(self, *, distance_interval: float, time_interval: float) -> AsyncIterator[Location]:
        ...


class _Debouncer:
    """Single-slot cancellable timer: scheduling replaces the pending call."""

    def __init__(self, delay: float) -> None:
        self._delay = delay
        self._handle: asyncio.TimerHandle | None = None

    @property
    def pending(self) -> bool:
        return self._handle is not None

    def schedule(self, callback: Callable[[], None]) -> None:
        self.cancel()
        loop = asyncio.get_running_loop()
        self._handle = loop.call_later(self._delay, self._fire, callback)

    def _fire(self, callback: Callable[[], None]) -> None:
        self._handle = None
        callback()

    def cancel(self) -> None:
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None


class LocationSyncEngine:
    """Keeps the store's remote POIs in sync with the observer's position.

    Usage::

        store = PoiStore(durable)
        async with PlacesClient(config) as client:
            engine = LocationSyncEngine(store, client, debounce_delay=config.debounce_delay)
            await engine.start(provider)
            ...
            await engine.aclose()

    ``on_location`` must be called from the event loop thread.
    """

    def __init__(
        self,
        store: PoiStore,
        client: PlacesFetcher,
        *,
        debounce_delay: float = 1.0,
    ) -> None:
        self._store = store
        self._client = client
        self._debouncer = _Debouncer(debounce_delay)
        self._last_location: Location | None = None
        self._fetch_reference: Location | None = None
        self._pending_anchor: Location | None = None
        self._fetch_task: asyncio.Task[None] | None = None
        self._watch_task: asyncio.Task[None] | None = None
        self._has_permission = False
        self._error: str | None = None
        self._last_fetch_at: datetime | None = None
        self._fetch_count = 0
        self._status_listeners: list[StatusListener] = []

    async def __aenter__(self) -> LocationSyncEngine:
        return self

    async def __aexit__(self, *exc: Any) -> None:
        await self.aclose()

    # ------------------------------------------------------------------
    # Status
    # ------------------------------------------------------------------

    @property
    def phase(self) -> SyncPhase:
        if self._fetch_task is not None:
            return SyncPhase.FETCHING
        if self._debouncer.pending:
            return SyncPhase.DEBOUNCING
        return SyncPhase.IDLE

    @property
    def is_fetching(self) -> bool:
        return self._fetch_task is not None

    @property
    def status(self) -> SyncStatus:
        return SyncStatus(
            phase=self.phase,
            has_permission=self._has_permission,
            error=self._error,
            last_location=self._last_location,
            last_fetch_location=self._fetch_reference,
            last_fetch_at=self._last_fetch_at,
            fetch_count=self._fetch_count,
        )

    def add_status_listener(self, listener: StatusListener) -> Callable[[], None]:
        """Call *listener* with a fresh :class:`SyncStatus` after every transition."""
        self._status_listeners.append(listener)

        def _remove() -> None:
            if listener in self._status_listeners:
                self._status_listeners.remove(listener)

        return _remove

    def _notify(self) -> None:
        if not self._status_listeners:
            return
        status = self.status
        for listener in list(self._status_listeners):
            try:
                listener(status)
            except Exception:
                _logger.warning("Status listener failed", exc_info=True)

    # ------------------------------------------------------------------
    # Observation handling
    # ------------------------------------------------------------------

    def on_location(self, location: Location) -> None:
        """Handle one position observation."""
        self._last_location = location
        self._store.update_location(location)

        anchor = self._movement_anchor()
        reference = anchor.coordinate if anchor is not None else None
        trigger = self._store.settings.fetch_trigger_distance_meters
        if not should_fetch(reference=reference, current=location.coordinate, trigger_distance_meters=trigger):
            _logger.debug(
                "Moved %.0fm of %.0fm since last anchor; no refresh due",
                movement_meters(reference, location.coordinate) or 0.0,
                trigger,
            )
            return

        _logger.debug("Refresh due at %s; debouncing", location.coordinate)
        self._pending_anchor = location
        self._debouncer.schedule(self._on_debounce_fired)
        self._notify()

    def _movement_anchor(self) -> Location | None:
        """Where movement is measured from.

        While a debounce is pending that is the observation which scheduled
        it, so nearby samples inside the window do not restart the timer.
        Otherwise it is the location of the last issued fetch.
        """
        if self._debouncer.pending and self._pending_anchor is not None:
            return self._pending_anchor
        return self._fetch_reference

    def _on_debounce_fired(self) -> None:
        self._pending_anchor = None
        if self._fetch_task is not None:
            _logger.debug("Debounce fired while a fetch is in flight; dropping")
            self._notify()
            return
        location = self._last_location
        if location is None:
            return
        self._start_fetch(location)

    async def consume(self, observations: AsyncIterable[Location]) -> None:
        """Feed every observation of *observations* into :meth:`on_location`.

        Ends when the stream ends.  A permission failure raised by the
        stream clears the permission flag; other poisync errors are
        recorded in the status.  Neither is retried.
        """
        try:
            async for location in observations:
                self.on_location(location)
        except PoiSyncPermissionDeniedError as exc:
            _logger.warning("Location stream lost permission: %s", exc)
            self._has_permission = False
            self._error = "Location permission denied"
            self._notify()
        except PoiSyncError as exc:
            _logger.warning("Location stream failed: %s", exc)
            self._error = "Failed to get location"
            self._notify()

    # ------------------------------------------------------------------
    # Fetching
    # ------------------------------------------------------------------

    def _start_fetch(self, location: Location) -> asyncio.Task[None]:
        self._fetch_reference = location
        task = asyncio.get_running_loop().create_task(self._run_fetch(location))
        self._fetch_task = task
        self._notify()
        return task

    async def _run_fetch(self, location: Location) -> None:
        settings = self._store.settings
        _logger.debug(
            "Starting POI fetch at %s radius=%.0fm categories=%s",
            location.coordinate,
            settings.search_radius_meters,
            sorted(settings.categories),
        )
        try:
            pois = await self._client.fetch_nearby(
                location.coordinate,
                settings.search_radius_meters,
                sorted(settings.categories),
            )
        except PoiSyncError as exc:
            # Stale-but-valid: the previous remote set stays in place.
            _logger.warning("POI fetch failed: %s", exc)
            self._error = str(exc) or exc.__class__.__name__
        else:
            self._store.replace_remote_pois(pois)
            self._error = None
            self._fetch_count += 1
            self._last_fetch_at = utcnow()
            _logger.debug("POI fetch completed: %d POIs", len(pois))
        finally:
            self._fetch_task = None
            self._notify()

    async def refresh_now(self) -> bool:
        """Fetch immediately for the last known location.

        Bypasses the movement threshold and cancels a pending debounce.
        Returns ``False`` without fetching when a fetch is already in flight
        or no location is known yet.
        """
        if self._fetch_task is not None:
            _logger.debug("Manual refresh ignored; fetch already in flight")
            return False
        location = self._last_location or self._store.last_location
        if location is None:
            _logger.debug("Manual refresh ignored; no known location")
            return False
        self._debouncer.cancel()
        self._pending_anchor = None
        # Cancelling the caller must not cancel the fetch itself.
        await asyncio.shield(self._start_fetch(location))
        return True

    # ------------------------------------------------------------------
    # Provider lifecycle
    # ------------------------------------------------------------------

    async def start(self, provider: LocationProvider) -> bool:
        """Request permission, take one fix, then follow the provider's watch stream.

        Returns ``False`` when permission is denied; the engine does not ask
        again on its own.
        """
        try:
            granted = await provider.request_permission()
        except PoiSyncPermissionDeniedError:
            granted = False
        self._has_permission = granted
        if not granted:
            _logger.info("Location permission denied")
            self._error = "Location permission denied"
            self._notify()
            return False

        try:
            current = await provider.current_location()
        except PoiSyncPermissionDeniedError:
            self._has_permission = False
            self._error = "Location permission denied"
            self._notify()
            return False
        except PoiSyncError as exc:
            _logger.warning("Could not get current location: %s", exc)
            self._error = "Failed to get location"
            self._notify()
        else:
            self.on_location(current)

        await self.stop()
        stream = provider.watch(
            distance_interval=self._store.settings.fetch_trigger_distance_meters / 2,
            time_interval=WATCH_TIME_INTERVAL_S,
        )
        self._watch_task = asyncio.get_running_loop().create_task(self.consume(stream))
        _logger.debug("Location watch started")
        return True

    async def stop(self) -> None:
        """Stop following the provider's watch stream."""
        task = self._watch_task
        self._watch_task = None
        if task is None:
            return
        task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await task
        _logger.debug("Location watch stopped")

    async def aclose(self) -> None:
        """Stop watching, drop any pending debounce and let an in-flight fetch finish."""
        await self.stop()
        self._debouncer.cancel()
        self._pending_anchor = None
        task = self._fetch_task
        if task is not None:
            await asyncio.shield(task)
        self._notify()
