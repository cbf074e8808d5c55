"""poisync - Location-driven point-of-interest sync for a remote places API."""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("poisync")
except PackageNotFoundError:
    __version__ = "0+local"
from poisync.client import PlacesClient
from poisync.config import PoiSyncConfig
from poisync.engine import LocationProvider, LocationSyncEngine, PlacesFetcher
from poisync.exceptions import (
    PoiSyncConfigError,
    PoiSyncError,
    PoiSyncNetworkError,
    PoiSyncPermissionDeniedError,
    PoiSyncPersistenceError,
    PoiSyncTransportError,
    PoiSyncUpstreamError,
)
from poisync.geo import BoundingBox, bounding_box, distance_meters
from poisync.models import (
    Coordinate,
    Location,
    MapType,
    PlaceFeature,
    PointOfInterest,
    PoiSource,
    Settings,
)
from poisync.persistence import DurableStore, JsonFileDurableStore, MemoryDurableStore, durable_store_from_config
from poisync.state.events import StoreChange, SyncPhase, SyncStatus
from poisync.state.store import PoiStore

__all__ = [
    "__version__",
    "BoundingBox",
    "Coordinate",
    "DurableStore",
    "JsonFileDurableStore",
    "Location",
    "LocationProvider",
    "LocationSyncEngine",
    "MapType",
    "MemoryDurableStore",
    "PlaceFeature",
    "PlacesClient",
    "PlacesFetcher",
    "PoiSource",
    "PoiStore",
    "PoiSyncConfig",
    "PoiSyncConfigError",
    "PoiSyncError",
    "PoiSyncNetworkError",
    "PoiSyncPermissionDeniedError",
    "PoiSyncPersistenceError",
    "PoiSyncTransportError",
    "PoiSyncUpstreamError",
    "PointOfInterest",
    "Settings",
    "StoreChange",
    "SyncPhase",
    "SyncStatus",
    "bounding_box",
    "distance_meters",
    "durable_store_from_config",
]
