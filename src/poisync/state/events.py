"""Store change notifications and sync status snapshots."""

from __future__ import annotations

from datetime import datetime
from enum import StrEnum

from pydantic import BaseModel, ConfigDict, Field

from poisync.models.location import Location


class StoreChange(StrEnum):
    """Kind of mutation reported to store listeners."""

    SETTINGS = "settings"
    MANUAL_POIS = "manual_pois"
    REMOTE_POIS = "remote_pois"
    VISIBILITY = "visibility"
    LOCATION = "location"
    LOADED = "loaded"
    RESET = "reset"


class SyncPhase(StrEnum):
    IDLE = "idle"
    DEBOUNCING = "debouncing"
    FETCHING = "fetching"


class SyncStatus(BaseModel):
    """Point-in-time view of the location sync engine."""

    model_config = ConfigDict(frozen=True)

    phase: SyncPhase = SyncPhase.IDLE
    has_permission: bool = False
    error: str | None = None
    last_location: Location | None = None
    last_fetch_location: Location | None = Field(
        default=None,
        description="Location the most recent fetch was issued for.",
    )
    last_fetch_at: datetime | None = None
    fetch_count: int = 0

    @property
    def is_fetching(self) -> bool:
        return self.phase == SyncPhase.FETCHING
