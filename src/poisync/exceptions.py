"""Custom exception hierarchy for poisync."""

from __future__ import annotations


class PoiSyncError(Exception):
    """Base exception for all poisync errors."""


class PoiSyncConfigError(PoiSyncError):
    """Invalid or missing configuration."""


class PoiSyncTransportError(PoiSyncError):
    """HTTP-level failure talking to the places API."""

    def __init__(
        self,
        message: str,
        *,
        status_code: int | None = None,
        endpoint: str = "",
    ) -> None:
        self.status_code = status_code
        self.endpoint = endpoint
        super().__init__(message)


class PoiSyncNetworkError(PoiSyncTransportError):
    """The request never produced a response (connection error, timeout)."""


class PoiSyncUpstreamError(PoiSyncTransportError):
    """The places API answered, but not with a usable payload.

    Covers non-200 statuses as well as bodies that are not JSON or do not
    have the expected ``FeatureCollection`` shape.  ``status_code`` carries
    the HTTP status.
    """


class PoiSyncPersistenceError(PoiSyncError):
    """Durable store read or write failure."""


class PoiSyncPermissionDeniedError(PoiSyncError):
    """The location provider refused access to position updates."""
