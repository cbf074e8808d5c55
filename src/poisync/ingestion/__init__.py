"""Ingestion layer.

Converts raw places API payloads into normalized
:class:`~poisync.models.poi.PointOfInterest` values.  Only the state store
is allowed to merge them into the tracked POI set.
"""
