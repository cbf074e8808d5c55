"""Movement-threshold fetch policy.

No scheduling here: the engine decides *when* to act, this module decides
*whether* an observation makes a fetch due.
"""

from __future__ import annotations

from poisync.geo import distance_meters
from poisync.models.location import Coordinate


def movement_meters(reference: Coordinate | None, current: Coordinate) -> float | None:
    """Distance moved since *reference*, or ``None`` without a reference."""
    if reference is None:
        return None
    return distance_meters(reference, current)


def should_fetch(
    *,
    reference: Coordinate | None,
    current: Coordinate,
    trigger_distance_meters: float,
) -> bool:
    """Decide whether an observation at *current* makes a fetch due.

    Policy:
    - No reference yet (first observation since start): fetch.
    - Otherwise fetch once the observer is at least
      ``trigger_distance_meters`` away from the reference.
    """
    moved = movement_meters(reference, current)
    if moved is None:
        return True
    return moved >= trigger_distance_meters
