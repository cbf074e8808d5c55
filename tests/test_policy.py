from __future__ import annotations

import math

import pytest

from poisync.models.location import Coordinate
from poisync.state.policy import movement_meters, should_fetch

_METERS_PER_DEGREE = 6_371_000.0 * math.pi / 180.0
ORIGIN = Coordinate(latitude=37.0, longitude=-122.0)


def _north(meters: float) -> Coordinate:
    return Coordinate(latitude=37.0 + meters / _METERS_PER_DEGREE, longitude=-122.0)


def test_first_observation_always_fetches() -> None:
    assert movement_meters(None, ORIGIN) is None
    assert should_fetch(reference=None, current=ORIGIN, trigger_distance_meters=500.0)


@pytest.mark.parametrize(("moved", "expected"), [(0.0, False), (490.0, False), (510.0, True), (5_000.0, True)])
def test_threshold(moved: float, expected: bool) -> None:
    assert should_fetch(reference=ORIGIN, current=_north(moved), trigger_distance_meters=500.0) is expected


def test_zero_trigger_fetches_on_every_observation() -> None:
    assert should_fetch(reference=ORIGIN, current=ORIGIN, trigger_distance_meters=0.0)
