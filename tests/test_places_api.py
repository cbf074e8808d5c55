from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

import pytest

from poisync._api import places as places_api
from poisync.client import PlacesClient
from poisync.config import PoiSyncConfig
from poisync.exceptions import PoiSyncConfigError, PoiSyncError, PoiSyncNetworkError, PoiSyncUpstreamError
from poisync.geo import bounding_box
from poisync.ingestion.places import dedupe_by_remote_id, feature_to_poi, parse_features
from poisync.models.location import Coordinate
from poisync.models.places import PlaceFeature
from poisync.models.poi import PoiSource

CENTER = Coordinate(latitude=37.0, longitude=-122.0)


def _feature(
    place_id: str | None,
    categories: list[str],
    *,
    name: str | None = "Place",
    formatted: str | None = None,
    lon: float = -122.0,
    lat: float = 37.0,
) -> dict[str, Any]:
    properties: dict[str, Any] = {"categories": categories, "name": name, "formatted": formatted}
    if place_id is not None:
        properties["place_id"] = place_id
    return {
        "type": "Feature",
        "properties": properties,
        "geometry": {"type": "Point", "coordinates": [lon, lat]},
    }


def _collection(*features: dict[str, Any]) -> dict[str, Any]:
    return {"type": "FeatureCollection", "features": list(features)}


@dataclass
class FakeTransport:
    """Answers per category; an exception value is raised instead of returned."""

    responses: dict[str, Any] = field(default_factory=dict)
    calls: list[dict[str, str]] = field(default_factory=list)

    async def get_json(self, endpoint: str, params: Mapping[str, Any]) -> Any:
        assert endpoint == "/places"
        self.calls.append(dict(params))
        response = self.responses.get(params["categories"], _collection())
        if isinstance(response, BaseException):
            raise response
        return response


@pytest.fixture
def config() -> PoiSyncConfig:
    return PoiSyncConfig(api_key="test-key", category_delay=0.0)


@pytest.mark.asyncio
async def test_cross_category_duplicates_collapse(config: PoiSyncConfig) -> None:
    transport = FakeTransport(
        responses={
            "tourism": _collection(_feature("x", ["tourism.attraction"], name="First"), _feature("y", ["tourism"])),
            "heritage": _collection(_feature("x", ["heritage"], name="Second")),
        }
    )

    pois = await places_api.fetch_nearby(config, transport, CENTER, 1000.0, ["tourism", "heritage"])

    assert [poi.remote_id for poi in pois] == ["x", "y"]
    assert pois[0].name == "First"
    assert pois[0].id == "geoapify_x"
    assert all(poi.source == PoiSource.REMOTE for poi in pois)


@pytest.mark.asyncio
async def test_one_request_per_category_with_params(config: PoiSyncConfig) -> None:
    transport = FakeTransport()
    await places_api.fetch_nearby(config, transport, CENTER, 1000.0, ["heritage", "natural", "heritage", " "], limit=50)

    assert [call["categories"] for call in transport.calls] == ["heritage", "natural"]
    call = transport.calls[0]
    assert call["apiKey"] == "test-key"
    # Requested limit is capped at the per-category maximum.
    assert call["limit"] == "20"
    assert call["filter"] == bounding_box(CENTER, 1000.0).to_rect_filter()


@pytest.mark.asyncio
async def test_failing_category_is_isolated(config: PoiSyncConfig) -> None:
    transport = FakeTransport(
        responses={
            "heritage": PoiSyncNetworkError("boom", endpoint="/places"),
            "natural": _collection(_feature("n1", ["natural.water"])),
            "building": {"error": "not a collection"},
        }
    )

    pois = await places_api.fetch_nearby(config, transport, CENTER, 500.0, ["heritage", "natural", "building"])

    assert [poi.remote_id for poi in pois] == ["n1"]
    assert len(transport.calls) == 3


@pytest.mark.asyncio
async def test_all_categories_failing_yields_empty_result(config: PoiSyncConfig) -> None:
    transport = FakeTransport(
        responses={"tourism": PoiSyncUpstreamError("HTTP 500", status_code=500, endpoint="/places")}
    )
    assert await places_api.fetch_nearby(config, transport, CENTER, 500.0, ["tourism"]) == []


@pytest.mark.asyncio
async def test_empty_category_set_raises(config: PoiSyncConfig) -> None:
    with pytest.raises(PoiSyncConfigError):
        await places_api.fetch_nearby(config, FakeTransport(), CENTER, 500.0, [])


@pytest.mark.asyncio
async def test_non_collection_payload_raises_for_single_category(config: PoiSyncConfig) -> None:
    transport = FakeTransport(responses={"tourism": ["unexpected"]})
    with pytest.raises(PoiSyncUpstreamError):
        await places_api.fetch_category_features(
            config, transport, "tourism", bounding_box(CENTER, 100.0), limit=5
        )


@pytest.mark.parametrize(
    ("categories", "expected"),
    [
        (["tourism.attraction.artwork"], "tourism.attraction.artwork"),
        (["commercial.supermarket", "heritage.unesco"], "heritage.unesco"),
        (["tourismo"], None),
        (["commercial"], None),
        ([], None),
    ],
)
def test_feature_category_filter_is_hierarchical(categories: list[str], expected: str | None) -> None:
    feature = PlaceFeature.model_validate(_feature("p", categories))
    poi = feature_to_poi(feature, ("tourism", "heritage"))
    if expected is None:
        assert poi is None
    else:
        assert poi is not None
        assert poi.category == expected


def test_feature_name_falls_back_to_address_then_placeholder() -> None:
    supported = ("tourism",)
    with_address = feature_to_poi(
        PlaceFeature.model_validate(_feature("a", ["tourism"], name=None, formatted="1 Main St")), supported
    )
    anonymous = feature_to_poi(PlaceFeature.model_validate(_feature("b", ["tourism"], name=None)), supported)

    assert with_address is not None and with_address.name == "1 Main St"
    assert with_address.address == "1 Main St"
    assert anonymous is not None and anonymous.name == "Unnamed Place"


def test_features_without_id_or_position_are_skipped() -> None:
    no_position = {"type": "Feature", "properties": {"place_id": "z", "categories": ["tourism"]}}
    features = parse_features(_collection(_feature(None, ["tourism"]), no_position, "garbage"))
    assert [feature_to_poi(f, ("tourism",)) for f in features] == [None, None]


def test_dedupe_keeps_first_occurrence() -> None:
    supported = ("tourism",)
    pois = [
        feature_to_poi(PlaceFeature.model_validate(_feature(pid, ["tourism"], name=name)), supported)
        for pid, name in (("a", "one"), ("b", "two"), ("a", "three"))
    ]
    unique = dedupe_by_remote_id(p for p in pois if p is not None)
    assert [(p.remote_id, p.name) for p in unique] == [("a", "one"), ("b", "two")]


@pytest.mark.asyncio
async def test_client_requires_api_key() -> None:
    with pytest.raises(PoiSyncConfigError):
        async with PlacesClient(PoiSyncConfig(api_key="")):
            pass


@pytest.mark.asyncio
async def test_client_fetch_and_connection_probe(config: PoiSyncConfig) -> None:
    transport = FakeTransport(responses={"tourism.attraction": _collection(_feature("a", ["tourism.attraction"]))})

    async with PlacesClient(config, transport=transport) as client:
        pois = await client.fetch_nearby(CENTER, 1000.0, {"tourism.attraction"})
        assert await client.test_connection() is True

    assert [poi.id for poi in pois] == ["geoapify_a"]
    probe = transport.calls[-1]
    assert probe["limit"] == "1"
    assert probe["categories"] == config.supported_categories[0]


@pytest.mark.asyncio
async def test_client_connection_probe_reports_failure(config: PoiSyncConfig) -> None:
    transport = FakeTransport(
        responses={config.supported_categories[0]: PoiSyncUpstreamError("HTTP 401", status_code=401)}
    )
    async with PlacesClient(config, transport=transport) as client:
        assert await client.test_connection() is False


@pytest.mark.asyncio
async def test_client_used_outside_context_raises(config: PoiSyncConfig) -> None:
    client = PlacesClient(config)
    with pytest.raises(PoiSyncError):
        await client.fetch_nearby(CENTER, 1000.0, ["tourism"])


@pytest.mark.asyncio
async def test_unordered_categories_are_queried_in_sorted_order(config: PoiSyncConfig) -> None:
    transport = FakeTransport(
        responses={
            "tourism": _collection(_feature("x", ["tourism"], name="From tourism")),
            "heritage": _collection(_feature("x", ["heritage"], name="From heritage")),
        }
    )

    categories = frozenset({"tourism", "heritage", "natural"})
    pois = await places_api.fetch_nearby(config, transport, CENTER, 1000.0, categories)

    assert [call["categories"] for call in transport.calls] == ["heritage", "natural", "tourism"]
    # The first category in sorted order wins the duplicate.
    assert [poi.name for poi in pois] == ["From heritage"]
