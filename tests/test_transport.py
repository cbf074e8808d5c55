from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

import aiohttp
import pytest

from poisync._transport import HttpTransport
from poisync.config import PoiSyncConfig
from poisync.exceptions import PoiSyncNetworkError, PoiSyncUpstreamError


class _FakeResponse:
    def __init__(self, status: int, text: str) -> None:
        self.status = status
        self._text = text

    async def text(self) -> str:
        return self._text

    async def __aenter__(self) -> _FakeResponse:
        return self

    async def __aexit__(self, *exc: Any) -> None:
        return None


@dataclass
class _FakeSession:
    status: int = 200
    body: str = '{"type": "FeatureCollection", "features": []}'
    error: BaseException | None = None
    requests: list[dict[str, Any]] = field(default_factory=list)

    def get(self, url: str, **kwargs: Any) -> _FakeResponse:
        self.requests.append({"url": url, **kwargs})
        if self.error is not None:
            raise self.error
        return _FakeResponse(self.status, self.body)


def _transport(session: _FakeSession) -> HttpTransport:
    config = PoiSyncConfig(api_key="secret", base_url="https://places.example/v2", request_timeout=3.0)
    return HttpTransport(config, session)  # type: ignore[arg-type]


@pytest.mark.asyncio
async def test_get_json_builds_url_and_stringifies_params() -> None:
    session = _FakeSession()
    data = await _transport(session).get_json("/places", {"limit": 20, "apiKey": "secret"})

    assert data == {"type": "FeatureCollection", "features": []}
    request = session.requests[0]
    assert request["url"] == "https://places.example/v2/places"
    assert request["params"] == {"limit": "20", "apiKey": "secret"}
    assert request["timeout"].total == 3.0
    assert request["headers"]["accept"] == "application/json"


@pytest.mark.asyncio
async def test_non_200_raises_upstream_error() -> None:
    session = _FakeSession(status=401, body='{"message": "Invalid apiKey"}')
    with pytest.raises(PoiSyncUpstreamError) as exc_info:
        await _transport(session).get_json("/places", {})
    assert exc_info.value.status_code == 401
    assert exc_info.value.endpoint == "/places"


@pytest.mark.asyncio
async def test_invalid_json_raises_upstream_error() -> None:
    session = _FakeSession(body="<html>oops</html>")
    with pytest.raises(PoiSyncUpstreamError) as exc_info:
        await _transport(session).get_json("/places", {})
    assert exc_info.value.status_code == 200


@pytest.mark.asyncio
@pytest.mark.parametrize("error", [aiohttp.ClientConnectionError("refused"), TimeoutError()])
async def test_connection_failures_raise_network_error(error: BaseException) -> None:
    session = _FakeSession(error=error)
    with pytest.raises(PoiSyncNetworkError) as exc_info:
        await _transport(session).get_json("/places", {})
    assert exc_info.value.status_code is None
