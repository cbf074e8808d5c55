"""HTTP transport for the places API."""

from __future__ import annotations

import json
import logging
from collections.abc import Mapping
from typing import Any, Protocol

import aiohttp

from poisync._constants import USER_AGENT
from poisync._redact import redact_for_log
from poisync.config import PoiSyncConfig
from poisync.exceptions import PoiSyncNetworkError, PoiSyncUpstreamError

_logger = logging.getLogger(__name__)


class Transport(Protocol):
    """Structural transport interface used by endpoint modules.

    Having a protocol here makes it easy to pass test doubles while keeping
    the production implementation (`HttpTransport`) concrete.
    """

    async def get_json(self, endpoint: str, params: Mapping[str, Any]) -> Any:
        ...


class HttpTransport:
    """aiohttp-backed GET transport returning decoded JSON bodies."""

    def __init__(
        self,
        config: PoiSyncConfig,
        http_session: aiohttp.ClientSession,
    ) -> None:
        self._config = config
        self._http = http_session
        self._timeout = aiohttp.ClientTimeout(total=config.request_timeout)

    async def get_json(self, endpoint: str, params: Mapping[str, Any]) -> Any:
        """Issue ``GET {base_url}{endpoint}`` and return the JSON body.

        Raises
        ------
        PoiSyncNetworkError
            The request failed before a response arrived.
        PoiSyncUpstreamError
            Non-200 status or a body that is not JSON.
        """
        url = f"{self._config.base_url}{endpoint}"
        query = {key: str(value) for key, value in params.items()}
        headers = {
            "accept": "application/json",
            "user-agent": USER_AGENT,
        }

        _logger.debug("GET %s params=%s", url, redact_for_log(query))

        try:
            async with self._http.get(url, params=query, headers=headers, timeout=self._timeout) as resp:
                text = await resp.text()
                if resp.status != 200:
                    raise PoiSyncUpstreamError(
                        f"HTTP {resp.status} from {endpoint}: {text[:200]}",
                        status_code=resp.status,
                        endpoint=endpoint,
                    )
                status = resp.status
        except PoiSyncUpstreamError:
            raise
        except (aiohttp.ClientError, TimeoutError) as exc:
            raise PoiSyncNetworkError(
                f"Request to {endpoint} failed: {exc!r}",
                endpoint=endpoint,
            ) from exc

        try:
            return json.loads(text)
        except json.JSONDecodeError as exc:
            raise PoiSyncUpstreamError(
                f"Invalid JSON from {endpoint}: {text[:200]}",
                status_code=status,
                endpoint=endpoint,
            ) from exc
