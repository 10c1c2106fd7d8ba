"""HTTP transit data source backed by aiohttp."""

from __future__ import annotations

import json
import logging
from collections.abc import Callable
from typing import Any

import aiohttp
from pydantic import TypeAdapter, ValidationError

from transitsync._constants import NEARBY_DEPARTURES_ENDPOINT, USER_AGENT
from transitsync._redact import summarize_for_log
from transitsync.config import SyncConfig
from transitsync.exceptions import TransitTransportError
from transitsync.models.departures import NearbyDeparturesPayload
from transitsync.models.location import Coordinates

_logger = logging.getLogger(__name__)

_PAYLOADS_ADAPTER: TypeAdapter[list[NearbyDeparturesPayload]] = TypeAdapter(list[NearbyDeparturesPayload])

TraceCallback = Callable[[str, dict[str, Any]], None]


class HttpTransitDataSource:
    """Fetch nearby departures from the transit REST API.

    Every failure (connection error, non-200 status, invalid JSON, a body
    that does not match the payload schema) raises
    :class:`TransitTransportError`.
    """

    def __init__(
        self,
        config: SyncConfig,
        http_session: aiohttp.ClientSession,
        *,
        on_trace: TraceCallback | None = None,
    ) -> None:
        self._config = config
        self._http = http_session
        self._on_trace = on_trace if config.api_trace_enabled else None

    def _trace(self, stage: str, data: dict[str, Any]) -> None:
        if self._on_trace is None:
            return
        try:
            self._on_trace(stage, summarize_for_log(data))
        except Exception:
            _logger.debug("Trace callback failed", exc_info=True)

    async def _get_json(self, endpoint: str, params: dict[str, str]) -> Any:
        url = f"{self._config.base_url}{endpoint}"
        headers = {"accept": "application/json", "user-agent": USER_AGENT}
        timeout = aiohttp.ClientTimeout(total=self._config.request_timeout)

        _logger.debug("GET %s params=%s", url, params)
        self._trace("request", {"url": url, "params": params})

        try:
            async with self._http.get(url, params=params, headers=headers, timeout=timeout) as resp:
                text = await resp.text()
                if resp.status != 200:
                    raise TransitTransportError(
                        f"HTTP {resp.status} from {endpoint}: {text[:200]}",
                        status_code=resp.status,
                        endpoint=endpoint,
                    )
        except TransitTransportError:
            raise
        except (aiohttp.ClientError, TimeoutError) as exc:
            raise TransitTransportError(
                f"Request to {endpoint} failed: {exc}",
                endpoint=endpoint,
            ) from exc

        try:
            body = json.loads(text)
        except json.JSONDecodeError as exc:
            raise TransitTransportError(
                f"Invalid JSON from {endpoint}: {text[:200]}",
                endpoint=endpoint,
            ) from exc

        self._trace("response", {"url": url, "body": body})
        return body

    async def fetch_nearby_departures_payloads(
        self,
        coordinates: Coordinates,
        radius_meters: int,
        look_ahead_minutes: int,
    ) -> list[NearbyDeparturesPayload]:
        params = {
            "latitude": repr(coordinates.lat),
            "longitude": repr(coordinates.lng),
            "radius_meters": str(radius_meters),
            "look_ahead_minutes": str(look_ahead_minutes),
        }
        body = await self._get_json(NEARBY_DEPARTURES_ENDPOINT, params)
        if not isinstance(body, list):
            raise TransitTransportError(
                f"Expected a list from {NEARBY_DEPARTURES_ENDPOINT}, got {type(body).__name__}",
                endpoint=NEARBY_DEPARTURES_ENDPOINT,
            )
        try:
            payloads = _PAYLOADS_ADAPTER.validate_python(body)
        except ValidationError as exc:
            raise TransitTransportError(
                f"Unexpected payload shape from {NEARBY_DEPARTURES_ENDPOINT}: {exc.error_count()} errors",
                endpoint=NEARBY_DEPARTURES_ENDPOINT,
            ) from exc
        _logger.debug("Nearby departures: %d routes %s", len(payloads), summarize_for_log(body, max_items=3))
        return payloads
