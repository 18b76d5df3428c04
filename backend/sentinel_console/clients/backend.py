"""Async client for the revenue-management REST backend.

Every response is parsed into a pydantic schema at this boundary. Transport
errors, non-2xx statuses, malformed JSON and schema mismatches all surface as
``FetchError`` so nothing half-parsed reaches the rule engine.
"""

import logging
from typing import Any, TypeVar

import httpx
from pydantic import TypeAdapter, ValidationError

from sentinel_console.exceptions import FetchError
from sentinel_console.schemas.config import HotelConfig, NumericText
from sentinel_console.schemas.hotel import Hotel, HotelId
from sentinel_console.schemas.portfolio import HotelOccupancySeries, PortfolioFilter, PortfolioMetricPoint

logger = logging.getLogger(__name__)

T = TypeVar("T")

_HOTELS = TypeAdapter(list[Hotel])
_CONFIGS = TypeAdapter(list[HotelConfig])
_OPTIONAL_CONFIG = TypeAdapter(HotelConfig | None)
_PMS_IDS = TypeAdapter(dict[HotelId, HotelId])
_MAX_RATES = TypeAdapter(dict[str, NumericText])
_METRIC_POINTS = TypeAdapter(list[PortfolioMetricPoint])
_OCCUPANCY_MATRIX = TypeAdapter(list[HotelOccupancySeries])


def _unwrap(body: Any) -> Any:
    """Strip the backend's ``{"success": ..., "data": ...}`` envelope when present."""
    if isinstance(body, dict) and "data" in body:
        return body["data"]
    return body


def _error_message(body: Any, status_code: int) -> str:
    if isinstance(body, dict):
        message = body.get("message") or body.get("error")
        if message:
            return str(message)
    return f"Backend returned HTTP {status_code}"


class BackendClient:
    """Thin typed wrapper over ``httpx.AsyncClient``."""

    def __init__(
        self,
        base_url: str,
        timeout: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._client = httpx.AsyncClient(base_url=base_url, timeout=timeout, transport=transport)

    async def aclose(self) -> None:
        await self._client.aclose()

    async def _request(
        self,
        method: str,
        url: str,
        *,
        params: dict[str, str] | None = None,
        json: Any = None,
    ) -> Any:
        try:
            response = await self._client.request(method, url, params=params, json=json)
        except httpx.HTTPError as exc:
            logger.warning("Backend %s %s failed: %s", method, url, exc)
            raise FetchError(f"Backend request failed: {exc}") from exc

        try:
            body = response.json()
        except ValueError:
            body = None

        if response.is_error:
            message = _error_message(body, response.status_code)
            logger.warning("Backend %s %s returned %s: %s", method, url, response.status_code, message)
            raise FetchError(message, status_code=response.status_code)
        if body is None and response.content.strip() not in (b"", b"null"):
            raise FetchError(f"Backend returned malformed JSON for {url}")
        return body

    @staticmethod
    def _parse(adapter: TypeAdapter[T], data: Any, what: str) -> T:
        try:
            return adapter.validate_python(data)
        except ValidationError as exc:
            logger.warning("Malformed %s from backend: %s", what, exc)
            raise FetchError(f"Backend returned malformed {what}") from exc

    # -- hotel registry ------------------------------------------------------

    async def get_hotels(self) -> list[Hotel]:
        body = await self._request("GET", "/api/hotels")
        return self._parse(_HOTELS, _unwrap(body) or [], "hotel list")

    async def get_pms_property_ids(self) -> dict[str, str]:
        body = await self._request("GET", "/api/sentinel/pms-property-ids")
        return self._parse(_PMS_IDS, _unwrap(body) or {}, "PMS property ids")

    # -- configuration -------------------------------------------------------

    async def get_hotel_configs(self) -> dict[str, HotelConfig]:
        body = await self._request("GET", "/api/sentinel/configs")
        configs = self._parse(_CONFIGS, _unwrap(body) or [], "configuration list")
        if any(config.hotel_id is None for config in configs):
            raise FetchError("Backend returned a configuration without hotel_id")
        return {config.hotel_id: config for config in configs}  # type: ignore[misc]

    async def get_hotel_config(self, hotel_id: str) -> HotelConfig | None:
        body = await self._request("GET", f"/api/sentinel/config/{hotel_id}")
        return self._parse(_OPTIONAL_CONFIG, _unwrap(body), "configuration")

    async def save_hotel_config(self, hotel_id: str, config: dict[str, Any]) -> HotelConfig:
        body = await self._request("POST", f"/api/sentinel/config/{hotel_id}", json=config)
        saved = self._parse(_OPTIONAL_CONFIG, _unwrap(body), "configuration")
        if saved is None:
            raise FetchError("Backend did not echo the saved configuration")
        return saved

    async def sync_pms_facts(self, hotel_id: str, pms_property_id: str) -> HotelConfig:
        body = await self._request(
            "POST",
            "/api/sentinel/sync",
            json={"hotelId": hotel_id, "pmsPropertyId": pms_property_id},
        )
        synced = self._parse(_OPTIONAL_CONFIG, _unwrap(body), "sync result")
        if synced is None:
            raise FetchError("Backend returned no configuration after sync")
        return synced

    async def get_daily_max_rates(self, hotel_id: str) -> dict[str, str]:
        body = await self._request("GET", f"/api/sentinel/max-rates/{hotel_id}")
        return self._parse(_MAX_RATES, _unwrap(body) or {}, "daily max rates")

    async def save_daily_max_rates(self, hotel_id: str, rates: dict[str, str]) -> None:
        await self._request("POST", f"/api/sentinel/max-rates/{hotel_id}", json={"rates": rates})

    # -- portfolio metrics ---------------------------------------------------

    async def get_portfolio_metrics(self, portfolio_filter: PortfolioFilter) -> list[PortfolioMetricPoint]:
        body = await self._request("GET", "/api/metrics/portfolio/pacing", params=portfolio_filter.as_params())
        return self._parse(_METRIC_POINTS, _unwrap(body) or [], "portfolio metrics")

    async def get_occupancy_matrix(self, portfolio_filter: PortfolioFilter) -> list[HotelOccupancySeries]:
        body = await self._request("GET", "/api/metrics/portfolio/matrix", params=portfolio_filter.as_params())
        return self._parse(_OCCUPANCY_MATRIX, _unwrap(body) or [], "occupancy matrix")
