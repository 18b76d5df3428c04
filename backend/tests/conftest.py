"""Shared test configuration and fixtures.

The revenue-management backend is replaced by ``FakeBackend``, an in-memory
stand-in with the same async methods as ``BackendClient``. Each test gets a
fresh store, engine and workflow; API tests reach them through
``app.dependency_overrides``.
"""

import asyncio
from collections.abc import AsyncGenerator
from typing import Any

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from sentinel_console.api.deps import get_activation_workflow, get_backend_client, get_rule_engine
from sentinel_console.exceptions import FetchError
from sentinel_console.main import app
from sentinel_console.rules.store import RuleStore
from sentinel_console.schemas.config import HotelConfig
from sentinel_console.schemas.hotel import Hotel
from sentinel_console.schemas.portfolio import HotelOccupancySeries, PortfolioFilter, PortfolioMetricPoint
from sentinel_console.services.activation import ActivationWorkflow
from sentinel_console.services.rule_engine import RuleEngine

ROOM_TYPES = [
    {"roomTypeID": "RT-DBL", "roomTypeName": "Double"},
    {"roomTypeID": "RT-TWN", "roomTypeName": "Twin"},
    {"roomTypeID": "RT-STE", "roomTypeName": "Suite"},
]


class FakeBackend:
    """In-memory revenue-management backend.

    Put an exception in ``fail[<method name>]`` to make that call raise, and
    set ``gate`` to hold ``sync_pms_facts``/``get_hotel_config`` until released.
    """

    def __init__(self) -> None:
        self.hotels: list[dict[str, Any]] = []
        self.configs: dict[str, dict[str, Any]] = {}
        self.pms_ids: dict[str, str] = {}
        self.max_rates: dict[str, dict[str, str]] = {}
        self.sync_results: dict[str, dict[str, Any]] = {}
        self.metrics: list[dict[str, Any]] = []
        self.matrix: list[dict[str, Any]] = []
        self.fail: dict[str, Exception] = {}
        self.calls: list[tuple[Any, ...]] = []
        self.saved: list[tuple[str, dict[str, Any]]] = []
        self.gate: asyncio.Event | None = None

    async def _enter(self, name: str, *args: Any) -> None:
        self.calls.append((name, *args))
        if self.gate is not None and name in {"sync_pms_facts", "get_hotel_config"}:
            await self.gate.wait()
        if name in self.fail:
            raise self.fail[name]

    def call_count(self, name: str) -> int:
        return sum(1 for call in self.calls if call[0] == name)

    async def get_hotels(self) -> list[Hotel]:
        await self._enter("get_hotels")
        return [Hotel.model_validate(h) for h in self.hotels]

    async def get_pms_property_ids(self) -> dict[str, str]:
        await self._enter("get_pms_property_ids")
        return dict(self.pms_ids)

    async def get_hotel_configs(self) -> dict[str, HotelConfig]:
        await self._enter("get_hotel_configs")
        return {
            hotel_id: HotelConfig.model_validate({**config, "hotel_id": hotel_id})
            for hotel_id, config in self.configs.items()
        }

    async def get_hotel_config(self, hotel_id: str) -> HotelConfig | None:
        await self._enter("get_hotel_config", hotel_id)
        config = self.configs.get(hotel_id)
        return HotelConfig.model_validate(config) if config is not None else None

    async def save_hotel_config(self, hotel_id: str, config: dict[str, Any]) -> HotelConfig:
        await self._enter("save_hotel_config", hotel_id)
        self.saved.append((hotel_id, config))
        echoed = {**config, "hotel_id": hotel_id}
        self.configs[hotel_id] = echoed
        return HotelConfig.model_validate(echoed)

    async def sync_pms_facts(self, hotel_id: str, pms_property_id: str) -> HotelConfig:
        await self._enter("sync_pms_facts", hotel_id, pms_property_id)
        result = self.sync_results.get(
            hotel_id,
            {"hotel_id": hotel_id, "sentinel_enabled": True, "pms_room_types": {"data": ROOM_TYPES}},
        )
        return HotelConfig.model_validate(result)

    async def get_daily_max_rates(self, hotel_id: str) -> dict[str, str]:
        await self._enter("get_daily_max_rates", hotel_id)
        return dict(self.max_rates.get(hotel_id, {}))

    async def save_daily_max_rates(self, hotel_id: str, rates: dict[str, str]) -> None:
        await self._enter("save_daily_max_rates", hotel_id)
        self.max_rates[hotel_id] = dict(rates)

    async def get_portfolio_metrics(self, portfolio_filter: PortfolioFilter) -> list[PortfolioMetricPoint]:
        await self._enter("get_portfolio_metrics", portfolio_filter.as_params())
        return [PortfolioMetricPoint.model_validate(p) for p in self.metrics]

    async def get_occupancy_matrix(self, portfolio_filter: PortfolioFilter) -> list[HotelOccupancySeries]:
        await self._enter("get_occupancy_matrix", portfolio_filter.as_params())
        return [HotelOccupancySeries.model_validate(h) for h in self.matrix]


# ---------------------------------------------------------------------------
# Core fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def fake_backend() -> FakeBackend:
    return FakeBackend()


@pytest.fixture
def rule_store() -> RuleStore:
    return RuleStore()


@pytest.fixture
def rule_engine(rule_store: RuleStore, fake_backend: FakeBackend) -> RuleEngine:
    return RuleEngine(rule_store, fake_backend)  # type: ignore[arg-type]


@pytest.fixture
def activation_workflow(rule_store: RuleStore, fake_backend: FakeBackend) -> ActivationWorkflow:
    return ActivationWorkflow(rule_store, fake_backend)  # type: ignore[arg-type]


@pytest.fixture
def persisted_config() -> dict[str, Any]:
    """A synced hotel's configuration as the backend stores it."""
    return {
        "hotel_id": 101,
        "sentinel_enabled": True,
        "guardrail_max": 350,
        "rate_freeze_period": "3",
        "base_room_type_id": "RT-DBL",
        "last_minute_floor": {"enabled": True, "rate": "85", "days": None, "dow": ["fri", "sat"]},
        "room_differentials": [{"roomTypeId": "RT-TWN", "operator": "-", "value": "5"}],
        "monthly_min_rates": {"jan": "80", "aug": "140"},
        "monthly_aggression": {"dec": "high"},
        "pms_room_types": {"data": ROOM_TYPES},
    }


# ---------------------------------------------------------------------------
# API client
# ---------------------------------------------------------------------------


@pytest_asyncio.fixture
async def client(
    fake_backend: FakeBackend,
    rule_engine: RuleEngine,
    activation_workflow: ActivationWorkflow,
) -> AsyncGenerator[AsyncClient, None]:
    """Provide an httpx AsyncClient wired to the fake backend."""
    app.dependency_overrides[get_backend_client] = lambda: fake_backend
    app.dependency_overrides[get_rule_engine] = lambda: rule_engine
    app.dependency_overrides[get_activation_workflow] = lambda: activation_workflow

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://testserver") as ac:
        yield ac

    app.dependency_overrides.clear()


@pytest.fixture
def fetch_error() -> FetchError:
    return FetchError("Backend unavailable", status_code=503)
