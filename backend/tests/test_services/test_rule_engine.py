"""Tests for RuleEngine: load, edit and save against the fake backend."""

import asyncio
import json

import httpx
import pytest

from sentinel_console.clients.backend import BackendClient
from sentinel_console.exceptions import ConfigValidationError, FetchError, StateConflict
from sentinel_console.rules.defaults import build_default_rules
from sentinel_console.rules.store import RuleStore
from sentinel_console.services.rule_engine import RuleEngine


async def _until(predicate, attempts: int = 50) -> None:
    for _ in range(attempts):
        if predicate():
            return
        await asyncio.sleep(0)
    raise AssertionError("condition never became true")


class TestLoadAll:
    async def test_populates_server_layer_and_pms_ids(self, rule_engine, rule_store, fake_backend, persisted_config):
        fake_backend.configs["101"] = persisted_config
        fake_backend.pms_ids = {"101": "PMS-101", "202": "PMS-202"}

        await rule_engine.load_all()

        assert rule_store.registry_loaded is True
        assert rule_store.pms_property_id("202") == "PMS-202"
        server = rule_store.server("101")
        assert server["guardrail_max"] == "350"
        assert [r["room_type_id"] for r in server["pms_room_types"]] == ["RT-DBL", "RT-TWN", "RT-STE"]

    async def test_failure_leaves_store_untouched(self, rule_engine, rule_store, fake_backend, fetch_error):
        fake_backend.fail["get_pms_property_ids"] = fetch_error

        with pytest.raises(FetchError):
            await rule_engine.load_all()

        assert rule_store.registry_loaded is False
        assert rule_store.server_configs() == {}


class TestLoad:
    async def test_merges_persisted_config_with_defaults(self, rule_engine, rule_store, fake_backend, persisted_config):
        fake_backend.configs["101"] = persisted_config
        fake_backend.max_rates["101"] = {"2026-12-31": "600"}

        rules = await rule_engine.load("101")

        assert rules["guardrail_max"] == "350"
        assert rules["last_minute_floor"]["days"] == "7"
        assert rules["monthly_min_rates"]["jan"] == "80"
        assert rules["monthly_min_rates"]["mar"] == "100"
        assert rules["daily_max_rates"] == {"2026-12-31": "600"}
        assert rule_store.local("101") is rules
        assert rule_store.server("101") is not None

    async def test_no_persisted_config_gives_defaults(self, rule_engine, rule_store):
        rules = await rule_engine.load("999")

        assert rules == build_default_rules()
        assert rule_store.server("999") is None

    async def test_second_load_is_a_no_op(self, rule_engine, fake_backend, persisted_config):
        fake_backend.configs["101"] = persisted_config

        first = await rule_engine.load("101")
        second = await rule_engine.load("101")

        assert second is first
        assert fake_backend.call_count("get_hotel_config") == 1

    async def test_load_keeps_pending_edits(self, rule_engine, fake_backend, persisted_config):
        fake_backend.configs["101"] = persisted_config
        await rule_engine.load("101")
        rule_engine.update_field("101", "guardrail_max", "999")

        rules = await rule_engine.load("101")

        assert rules["guardrail_max"] == "999"
        assert fake_backend.call_count("get_hotel_config") == 1

    async def test_concurrent_loads_share_one_fetch(self, rule_engine, fake_backend, persisted_config):
        fake_backend.configs["101"] = persisted_config
        fake_backend.gate = asyncio.Event()

        tasks = [asyncio.create_task(rule_engine.load("101")) for _ in range(3)]
        await _until(lambda: fake_backend.call_count("get_hotel_config") == 1)
        fake_backend.gate.set()
        results = await asyncio.gather(*tasks)

        assert fake_backend.call_count("get_hotel_config") == 1
        assert results[0] is results[1] is results[2]

    async def test_edit_during_pending_load_wins(self, rule_engine, rule_store, fake_backend, persisted_config):
        fake_backend.configs["101"] = persisted_config
        fake_backend.gate = asyncio.Event()

        task = asyncio.create_task(rule_engine.load("101"))
        await _until(lambda: fake_backend.call_count("get_hotel_config") == 1)
        rule_engine.update_field("101", "guardrail_max", "500")
        fake_backend.gate.set()
        rules = await task

        assert rules["guardrail_max"] == "500"
        assert rule_store.local("101")["guardrail_max"] == "500"

    async def test_fetch_failure_leaves_store_untouched(self, rule_engine, rule_store, fake_backend, fetch_error):
        fake_backend.fail["get_hotel_config"] = fetch_error

        with pytest.raises(FetchError):
            await rule_engine.load("101")

        assert rule_store.local("101") is None
        assert rule_store.server("101") is None


class TestUpdateField:
    async def test_sets_value_copy_on_write(self, rule_engine, rule_store, fake_backend, persisted_config):
        fake_backend.configs["101"] = persisted_config
        before = await rule_engine.load("101")

        after = rule_engine.update_field("101", "last_minute_floor.rate", "120")

        assert after is not before
        assert after["last_minute_floor"]["rate"] == "120"
        assert before["last_minute_floor"]["rate"] == "85"
        assert rule_store.local("101") is after

    def test_edit_before_load_seeds_from_defaults(self, rule_engine):
        rules = rule_engine.update_field("303", "monthly_aggression.jul", "high")

        assert rules["monthly_aggression"]["jul"] == "high"
        assert rules["guardrail_max"] == "400"

    def test_numbers_become_text(self, rule_engine):
        rules = rule_engine.update_field("303", "guardrail_max", 450)
        assert rules["guardrail_max"] == "450"

    def test_numbers_for_non_numeric_fields_are_not_stringified(self, rule_engine):
        rules = rule_engine.update_field("303", "sentinel_enabled", 1)
        assert rules["sentinel_enabled"] == 1

    def test_booleans_are_kept(self, rule_engine):
        rules = rule_engine.update_field("303", "sentinel_enabled", True)
        assert rules["sentinel_enabled"] is True

    @pytest.mark.parametrize("path", ["pms_room_types", "room_differentials", "unknown", "guardrail_max.value"])
    def test_rejects_unknown_or_read_only_paths(self, rule_engine, rule_store, path):
        with pytest.raises(ConfigValidationError):
            rule_engine.update_field("303", path, "1")
        assert rule_store.local("303") is None


class TestUpsertDifferential:
    def test_creates_then_edits_one_rule(self, rule_engine):
        rule_engine.upsert_differential("303", "RT-TWN", "value", "10")
        rules = rule_engine.upsert_differential("303", "RT-TWN", "operator", "-")

        assert rules["room_differentials"] == [{"room_type_id": "RT-TWN", "operator": "-", "value": "10"}]


class TestMerged:
    def test_unknown_hotel(self, rule_engine):
        assert rule_engine.merged("404") is None

    async def test_local_overlays_server(self, rule_engine, fake_backend, persisted_config):
        fake_backend.configs["101"] = persisted_config
        await rule_engine.load("101")
        rule_engine.update_field("101", "rate_freeze_period", "5")

        merged = rule_engine.merged("101")
        assert merged["rate_freeze_period"] == "5"
        assert len(merged["pms_room_types"]) == 3


class TestSave:
    async def test_converges_server_and_local(self, rule_engine, rule_store, fake_backend, persisted_config):
        fake_backend.configs["101"] = persisted_config
        await rule_engine.load("101")
        rule_engine.update_field("101", "guardrail_max", "420")

        saved = await rule_engine.save("101")

        assert saved["guardrail_max"] == "420"
        assert rule_store.server("101") == rule_store.local("101") == saved
        assert rule_store.saving == set()

    async def test_payload_includes_base_room_at_zero(self, rule_engine, rule_store, fake_backend, persisted_config):
        fake_backend.configs["101"] = persisted_config
        await rule_engine.load("101")

        await rule_engine.save("101")

        _, payload = fake_backend.saved[0]
        assert {"roomTypeId": "RT-DBL", "operator": "+", "value": "0"} in payload["room_differentials"]
        assert {"roomTypeId": "RT-TWN", "operator": "-", "value": "5"} in payload["room_differentials"]

    async def test_empty_numeric_fields_are_sent_as_zero(self, rule_engine, fake_backend, persisted_config):
        fake_backend.configs["101"] = persisted_config
        await rule_engine.load("101")
        rule_engine.update_field("101", "rate_freeze_period", "")

        await rule_engine.save("101")

        _, payload = fake_backend.saved[0]
        assert payload["rate_freeze_period"] == "0"

    async def test_failure_keeps_local_edits(self, rule_engine, rule_store, fake_backend, persisted_config, fetch_error):
        fake_backend.configs["101"] = persisted_config
        await rule_engine.load("101")
        edited = rule_engine.update_field("101", "guardrail_max", "420")
        server_before = rule_store.server("101")
        fake_backend.fail["save_hotel_config"] = fetch_error

        with pytest.raises(FetchError):
            await rule_engine.save("101")

        assert rule_store.local("101") is edited
        assert rule_store.server("101") is server_before
        assert rule_store.saving == set()

    @pytest.mark.parametrize(
        ("path", "value"),
        [
            ("guardrail_max", "-5"),
            ("monthly_min_rates.jan", "abc"),
            ("last_minute_floor.days", "-1"),
            ("monthly_aggression.feb", "extreme"),
            ("sentinel_enabled", "false"),
            ("sentinel_enabled", 1),
            ("last_minute_floor.enabled", "yes"),
        ],
    )
    async def test_invalid_config_is_never_submitted(self, rule_engine, fake_backend, persisted_config, path, value):
        fake_backend.configs["101"] = persisted_config
        await rule_engine.load("101")
        rule_engine.update_field("101", path, value)

        with pytest.raises(ConfigValidationError):
            await rule_engine.save("101")

        assert fake_backend.saved == []

    async def test_nothing_loaded(self, rule_engine):
        with pytest.raises(ConfigValidationError):
            await rule_engine.save("101")

    async def test_rejects_overlapping_save(self, rule_engine, rule_store, fake_backend, persisted_config):
        fake_backend.configs["101"] = persisted_config
        await rule_engine.load("101")
        rule_store.saving.add("101")

        with pytest.raises(StateConflict):
            await rule_engine.save("101")

        assert fake_backend.saved == []


class TestDailyMaxRates:
    async def test_saves_and_mirrors_into_local(self, rule_engine, rule_store, fake_backend, persisted_config):
        fake_backend.configs["101"] = persisted_config
        await rule_engine.load("101")

        saved = await rule_engine.save_daily_max_rates("101", {"2026-11-01": "250", "2026-11-02": "260"})

        assert saved == {"2026-11-01": "250", "2026-11-02": "260"}
        assert fake_backend.max_rates["101"] == saved
        assert rule_store.local("101")["daily_max_rates"] == saved

    async def test_rejects_bad_dates(self, rule_engine, fake_backend):
        with pytest.raises(ConfigValidationError):
            await rule_engine.save_daily_max_rates("101", {"next tuesday": "250"})

        assert fake_backend.call_count("save_daily_max_rates") == 0

    async def test_saved_max_rates_survive_rule_save(self, rule_engine, fake_backend, persisted_config):
        fake_backend.configs["101"] = persisted_config
        await rule_engine.load("101")
        await rule_engine.save_daily_max_rates("101", {"2026-11-01": "250"})

        saved = await rule_engine.save("101")

        assert saved["daily_max_rates"] == {"2026-11-01": "250"}


class TestSaveWireFormat:
    """The body posted through the real client uses the backend's key names."""

    @pytest.fixture
    def posted(self) -> list[dict]:
        return []

    @pytest.fixture
    def http_engine(self, persisted_config, posted):
        def handler(request: httpx.Request) -> httpx.Response:
            if request.url.path == "/api/sentinel/config/101" and request.method == "GET":
                return httpx.Response(200, json=persisted_config)
            if request.url.path == "/api/sentinel/max-rates/101":
                return httpx.Response(200, json={})
            body = json.loads(request.content)
            posted.append(body)
            return httpx.Response(200, json={"data": {**body, "hotel_id": "101"}})

        backend = BackendClient("http://backend.test", transport=httpx.MockTransport(handler))
        return RuleEngine(RuleStore(), backend)

    async def test_differentials_and_catalog_in_backend_shape(self, http_engine, posted):
        await http_engine.load("101")

        await http_engine.save("101")

        body = posted[0]
        assert body["room_differentials"] == [
            {"roomTypeId": "RT-TWN", "operator": "-", "value": "5"},
            {"roomTypeId": "RT-DBL", "operator": "+", "value": "0"},
        ]
        assert body["pms_room_types"] == {
            "data": [
                {"roomTypeID": "RT-DBL", "roomTypeName": "Double"},
                {"roomTypeID": "RT-TWN", "roomTypeName": "Twin"},
                {"roomTypeID": "RT-STE", "roomTypeName": "Suite"},
            ]
        }
        assert body["sentinel_enabled"] is True

    async def test_echo_is_read_back_into_local_rules(self, http_engine, posted):
        await http_engine.load("101")

        saved = await http_engine.save("101")

        assert {"room_type_id": "RT-DBL", "operator": "+", "value": "0"} in saved["room_differentials"]
        assert [r["room_type_id"] for r in saved["pms_room_types"]] == ["RT-DBL", "RT-TWN", "RT-STE"]

    async def test_boolean_sent_as_boolean(self, http_engine, posted):
        await http_engine.load("101")
        http_engine.update_field("101", "sentinel_enabled", False)

        await http_engine.save("101")

        assert posted[0]["sentinel_enabled"] is False

    async def test_text_boolean_is_rejected(self, http_engine, posted):
        await http_engine.load("101")
        http_engine.update_field("101", "sentinel_enabled", "false")

        with pytest.raises(ConfigValidationError):
            await http_engine.save("101")

        assert posted == []
