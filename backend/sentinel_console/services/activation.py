"""Activation/sync workflow: moves a hotel from available to active via a PMS sync."""

import logging
from typing import Any

from sentinel_console.clients.backend import BackendClient
from sentinel_console.config import Settings, settings
from sentinel_console.exceptions import ConfigValidationError, FetchError, StateConflict
from sentinel_console.rules.defaults import build_default_rules
from sentinel_console.rules.merge import is_active
from sentinel_console.rules.store import RuleStore
from sentinel_console.schemas.sentinel import Phase

logger = logging.getLogger(__name__)


def phase_of(store: RuleStore, hotel_id: str) -> Phase:
    """Current workflow phase, derived from the store on every call."""
    if hotel_id in store.syncing:
        return Phase.SYNCING
    if hotel_id in store.saving:
        return Phase.SAVING
    if is_active(store.server(hotel_id)):
        return Phase.ACTIVE
    return Phase.AVAILABLE


class ActivationWorkflow:
    """Run PMS facts syncs, at most one in flight per hotel."""

    def __init__(self, store: RuleStore, backend: BackendClient, config: Settings = settings) -> None:
        self._store = store
        self._backend = backend
        self._settings = config

    def phase(self, hotel_id: str) -> Phase:
        return phase_of(self._store, hotel_id)

    async def activate(self, hotel_id: str, pms_property_id: str | None = None) -> dict[str, Any]:
        """Sync the hotel's room-type catalog and seed its local rules.

        Automation is always switched off after a sync; enabling it takes an
        explicit save. On failure the store is left untouched.
        """
        if hotel_id in self._store.syncing:
            raise StateConflict(f"A PMS sync is already running for hotel {hotel_id}")

        pms_property_id = pms_property_id or self._store.pms_property_id(hotel_id)
        if not pms_property_id:
            raise ConfigValidationError(f"No PMS property id known for hotel {hotel_id}")

        self._store.syncing.add(hotel_id)
        logger.info("Starting PMS sync for hotel %s (PMS id %s)", hotel_id, pms_property_id)
        try:
            synced = await self._backend.sync_pms_facts(hotel_id, pms_property_id)
            if not synced.pms_room_types:
                raise FetchError("PMS sync returned no room types")
        except FetchError as exc:
            logger.warning("PMS sync for hotel %s failed: %s", hotel_id, exc.message)
            raise
        finally:
            self._store.syncing.discard(hotel_id)

        record = synced.model_dump(exclude_none=True)
        existing = self._store.local(hotel_id)
        if existing is None:
            existing = build_default_rules(self._settings)

        rules = {
            **existing,
            "sentinel_enabled": False,
            "pms_room_types": record["pms_room_types"],
            "base_room_type_id": (
                record.get("base_room_type_id")
                or existing.get("base_room_type_id")
                or record["pms_room_types"][0]["room_type_id"]
            ),
        }
        self._store.set_server(hotel_id, record)
        self._store.set_local(hotel_id, rules)
        logger.info("PMS sync complete for hotel %s: %d room types", hotel_id, len(record["pms_room_types"]))
        return rules
