"""Rule merge engine: loads, edits and saves per-hotel Sentinel configurations.

Three layers meet here: the configuration persisted by the backend, the
default rule template, and the user's uncommitted edits held in the
``RuleStore``. Edits are copy-on-write; a failed save or fetch leaves the
store exactly as it was.
"""

import asyncio
import logging
from datetime import date
from typing import Any

from pydantic import ValidationError

from sentinel_console.clients.backend import BackendClient
from sentinel_console.config import Settings, settings
from sentinel_console.exceptions import ConfigValidationError, FetchError, StateConflict
from sentinel_console.rules.defaults import (
    EDITABLE_FIELDS,
    NUMERIC_TEXT_PATHS,
    build_default_rules,
    default_differential,
)
from sentinel_console.rules.merge import (
    merge_with_defaults,
    merged_view,
    sanitize_for_save,
    set_path,
    upsert_differential,
    with_base_differential,
)
from sentinel_console.rules.store import RuleStore
from sentinel_console.schemas.config import HotelConfigSubmission

logger = logging.getLogger(__name__)


def _describe(exc: ValidationError) -> str:
    """Flatten pydantic errors into one user-visible line."""
    problems = []
    for error in exc.errors():
        location = ".".join(str(part) for part in error["loc"])
        problems.append(f"{location}: {error['msg']}")
    return "Invalid configuration: " + "; ".join(problems)


class RuleEngine:
    """Merge, update and persist rule configurations for many hotels."""

    def __init__(self, store: RuleStore, backend: BackendClient, config: Settings = settings) -> None:
        self._store = store
        self._backend = backend
        self._settings = config
        self._load_locks: dict[str, asyncio.Lock] = {}

    @property
    def store(self) -> RuleStore:
        return self._store

    def defaults(self) -> dict[str, Any]:
        return build_default_rules(self._settings)

    def default_differential(self) -> dict[str, str]:
        return default_differential(self._settings)

    # ------------------------------------------------------------------
    # Loading
    # ------------------------------------------------------------------

    async def load_all(self) -> None:
        """Fetch every persisted configuration and the PMS id map."""
        configs, pms_ids = await asyncio.gather(
            self._backend.get_hotel_configs(),
            self._backend.get_pms_property_ids(),
        )
        self._store.replace_server(
            {hotel_id: config.model_dump(exclude_none=True) for hotel_id, config in configs.items()}
        )
        self._store.replace_pms_ids(pms_ids)
        self._store.registry_loaded = True
        logger.info("Loaded %d Sentinel configurations and %d PMS ids", len(configs), len(pms_ids))

    async def load(self, hotel_id: str) -> dict[str, Any]:
        """Populate the local-edit layer for a hotel, once.

        Existing local edits are returned untouched. Concurrent calls for the
        same hotel share a single fetch.
        """
        existing = self._store.local(hotel_id)
        if existing is not None:
            return existing

        lock = self._load_locks.setdefault(hotel_id, asyncio.Lock())
        async with lock:
            existing = self._store.local(hotel_id)
            if existing is not None:
                return existing

            persisted, max_rates = await asyncio.gather(
                self._backend.get_hotel_config(hotel_id),
                self._backend.get_daily_max_rates(hotel_id),
            )
            if persisted is None:
                rules = self.defaults()
            else:
                record = persisted.model_dump(exclude_none=True)
                record["daily_max_rates"] = max_rates
                rules = merge_with_defaults(record, self.defaults())
                if self._store.server(hotel_id) is None:
                    self._store.set_server(hotel_id, record)

            # An edit made while the fetch was pending already seeded the layer.
            existing = self._store.local(hotel_id)
            if existing is not None:
                return existing

            self._store.set_local(hotel_id, rules)
            logger.info("Loaded rules for hotel %s (persisted=%s)", hotel_id, persisted is not None)
            return rules

    # ------------------------------------------------------------------
    # Editing
    # ------------------------------------------------------------------

    def _current(self, hotel_id: str) -> dict[str, Any]:
        current = self._store.local(hotel_id)
        return current if current is not None else self.defaults()

    def update_field(self, hotel_id: str, path: str, value: Any) -> dict[str, Any]:
        """Set one editable field of the hotel's local rules."""
        if path not in EDITABLE_FIELDS:
            raise ConfigValidationError(f"Unknown or read-only field path: {path!r}")
        if path in NUMERIC_TEXT_PATHS and isinstance(value, (int, float)) and not isinstance(value, bool):
            value = str(value)

        updated = set_path(self._current(hotel_id), path, value)
        self._store.set_local(hotel_id, updated)
        return updated

    def upsert_differential(self, hotel_id: str, room_type_id: str, field: str, value: Any) -> dict[str, Any]:
        """Change the operator or value of one room type's differential."""
        updated = upsert_differential(self._current(hotel_id), room_type_id, field, value)
        self._store.set_local(hotel_id, updated)
        return updated

    def merged(self, hotel_id: str) -> dict[str, Any] | None:
        """Server record overlaid with local edits, or None for an unknown hotel."""
        if not self._store.knows(hotel_id):
            return None
        return merged_view(self._store.server(hotel_id), self._store.local(hotel_id))

    # ------------------------------------------------------------------
    # Saving
    # ------------------------------------------------------------------

    async def save(self, hotel_id: str) -> dict[str, Any]:
        """Submit the hotel's local rules and adopt the backend's echo.

        The body sent is the validated submission under the backend's key
        names. The local layer is left exactly as it was if validation or the
        request fails.
        """
        current = self._store.local(hotel_id)
        if current is None:
            raise ConfigValidationError(f"No rules loaded for hotel {hotel_id}")
        if hotel_id in self._store.saving:
            raise StateConflict(f"A save is already in progress for hotel {hotel_id}")

        try:
            submission = HotelConfigSubmission.model_validate(with_base_differential(sanitize_for_save(current)))
        except ValidationError as exc:
            raise ConfigValidationError(_describe(exc)) from exc
        payload = submission.model_dump(mode="json", by_alias=True)

        self._store.saving.add(hotel_id)
        try:
            saved = await self._backend.save_hotel_config(hotel_id, payload)
        except FetchError as exc:
            logger.error("Saving rules for hotel %s failed: %s", hotel_id, exc.message)
            raise
        finally:
            self._store.saving.discard(hotel_id)

        record = saved.model_dump(exclude_none=True)
        record.setdefault("daily_max_rates", current.get("daily_max_rates") or {})
        config = merge_with_defaults(record, self.defaults())
        self._store.set_server(hotel_id, config)
        self._store.set_local(hotel_id, config)
        logger.info("Saved rules for hotel %s", hotel_id)
        return config

    async def save_daily_max_rates(self, hotel_id: str, rates: dict[str, str]) -> dict[str, str]:
        """Persist per-date rate ceilings and mirror them into the local rules."""
        for stay_date in rates:
            try:
                date.fromisoformat(stay_date)
            except ValueError:
                raise ConfigValidationError(f"Invalid stay date: {stay_date!r}") from None

        await self._backend.save_daily_max_rates(hotel_id, rates)

        current = self._store.local(hotel_id)
        if current is not None:
            self._store.set_local(hotel_id, set_path(current, "daily_max_rates", dict(rates)))
        logger.info("Saved %d daily max rates for hotel %s", len(rates), hotel_id)
        return dict(rates)
