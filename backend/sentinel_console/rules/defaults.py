"""Default rule template applied to hotels without a persisted configuration."""

import copy
from typing import Any

from sentinel_console.config import Settings, settings
from sentinel_console.schemas.config import MONTHS


def build_default_rules(config: Settings = settings) -> dict[str, Any]:
    """Return a fresh default rule template.

    Every call returns a new object so callers may keep or hand it out without
    sharing nested state.
    """
    return {
        "sentinel_enabled": False,
        "guardrail_max": config.default_guardrail_max,
        "rate_freeze_period": config.default_rate_freeze_period,
        "base_room_type_id": "",
        "last_minute_floor": {
            "enabled": False,
            "rate": config.default_floor_rate,
            "days": config.default_floor_days,
            "dow": list(config.default_floor_dow),
        },
        "room_differentials": [],
        "monthly_min_rates": {month: config.default_monthly_min_rate for month in MONTHS},
        "monthly_aggression": {month: config.default_aggression for month in MONTHS},
        "seasonality_profile": {},
        "daily_max_rates": {},
        "pms_room_types": [],
    }


def _leaf_paths(node: dict[str, Any], prefix: str = "") -> set[str]:
    paths: set[str] = set()
    for key, value in node.items():
        path = f"{prefix}{key}"
        if isinstance(value, dict) and value:
            paths |= _leaf_paths(value, f"{path}.")
        else:
            paths.add(path)
    return paths


# Dot paths a user may edit through UpdateField. The PMS catalog is owned by the
# sync workflow and differentials have their own upsert operation.
EDITABLE_FIELDS: frozenset[str] = frozenset(
    path
    for path in _leaf_paths(build_default_rules())
    if path.split(".", 1)[0] not in {"pms_room_types", "room_differentials", "daily_max_rates"}
)

# Editable paths whose values are numbers carried as text.
NUMERIC_TEXT_PATHS: frozenset[str] = frozenset(
    {"guardrail_max", "rate_freeze_period", "last_minute_floor.rate", "last_minute_floor.days"}
    | {f"monthly_min_rates.{month}" for month in MONTHS}
)


def default_differential(config: Settings = settings) -> dict[str, str]:
    """Offset the UI shows for a room type that has no explicit rule yet."""
    return {"operator": "+", "value": config.default_differential_percent}


def clone(value: Any) -> Any:
    """Deep copy of a JSON-like rule structure."""
    return copy.deepcopy(value)
