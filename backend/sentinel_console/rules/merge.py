"""Pure functions over rule configurations.

Configurations are JSON-like dicts. None of these functions mutate their
arguments: every update returns a new top-level object so that callers
holding the previous one can detect the change by identity.
"""

import re
from typing import Any

from sentinel_console.exceptions import ConfigValidationError
from sentinel_console.rules.defaults import clone
from sentinel_console.schemas.sentinel import StatusFlags

# Text fields that must never be submitted empty.
NUMERIC_TEXT_FIELDS: tuple[str, ...] = (
    "rate_freeze_period",
    "guardrail_max",
    "last_minute_floor.rate",
    "last_minute_floor.days",
)
DIFFERENTIAL_FIELDS: frozenset[str] = frozenset({"operator", "value"})

_LEADING_INT = re.compile(r"^\s*[+-]?\d+")


def merge_with_defaults(persisted: dict[str, Any] | None, defaults: dict[str, Any]) -> dict[str, Any]:
    """Overlay a persisted configuration on the default template.

    Absent and ``None`` fields take the default. Month maps are filled key by
    key so all twelve months are always present. Fields the template does not
    know about (``hotel_id``) are carried through.
    """
    if persisted is None:
        return clone(defaults)

    merged: dict[str, Any] = {key: clone(value) for key, value in persisted.items() if value is not None}
    for key, default in defaults.items():
        value = persisted.get(key)
        if value is None:
            merged[key] = clone(default)
        elif isinstance(default, dict) and isinstance(value, dict) and default:
            merged[key] = {**clone(default), **{k: clone(v) for k, v in value.items() if v is not None}}
    if not merged.get("base_room_type_id"):
        merged["base_room_type_id"] = ""
    return merged


def set_path(config: dict[str, Any], path: str, value: Any) -> dict[str, Any]:
    """Return a deep copy of ``config`` with ``value`` set at the dot ``path``.

    Missing intermediate objects are created empty.
    """
    parts = path.split(".")
    if not all(parts):
        raise ConfigValidationError(f"Invalid field path: {path!r}")

    updated = clone(config)
    current = updated
    for part in parts[:-1]:
        child = current.get(part)
        if child is None:
            child = current[part] = {}
        elif not isinstance(child, dict):
            raise ConfigValidationError(f"Field path {path!r} crosses non-object field {part!r}")
        current = child
    current[parts[-1]] = value
    return updated


def get_path(config: dict[str, Any], path: str, default: Any = None) -> Any:
    current: Any = config
    for part in path.split("."):
        if not isinstance(current, dict) or part not in current:
            return default
        current = current[part]
    return current


def upsert_differential(config: dict[str, Any], room_type_id: str, field: str, value: Any) -> dict[str, Any]:
    """Change one field of a room type's differential, creating the rule if needed.

    A new rule starts as ``{"operator": "+", "value": "0"}``. The list never
    holds two rules for the same room type.
    """
    if field not in DIFFERENTIAL_FIELDS:
        raise ConfigValidationError(f"Unknown differential field: {field!r}")

    rules = [dict(rule) for rule in config.get("room_differentials") or []]
    for rule in rules:
        if rule.get("room_type_id") == room_type_id:
            rule[field] = value
            break
    else:
        rules.append({"room_type_id": room_type_id, "operator": "+", "value": "0", field: value})

    updated = clone(config)
    updated["room_differentials"] = rules
    return updated


def _leading_int(value: Any) -> int:
    if isinstance(value, bool):
        return 0
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(value) if value == value else 0
    match = _LEADING_INT.match(str(value or ""))
    return int(match.group()) if match else 0


def compute_status_flags(config: dict[str, Any]) -> StatusFlags:
    """Badges shown next to an active hotel."""
    floor = config.get("last_minute_floor") or {}
    return StatusFlags(
        has_floor_rate=floor.get("enabled") is True,
        has_rate_freeze=_leading_int(config.get("rate_freeze_period")) > 0,
        has_differentials=len(config.get("room_differentials") or []) > 0,
    )


def sanitize_for_save(config: dict[str, Any]) -> dict[str, Any]:
    """Copy of ``config`` with empty numeric text replaced by ``"0"``."""
    sanitized = clone(config)
    for path in NUMERIC_TEXT_FIELDS:
        if get_path(sanitized, path) == "":
            sanitized = set_path(sanitized, path, "0")
    return sanitized


def with_base_differential(config: dict[str, Any]) -> dict[str, Any]:
    """Copy of ``config`` whose differentials include the base room at +0%.

    The rate engine prices every room type from this list, the base room
    included.
    """
    base = config.get("base_room_type_id")
    rules = list(config.get("room_differentials") or [])
    if not base or any(rule.get("room_type_id") == base for rule in rules):
        return clone(config)
    updated = clone(config)
    updated["room_differentials"] = [*clone(rules), {"room_type_id": base, "operator": "+", "value": "0"}]
    return updated


def effective_differentials(config: dict[str, Any], default: dict[str, str]) -> list[dict[str, Any]]:
    """Offset per synced non-base room type, falling back to ``default``."""
    explicit = {rule.get("room_type_id"): rule for rule in config.get("room_differentials") or []}
    base = config.get("base_room_type_id")
    rows = []
    for room in config.get("pms_room_types") or []:
        room_type_id = room.get("room_type_id")
        if room_type_id == base:
            continue
        rule = explicit.get(room_type_id)
        rows.append(
            {
                "room_type_id": room_type_id,
                "room_type_name": room.get("room_type_name", ""),
                "operator": rule["operator"] if rule else default["operator"],
                "value": rule["value"] if rule else default["value"],
                "is_default": rule is None,
            }
        )
    return rows


def is_active(config: dict[str, Any] | None) -> bool:
    """A hotel is active once its PMS room-type catalog has been synced."""
    return bool(config and config.get("pms_room_types"))


def merged_view(server: dict[str, Any] | None, local: dict[str, Any] | None) -> dict[str, Any]:
    """Server record overlaid with local edits, as rendered by the console."""
    return {**(server or {}), **(local or {})}
