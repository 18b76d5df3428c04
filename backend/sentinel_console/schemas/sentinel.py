"""Pydantic v2 request/response schemas for the Sentinel rule endpoints."""

from enum import Enum
from typing import Any, Literal

from pydantic import BaseModel, Field

from sentinel_console.schemas.config import NonNegativeText

# ---------------------------------------------------------------------------
# Request schemas
# ---------------------------------------------------------------------------


class FieldUpdateRequest(BaseModel):
    """Set one field of the local rule edits, addressed by a dot path."""

    path: str = Field(..., min_length=1, examples=["last_minute_floor.rate"])
    value: Any


class DifferentialUpdateRequest(BaseModel):
    field: Literal["operator", "value"]
    value: str


class SyncRequest(BaseModel):
    """Activate a hotel by syncing its room-type catalog from the PMS."""

    pms_property_id: str | None = None


class MaxRatesRequest(BaseModel):
    rates: dict[str, NonNegativeText]  # {"2026-01-01": "200"}


# ---------------------------------------------------------------------------
# Response schemas
# ---------------------------------------------------------------------------


class Phase(str, Enum):
    """Where a hotel sits in the activation/sync workflow."""

    AVAILABLE = "available"
    SYNCING = "syncing"
    ACTIVE = "active"
    SAVING = "saving"


class StatusFlags(BaseModel):
    has_floor_rate: bool
    has_rate_freeze: bool
    has_differentials: bool


class EffectiveDifferential(BaseModel):
    """Offset applied to a non-base room type; ``is_default`` when no rule exists."""

    room_type_id: str
    room_type_name: str = ""
    operator: str
    value: str
    is_default: bool


class HotelRulesResponse(BaseModel):
    """Merged configuration of one hotel as rendered by the console."""

    hotel_id: str
    phase: Phase
    config: dict[str, Any]
    status: StatusFlags
    differentials: list[EffectiveDifferential] = []


class PhaseResponse(BaseModel):
    hotel_id: str
    phase: Phase


class AvailableHotel(BaseModel):
    hotel_id: str
    property_name: str
    pms_property_id: str | None = None
    management_group: str | None = None


class ActiveHotel(AvailableHotel):
    config: dict[str, Any]
    status: StatusFlags


class HotelListResponse(BaseModel):
    available: list[AvailableHotel]
    active: list[ActiveHotel]


class MessageResponse(BaseModel):
    message: str
