"""Pydantic v2 schemas for Sentinel rate-governance configuration.

Two families live here:

* Boundary models (``HotelConfig`` and its parts) parse whatever the backend
  returns. Every field is optional so that a partial record can be merged with
  the default rule template; numbers sent for text fields become text, and the
  backend's camelCase keys are accepted alongside snake_case.
* ``HotelConfigSubmission`` is the strict shape a configuration must satisfy
  before it is sent back to the backend. Booleans must be real booleans, and
  dumping it by alias restores the backend's wire keys (``roomTypeId``, the
  ``{"data": [...]}`` room catalog).
"""

from decimal import Decimal, InvalidOperation
from typing import Annotated, Any, Literal

from pydantic import (
    AliasChoices,
    AfterValidator,
    BaseModel,
    BeforeValidator,
    ConfigDict,
    Field,
    SerializerFunctionWrapHandler,
    StrictBool,
    field_serializer,
    field_validator,
)

MONTHS: tuple[str, ...] = (
    "jan",
    "feb",
    "mar",
    "apr",
    "may",
    "jun",
    "jul",
    "aug",
    "sep",
    "oct",
    "nov",
    "dec",
)

Month = Literal["jan", "feb", "mar", "apr", "may", "jun", "jul", "aug", "sep", "oct", "nov", "dec"]
DayOfWeek = Literal["sun", "mon", "tue", "wed", "thu", "fri", "sat"]
Aggression = Literal["low", "medium", "high"]
Operator = Literal["+", "-"]


def _to_text(value: Any) -> Any:
    """Numbers arriving for text-edited fields are carried as text."""
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float, Decimal)):
        return str(value)
    return value


def _lower(value: Any) -> Any:
    return value.strip().lower() if isinstance(value, str) else value


def _non_negative(value: str) -> str:
    """Require text that parses as a finite, non-negative number."""
    try:
        number = Decimal(value.strip())
    except InvalidOperation:
        raise ValueError(f"{value!r} is not a number") from None
    if not number.is_finite() or number < 0:
        raise ValueError(f"{value!r} must be a non-negative number")
    return value


NumericText = Annotated[str, BeforeValidator(_to_text)]
NonNegativeText = Annotated[str, BeforeValidator(_to_text), AfterValidator(_non_negative)]
DayOfWeekValue = Annotated[DayOfWeek, BeforeValidator(_lower)]
MonthKey = Annotated[Month, BeforeValidator(_lower)]

# ---------------------------------------------------------------------------
# Boundary schemas (backend -> service)
# ---------------------------------------------------------------------------


class LastMinuteFloor(BaseModel):
    """Minimum-rate override within ``days`` of arrival on the listed weekdays."""

    model_config = ConfigDict(extra="ignore")

    enabled: bool | None = None
    rate: NumericText | None = None
    days: NumericText | None = None
    dow: list[DayOfWeekValue] | None = Field(
        None, validation_alias=AliasChoices("dow", "days_of_week", "daysOfWeek")
    )


class RoomDifferential(BaseModel):
    """Percentage offset of one room type from the base room type."""

    model_config = ConfigDict(extra="ignore")

    room_type_id: str = Field(..., validation_alias=AliasChoices("room_type_id", "roomTypeId", "roomTypeID"))
    operator: Operator = "+"
    value: NumericText = "0"


class PmsRoomType(BaseModel):
    """A room type synced from the property-management system."""

    model_config = ConfigDict(extra="ignore")

    room_type_id: str = Field(..., validation_alias=AliasChoices("room_type_id", "roomTypeID", "roomTypeId"))
    room_type_name: str = Field(
        "", validation_alias=AliasChoices("room_type_name", "roomTypeName", "name")
    )


class HotelConfig(BaseModel):
    """One hotel's Sentinel configuration record as returned by the backend."""

    model_config = ConfigDict(extra="ignore")

    hotel_id: Annotated[str, BeforeValidator(_to_text)] | None = None
    sentinel_enabled: bool | None = None
    guardrail_max: NumericText | None = None
    rate_freeze_period: NumericText | None = None
    base_room_type_id: str | None = None
    last_minute_floor: LastMinuteFloor | None = None
    room_differentials: list[RoomDifferential] | None = None
    monthly_min_rates: dict[MonthKey, NumericText] | None = None
    monthly_aggression: dict[MonthKey, Aggression] | None = None
    pms_room_types: list[PmsRoomType] | None = None
    seasonality_profile: dict[str, Any] | None = None
    daily_max_rates: dict[str, NumericText] | None = None

    @field_validator("pms_room_types", mode="before")
    @classmethod
    def _unwrap_data_envelope(cls, value: Any) -> Any:
        """The backend stores the catalog as ``{"data": [...]}``."""
        if isinstance(value, dict):
            return value.get("data") or []
        return value


# ---------------------------------------------------------------------------
# Submission schema (service -> backend)
# ---------------------------------------------------------------------------


class FloorSubmission(BaseModel):
    model_config = ConfigDict(extra="allow")

    enabled: StrictBool = False
    rate: NonNegativeText
    days: NonNegativeText
    dow: list[DayOfWeek] = []


class DifferentialSubmission(BaseModel):
    """Serialized with the backend's ``roomTypeId`` key."""

    model_config = ConfigDict(extra="allow")

    room_type_id: str = Field(
        ...,
        min_length=1,
        validation_alias=AliasChoices("room_type_id", "roomTypeId", "roomTypeID"),
        serialization_alias="roomTypeId",
    )
    operator: Operator
    value: NonNegativeText


class PmsRoomTypeSubmission(BaseModel):
    room_type_id: str = Field(
        ...,
        validation_alias=AliasChoices("room_type_id", "roomTypeID", "roomTypeId"),
        serialization_alias="roomTypeID",
    )
    room_type_name: str = Field(
        "",
        validation_alias=AliasChoices("room_type_name", "roomTypeName", "name"),
        serialization_alias="roomTypeName",
    )


class HotelConfigSubmission(BaseModel):
    """Shape a configuration must have before it is saved.

    Dump with ``by_alias=True`` to get the backend's wire keys.
    """

    model_config = ConfigDict(extra="allow")

    sentinel_enabled: StrictBool = False
    guardrail_max: NonNegativeText
    rate_freeze_period: NonNegativeText
    base_room_type_id: str = ""
    last_minute_floor: FloorSubmission
    room_differentials: list[DifferentialSubmission] = []
    monthly_min_rates: dict[Month, NonNegativeText]
    monthly_aggression: dict[Month, Aggression]
    daily_max_rates: dict[str, NonNegativeText] = {}
    pms_room_types: list[PmsRoomTypeSubmission] = []

    @field_validator("room_differentials")
    @classmethod
    def _one_rule_per_room_type(cls, value: list[DifferentialSubmission]) -> list[DifferentialSubmission]:
        seen: set[str] = set()
        for rule in value:
            if rule.room_type_id in seen:
                raise ValueError(f"duplicate differential for room type {rule.room_type_id}")
            seen.add(rule.room_type_id)
        return value

    @field_serializer("pms_room_types", mode="wrap")
    def _data_envelope(
        self, value: list[PmsRoomTypeSubmission], handler: SerializerFunctionWrapHandler
    ) -> dict[str, Any]:
        """The backend stores the catalog as ``{"data": [...]}``."""
        return {"data": handler(value)}
