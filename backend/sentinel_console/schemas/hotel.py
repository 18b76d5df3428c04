"""Pydantic v2 schemas for the hotel registry."""

from typing import Annotated, Any

from pydantic import AliasChoices, BaseModel, BeforeValidator, ConfigDict, Field


def _to_str(value: Any) -> Any:
    if isinstance(value, int) and not isinstance(value, bool):
        return str(value)
    return value


HotelId = Annotated[str, BeforeValidator(_to_str)]


class Hotel(BaseModel):
    """A property known to the registry."""

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    hotel_id: HotelId = Field(..., validation_alias=AliasChoices("hotel_id", "hotelId", "id"))
    property_name: str = Field("", validation_alias=AliasChoices("property_name", "propertyName", "name"))
    is_managed: bool = Field(
        False, validation_alias=AliasChoices("is_managed", "is_rockenue_managed", "isManaged")
    )
    pms_property_id: Annotated[str, BeforeValidator(_to_str)] | None = None
    management_group: str | None = None
