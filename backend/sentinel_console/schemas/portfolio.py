"""Pydantic v2 schemas for portfolio risk classification and anomaly detection."""

from datetime import date
from enum import Enum

from pydantic import AliasChoices, BaseModel, ConfigDict, Field

from sentinel_console.schemas.hotel import HotelId


class Quadrant(str, Enum):
    """Risk quadrant of a property's forward performance."""

    FILL_RISK = "Fill Risk"
    CRITICAL_RISK = "Critical Risk"
    RATE_STRATEGY_RISK = "Rate Strategy Risk"
    ON_PACE = "On Pace"
    INVALID = "Invalid"


class AnomalyKind(str, Enum):
    DROP = "drop"
    PERSISTENT = "persistent"
    OVERBOOKED = "overbooked"


class RiskLevel(str, Enum):
    CRITICAL = "critical"
    MODERATE = "moderate"
    LOW = "low"


# ---------------------------------------------------------------------------
# Boundary schemas (backend -> service)
# ---------------------------------------------------------------------------


class PortfolioFilter(BaseModel):
    """Restrict portfolio queries to one hotel or one management group."""

    hotel_id: str | None = None
    group: str | None = None

    def as_params(self) -> dict[str, str]:
        """Query parameters understood by the backend; a hotel wins over a group."""
        if self.hotel_id:
            return {"hotelId": self.hotel_id}
        if self.group:
            return {"group": self.group}
        return {}


class PortfolioMetricPoint(BaseModel):
    """Forward occupancy and pacing pressure for one hotel.

    Metric values are kept raw: the backend may send numbers, numeric strings
    or percent-suffixed strings, and parsing happens in the classifier.
    """

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    hotel_id: HotelId = Field(..., validation_alias=AliasChoices("hotel_id", "hotelId", "id"))
    hotel_name: str = Field("", validation_alias=AliasChoices("hotel_name", "hotelName", "name"))
    forward_occupancy: float | str | None = Field(
        None, validation_alias=AliasChoices("forward_occupancy", "forwardOccupancy")
    )
    pacing_difficulty_percent: float | str | None = Field(
        None, validation_alias=AliasChoices("pacing_difficulty_percent", "pacingDifficultyPercent")
    )
    current_month_status: str | None = Field(
        None, validation_alias=AliasChoices("current_month_status", "currentMonthStatus")
    )


class DailyOccupancySample(BaseModel):
    """One day of a hotel's forward occupancy matrix; list position is the day offset.

    Occupancy is kept raw and parsed by the anomaly detector, so a null or
    percent-suffixed sample does not fail the whole matrix.
    """

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    day: date | None = Field(None, validation_alias=AliasChoices("day", "stay_date", "date"))
    occupancy: float | str | None = None
    adr: float | str | None = None
    available: int | None = Field(
        None, validation_alias=AliasChoices("available", "available_rooms", "availableRooms")
    )


class HotelOccupancySeries(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    hotel_id: HotelId = Field(..., validation_alias=AliasChoices("hotel_id", "hotelId", "id"))
    hotel_name: str = Field("", validation_alias=AliasChoices("hotel_name", "hotelName", "name"))
    group: str | None = None
    samples: list[DailyOccupancySample] = Field(
        default_factory=list,
        validation_alias=AliasChoices("samples", "daily_samples", "dailySamples", "matrixData"),
    )


# ---------------------------------------------------------------------------
# Response schemas
# ---------------------------------------------------------------------------


class ClassifiedPoint(BaseModel):
    hotel_id: str
    hotel_name: str
    forward_occupancy: float | None = None  # None when unparsable
    pacing_difficulty_percent: float | None = None
    current_month_status: str | None = None
    quadrant: Quadrant


class QuadrantGroup(BaseModel):
    quadrant: Quadrant
    count: int
    hotels: list[ClassifiedPoint]


class PortfolioRiskResponse(BaseModel):
    """Classified points plus per-quadrant action lists."""

    points: list[ClassifiedPoint]
    quadrants: list[QuadrantGroup]


class Anomaly(BaseModel):
    day_index: int
    kind: AnomalyKind


class HotelAnomalyReport(BaseModel):
    hotel_id: str
    hotel_name: str
    group: str | None = None
    average_occupancy: float
    risk_level: RiskLevel
    anomalies: list[Anomaly]
    samples: list[DailyOccupancySample]


class PortfolioAnomalyResponse(BaseModel):
    portfolio_average_occupancy: float
    hotels: list[HotelAnomalyReport]
