"""Anomaly detection over a hotel's forward daily occupancy series."""

import math
from collections.abc import Sequence

from sentinel_console.risk.classifier import parse_metric
from sentinel_console.schemas.portfolio import (
    Anomaly,
    AnomalyKind,
    DailyOccupancySample,
    HotelAnomalyReport,
    HotelOccupancySeries,
    RiskLevel,
)

DROP_POINTS = 15.0
LOW_OCCUPANCY = 50.0
PERSISTENT_DAYS = 7
OVERBOOKED = 100.0

RISK_WINDOW_DAYS = 30
CRITICAL_AVERAGE = 45.0
MODERATE_AVERAGE = 60.0

_RISK_ORDER = {RiskLevel.CRITICAL: 0, RiskLevel.MODERATE: 1, RiskLevel.LOW: 2}


def detect_anomalies(occupancies: Sequence[float]) -> list[Anomaly]:
    """Flag sudden drops, persistent low runs and overbooked days.

    ``occupancies[0]`` is today. The three checks are independent, so one day
    can carry several kinds. Results list drops, then persistent runs, then
    overbooked days, each in day order. NaN samples never trigger and break a
    low run.
    """
    anomalies: list[Anomaly] = []

    for i in range(1, len(occupancies)):
        if occupancies[i - 1] - occupancies[i] >= DROP_POINTS:
            anomalies.append(Anomaly(day_index=i, kind=AnomalyKind.DROP))

    low_run = 0
    for i, occupancy in enumerate(occupancies):
        if occupancy < LOW_OCCUPANCY:
            low_run += 1
            if low_run == PERSISTENT_DAYS:
                anomalies.append(Anomaly(day_index=i, kind=AnomalyKind.PERSISTENT))
        else:
            low_run = 0

    for i, occupancy in enumerate(occupancies):
        if occupancy > OVERBOOKED:
            anomalies.append(Anomaly(day_index=i, kind=AnomalyKind.OVERBOOKED))

    return anomalies


def occupancy_values(samples: Sequence[DailyOccupancySample]) -> list[float]:
    """Parsed occupancy per day; NaN where a sample is missing or unparsable."""
    return [parse_metric(s.occupancy) for s in samples]


def average_occupancy(samples: Sequence[DailyOccupancySample], window: int = RISK_WINDOW_DAYS) -> float:
    """Mean occupancy over the first ``window`` days, ignoring non-finite samples."""
    values = [v for v in occupancy_values(samples[:window]) if math.isfinite(v)]
    if not values:
        return 0.0
    return sum(values) / len(values)


def risk_level(average: float) -> RiskLevel:
    if average < CRITICAL_AVERAGE:
        return RiskLevel.CRITICAL
    if average < MODERATE_AVERAGE:
        return RiskLevel.MODERATE
    return RiskLevel.LOW


def build_report(series: HotelOccupancySeries) -> HotelAnomalyReport:
    average = average_occupancy(series.samples)
    return HotelAnomalyReport(
        hotel_id=series.hotel_id,
        hotel_name=series.hotel_name,
        group=series.group,
        average_occupancy=round(average, 2),
        risk_level=risk_level(average),
        anomalies=detect_anomalies(occupancy_values(series.samples)),
        samples=series.samples,
    )


def sort_by_risk(reports: list[HotelAnomalyReport]) -> list[HotelAnomalyReport]:
    """Highest risk first; within a level, lowest average occupancy first."""
    return sorted(reports, key=lambda r: (_RISK_ORDER[r.risk_level], r.average_occupancy))


def portfolio_average(reports: list[HotelAnomalyReport]) -> float:
    if not reports:
        return 0.0
    return round(sum(r.average_occupancy for r in reports) / len(reports), 2)
