"""Portfolio risk classification.

Each property is placed in one of four quadrants by forward occupancy
(volume) and pacing difficulty (rate pressure):

    occupancy <  60, pressure <  115  -> Fill Risk
    occupancy <  60, pressure >= 115  -> Critical Risk
    occupancy >= 60, pressure >= 115  -> Rate Strategy Risk
    occupancy >= 60, pressure <  115  -> On Pace

Points whose metrics cannot be parsed into finite numbers are ``Invalid``
rather than being counted in any real quadrant.
"""

import math
import re
from typing import Any

from sentinel_console.schemas.portfolio import ClassifiedPoint, PortfolioMetricPoint, Quadrant, QuadrantGroup

OCCUPANCY_THRESHOLD = 60.0
PRESSURE_THRESHOLD = 115.0

_NOT_NUMERIC = re.compile(r"[^0-9.+-]")
_LEADING_NUMBER = re.compile(r"[+-]?(?:\d+(?:\.\d*)?|\.\d+)")

_PACING_STATUS_ORDER = {"red": 0, "yellow": 1, "green": 2}


def parse_metric(value: Any) -> float:
    """Parse ``52.3``, ``"52.3"``, ``"52.3%"`` or ``" 52 "``; NaN when impossible."""
    if isinstance(value, bool) or value is None:
        return math.nan
    if isinstance(value, (int, float)):
        return float(value)
    if isinstance(value, str):
        match = _LEADING_NUMBER.match(_NOT_NUMERIC.sub("", value))
        return float(match.group()) if match else math.nan
    return math.nan


def classify(
    occupancy: Any,
    pressure: Any,
    *,
    occupancy_threshold: float = OCCUPANCY_THRESHOLD,
    pressure_threshold: float = PRESSURE_THRESHOLD,
) -> Quadrant:
    """Quadrant for one forward-occupancy / pacing-pressure pair."""
    occ = parse_metric(occupancy)
    press = parse_metric(pressure)
    if not (math.isfinite(occ) and math.isfinite(press)):
        return Quadrant.INVALID

    if occ < occupancy_threshold:
        return Quadrant.CRITICAL_RISK if press >= pressure_threshold else Quadrant.FILL_RISK
    return Quadrant.RATE_STRATEGY_RISK if press >= pressure_threshold else Quadrant.ON_PACE


def _finite_or_none(value: float) -> float | None:
    return value if math.isfinite(value) else None


def classify_portfolio(
    points: list[PortfolioMetricPoint],
    *,
    occupancy_threshold: float = OCCUPANCY_THRESHOLD,
    pressure_threshold: float = PRESSURE_THRESHOLD,
) -> list[ClassifiedPoint]:
    classified = []
    for point in points:
        occ = parse_metric(point.forward_occupancy)
        press = parse_metric(point.pacing_difficulty_percent)
        classified.append(
            ClassifiedPoint(
                hotel_id=point.hotel_id,
                hotel_name=point.hotel_name,
                forward_occupancy=_finite_or_none(occ),
                pacing_difficulty_percent=_finite_or_none(press),
                current_month_status=point.current_month_status,
                quadrant=classify(
                    occ,
                    press,
                    occupancy_threshold=occupancy_threshold,
                    pressure_threshold=pressure_threshold,
                ),
            )
        )
    return classified


def group_by_quadrant(points: list[ClassifiedPoint]) -> list[QuadrantGroup]:
    """Action lists per quadrant, most urgent first within each list.

    Critical and rate-strategy risks are ordered by pressure (highest first),
    fill risks by occupancy (lowest first), on-pace hotels by occupancy
    (highest first). Invalid points keep their input order.
    """
    buckets: dict[Quadrant, list[ClassifiedPoint]] = {quadrant: [] for quadrant in Quadrant}
    for point in points:
        buckets[point.quadrant].append(point)

    buckets[Quadrant.CRITICAL_RISK].sort(key=lambda p: -(p.pacing_difficulty_percent or 0.0))
    buckets[Quadrant.RATE_STRATEGY_RISK].sort(key=lambda p: -(p.pacing_difficulty_percent or 0.0))
    buckets[Quadrant.FILL_RISK].sort(key=lambda p: p.forward_occupancy or 0.0)
    buckets[Quadrant.ON_PACE].sort(key=lambda p: -(p.forward_occupancy or 0.0))

    return [
        QuadrantGroup(quadrant=quadrant, count=len(hotels), hotels=hotels)
        for quadrant, hotels in buckets.items()
    ]


def sort_by_pacing_status(points: list[ClassifiedPoint]) -> list[ClassifiedPoint]:
    """Red, then yellow, then green; unknown statuses last. Stable."""
    return sorted(
        points,
        key=lambda p: _PACING_STATUS_ORDER.get((p.current_month_status or "").lower(), len(_PACING_STATUS_ORDER)),
    )
