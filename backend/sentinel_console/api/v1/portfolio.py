"""Portfolio API router: risk quadrants, pacing order and occupancy anomalies."""

from fastapi import APIRouter, Depends, Query

from sentinel_console.api.deps import get_backend_client, http_error
from sentinel_console.clients.backend import BackendClient
from sentinel_console.config import settings
from sentinel_console.exceptions import SentinelError
from sentinel_console.risk.anomalies import build_report, portfolio_average, sort_by_risk
from sentinel_console.risk.classifier import classify_portfolio, group_by_quadrant, sort_by_pacing_status
from sentinel_console.schemas.portfolio import (
    ClassifiedPoint,
    PortfolioAnomalyResponse,
    PortfolioFilter,
    PortfolioRiskResponse,
)

router = APIRouter(prefix="/api/v1/portfolio", tags=["portfolio"])


def _portfolio_filter(
    hotel_id: str | None = Query(None, description="Restrict to one hotel"),
    group: str | None = Query(None, description="Restrict to one management group"),
) -> PortfolioFilter:
    return PortfolioFilter(hotel_id=hotel_id, group=group)


async def _classified(backend: BackendClient, portfolio_filter: PortfolioFilter) -> list[ClassifiedPoint]:
    try:
        points = await backend.get_portfolio_metrics(portfolio_filter)
    except SentinelError as exc:
        raise http_error(exc) from exc
    return classify_portfolio(
        points,
        occupancy_threshold=settings.occupancy_threshold,
        pressure_threshold=settings.pressure_threshold,
    )


@router.get("/risk", response_model=PortfolioRiskResponse, summary="Classify hotels into risk quadrants")
async def get_risk(
    portfolio_filter: PortfolioFilter = Depends(_portfolio_filter),
    backend: BackendClient = Depends(get_backend_client),
) -> PortfolioRiskResponse:
    """Place each hotel in a quadrant by forward occupancy and pacing pressure.

    Hotels whose metrics cannot be parsed are reported under ``Invalid``
    instead of being counted in a real quadrant.
    """
    points = await _classified(backend, portfolio_filter)
    return PortfolioRiskResponse(points=points, quadrants=group_by_quadrant(points))


@router.get("/pacing", response_model=list[ClassifiedPoint], summary="Hotels ordered by pacing status")
async def get_pacing(
    portfolio_filter: PortfolioFilter = Depends(_portfolio_filter),
    backend: BackendClient = Depends(get_backend_client),
) -> list[ClassifiedPoint]:
    return sort_by_pacing_status(await _classified(backend, portfolio_filter))


@router.get("/anomalies", response_model=PortfolioAnomalyResponse, summary="Detect occupancy anomalies")
async def get_anomalies(
    sort_by_risk_level: bool = Query(False, alias="sort_by_risk", description="Highest risk first"),
    portfolio_filter: PortfolioFilter = Depends(_portfolio_filter),
    backend: BackendClient = Depends(get_backend_client),
) -> PortfolioAnomalyResponse:
    """Scan every hotel's forward occupancy matrix for drops, low runs and overbooking."""
    try:
        matrix = await backend.get_occupancy_matrix(portfolio_filter)
    except SentinelError as exc:
        raise http_error(exc) from exc

    reports = [build_report(series) for series in matrix]
    if sort_by_risk_level:
        reports = sort_by_risk(reports)
    return PortfolioAnomalyResponse(
        portfolio_average_occupancy=portfolio_average(reports),
        hotels=reports,
    )
