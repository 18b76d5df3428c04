"""Sentinel API router: rate-governance rules, PMS activation and workflow phase."""

from fastapi import APIRouter, Depends, HTTPException, Query, status

from sentinel_console.api.deps import get_activation_workflow, get_backend_client, get_rule_engine, http_error
from sentinel_console.clients.backend import BackendClient
from sentinel_console.exceptions import SentinelError
from sentinel_console.rules.merge import compute_status_flags, effective_differentials
from sentinel_console.schemas.sentinel import (
    DifferentialUpdateRequest,
    FieldUpdateRequest,
    HotelListResponse,
    HotelRulesResponse,
    MaxRatesRequest,
    MessageResponse,
    PhaseResponse,
    SyncRequest,
)
from sentinel_console.services.activation import ActivationWorkflow
from sentinel_console.services.registry import fetch_managed_hotels, split_hotels
from sentinel_console.services.rule_engine import RuleEngine

router = APIRouter(prefix="/api/v1/sentinel", tags=["sentinel"])


def _rules_response(hotel_id: str, engine: RuleEngine, workflow: ActivationWorkflow) -> HotelRulesResponse:
    config = engine.merged(hotel_id)
    if config is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="No configuration loaded for this hotel",
        )
    return HotelRulesResponse(
        hotel_id=hotel_id,
        phase=workflow.phase(hotel_id),
        config=config,
        status=compute_status_flags(config),
        differentials=effective_differentials(config, engine.default_differential()),
    )


@router.get("/hotels", response_model=HotelListResponse, summary="List managed hotels")
async def list_hotels(
    refresh: bool = Query(False, description="Reload configurations and PMS ids from the backend"),
    engine: RuleEngine = Depends(get_rule_engine),
    backend: BackendClient = Depends(get_backend_client),
) -> HotelListResponse:
    """Partition managed hotels into available (not yet synced) and active."""
    try:
        if refresh or not engine.store.registry_loaded:
            await engine.load_all()
        hotels = await fetch_managed_hotels(backend)
    except SentinelError as exc:
        raise http_error(exc) from exc

    store = engine.store
    return split_hotels(hotels, store.server_configs(), store.local_edits(), store.pms_ids())


@router.post("/hotels/{hotel_id}/rules/load", response_model=HotelRulesResponse, summary="Load a hotel's rules")
async def load_rules(
    hotel_id: str,
    engine: RuleEngine = Depends(get_rule_engine),
    workflow: ActivationWorkflow = Depends(get_activation_workflow),
) -> HotelRulesResponse:
    """Populate the hotel's editable rules. Pending edits are never discarded."""
    try:
        await engine.load(hotel_id)
    except SentinelError as exc:
        raise http_error(exc) from exc
    return _rules_response(hotel_id, engine, workflow)


@router.get("/hotels/{hotel_id}/rules", response_model=HotelRulesResponse, summary="Get a hotel's merged rules")
async def get_rules(
    hotel_id: str,
    engine: RuleEngine = Depends(get_rule_engine),
    workflow: ActivationWorkflow = Depends(get_activation_workflow),
) -> HotelRulesResponse:
    return _rules_response(hotel_id, engine, workflow)


@router.patch("/hotels/{hotel_id}/rules", response_model=HotelRulesResponse, summary="Edit one rule field")
async def update_rule(
    hotel_id: str,
    body: FieldUpdateRequest,
    engine: RuleEngine = Depends(get_rule_engine),
    workflow: ActivationWorkflow = Depends(get_activation_workflow),
) -> HotelRulesResponse:
    """Set a field addressed by dot path, e.g. ``last_minute_floor.rate``."""
    try:
        engine.update_field(hotel_id, body.path, body.value)
    except SentinelError as exc:
        raise http_error(exc) from exc
    return _rules_response(hotel_id, engine, workflow)


@router.put(
    "/hotels/{hotel_id}/rules/differentials/{room_type_id}",
    response_model=HotelRulesResponse,
    summary="Create or edit a room-type differential",
)
async def upsert_differential(
    hotel_id: str,
    room_type_id: str,
    body: DifferentialUpdateRequest,
    engine: RuleEngine = Depends(get_rule_engine),
    workflow: ActivationWorkflow = Depends(get_activation_workflow),
) -> HotelRulesResponse:
    try:
        engine.upsert_differential(hotel_id, room_type_id, body.field, body.value)
    except SentinelError as exc:
        raise http_error(exc) from exc
    return _rules_response(hotel_id, engine, workflow)


@router.post("/hotels/{hotel_id}/rules/save", response_model=HotelRulesResponse, summary="Save a hotel's rules")
async def save_rules(
    hotel_id: str,
    engine: RuleEngine = Depends(get_rule_engine),
    workflow: ActivationWorkflow = Depends(get_activation_workflow),
) -> HotelRulesResponse:
    """Persist the local rules. On failure the unsaved edits are kept."""
    try:
        await engine.save(hotel_id)
    except SentinelError as exc:
        raise http_error(exc) from exc
    return _rules_response(hotel_id, engine, workflow)


@router.post("/hotels/{hotel_id}/sync", response_model=HotelRulesResponse, summary="Sync a hotel with its PMS")
async def sync_hotel(
    hotel_id: str,
    body: SyncRequest,
    engine: RuleEngine = Depends(get_rule_engine),
    workflow: ActivationWorkflow = Depends(get_activation_workflow),
) -> HotelRulesResponse:
    """Activate (or re-sync) a hotel. Returns 409 while another sync is running."""
    try:
        await workflow.activate(hotel_id, body.pms_property_id)
    except SentinelError as exc:
        raise http_error(exc) from exc
    return _rules_response(hotel_id, engine, workflow)


@router.get("/hotels/{hotel_id}/phase", response_model=PhaseResponse, summary="Get a hotel's workflow phase")
async def get_phase(
    hotel_id: str,
    workflow: ActivationWorkflow = Depends(get_activation_workflow),
) -> PhaseResponse:
    return PhaseResponse(hotel_id=hotel_id, phase=workflow.phase(hotel_id))


@router.put("/hotels/{hotel_id}/max-rates", response_model=MessageResponse, summary="Save daily max rates")
async def save_max_rates(
    hotel_id: str,
    body: MaxRatesRequest,
    engine: RuleEngine = Depends(get_rule_engine),
) -> MessageResponse:
    try:
        saved = await engine.save_daily_max_rates(hotel_id, body.rates)
    except SentinelError as exc:
        raise http_error(exc) from exc
    return MessageResponse(message=f"Saved {len(saved)} max rates")
