"""Hotel registry adapter: partitions managed hotels into available and active."""

import logging
from typing import Any

from sentinel_console.clients.backend import BackendClient
from sentinel_console.rules.merge import compute_status_flags, is_active, merged_view
from sentinel_console.schemas.hotel import Hotel
from sentinel_console.schemas.sentinel import ActiveHotel, AvailableHotel, HotelListResponse

logger = logging.getLogger(__name__)


def split_hotels(
    hotels: list[Hotel],
    server_configs: dict[str, dict[str, Any]],
    local_edits: dict[str, dict[str, Any]],
    pms_ids: dict[str, str],
) -> HotelListResponse:
    """Partition managed hotels by whether their PMS catalog has been synced.

    Active hotels carry their merged configuration and status flags and are
    sorted by property name.
    """
    available: list[AvailableHotel] = []
    active: list[ActiveHotel] = []

    for hotel in hotels:
        if not hotel.is_managed:
            continue

        summary = {
            "hotel_id": hotel.hotel_id,
            "property_name": hotel.property_name,
            "pms_property_id": pms_ids.get(hotel.hotel_id, hotel.pms_property_id),
            "management_group": hotel.management_group,
        }
        server = server_configs.get(hotel.hotel_id)
        if is_active(server):
            config = merged_view(server, local_edits.get(hotel.hotel_id))
            active.append(ActiveHotel(**summary, config=config, status=compute_status_flags(config)))
        else:
            available.append(AvailableHotel(**summary))

    active.sort(key=lambda h: h.property_name.lower())
    return HotelListResponse(available=available, active=active)


async def fetch_managed_hotels(backend: BackendClient) -> list[Hotel]:
    hotels = await backend.get_hotels()
    logger.info("Fetched %d hotels from registry", len(hotels))
    return hotels
