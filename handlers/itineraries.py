"""
Itinerary Handlers (routes nested under /trips/{trip_id})

Participants read a trip's itineraries; viewers cannot create them. An
itinerary is changed or removed by the participant who created it or by
a trip owner or admin.
"""

import logging
from typing import Any
from uuid import uuid4

from models import CallerIdentity, ItineraryCreate
from repositories import TripsRepository

from .common import (
    apply_delete, apply_update, handle_errors, parse_body, parse_trip_id,
    require_creator_or_manager, require_participant,
)

logger = logging.getLogger(__name__)


@handle_errors
async def handle_list(repos, caller: CallerIdentity, trip_id: str, params: dict[str, str]):
    trip_id = parse_trip_id(trip_id)
    await require_participant(repos, caller, trip_id)
    envelope = await repos.itineraries.select_for_trip(trip_id, params)
    return 200, envelope.model_dump(mode="json")


@handle_errors
async def handle_get(repos, caller: CallerIdentity, trip_id: str, entity_id: str):
    trip_id = parse_trip_id(trip_id)
    await require_participant(repos, caller, trip_id)
    return 200, await repos.itineraries.query_one_for_trip(trip_id, entity_id)


@handle_errors
async def handle_create(repos, caller: CallerIdentity, trip_id: str, body: Any):
    trip_id = parse_trip_id(trip_id)
    await require_participant(
        repos, caller, trip_id, TripsRepository.CONTRIBUTOR_ROLES,
        "Viewer participants cannot create itineraries",
    )
    itinerary = parse_body(ItineraryCreate, body)

    itinerary_id = uuid4()
    audit = itinerary.audit_values(caller)
    values = {
        "id": itinerary_id,
        "trip_id": trip_id,
        "owner_id": caller.user_id,
        "start_date": itinerary.start_date or audit["created_date"],
        "end_date": itinerary.end_date or itinerary.start_date or audit["created_date"],
        **audit,
        "title": itinerary.title.to_row(itinerary_id, "trip_itinerary", "title"),
    }
    created = await repos.itineraries.insert(values)
    logger.info(f"Created itinerary {itinerary_id} on trip {trip_id}")
    return 201, created


@handle_errors
async def handle_update(repos, caller: CallerIdentity, trip_id: str, entity_id: str, body: Any):
    trip_id = parse_trip_id(trip_id)
    await require_participant(repos, caller, trip_id)
    row = await repos.itineraries.query_one_for_trip(trip_id, entity_id)
    await require_creator_or_manager(repos, caller, trip_id, row, "Not allowed to update this itinerary")
    return await apply_update(repos.itineraries, caller, entity_id, body)


@handle_errors
async def handle_delete(repos, caller: CallerIdentity, trip_id: str, entity_id: str):
    trip_id = parse_trip_id(trip_id)
    await require_participant(repos, caller, trip_id)
    row = await repos.itineraries.query_one_for_trip(trip_id, entity_id)
    await require_creator_or_manager(repos, caller, trip_id, row, "Not allowed to delete this itinerary")
    return await apply_delete(repos.itineraries, entity_id)
