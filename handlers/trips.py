"""
Trip Handlers

Any authenticated user may create a trip and becomes its owner. Trips made
by admins are system trips. Listing every trip is reserved to admins.
Trip owners and trip admins may change a trip; only its owner may delete it.
"""

import logging
from typing import Any
from uuid import uuid4

from models import CallerIdentity, TripCreate, TripScope

from .common import (
    ForbiddenError, apply_delete, apply_update, get_resource, handle_errors,
    list_resource, parse_body, require_admin, require_identity, require_title,
)

logger = logging.getLogger(__name__)


async def _require_trip_manager(repos, caller: CallerIdentity, entity_id: str):
    require_identity(caller)
    if caller.is_admin:
        return
    if not await repos.trips.is_trip_manager(entity_id, caller.user_id):
        raise ForbiddenError("Only the trip owner or a trip admin can change this trip")


async def _require_trip_owner(repos, caller: CallerIdentity, entity_id: str):
    require_identity(caller)
    if caller.is_admin:
        return
    if not await repos.trips.is_trip_owner(entity_id, caller.user_id):
        raise ForbiddenError("Only the trip owner can delete this trip")


@handle_errors
async def handle_list(repos, caller: CallerIdentity, params: dict[str, str]):
    require_admin(caller)
    return await list_resource(repos.trips, params)


async def handle_get(repos, entity_id: str):
    return await get_resource(repos.trips, entity_id)


@handle_errors
async def handle_create(repos, caller: CallerIdentity, body: Any):
    require_identity(caller)
    trip = parse_body(TripCreate, body)
    require_title(trip.title)

    trip_id = uuid4()
    scope = TripScope.SYSTEM if caller.is_admin else TripScope.USER
    values = {
        "id": trip_id,
        "scope": scope.value,
        **trip.audit_values(caller),
        "title": trip.title.to_row(trip_id, "trip", "title"),
        "description": trip.description.to_row(trip_id, "trip", "description"),
    }
    created = await repos.trips.insert_with_owner(values, caller.user_id)
    logger.info(f"Created {scope.value} trip {trip_id} owned by {caller.user_id}")
    return 201, created


@handle_errors
async def handle_update(repos, caller: CallerIdentity, entity_id: str, body: Any):
    await _require_trip_manager(repos, caller, entity_id)
    return await apply_update(repos.trips, caller, entity_id, body)


@handle_errors
async def handle_delete(repos, caller: CallerIdentity, entity_id: str):
    await _require_trip_owner(repos, caller, entity_id)
    return await apply_delete(repos.trips, entity_id)
