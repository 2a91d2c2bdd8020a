"""
Invite Handlers (routes nested under /trips/{trip_id})

Trip owners and admins invite people by email; participants can see the
pending invites. Invites are never edited, only withdrawn.
"""

import logging
from datetime import datetime
from typing import Any
from uuid import uuid4

from models import CallerIdentity, InviteCreate
from repositories import TripsRepository

from .common import (
    apply_delete, handle_errors, parse_body, parse_trip_id,
    require_creator_or_manager, require_participant,
)

logger = logging.getLogger(__name__)


@handle_errors
async def handle_list(repos, caller: CallerIdentity, trip_id: str, params: dict[str, str]):
    trip_id = parse_trip_id(trip_id)
    await require_participant(repos, caller, trip_id)
    envelope = await repos.invites.select_for_trip(trip_id, params)
    return 200, envelope.model_dump(mode="json")


@handle_errors
async def handle_get(repos, caller: CallerIdentity, trip_id: str, entity_id: str):
    trip_id = parse_trip_id(trip_id)
    await require_participant(repos, caller, trip_id)
    return 200, await repos.invites.query_one_for_trip(trip_id, entity_id)


@handle_errors
async def handle_create(repos, caller: CallerIdentity, trip_id: str, body: Any):
    trip_id = parse_trip_id(trip_id)
    await require_participant(
        repos, caller, trip_id, TripsRepository.MANAGER_ROLES,
        "Only the trip owner or a trip admin can create invites",
    )
    invite = parse_body(InviteCreate, body)

    invite_id = uuid4()
    values = {
        "id": invite_id,
        "trip_id": trip_id,
        "email": invite.email,
        "created_by": caller.user_id,
        "created_date": datetime.now(),
    }
    created = await repos.invites.insert(values)
    # TODO: deliver the invite by email once a mail service is wired in
    logger.info(f"Created invite {invite_id} on trip {trip_id}")
    return 201, created


@handle_errors
async def handle_delete(repos, caller: CallerIdentity, trip_id: str, entity_id: str):
    trip_id = parse_trip_id(trip_id)
    await require_participant(repos, caller, trip_id)
    row = await repos.invites.query_one_for_trip(trip_id, entity_id)
    await require_creator_or_manager(repos, caller, trip_id, row, "Not allowed to delete this invite")
    return await apply_delete(repos.invites, entity_id)
