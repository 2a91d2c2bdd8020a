"""
Location Handlers
Locations carry no audit columns; writes are admin only.
"""

import logging
from typing import Any
from uuid import uuid4

from models import CallerIdentity, LocationCreate

from .common import (
    admin_delete, admin_update, get_resource, handle_errors, list_resource,
    parse_body, require_admin, require_title,
)

logger = logging.getLogger(__name__)


async def handle_list(repos, caller: CallerIdentity, params: dict[str, str]):
    return await list_resource(repos.locations, params)


async def handle_get(repos, entity_id: str):
    return await get_resource(repos.locations, entity_id)


@handle_errors
async def handle_create(repos, caller: CallerIdentity, body: Any):
    require_admin(caller)
    location = parse_body(LocationCreate, body)
    require_title(location.title)

    location_id = uuid4()
    values = {
        "id": location_id,
        "country_id": location.country_id,
        "region_id": location.region_id,
        "title": location.title.to_row(location_id, "location", "title"),
    }
    created = await repos.locations.insert(values)
    logger.info(f"Created location {location_id}")
    return 201, created


async def handle_update(repos, caller: CallerIdentity, entity_id: str, body: Any):
    return await admin_update(repos.locations, caller, entity_id, body)


async def handle_delete(repos, caller: CallerIdentity, entity_id: str):
    return await admin_delete(repos.locations, caller, entity_id)
