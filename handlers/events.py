"""
Event Handlers
Handles: list, get, create, update, delete for events
"""

import logging
from typing import Any
from uuid import uuid4

from models import CallerIdentity, EventCreate

from .common import (
    admin_delete, admin_update, get_resource, handle_errors, list_resource,
    parse_body, require_admin, require_title,
)

logger = logging.getLogger(__name__)


async def handle_list(repos, caller: CallerIdentity, params: dict[str, str]):
    return await list_resource(repos.events, params)


async def handle_get(repos, entity_id: str):
    return await get_resource(repos.events, entity_id)


@handle_errors
async def handle_create(repos, caller: CallerIdentity, body: Any):
    require_admin(caller)
    event = parse_body(EventCreate, body)
    require_title(event.title)

    event_id = uuid4()
    values = {
        "id": event_id,
        "active": True,
        **event.model_dump(exclude={"title", "description"}),
        **event.audit_values(caller),
        "title": event.title.to_row(event_id, "event", "title"),
        "description": event.description.to_row(event_id, "event", "description"),
    }
    created = await repos.events.insert(values)
    logger.info(f"Created event {event_id}")
    return 201, created


async def handle_update(repos, caller: CallerIdentity, entity_id: str, body: Any):
    return await admin_update(repos.events, caller, entity_id, body)


async def handle_delete(repos, caller: CallerIdentity, entity_id: str):
    return await admin_delete(repos.events, caller, entity_id)
