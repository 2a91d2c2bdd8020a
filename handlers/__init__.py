"""
Handler Registry - Maps resource paths to handler modules

Each top-level resource module exports the same five async functions:
    handle_list(repos, caller, params)
    handle_get(repos, entity_id)
    handle_create(repos, caller, body)
    handle_update(repos, caller, entity_id, body)
    handle_delete(repos, caller, entity_id)

Trip sub-resources (routes under /trips/{trip_id}) take the trip id right
after the caller and may leave out handle_update:
    handle_list(repos, caller, trip_id, params)
    handle_get(repos, caller, trip_id, entity_id)
    handle_create(repos, caller, trip_id, body)
    handle_update(repos, caller, trip_id, entity_id, body)
    handle_delete(repos, caller, trip_id, entity_id)

Every one of them returns a (status_code, payload) tuple.

Usage:
    from handlers import get_resource_handlers

    module = get_resource_handlers("categories")
    status, payload = await module.handle_list(repos, caller, params)
"""

from types import ModuleType
from typing import Optional

from . import categories
from . import events
from . import locations
from . import highlights
from . import trips
from . import itineraries
from . import invites
from . import users


RESOURCE_HANDLERS: dict[str, ModuleType] = {
    "categories": categories,
    "events": events,
    "locations": locations,
    "highlights": highlights,
    "trips": trips,
    "users": users,
}

TRIP_RESOURCE_HANDLERS: dict[str, ModuleType] = {
    "itineraries": itineraries,
    "invites": invites,
}


def get_resource_handlers(resource: str) -> Optional[ModuleType]:
    """Get the handler module for a resource path, or None"""
    return RESOURCE_HANDLERS.get(resource)


def get_trip_resource_handlers(resource: str) -> Optional[ModuleType]:
    return TRIP_RESOURCE_HANDLERS.get(resource)


def list_resources() -> list[str]:
    return list(RESOURCE_HANDLERS.keys())


def list_trip_resources() -> list[str]:
    return list(TRIP_RESOURCE_HANDLERS.keys())
