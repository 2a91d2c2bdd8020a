"""
User Handlers

Users are registered with the id issued by the identity provider. Identity
fields (names, group, username, email, language) are fixed at registration.
"""

import logging
from typing import Any

from models import CallerIdentity, UserCreate

from .common import (
    admin_delete, admin_update, get_resource, handle_errors, list_resource,
    parse_body, require_admin,
)

logger = logging.getLogger(__name__)


async def handle_list(repos, caller: CallerIdentity, params: dict[str, str]):
    return await list_resource(repos.users, params)


async def handle_get(repos, entity_id: str):
    return await get_resource(repos.users, entity_id)


@handle_errors
async def handle_create(repos, caller: CallerIdentity, body: Any):
    require_admin(caller)
    user = parse_body(UserCreate, body)

    values = {
        **user.model_dump(),
        "active": True,
        **user.audit_values(caller),
    }
    created = await repos.users.insert(values)
    logger.info(f"Registered user {user.id} ({user.username})")
    return 201, created


async def handle_update(repos, caller: CallerIdentity, entity_id: str, body: Any):
    return await admin_update(repos.users, caller, entity_id, body)


async def handle_delete(repos, caller: CallerIdentity, entity_id: str):
    return await admin_delete(repos.users, caller, entity_id)
