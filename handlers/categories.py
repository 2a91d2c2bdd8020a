"""
Category Handlers
Handles: list, get, create, update, delete for categories
"""

import logging
from typing import Any
from uuid import uuid4

from models import CallerIdentity, CategoryCreate

from .common import (
    admin_delete, admin_update, get_resource, handle_errors, list_resource,
    parse_body, require_admin, require_title,
)

logger = logging.getLogger(__name__)


async def handle_list(repos, caller: CallerIdentity, params: dict[str, str]):
    return await list_resource(repos.categories, params)


async def handle_get(repos, entity_id: str):
    return await get_resource(repos.categories, entity_id)


@handle_errors
async def handle_create(repos, caller: CallerIdentity, body: Any):
    """Create an active category with its translated title"""
    require_admin(caller)
    category = parse_body(CategoryCreate, body)
    require_title(category.title)

    category_id = uuid4()
    values = {
        "id": category_id,
        "parent_id": category.parent_id,
        "active": True,
        **category.audit_values(caller),
        "title": category.title.to_row(category_id, "category", "title"),
    }
    created = await repos.categories.insert(values)
    logger.info(f"Created category {category_id}")
    return 201, created


async def handle_update(repos, caller: CallerIdentity, entity_id: str, body: Any):
    return await admin_update(repos.categories, caller, entity_id, body)


async def handle_delete(repos, caller: CallerIdentity, entity_id: str):
    return await admin_delete(repos.categories, caller, entity_id)
