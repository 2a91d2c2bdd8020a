"""
Highlight Handlers
Handles: list, get, create, update, delete for highlights
"""

import logging
from typing import Any
from uuid import uuid4

from models import CallerIdentity, HighlightCreate

from .common import (
    admin_delete, admin_update, get_resource, handle_errors, list_resource,
    parse_body, require_admin, require_title,
)

logger = logging.getLogger(__name__)


async def handle_list(repos, caller: CallerIdentity, params: dict[str, str]):
    return await list_resource(repos.highlights, params)


async def handle_get(repos, entity_id: str):
    return await get_resource(repos.highlights, entity_id)


@handle_errors
async def handle_create(repos, caller: CallerIdentity, body: Any):
    require_admin(caller)
    highlight = parse_body(HighlightCreate, body)
    require_title(highlight.title)

    highlight_id = uuid4()
    values = {
        "id": highlight_id,
        "active": True,
        **highlight.model_dump(exclude={"title", "description"}),
        **highlight.audit_values(caller),
        "title": highlight.title.to_row(highlight_id, "highlight", "title"),
        "description": highlight.description.to_row(highlight_id, "highlight", "description"),
    }
    created = await repos.highlights.insert(values)
    logger.info(f"Created highlight {highlight_id}")
    return 201, created


async def handle_update(repos, caller: CallerIdentity, entity_id: str, body: Any):
    return await admin_update(repos.highlights, caller, entity_id, body)


async def handle_delete(repos, caller: CallerIdentity, entity_id: str):
    return await admin_delete(repos.highlights, caller, entity_id)
