"""
Shared handler plumbing

Every handler returns a (status_code, payload) tuple with a JSON-ready
payload. Exceptions raised below the handler are mapped to error payloads
here, in one place.
"""

import functools
import logging
from datetime import datetime
from typing import Any, Optional
from uuid import UUID

import asyncpg
from pydantic import BaseModel, ValidationError as PydanticValidationError

from models import CallerIdentity
from query import get_entity_config
from query.validators import ValidationError, validate_entity_id
from repositories import EntityRepository, NotFoundError, TripsRepository
from utils.error_messages import enhance_error_message, status_for_database_error

logger = logging.getLogger(__name__)


class UnauthorizedError(Exception):
    """No caller identity on a call that needs one"""


class ForbiddenError(Exception):
    """Caller identified but not allowed to perform the call"""


def error_body(code: str, message: str, errors: Optional[list] = None) -> dict[str, Any]:
    return {"error": True, "code": code, "message": message, "errors": errors or []}


def handle_errors(func):
    """Map known exceptions to (status_code, error payload)."""

    @functools.wraps(func)
    async def wrapper(*args, **kwargs):
        try:
            return await func(*args, **kwargs)
        except ValidationError as e:
            return 400, error_body("VALIDATION_ERROR", str(e), e.errors)
        except NotFoundError as e:
            return 404, error_body("NOT_FOUND", str(e))
        except UnauthorizedError as e:
            return 401, error_body("UNAUTHORIZED", str(e))
        except ForbiddenError as e:
            return 403, error_body("FORBIDDEN", str(e))
        except asyncpg.PostgresError as e:
            status = status_for_database_error(e)
            log = logger.warning if status < 500 else logger.error
            log(f"Database error in {func.__name__}: {e}")
            return status, error_body("DATABASE_ERROR", enhance_error_message(e))

    return wrapper


def require_identity(caller: CallerIdentity):
    if not caller.is_authenticated:
        raise UnauthorizedError("Authentication required")


def require_admin(caller: CallerIdentity):
    require_identity(caller)
    if not caller.is_admin:
        raise ForbiddenError("Administrator rights required")


def parse_body(model: type[BaseModel], body: Any) -> BaseModel:
    """Validate a request body, reporting pydantic errors as ValidationError"""
    if not isinstance(body, dict):
        raise ValidationError([{"code": "INVALID_BODY", "path": "", "message": "Request body must be a JSON object"}])
    try:
        return model.model_validate(body)
    except PydanticValidationError as e:
        raise ValidationError([
            {
                "code": "INVALID_BODY",
                "path": ".".join(str(part) for part in err["loc"]),
                "message": err["msg"],
            }
            for err in e.errors()
        ])


def require_title(title) -> None:
    if title.is_empty():
        raise ValidationError([{"code": "REQUIRED_FIELD", "path": "title", "message": "A title is required"}])


# =============================================================================
# Operations every resource shares
# =============================================================================

@handle_errors
async def list_resource(repo: EntityRepository, params: dict[str, str]) -> tuple[int, dict]:
    envelope = await repo.select(params)
    return 200, envelope.model_dump(mode="json")


@handle_errors
async def get_resource(repo: EntityRepository, entity_id: str) -> tuple[int, dict]:
    return 200, await repo.query_one(entity_id)


async def apply_update(repo: EntityRepository, caller: CallerIdentity, entity_id: str, body: Any) -> tuple[int, dict]:
    """Sparse update, stamping the audit columns the entity declares"""
    if not isinstance(body, dict):
        raise ValidationError([{"code": "INVALID_BODY", "path": "", "message": "Request body must be a JSON object"}])
    changes = dict(body)
    if "updated_by" in repo.config.fields:
        changes["updated_by"] = caller.user_id
        changes["updated_date"] = datetime.now()
    return 200, await repo.update(entity_id, changes)


async def apply_delete(repo: EntityRepository, entity_id: str) -> tuple[int, dict]:
    deleted = await repo.delete(entity_id)
    return 200, {"deleted": deleted, "id": entity_id}


@handle_errors
async def admin_update(repo: EntityRepository, caller: CallerIdentity, entity_id: str, body: Any) -> tuple[int, dict]:
    require_admin(caller)
    return await apply_update(repo, caller, entity_id, body)


@handle_errors
async def admin_delete(repo: EntityRepository, caller: CallerIdentity, entity_id: str) -> tuple[int, dict]:
    require_admin(caller)
    return await apply_delete(repo, entity_id)


# =============================================================================
# Trip membership (itineraries, invites)
# =============================================================================

def parse_trip_id(raw: Any) -> UUID:
    return validate_entity_id(get_entity_config("trip"), raw)


async def require_participant(repos, caller: CallerIdentity, trip_id: UUID,
                              roles: tuple[str, ...] = TripsRepository.ALL_ROLES,
                              message: str = "Only trip participants can access this resource"):
    """Admins pass; everyone else needs one of the roles in the trip"""
    require_identity(caller)
    if caller.is_admin:
        return
    if not await repos.trips.has_participant_role(trip_id, caller.user_id, roles):
        raise ForbiddenError(message)


async def require_creator_or_manager(repos, caller: CallerIdentity, trip_id: UUID, row: dict, message: str):
    """
    The participant who created the row, or a trip owner or admin.
    Call after require_participant, so the row lookup never reaches outsiders.
    """
    if caller.is_admin or row.get("created_by") == str(caller.user_id):
        return
    if not await repos.trips.has_participant_role(trip_id, caller.user_id, TripsRepository.MANAGER_ROLES):
        raise ForbiddenError(message)
