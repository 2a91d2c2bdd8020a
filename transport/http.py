"""
HTTP transport for the travel planner API.

- One collection route and one item route per resource (see handlers/)
- Trip itineraries and invites under /trips/{trip_id}/...
- Caller identity read from the X-User-Id / X-User-Group headers
- /healthz: database connectivity check

Routes only translate HTTP into handler calls; handlers return
(status_code, payload) tuples which are encoded here.
"""

import json
import logging
from typing import Any, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, FastAPI, Header, Request
from fastapi.encoders import jsonable_encoder
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.status import HTTP_400_BAD_REQUEST, HTTP_500_INTERNAL_SERVER_ERROR
import uvicorn

from config import DatabaseConfig, TableConfig
from database import DatabaseConnection
from handlers import (
    get_resource_handlers, get_trip_resource_handlers, list_resources, list_trip_resources,
)
from handlers.common import error_body
from models import CallerIdentity
from repositories import RepositoryContainer

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


# Set by initialize_server(); routes read them at call time
db: Optional[DatabaseConnection] = None
repos: Optional[RepositoryContainer] = None
app = FastAPI(title="Travel Planner API")

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["GET", "POST", "PATCH", "DELETE", "OPTIONS"],
    allow_headers=["*"],
)


def get_caller(
    x_user_id: Optional[str] = Header(None),
    x_user_group: Optional[str] = Header(None),
) -> CallerIdentity:
    """Resolve the caller from identity headers; malformed ids count as anonymous"""
    user_id = None
    if x_user_id:
        try:
            user_id = UUID(x_user_id)
        except ValueError:
            logger.warning(f"Ignoring malformed X-User-Id header: {x_user_id!r}")
    return CallerIdentity(user_id=user_id, group=x_user_group or "")


def respond(result: tuple[int, Any]) -> JSONResponse:
    """Encode a handler result, reporting encoding failures as server errors"""
    status, payload = result
    try:
        return JSONResponse(status_code=status, content=jsonable_encoder(payload))
    except (TypeError, ValueError) as e:
        logger.error(f"Failed to encode response: {e}", exc_info=True)
        return JSONResponse(
            status_code=HTTP_500_INTERNAL_SERVER_ERROR,
            content=error_body("MARSHALLING_ERROR", str(e)),
        )


async def read_json_body(request: Request) -> Any:
    try:
        return await request.json()
    except json.JSONDecodeError as e:
        return e


def _invalid_json(error: json.JSONDecodeError) -> JSONResponse:
    return JSONResponse(
        status_code=HTTP_400_BAD_REQUEST,
        content=error_body("INVALID_JSON", f"Invalid JSON: {error}"),
    )


def build_resource_router(resource: str) -> APIRouter:
    """Wire the five handler functions of a resource to its routes"""
    module = get_resource_handlers(resource)
    if module is None:
        raise ValueError(f"Unknown resource: {resource}")

    router = APIRouter(prefix=f"/{resource}", tags=[resource])

    @router.get("")
    async def list_items(request: Request, caller: CallerIdentity = Depends(get_caller)):
        return respond(await module.handle_list(repos, caller, dict(request.query_params)))

    @router.get("/{entity_id}")
    async def get_item(entity_id: str):
        return respond(await module.handle_get(repos, entity_id))

    @router.post("")
    async def create_item(request: Request, caller: CallerIdentity = Depends(get_caller)):
        body = await read_json_body(request)
        if isinstance(body, json.JSONDecodeError):
            return _invalid_json(body)
        return respond(await module.handle_create(repos, caller, body))

    @router.patch("/{entity_id}")
    async def update_item(entity_id: str, request: Request, caller: CallerIdentity = Depends(get_caller)):
        body = await read_json_body(request)
        if isinstance(body, json.JSONDecodeError):
            return _invalid_json(body)
        return respond(await module.handle_update(repos, caller, entity_id, body))

    @router.delete("/{entity_id}")
    async def delete_item(entity_id: str, caller: CallerIdentity = Depends(get_caller)):
        return respond(await module.handle_delete(repos, caller, entity_id))

    return router


def build_trip_resource_router(resource: str) -> APIRouter:
    """Routes for a resource owned by one trip; the update route only when the module has one"""
    module = get_trip_resource_handlers(resource)
    if module is None:
        raise ValueError(f"Unknown trip resource: {resource}")

    router = APIRouter(prefix=f"/trips/{{trip_id}}/{resource}", tags=["trips"])

    @router.get("")
    async def list_items(trip_id: str, request: Request, caller: CallerIdentity = Depends(get_caller)):
        return respond(await module.handle_list(repos, caller, trip_id, dict(request.query_params)))

    @router.get("/{entity_id}")
    async def get_item(trip_id: str, entity_id: str, caller: CallerIdentity = Depends(get_caller)):
        return respond(await module.handle_get(repos, caller, trip_id, entity_id))

    @router.post("")
    async def create_item(trip_id: str, request: Request, caller: CallerIdentity = Depends(get_caller)):
        body = await read_json_body(request)
        if isinstance(body, json.JSONDecodeError):
            return _invalid_json(body)
        return respond(await module.handle_create(repos, caller, trip_id, body))

    if hasattr(module, "handle_update"):
        @router.patch("/{entity_id}")
        async def update_item(trip_id: str, entity_id: str, request: Request,
                              caller: CallerIdentity = Depends(get_caller)):
            body = await read_json_body(request)
            if isinstance(body, json.JSONDecodeError):
                return _invalid_json(body)
            return respond(await module.handle_update(repos, caller, trip_id, entity_id, body))

    @router.delete("/{entity_id}")
    async def delete_item(trip_id: str, entity_id: str, caller: CallerIdentity = Depends(get_caller)):
        return respond(await module.handle_delete(repos, caller, trip_id, entity_id))

    return router


for _resource in list_resources():
    app.include_router(build_resource_router(_resource))

for _resource in list_trip_resources():
    app.include_router(build_trip_resource_router(_resource))


@app.get("/healthz")
async def health_check():
    """Liveness plus a round trip to PostgreSQL"""
    if db is None or db.pool is None:
        return JSONResponse(
            status_code=HTTP_500_INTERNAL_SERVER_ERROR,
            content={"status": "unhealthy", "error": "database pool not open"}
        )

    if not await db.check_connection():
        return JSONResponse(
            status_code=HTTP_500_INTERNAL_SERVER_ERROR,
            content={"status": "unhealthy", "error": "database did not answer SELECT 1"}
        )

    return JSONResponse(content={
        "status": "healthy",
        "database": "connected"
    })


async def initialize_server():
    """Open the pool and build the repositories on the configured tables"""
    global db, repos

    config = DatabaseConfig.from_environment()
    tables = TableConfig.from_environment()
    db = DatabaseConnection(config)
    await db.connect()
    repos = RepositoryContainer(db, tables)

    logger.info(f"Serving {len(list_resources())} resources from {config.database}")
    if tables.suffix:
        logger.info(f"Tables redirected with suffix {tables.suffix!r}")


async def shutdown_server():
    """Close the pool"""
    global db, repos
    if db:
        await db.disconnect()
    db = None
    repos = None


def run_http_server(host: str = "127.0.0.1", port: int = 8080):
    """
    Run the API server.

    Args:
        host: Host to bind to
        port: Port to listen on
    """

    @app.on_event("startup")
    async def startup_event():
        await initialize_server()
        logger.info(f"Travel Planner API starting on http://{host}:{port}")

    @app.on_event("shutdown")
    async def shutdown_event():
        await shutdown_server()

    uvicorn.run(app, host=host, port=port, log_level="info")
