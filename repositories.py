"""
Repository layer for database operations
Provides listing, lookup and CRUD operations for every resource

All repositories share one implementation driven by the entity registry:
no repository writes per-entity SQL of its own.
"""

import logging
from datetime import datetime
from typing import Any, Optional
from uuid import UUID, uuid4

import asyncpg

from config import TableConfig
from database import DatabaseConnection
from models import DEFAULT_ITINERARY_TITLE, ParticipantRole, ResultEnvelope, ResultMetadata
from query import (
    ENTITIES,
    MutationEngine,
    QueryBuilder,
    RowMaterializer,
    extract_metadata,
    get_entity_config,
    validate_listing_params,
    validate_update_map,
)
from query.metadata import EntityDescriptor
from query.validators import ListingQuery, validate_entity_id

logger = logging.getLogger(__name__)

# Errors recorded in the envelope rather than raised while counting
COUNT_ERRORS = (asyncpg.PostgresError, asyncpg.InterfaceError)


class NotFoundError(Exception):
    """Lookup, update or delete addressed an identifier with no row."""

    def __init__(self, entity: str, entity_id: Any):
        self.entity = entity
        self.entity_id = entity_id
        super().__init__(f"{entity} {entity_id} not found")


class EntityRepository:
    """Listing and CRUD for one registered entity"""

    def __init__(self, db: DatabaseConnection, entity: str, tables: Optional[TableConfig] = None):
        self.db = db
        self.entity = entity
        config = get_entity_config(entity)
        if config is None:
            raise ValueError(f"Unknown entity: {entity}")
        self.config = config
        self.tables = tables or TableConfig()
        self.builder = QueryBuilder(self.tables)
        self.materializer = RowMaterializer()
        self.mutations = MutationEngine(self.tables)

    # ------------------------------------------------------------------
    # Read path
    # ------------------------------------------------------------------

    async def _count(self, sql: str, args: list) -> int:
        async with self.db.session() as conn:
            value = await conn.fetchval(sql, *args)
        return int(value or 0)

    async def _populate_counts(self, descriptor: EntityDescriptor, query: ListingQuery,
                               envelope: ResultEnvelope) -> bool:
        """
        Fill total and total_filtered. A failing count is recorded in the
        envelope errors and leaves its value at 0.

        Returns True when every count query needed succeeded.
        """
        metadata = envelope.metadata
        succeeded = True

        try:
            metadata.total = await self._count(*self.builder.build_total(descriptor))
        except COUNT_ERRORS as e:
            logger.warning(f"Total count for {self.entity} failed: {e}")
            envelope.errors.append(f"total count failed: {e}")
            succeeded = False

        if not query.narrows:
            metadata.total_filtered = metadata.total
            return succeeded

        try:
            metadata.total_filtered = await self._count(*self.builder.build_filtered_total(descriptor, query))
        except COUNT_ERRORS as e:
            logger.warning(f"Filtered count for {self.entity} failed: {e}")
            envelope.errors.append(f"filtered count failed: {e}")
            succeeded = False

        return succeeded

    async def _fetch_rows(self, descriptor: EntityDescriptor, query: ListingQuery) -> list[dict[str, Any]]:
        sql, args = self.builder.build_select(descriptor, query)
        logger.info(f"Listing {self.entity}: {sql[:200]}...")
        async with self.db.session() as conn:
            records = await conn.fetch(sql, *args)
        return self.materializer.materialize(records, descriptor.output_fields)

    async def select(self, params: Optional[dict[str, str]] = None) -> ResultEnvelope:
        """
        List rows matching query-string parameters.

        Count failures degrade the metadata but never the data. When the
        counts report no matching rows the row query is skipped.
        """
        query = validate_listing_params(self.config, params)
        descriptor = extract_metadata(self.config)

        envelope = ResultEnvelope(metadata=ResultMetadata(
            page=query.page,
            records_per_page=query.results,
            source=self.config.table,
        ))

        counted = await self._populate_counts(descriptor, query, envelope)
        if counted and envelope.metadata.total_filtered == 0:
            return envelope

        envelope.data = await self._fetch_rows(descriptor, query)
        return envelope

    async def query_one(self, entity_id: Any) -> dict[str, Any]:
        """Fetch a single result tree by id. Raises NotFoundError."""
        entity_id = validate_entity_id(self.config, entity_id)
        descriptor = extract_metadata(self.config)
        rows = await self._fetch_rows(descriptor, ListingQuery(entity_id=entity_id, results=1))
        if not rows:
            raise NotFoundError(self.entity, entity_id)
        return rows[0]

    # ------------------------------------------------------------------
    # Write path
    # ------------------------------------------------------------------

    async def insert(self, values: dict[str, Any]) -> dict[str, Any]:
        """
        Insert a row and its persisted sub-entities in one transaction.
        Returns the stored result tree.
        """
        async with self.db.transaction() as conn:
            await self.mutations.insert(conn, self.config, values)
        return await self.query_one(values["id"])

    async def update(self, entity_id: Any, changes: dict[str, Any]) -> dict[str, Any]:
        """
        Apply a sparse update (dotted or nested keys) in one transaction.
        Returns the updated result tree; raises NotFoundError for unknown ids.
        """
        entity_id = validate_entity_id(self.config, entity_id)
        validated = validate_update_map(self.config, changes)
        async with self.db.transaction() as conn:
            await self.mutations.update(conn, self.config, entity_id, validated)
        return await self.query_one(entity_id)

    async def delete(self, *ids: Any) -> int:
        """
        Delete rows and every translated text they own, all or nothing.
        Raises NotFoundError when no row matched.
        """
        id_list = [validate_entity_id(self.config, i) for i in ids]
        async with self.db.transaction() as conn:
            deleted = await self.mutations.delete(conn, self.config, *id_list)
            if deleted == 0:
                raise NotFoundError(self.entity, ", ".join(str(i) for i in id_list))
        return deleted


class TripsRepository(EntityRepository):
    """Trips additionally own participants, itineraries and invites"""

    OWNER_ROLES = (ParticipantRole.OWNER.value,)
    MANAGER_ROLES = (ParticipantRole.OWNER.value, ParticipantRole.ADMIN.value)
    CONTRIBUTOR_ROLES = MANAGER_ROLES + (ParticipantRole.EDITOR.value,)
    ALL_ROLES = tuple(role.value for role in ParticipantRole)

    # Deleted with their trip, in this order
    OWNED_TABLES = ("trip_itinerary", "trip_invite", "trip_participant")

    def __init__(self, db: DatabaseConnection, tables: Optional[TableConfig] = None):
        super().__init__(db, "trip", tables)

    def _default_itinerary(self, trip_values: dict[str, Any], itinerary_id: UUID, owner_id: UUID) -> dict[str, Any]:
        now = datetime.now()
        return {
            "id": itinerary_id,
            "trip_id": trip_values["id"],
            "owner_id": owner_id,
            "start_date": now,
            "end_date": now,
            "created_by": owner_id,
            "created_date": now,
            "updated_by": owner_id,
            "updated_date": now,
            "title": DEFAULT_ITINERARY_TITLE.to_row(itinerary_id, "trip_itinerary", "title"),
        }

    async def insert_with_owner(self, values: dict[str, Any], owner_id: UUID) -> dict[str, Any]:
        """
        Insert a trip together with its default itinerary and its owner
        participant row, all in one transaction.
        """
        values = {**values, "itinerary_id": values.get("itinerary_id") or uuid4()}
        participant = {
            "id": uuid4(),
            "trip_id": values["id"],
            "user_id": owner_id,
            "role": ParticipantRole.OWNER.value,
            "created_by": owner_id,
            "created_date": values.get("created_date") or datetime.now(),
            "updated_by": owner_id,
            "updated_date": values.get("updated_date") or datetime.now(),
        }
        itinerary = self._default_itinerary(values, values["itinerary_id"], owner_id)
        async with self.db.transaction() as conn:
            await self.mutations.insert(conn, self.config, values)
            await self.mutations.insert(conn, ENTITIES["itinerary"], itinerary)
            await self.mutations.insert(conn, ENTITIES["_trip_participant"], participant)
        return await self.query_one(values["id"])

    async def delete(self, *ids: Any) -> int:
        """Itineraries (with their titles), invites and participants go with their trip"""
        id_list = [validate_entity_id(self.config, i) for i in ids]
        async with self.db.transaction() as conn:
            await conn.execute(
                f"DELETE FROM {self.tables.physical('translation')} WHERE parent_id IN "
                f"(SELECT id FROM {self.tables.physical('trip_itinerary')} WHERE trip_id = ANY($1))",
                id_list,
            )
            for table in self.OWNED_TABLES:
                await conn.execute(f"DELETE FROM {self.tables.physical(table)} WHERE trip_id = ANY($1)", id_list)
            deleted = await self.mutations.delete(conn, self.config, *id_list)
            if deleted == 0:
                raise NotFoundError(self.entity, ", ".join(str(i) for i in id_list))
        return deleted

    async def has_participant_role(self, trip_id: Any, user_id: UUID, roles: tuple[str, ...]) -> bool:
        """True when the user takes part in the trip with one of the roles"""
        trip_id = validate_entity_id(self.config, trip_id)
        sql = (
            f"SELECT COUNT(*) FROM {self.tables.physical('trip_participant')} "
            f"WHERE trip_id = $1 AND user_id = $2 AND role = ANY($3)"
        )
        count = await self.db.fetchval(sql, trip_id, user_id, list(roles))
        return bool(count)

    async def is_trip_owner(self, trip_id: Any, user_id: UUID) -> bool:
        return await self.has_participant_role(trip_id, user_id, self.OWNER_ROLES)

    async def is_trip_manager(self, trip_id: Any, user_id: UUID) -> bool:
        """Owner or trip admin"""
        return await self.has_participant_role(trip_id, user_id, self.MANAGER_ROLES)

    async def is_participant(self, trip_id: Any, user_id: UUID) -> bool:
        return await self.has_participant_role(trip_id, user_id, self.ALL_ROLES)


class TripChildRepository(EntityRepository):
    """
    Rows that belong to one trip (itineraries, invites).

    Every call is scoped by the trip id taken from the route; a row of
    another trip is reported as not found.
    """

    async def select_for_trip(self, trip_id: Any, params: Optional[dict[str, str]] = None) -> ResultEnvelope:
        trip_id = validate_entity_id(self.config, trip_id)
        return await self.select({**(params or {}), "trip_id": str(trip_id)})

    async def query_one_for_trip(self, trip_id: Any, entity_id: Any) -> dict[str, Any]:
        trip_id = validate_entity_id(self.config, trip_id)
        row = await self.query_one(entity_id)
        if row.get("trip_id") != str(trip_id):
            raise NotFoundError(self.entity, entity_id)
        return row


class RepositoryContainer:
    """
    Container for repository instances with attribute access.

    Single place where repositories are built; the HTTP transport and the
    tests both go through it.
    """

    def __init__(self, db: DatabaseConnection, tables: Optional[TableConfig] = None):
        tables = tables or TableConfig()
        self.categories = EntityRepository(db, "category", tables)
        self.events = EntityRepository(db, "event", tables)
        self.locations = EntityRepository(db, "location", tables)
        self.highlights = EntityRepository(db, "highlight", tables)
        self.trips = TripsRepository(db, tables)
        self.itineraries = TripChildRepository(db, "itinerary", tables)
        self.invites = TripChildRepository(db, "invite", tables)
        self.users = EntityRepository(db, "user", tables)
