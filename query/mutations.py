"""
Mutation Engine

Builds and runs parameterized INSERT / UPDATE / DELETE statements from entity
configurations. Every method runs on a connection that already holds an open
transaction (see DatabaseConnection.transaction()), so a failure in any
statement rolls back the whole call.

Persisted sub-entities (translated texts) are written together with their
owner and are addressed by (parent_id, field), never by their own id.
"""

import logging
from typing import Any, Optional

from config import TableConfig

from .entities import ENTITIES, EntityConfig
from .validators import coerce_value

logger = logging.getLogger(__name__)

TRANSLATION_TABLE = "translation"


def _affected_rows(status: str) -> int:
    """Parse the row count out of an asyncpg status string ("UPDATE 3")."""
    try:
        return int(status.rsplit(" ", 1)[-1])
    except (AttributeError, ValueError):
        return 0


class MutationEngine:
    """Writes entities, cascading into their persisted sub-entities."""

    def __init__(self, tables: Optional[TableConfig] = None):
        self.tables = tables or TableConfig()

    def _insert_values(self, config: EntityConfig, values: dict[str, Any]) -> tuple[list[str], list]:
        """Columns and coerced values for every column field present in values."""
        columns, args = [], []
        for name, field_def in config.column_fields().items():
            if name in values:
                columns.append(field_def.column)
                args.append(coerce_value(field_def, values[name]))
        return columns, args

    def _updatable_map(self, config: EntityConfig, changes: dict[str, Any], prefix: str = "") -> dict[str, Any]:
        """
        Column -> value for fields present in the sparse map under the
        prefix-qualified key. Write-once fields are never included.
        """
        qualifier = f"{prefix}." if prefix else ""
        updates = {}
        for name, field_def in config.column_fields().items():
            key = qualifier + name
            if key in changes and not field_def.write_once:
                updates[field_def.column] = coerce_value(field_def, changes[key])
        return updates

    async def _insert_row(self, conn, config: EntityConfig, values: dict[str, Any]):
        columns, args = self._insert_values(config, values)
        placeholders = ", ".join(f"${i}" for i in range(1, len(args) + 1))
        sql = f"INSERT INTO {self.tables.physical(config.table)} ({', '.join(columns)}) VALUES ({placeholders})"
        await conn.execute(sql, *args)

    async def insert(self, conn, config: EntityConfig, values: dict[str, Any]):
        """
        Insert the root row, then one row per persisted sub-entity present
        in values (nested under its key).
        """
        await self._insert_row(conn, config, values)

        for name, embedded in config.persisted_embedded().items():
            child_values = values.get(name)
            if isinstance(child_values, dict):
                await self._insert_row(conn, ENTITIES[embedded.entity], child_values)

        logger.info(f"Inserted {config.table} {values.get('id')}")

    async def update(self, conn, config: EntityConfig, entity_id: Any, changes: dict[str, Any]) -> int:
        """
        Apply a sparse update map (dotted output paths -> values).

        Returns the number of root rows updated; 0 when the map held no
        root column changes.
        """
        affected = 0
        root_map = self._updatable_map(config, changes)
        if root_map:
            assignments = ", ".join(f"{col} = ${i}" for i, col in enumerate(root_map, start=1))
            args = list(root_map.values())
            args.append(entity_id)
            sql = f"UPDATE {self.tables.physical(config.table)} SET {assignments} WHERE id = ${len(args)}"
            affected = _affected_rows(await conn.execute(sql, *args))

        for name, embedded in config.persisted_embedded().items():
            child = ENTITIES[embedded.entity]
            child_map = self._updatable_map(child, changes, prefix=name)
            if not child_map:
                continue
            assignments = ", ".join(f"{col} = ${i}" for i, col in enumerate(child_map, start=1))
            args = list(child_map.values())
            args.extend([entity_id, name])
            sql = (
                f"UPDATE {self.tables.physical(child.table)} SET {assignments} "
                f"WHERE parent_id = ${len(args) - 1} AND field = ${len(args)}"
            )
            await conn.execute(sql, *args)

        logger.info(f"Updated {config.table} {entity_id} ({len(root_map)} root columns)")
        return affected

    async def delete(self, conn, config: EntityConfig, *ids: Any) -> int:
        """
        Delete root rows by id and every translated text they own.
        Returns the number of root rows deleted.
        """
        id_list = list(ids)
        status = await conn.execute(
            f"DELETE FROM {self.tables.physical(config.table)} WHERE id = ANY($1)", id_list
        )
        await conn.execute(
            f"DELETE FROM {self.tables.physical(TRANSLATION_TABLE)} WHERE parent_id = ANY($1)", id_list
        )
        deleted = _affected_rows(status)
        logger.info(f"Deleted {deleted} {config.table} row(s)")
        return deleted
