"""
Query Builder

Translates an EntityDescriptor and validated listing parameters into
parameterized SQL. All values are passed as asyncpg positional parameters
($1, $2, ...), never interpolated. Only identifiers taken from the entity
registry are written into the SQL text.

Supports:
- LEFT JOINs for embedded sub-entities and declared joins
- Exact id lookup (short-circuits every other filter)
- Free-text search across searchable columns (case-insensitive LIKE)
- Equality and is_null / is_not_null column filters
- GROUP BY when aggregate fields are present
- Sorting and LIMIT/OFFSET pagination
- Total and filtered-total count queries
"""

import logging
from typing import Optional

from config import TableConfig

from .metadata import EntityDescriptor
from .validators import ColumnFilter, ListingQuery

logger = logging.getLogger(__name__)


class QueryBuilder:
    """Builds parameterized SQL from entity descriptors."""

    def __init__(self, tables: Optional[TableConfig] = None):
        self.tables = tables or TableConfig()

    def _build_from(self, descriptor: EntityDescriptor) -> str:
        """
        FROM clause plus one LEFT JOIN per join target.
        Physical tables are always aliased back to their logical names.
        """
        parts = [f"FROM {self.tables.physical(descriptor.table)} {descriptor.table}"]
        for join in descriptor.joins:
            parts.append(f"LEFT JOIN {self.tables.physical(join.table)} {join.alias} ON {join.on}")
        return " ".join(parts)

    def _build_column_filter(self, col: str, column_filter: ColumnFilter, params: list) -> str:
        """Build a single AND-group predicate."""
        textual = column_filter.type == "string"

        if column_filter.mode == "is_not_null":
            return f"({col} IS NOT NULL AND {col} != '')" if textual else f"{col} IS NOT NULL"
        if column_filter.mode == "is_null":
            return f"({col} IS NULL OR {col} = '')" if textual else f"{col} IS NULL"

        params.append(column_filter.value)
        return f"{col} = ${len(params)}"

    def _build_where(self, descriptor: EntityDescriptor, query: ListingQuery, params: list) -> str:
        """
        Build the WHERE clause.

        An id lookup is the only predicate when present. Otherwise the
        free-text OR-group and the column AND-group are combined with AND;
        when both are empty the clause is omitted.
        """
        table = descriptor.table

        if query.entity_id is not None:
            params.append(query.entity_id)
            return f"WHERE {table}.id = ${len(params)}"

        search_group = ""
        if query.search is not None and descriptor.filter_columns:
            params.append(f"%{query.search}%")
            ref = f"${len(params)}"
            search_group = " OR ".join(f"LOWER({col}) LIKE LOWER({ref})" for col in descriptor.filter_columns)

        conditions = [
            self._build_column_filter(f"{table}.{f.column}", f, params)
            for f in query.filters
        ]
        and_group = " AND ".join(conditions)

        if search_group and and_group:
            return f"WHERE ({search_group}) AND ({and_group})"
        if search_group:
            return f"WHERE ({search_group})"
        if and_group:
            return f"WHERE {and_group}"
        return ""

    def _build_order(self, descriptor: EntityDescriptor, query: ListingQuery) -> str:
        """Build ORDER BY clause. Defaults to newest identifier first."""
        column = query.sort_column or "id"
        direction = "DESC" if query.descending else "ASC"
        return f"ORDER BY {descriptor.table}.{column} {direction}"

    def build_select(self, descriptor: EntityDescriptor, query: ListingQuery) -> tuple[str, list]:
        """
        Build the row-fetch query.
        Every column is aliased with its output path so rows decode by name.
        Returns (sql, params).
        """
        params: list = []

        select_clause = ", ".join(f'{expr} AS "{path}"' for expr, path in descriptor.select_list)
        from_clause = self._build_from(descriptor)
        where_clause = self._build_where(descriptor, query, params)

        group_clause = ""
        if descriptor.group_by_columns:
            group_clause = f"GROUP BY {', '.join(descriptor.group_by_columns)}"

        order_clause = self._build_order(descriptor, query)

        params.append(query.results)
        limit_clause = f"LIMIT ${len(params)}"
        params.append(query.offset)
        offset_clause = f"OFFSET ${len(params)}"

        sql = f"SELECT {select_clause} {from_clause} {where_clause} {group_clause} {order_clause} {limit_clause} {offset_clause}"

        return " ".join(sql.split()), params  # Normalize whitespace

    def build_total(self, descriptor: EntityDescriptor) -> tuple[str, list]:
        """
        Build the unfiltered COUNT query over the root table.
        Returns (sql, params).
        """
        table = descriptor.table
        sql = f"SELECT COUNT({table}.id) AS total FROM {self.tables.physical(table)} {table}"
        return sql, []

    def build_filtered_total(self, descriptor: EntityDescriptor, query: ListingQuery) -> tuple[str, list]:
        """
        Build the filtered COUNT query (same joins and filters, no pagination).
        Returns (sql, params).
        """
        table = descriptor.table
        params: list = []

        from_clause = self._build_from(descriptor)
        where_clause = self._build_where(descriptor, query, params)

        # Joins can fan out rows, so count each root row once
        count_expr = f"COUNT(DISTINCT {table}.id)" if descriptor.joins else f"COUNT({table}.id)"

        sql = f"SELECT {count_expr} AS total_filtered {from_clause} {where_clause}"

        return " ".join(sql.split()), params
