"""
Metadata Extractor

Walks an entity configuration and its embedded sub-entities and produces the
EntityDescriptor that the query builder, the materializer and the mutation
engine work from. Descriptors are cheap to build and are built per call.
"""

from dataclasses import dataclass, field

from .entities import ENTITIES, EntityConfig, JoinDef


@dataclass
class EntityDescriptor:
    """Derived metadata: how an entity maps to columns, joins and output fields."""
    table: str
    columns: list[str] = field(default_factory=list)
    group_by_columns: list[str] = field(default_factory=list)
    output_fields: list[str] = field(default_factory=list)  # Parallel to columns
    filter_columns: list[str] = field(default_factory=list)  # Ordered, no duplicates
    joins: list[JoinDef] = field(default_factory=list)
    has_aggregation: bool = False

    @property
    def select_list(self) -> list[tuple[str, str]]:
        """(column expression, output path) pairs in select order."""
        return list(zip(self.columns, self.output_fields))

    def add_filter_column(self, column: str):
        if column not in self.filter_columns:
            self.filter_columns.append(column)

    def merge(self, child: "EntityDescriptor"):
        """Fold an embedded sub-entity's descriptor into this one."""
        self.columns.extend(child.columns)
        self.group_by_columns.extend(child.group_by_columns)
        self.output_fields.extend(child.output_fields)
        self.joins.extend(child.joins)
        for column in child.filter_columns:
            self.add_filter_column(column)
        self.has_aggregation = self.has_aggregation or child.has_aggregation


def _walk(config: EntityConfig, alias: str) -> EntityDescriptor:
    qualifier = alias or config.table
    descriptor = EntityDescriptor(table=config.table)

    for name, field_def in config.fields.items():
        path = f"{alias}.{name}" if alias else name
        if field_def.column:
            column = f"{qualifier}.{field_def.column}"
            descriptor.columns.append(column)
            descriptor.group_by_columns.append(column)
            descriptor.output_fields.append(path)
            if field_def.searchable:
                descriptor.add_filter_column(column)
        elif field_def.aggregate:
            descriptor.columns.append(field_def.aggregate)
            descriptor.output_fields.append(path)
            descriptor.has_aggregation = True

    descriptor.joins.extend(config.joins)

    for name, embedded in config.embedded.items():
        if embedded.join:
            descriptor.joins.append(embedded.join)
        descriptor.merge(_walk(ENTITIES[embedded.entity], name))

    return descriptor


def extract_metadata(config: EntityConfig, alias: str = "") -> EntityDescriptor:
    """
    Build the descriptor for an entity rooted at its table (or at `alias`).

    Group-by columns are collected across the whole tree and kept only when
    some field, at any depth, is an aggregate.
    """
    descriptor = _walk(config, alias)
    if not descriptor.has_aggregation:
        descriptor.group_by_columns = []
    return descriptor
