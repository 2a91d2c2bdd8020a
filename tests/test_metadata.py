"""
Tests for entity metadata extraction
"""

from query.entities import ENTITIES, EntityConfig, EmbeddedDef, FieldDef, JoinDef
from query.metadata import extract_metadata


class TestCategoryDescriptor:

    def setup_method(self):
        self.descriptor = extract_metadata(ENTITIES["category"])

    def test_root_columns_come_first(self):
        assert self.descriptor.columns[:3] == ["category.id", "category.parent_id", "category.active"]
        assert self.descriptor.output_fields[:3] == ["id", "parent_id", "active"]

    def test_columns_and_output_fields_are_parallel(self):
        assert len(self.descriptor.columns) == len(self.descriptor.output_fields)
        # 7 root, 7 per translation (x2), 4 per user reference (x2)
        assert len(self.descriptor.columns) == 29

    def test_embedded_fields_use_dotted_paths(self):
        assert "title.en" in self.descriptor.output_fields
        assert "parent_category.pt" in self.descriptor.output_fields
        assert "created_user.first_name" in self.descriptor.output_fields
        index = self.descriptor.output_fields.index("title.table")
        assert self.descriptor.columns[index] == "title.parent_table"

    def test_joins_in_declaration_order(self):
        aliases = [join.alias for join in self.descriptor.joins]
        assert aliases == ["parent_category", "title", "created_user", "updated_user"]
        assert self.descriptor.joins[1].on == "title.parent_id = category.id AND title.field = 'title'"

    def test_filter_columns_are_searchable_translation_columns(self):
        assert self.descriptor.filter_columns == [
            "parent_category.pt", "parent_category.es", "parent_category.en",
            "title.pt", "title.es", "title.en",
        ]

    def test_no_group_by_without_aggregation(self):
        assert self.descriptor.has_aggregation is False
        assert self.descriptor.group_by_columns == []


class TestAggregation:

    def test_trip_participant_count(self):
        descriptor = extract_metadata(ENTITIES["trip"])

        assert descriptor.has_aggregation is True
        index = descriptor.output_fields.index("participants")
        assert descriptor.columns[index] == "COUNT(DISTINCT participant.id)"
        assert "COUNT(DISTINCT participant.id)" not in descriptor.group_by_columns
        assert "trip.id" in descriptor.group_by_columns
        assert "title.en" in descriptor.group_by_columns
        assert descriptor.joins[0].alias == "participant"

    def test_aggregate_in_embedded_entity_keeps_group_by(self):
        ENTITIES["_counted"] = EntityConfig(
            table="counted",
            fields={
                "id": FieldDef(column="id", type="uuid"),
                "hits": FieldDef(aggregate="COUNT(hit.id)", type="integer"),
            },
        )
        try:
            config = EntityConfig(
                table="owner",
                fields={"id": FieldDef(column="id", type="uuid")},
                embedded={
                    "counted": EmbeddedDef(
                        entity="_counted",
                        join=JoinDef(table="counted", alias="counted", on="counted.owner_id = owner.id"),
                    ),
                },
            )
            descriptor = extract_metadata(config)
        finally:
            del ENTITIES["_counted"]

        assert descriptor.has_aggregation is True
        assert descriptor.group_by_columns == ["owner.id", "counted.id"]
        assert descriptor.output_fields == ["id", "counted.id", "counted.hits"]


class TestFilterColumns:

    def test_user_identity_fields_are_searchable(self):
        descriptor = extract_metadata(ENTITIES["user"])
        assert descriptor.filter_columns[:5] == [
            "users.first_name", "users.last_name", "users.user_group", "users.username", "users.email",
        ]

    def test_filter_columns_have_no_duplicates(self):
        descriptor = extract_metadata(ENTITIES["event"])
        assert len(descriptor.filter_columns) == len(set(descriptor.filter_columns))
