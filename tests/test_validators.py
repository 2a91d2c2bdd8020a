"""
Tests for listing-parameter and update-body validation
"""

from datetime import datetime
from uuid import UUID, uuid4

import pytest

from query.entities import ENTITIES, FieldDef
from query.validators import (
    DEFAULT_RESULTS,
    ValidationError,
    coerce_value,
    flatten_update,
    validate_listing_params,
    validate_update_map,
)


class TestCoerceValue:

    def test_booleans(self):
        field = FieldDef(type="boolean")
        assert coerce_value(field, "true") is True
        assert coerce_value(field, "YES") is True
        assert coerce_value(field, "0") is False
        with pytest.raises(ValueError):
            coerce_value(field, "maybe")

    def test_uuid_and_timestamp(self):
        entity_id = uuid4()
        assert coerce_value(FieldDef(type="uuid"), str(entity_id)) == entity_id
        assert coerce_value(FieldDef(type="timestamp"), "2024-03-01T08:00:00") == datetime(2024, 3, 1, 8, 0)
        with pytest.raises(ValueError):
            coerce_value(FieldDef(type="uuid"), "not-a-uuid")

    def test_none_passes_through(self):
        assert coerce_value(FieldDef(type="integer"), None) is None


class TestListingParams:

    def test_defaults(self):
        query = validate_listing_params(ENTITIES["category"], None)

        assert query.page == 1
        assert query.results == DEFAULT_RESULTS
        assert query.descending is True
        assert query.narrows is False

    def test_unknown_filter_key_is_rejected(self):
        with pytest.raises(ValidationError) as exc_info:
            validate_listing_params(ENTITIES["category"], {"colour": "red"})

        error = exc_info.value.errors[0]
        assert error["code"] == "UNKNOWN_FIELD"
        assert error["path"] == "colour"
        assert "active" in error["validFields"]

    def test_embedded_paths_are_not_filterable(self):
        with pytest.raises(ValidationError):
            validate_listing_params(ENTITIES["category"], {"title.en": "Beach"})

    def test_unknown_sort_is_rejected(self):
        with pytest.raises(ValidationError) as exc_info:
            validate_listing_params(ENTITIES["category"], {"sort": "popularity"})
        assert exc_info.value.errors[0]["path"] == "sort"

    def test_uncoercible_value_is_rejected(self):
        with pytest.raises(ValidationError) as exc_info:
            validate_listing_params(ENTITIES["category"], {"active": "perhaps"})
        assert exc_info.value.errors[0]["code"] == "INVALID_VALUE"

    def test_malformed_id_is_rejected(self):
        with pytest.raises(ValidationError):
            validate_listing_params(ENTITIES["category"], {"id": "42"})

    def test_all_errors_are_reported_together(self):
        with pytest.raises(ValidationError) as exc_info:
            validate_listing_params(ENTITIES["category"], {"a": "1", "b": "2", "active": "x"})
        assert len(exc_info.value.errors) == 3

    def test_null_sentinels(self):
        query = validate_listing_params(ENTITIES["category"], {"parent_id": "is_not_null"})

        assert query.filters[0].mode == "is_not_null"
        assert query.filters[0].value is None
        assert query.narrows is True

    def test_filter_and_id_narrow(self):
        entity_id = uuid4()
        assert validate_listing_params(ENTITIES["trip"], {"filter": "x"}).narrows is True
        query = validate_listing_params(ENTITIES["trip"], {"id": str(entity_id)})
        assert query.entity_id == entity_id
        assert isinstance(query.entity_id, UUID)


class TestUpdateMap:

    def test_flatten_nested_objects(self):
        assert flatten_update({"title": {"en": "x", "pt": "y"}, "active": True}) == {
            "title.en": "x", "title.pt": "y", "active": True,
        }

    def test_dotted_and_nested_keys_are_equivalent(self):
        config = ENTITIES["category"]
        assert validate_update_map(config, {"title": {"en": "x"}}) == validate_update_map(config, {"title.en": "x"})

    def test_write_once_and_read_only_paths_are_dropped(self):
        changes = validate_update_map(ENTITIES["category"], {
            "id": str(uuid4()),
            "created_by": str(uuid4()),
            "created_user.first_name": "Ann",
            "parent_category.en": "Nature",
            "title.field": "other",
            "active": "false",
        })

        assert changes == {"active": False}

    def test_aggregate_is_read_only(self):
        assert validate_update_map(ENTITIES["trip"], {"participants": 5}) == {}

    def test_unknown_paths_are_rejected(self):
        with pytest.raises(ValidationError) as exc_info:
            validate_update_map(ENTITIES["category"], {"title.de": "Strand"})

        error = exc_info.value.errors[0]
        assert error["path"] == "title.de"
        assert "title.en" in error["validFields"]

    def test_user_identity_fields_are_write_once(self):
        changes = validate_update_map(ENTITIES["user"], {"email": "new@example.com", "about_me": "hello"})
        assert changes == {"about_me": "hello"}
