"""
Declarative entity registry

Declares, once and statically, how every entity maps to columns, joins and
embedded sub-entities. The metadata extractor walks these declarations; no
per-entity SQL is written anywhere else.
"""

from dataclasses import dataclass, field
from typing import Optional


SUPPORTED_LANGUAGES = ("pt", "es", "en")


@dataclass(frozen=True)
class FieldDef:
    """Maps an output key to a database column or an aggregate expression."""
    column: Optional[str] = None
    type: str = "string"  # uuid, string, boolean, integer, float, timestamp, date
    searchable: bool = False  # Included in the free-text filter
    write_once: bool = False  # Settable on insert only
    aggregate: Optional[str] = None  # Raw SQL aggregate, e.g. COUNT(DISTINCT p.id)


@dataclass(frozen=True)
class JoinDef:
    """A LEFT OUTER JOIN target. `table` is the logical table name."""
    table: str
    alias: str
    on: str


@dataclass(frozen=True)
class EmbeddedDef:
    """
    A sub-entity nested under the output key it is registered with.

    The key doubles as the SQL alias of the sub-entity. Persisted sub-entities
    are written together with their owner and are addressed on update by
    (parent_id, field) where field is the key.
    """
    entity: str
    join: Optional[JoinDef] = None
    persisted: bool = False


@dataclass
class EntityConfig:
    """Complete configuration for an entity."""
    table: str
    fields: dict[str, FieldDef]
    embedded: dict[str, EmbeddedDef] = field(default_factory=dict)
    joins: list[JoinDef] = field(default_factory=list)

    def column_fields(self) -> dict[str, FieldDef]:
        """Fields backed by a real column (excludes aggregates)."""
        return {name: f for name, f in self.fields.items() if f.column}

    def persisted_embedded(self) -> dict[str, EmbeddedDef]:
        return {name: e for name, e in self.embedded.items() if e.persisted}


# =============================================================================
# Reusable embedded sub-entities
# =============================================================================

def _translated(owner: str, alias: str, parent_column: str = "id", field_name: str = "title",
                persisted: bool = False) -> EmbeddedDef:
    """Embed a translated text joined on (parent_id, field)."""
    return EmbeddedDef(
        entity="_translation",
        join=JoinDef(
            table="translation",
            alias=alias,
            on=f"{alias}.parent_id = {owner}.{parent_column} AND {alias}.field = '{field_name}'",
        ),
        persisted=persisted,
    )


def _user_ref(owner: str, alias: str, column: str) -> EmbeddedDef:
    """Embed the attribution projection of a user."""
    return EmbeddedDef(
        entity="_user_ref",
        join=JoinDef(table="users", alias=alias, on=f"{alias}.id = {owner}.{column}"),
    )


def _audit_fields() -> dict[str, FieldDef]:
    return {
        "created_by": FieldDef(column="created_by", type="uuid", write_once=True),
        "created_date": FieldDef(column="created_date", type="timestamp", write_once=True),
        "updated_by": FieldDef(column="updated_by", type="uuid"),
        "updated_date": FieldDef(column="updated_date", type="timestamp"),
    }


def _audit_users(owner: str) -> dict[str, EmbeddedDef]:
    return {
        "created_user": _user_ref(owner, "created_user", "created_by"),
        "updated_user": _user_ref(owner, "updated_user", "updated_by"),
    }


def _geo_embedded(owner: str) -> dict[str, EmbeddedDef]:
    return {
        "country": _translated(owner, "country", parent_column="country_id"),
        "region": _translated(owner, "region", parent_column="region_id"),
        "city": _translated(owner, "city", parent_column="city_id"),
    }


# =============================================================================
# Registered entities (names starting with "_" are only ever embedded)
# =============================================================================

ENTITIES: dict[str, EntityConfig] = {
    # Translated text: one logical field of one owner, in every language
    "_translation": EntityConfig(
        table="translation",
        fields={
            "id": FieldDef(column="id", type="uuid", write_once=True),
            "parent_id": FieldDef(column="parent_id", type="uuid", write_once=True),
            "table": FieldDef(column="parent_table", write_once=True),
            "field": FieldDef(column="field", write_once=True),
            "pt": FieldDef(column="pt", searchable=True),
            "es": FieldDef(column="es", searchable=True),
            "en": FieldDef(column="en", searchable=True),
        },
    ),

    # Minimal user projection for created_by / updated_by attribution
    "_user_ref": EntityConfig(
        table="users",
        fields={
            "id": FieldDef(column="id", type="uuid", write_once=True),
            "first_name": FieldDef(column="first_name"),
            "last_name": FieldDef(column="last_name"),
            "image_path": FieldDef(column="image_path"),
        },
    ),

    "_trip_participant": EntityConfig(
        table="trip_participant",
        fields={
            "id": FieldDef(column="id", type="uuid", write_once=True),
            "trip_id": FieldDef(column="trip_id", type="uuid", write_once=True),
            "user_id": FieldDef(column="user_id", type="uuid", write_once=True),
            "role": FieldDef(column="role"),
            **_audit_fields(),
        },
    ),

    "category": EntityConfig(
        table="category",
        fields={
            "id": FieldDef(column="id", type="uuid", write_once=True),
            "parent_id": FieldDef(column="parent_id", type="uuid"),
            "active": FieldDef(column="active", type="boolean"),
            **_audit_fields(),
        },
        embedded={
            "parent_category": _translated("category", "parent_category", parent_column="parent_id"),
            "title": _translated("category", "title", persisted=True),
            **_audit_users("category"),
        },
    ),

    "event": EntityConfig(
        table="event",
        fields={
            "id": FieldDef(column="id", type="uuid", write_once=True),
            "active": FieldDef(column="active", type="boolean"),
            "main_category_id": FieldDef(column="main_category_id", type="uuid"),
            "secondary_category_id": FieldDef(column="secondary_category_id", type="uuid"),
            "country_id": FieldDef(column="country_id", type="uuid"),
            "region_id": FieldDef(column="region_id", type="uuid"),
            "city_id": FieldDef(column="city_id", type="uuid"),
            "address": FieldDef(column="address"),
            **_audit_fields(),
        },
        embedded={
            "title": _translated("event", "title", persisted=True),
            "description": _translated("event", "description", field_name="description", persisted=True),
            "main_category": _translated("event", "main_category", parent_column="main_category_id"),
            "secondary_category": _translated("event", "secondary_category", parent_column="secondary_category_id"),
            **_geo_embedded("event"),
            **_audit_users("event"),
        },
    ),

    "location": EntityConfig(
        table="location",
        fields={
            "id": FieldDef(column="id", type="uuid", write_once=True),
            "country_id": FieldDef(column="country_id", type="uuid"),
            "region_id": FieldDef(column="region_id", type="uuid"),
        },
        embedded={
            "title": _translated("location", "title", persisted=True),
        },
    ),

    "highlight": EntityConfig(
        table="highlight",
        fields={
            "id": FieldDef(column="id", type="uuid", write_once=True),
            "active": FieldDef(column="active", type="boolean"),
            "schedule_date": FieldDef(column="schedule_date", type="timestamp"),
            "filter": FieldDef(column="filter_query"),
            "country_id": FieldDef(column="country_id", type="uuid"),
            "region_id": FieldDef(column="region_id", type="uuid"),
            "city_id": FieldDef(column="city_id", type="uuid"),
            "trips": FieldDef(column="trips"),
            "events": FieldDef(column="events"),
            **_audit_fields(),
        },
        embedded={
            "title": _translated("highlight", "title", persisted=True),
            "description": _translated("highlight", "description", field_name="description", persisted=True),
            **_geo_embedded("highlight"),
            **_audit_users("highlight"),
        },
    ),

    "trip": EntityConfig(
        table="trip",
        fields={
            "id": FieldDef(column="id", type="uuid", write_once=True),
            "itinerary_id": FieldDef(column="itinerary_id", type="uuid"),
            "scope": FieldDef(column="scope", write_once=True),
            "participants": FieldDef(aggregate="COUNT(DISTINCT participant.id)", type="integer"),
            **_audit_fields(),
        },
        embedded={
            "title": _translated("trip", "title", persisted=True),
            "description": _translated("trip", "description", field_name="description", persisted=True),
        },
        joins=[
            JoinDef(table="trip_participant", alias="participant", on="participant.trip_id = trip.id"),
        ],
    ),

    # Groups trip events; every trip starts with a default one (trip.itinerary_id)
    "itinerary": EntityConfig(
        table="trip_itinerary",
        fields={
            "id": FieldDef(column="id", type="uuid", write_once=True),
            "trip_id": FieldDef(column="trip_id", type="uuid", write_once=True),
            "owner_id": FieldDef(column="owner_id", type="uuid"),
            "start_date": FieldDef(column="start_date", type="timestamp"),
            "end_date": FieldDef(column="end_date", type="timestamp"),
            **_audit_fields(),
        },
        embedded={
            "title": _translated("trip_itinerary", "title", persisted=True),
            **_audit_users("trip_itinerary"),
        },
    ),

    "invite": EntityConfig(
        table="trip_invite",
        fields={
            "id": FieldDef(column="id", type="uuid", write_once=True),
            "trip_id": FieldDef(column="trip_id", type="uuid", write_once=True),
            "email": FieldDef(column="email", searchable=True, write_once=True),
            "created_by": FieldDef(column="created_by", type="uuid", write_once=True),
            "created_date": FieldDef(column="created_date", type="timestamp", write_once=True),
        },
        embedded={
            "created_user": _user_ref("trip_invite", "created_user", "created_by"),
        },
    ),

    "user": EntityConfig(
        table="users",
        fields={
            "id": FieldDef(column="id", type="uuid", write_once=True),
            "active": FieldDef(column="active", type="boolean", write_once=True),
            "first_name": FieldDef(column="first_name", searchable=True, write_once=True),
            "last_name": FieldDef(column="last_name", searchable=True, write_once=True),
            "group": FieldDef(column="user_group", searchable=True, write_once=True),
            "username": FieldDef(column="username", searchable=True, write_once=True),
            "email": FieldDef(column="email", searchable=True, write_once=True),
            "language_code": FieldDef(column="language_code", write_once=True),
            "principal_trip_id": FieldDef(column="principal_trip_id", type="uuid"),
            "image_path": FieldDef(column="image_path"),
            "country_id": FieldDef(column="country_id", type="uuid"),
            "region_id": FieldDef(column="region_id", type="uuid"),
            "city_id": FieldDef(column="city_id", type="uuid"),
            "about_me": FieldDef(column="about_me"),
            **_audit_fields(),
        },
        embedded={
            **_geo_embedded("users"),
            **_audit_users("users"),
        },
    ),
}


def get_entity_config(entity_name: str) -> Optional[EntityConfig]:
    return ENTITIES.get(entity_name)
