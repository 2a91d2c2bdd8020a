"""
Input Validators

Turns untyped request input (query-string parameters, sparse update bodies)
into typed structures checked against the entity registry. Unknown keys are
rejected with helpful error messages listing the valid fields.
"""

from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Any, Optional
from uuid import UUID

from .entities import ENTITIES, EntityConfig, FieldDef

CONTROL_KEYS = {"filter", "page", "results", "id", "order", "sort"}
NULL_SENTINELS = {"is_null", "is_not_null"}
DEFAULT_RESULTS = 50

_TRUE_VALUES = {"true", "1", "yes", "t"}
_FALSE_VALUES = {"false", "0", "no", "f"}


class ValidationError(Exception):
    """Request input rejected before any database access."""

    def __init__(self, errors: list[dict]):
        self.errors = errors
        super().__init__("; ".join(e["message"] for e in errors))


def _error(code: str, path: str, message: str, **extra) -> dict:
    """Build a structured validation error."""
    err = {"code": code, "path": path, "message": message}
    err.update(extra)
    return err


def coerce_value(field_def: FieldDef, value: Any) -> Any:
    """
    Convert a raw value to the Python type the column expects.
    Values already of the right type pass through. Raises ValueError.
    """
    if value is None:
        return None

    kind = field_def.type
    if kind == "uuid":
        return value if isinstance(value, UUID) else UUID(str(value))
    if kind == "boolean":
        if isinstance(value, bool):
            return value
        lowered = str(value).strip().lower()
        if lowered in _TRUE_VALUES:
            return True
        if lowered in _FALSE_VALUES:
            return False
        raise ValueError(f"'{value}' is not a boolean")
    if kind == "integer":
        if isinstance(value, bool):
            raise ValueError(f"'{value}' is not an integer")
        return int(value)
    if kind == "float":
        return float(value)
    if kind == "timestamp":
        return value if isinstance(value, datetime) else datetime.fromisoformat(str(value))
    if kind == "date":
        if isinstance(value, date) and not isinstance(value, datetime):
            return value
        return date.fromisoformat(str(value))
    return value if isinstance(value, str) else str(value)


def _positive_int(raw: Optional[str], default: int) -> int:
    """Parse a positive integer, falling back to the default on anything else."""
    if raw is None:
        return default
    try:
        number = int(str(raw).strip())
    except ValueError:
        return default
    return number if number > 0 else default


@dataclass
class ColumnFilter:
    """One `column=value` predicate of the AND-group."""
    column: str
    type: str
    mode: str = "eq"  # eq, is_null, is_not_null
    value: Any = None


@dataclass
class ListingQuery:
    """Validated listing parameters."""
    entity_id: Optional[UUID] = None
    search: Optional[str] = None
    filters: list[ColumnFilter] = field(default_factory=list)
    sort_column: Optional[str] = None
    descending: bool = True
    page: int = 1
    results: int = DEFAULT_RESULTS

    @property
    def narrows(self) -> bool:
        """True when the WHERE clause can exclude rows from the unfiltered set."""
        return self.entity_id is not None or self.search is not None or bool(self.filters)

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.results


def validate_entity_id(config: EntityConfig, raw: Any) -> UUID:
    """Coerce an identifier, raising ValidationError when malformed."""
    try:
        return coerce_value(config.fields["id"], raw)
    except (TypeError, ValueError):
        raise ValidationError([_error("INVALID_VALUE", "id", f"Invalid id '{raw}'")])


def validate_listing_params(config: EntityConfig, params: Optional[dict[str, str]]) -> ListingQuery:
    """
    Validate query-string parameters for a listing call.

    Non-control keys must name a column field of the root entity. The values
    `is_null` and `is_not_null` select null checks instead of equality.
    Malformed `page` and `results` fall back to their defaults.
    """
    params = params or {}
    errors = []
    columns = config.column_fields()
    query = ListingQuery(
        page=_positive_int(params.get("page"), 1),
        results=_positive_int(params.get("results"), DEFAULT_RESULTS),
    )

    if "id" in params:
        query.entity_id = validate_entity_id(config, params["id"])

    if "filter" in params:
        query.search = params["filter"]

    sort = params.get("sort")
    if sort is not None:
        if sort in columns:
            query.sort_column = columns[sort].column
            query.descending = params.get("order") != "asc"
        else:
            errors.append(_error(
                "UNKNOWN_FIELD", "sort",
                f"Cannot sort by unknown field '{sort}'",
                validFields=list(columns.keys()),
            ))

    for key, value in params.items():
        if key in CONTROL_KEYS:
            continue
        field_def = columns.get(key)
        if field_def is None:
            errors.append(_error(
                "UNKNOWN_FIELD", key,
                f"Unknown field '{key}' on entity '{config.table}'",
                validFields=list(columns.keys()),
            ))
            continue

        if value in NULL_SENTINELS:
            query.filters.append(ColumnFilter(column=field_def.column, type=field_def.type, mode=value))
            continue

        try:
            coerced = coerce_value(field_def, value)
        except (TypeError, ValueError):
            errors.append(_error("INVALID_VALUE", key, f"Invalid {field_def.type} value '{value}' for '{key}'"))
            continue
        query.filters.append(ColumnFilter(column=field_def.column, type=field_def.type, value=coerced))

    if errors:
        raise ValidationError(errors)

    return query


def flatten_update(values: dict[str, Any], prefix: str = "") -> dict[str, Any]:
    """
    Flatten nested objects into dotted paths.
    {"title": {"en": "x"}} -> {"title.en": "x"}
    """
    flat = {}
    for key, value in values.items():
        path = f"{prefix}.{key}" if prefix else key
        if isinstance(value, dict):
            flat.update(flatten_update(value, path))
        else:
            flat[path] = value
    return flat


def _known_paths(config: EntityConfig, alias: str = "") -> set[str]:
    paths = {f"{alias}.{name}" if alias else name for name in config.fields}
    for name, embedded in config.embedded.items():
        paths |= _known_paths(ENTITIES[embedded.entity], name)
    return paths


def validate_update_map(config: EntityConfig, values: dict[str, Any]) -> dict[str, Any]:
    """
    Validate a sparse update map against the entity registry.

    Returns a new map of dotted path -> coerced value holding only the paths
    that can actually be written: column fields of the root entity and of
    its persisted sub-entities. Write-once fields and read-only paths (joined
    sub-entities, aggregates) are dropped silently. Unknown paths and
    uncoercible values raise ValidationError.
    """
    flat = flatten_update(values)
    known = _known_paths(config)
    errors = []
    changes = {}

    writable: dict[str, FieldDef] = {
        name: f for name, f in config.column_fields().items() if not f.write_once
    }
    for emb_name, embedded in config.persisted_embedded().items():
        for name, f in ENTITIES[embedded.entity].column_fields().items():
            if not f.write_once:
                writable[f"{emb_name}.{name}"] = f

    for path, value in flat.items():
        if path not in known:
            errors.append(_error(
                "UNKNOWN_FIELD", path,
                f"Unknown field '{path}' on entity '{config.table}'",
                validFields=sorted(writable.keys()),
            ))
            continue
        field_def = writable.get(path)
        if field_def is None:
            continue
        try:
            changes[path] = coerce_value(field_def, value)
        except (TypeError, ValueError):
            errors.append(_error("INVALID_VALUE", path, f"Invalid {field_def.type} value '{value}' for '{path}'"))

    if errors:
        raise ValidationError(errors)

    return changes
