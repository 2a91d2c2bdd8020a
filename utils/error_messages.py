"""
Readable messages and HTTP statuses for PostgreSQL constraint failures.

asyncpg surfaces the server message verbatim; the constraint (or column)
named in it is looked up here so API clients get a sentence instead of
an internal identifier.
"""

import re

import asyncpg

# Keyed by the constraint names declared in schema.sql
CONSTRAINT_MESSAGES = {
    "category_pkey": "A category with this ID already exists.",
    "event_pkey": "An event with this ID already exists.",
    "location_pkey": "A location with this ID already exists.",
    "highlight_pkey": "A highlight with this ID already exists.",
    "trip_pkey": "A trip with this ID already exists.",
    "users_pkey": "A user with this ID already exists.",
    "users_username_key": "This username is already taken.",
    "users_email_key": "A user with this email already exists.",
    "translation_parent_field_key": "This text already has translations for that field.",
    "trip_participant_trip_user_key": "This user already takes part in the trip.",
    "category_parent_fk": "The parent category does not exist.",
    "event_main_category_fk": "The main category does not exist.",
    "event_secondary_category_fk": "The secondary category does not exist.",
    "trip_participant_trip_fk": "The trip does not exist.",
    "trip_itinerary_trip_fk": "The trip does not exist.",
    "trip_invite_trip_fk": "The trip does not exist.",
    "trip_invite_trip_email_key": "This email has already been invited to the trip.",
    "trip_scope_check": "Trip scope must be 'system' or 'user'.",
    "trip_participant_role_check": "Participant role must be owner, admin, editor or viewer.",
}

# (pattern on the server message, label, fallback explanation)
_CONSTRAINT_PATTERNS = (
    (re.compile(r'duplicate key value violates unique constraint "(\w+)"'),
     "Duplicate entry", "A record with this value already exists."),
    (re.compile(r'violates foreign key constraint "(\w+)"'),
     "Foreign key violation", "The referenced record does not exist."),
    (re.compile(r'violates check constraint "(\w+)"'),
     "Constraint violation", None),
)

_NOT_NULL = re.compile(r'null value in column "(\w+)".* violates not-null constraint')

# asyncpg error class -> HTTP status; anything else is a server error
STATUS_CODES = (
    (asyncpg.UniqueViolationError, 409),
    (asyncpg.ForeignKeyViolationError, 400),
    (asyncpg.NotNullViolationError, 400),
    (asyncpg.CheckViolationError, 400),
)


def enhance_error_message(error: Exception) -> str:
    """
    Rewrite a database error into a client-facing message.

    Unique, foreign key and check violations are labelled and explained
    from CONSTRAINT_MESSAGES; not-null violations name the column.
    Anything unrecognised is returned as the original text.
    """
    message = str(error)

    for pattern, label, fallback in _CONSTRAINT_PATTERNS:
        match = pattern.search(message)
        if not match:
            continue
        constraint = match.group(1)
        explanation = CONSTRAINT_MESSAGES.get(constraint, fallback)
        if explanation is None:
            return f"{label}: {constraint}. {message}"
        return f"{label} ({constraint}): {explanation}"

    match = _NOT_NULL.search(message)
    if match:
        return f"Required field missing: '{match.group(1)}' cannot be null."

    return message


def status_for_database_error(error: Exception) -> int:
    for error_class, status in STATUS_CODES:
        if isinstance(error, error_class):
            return status
    return 500
