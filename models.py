"""
Data models for the travel planner API
Using Pydantic for validation and serialization

- Request bodies for creating each resource
- Caller identity supplied by the routing layer
- Result envelope returned by every listing call
"""

import re
from datetime import datetime
from typing import Any, Optional, List
from uuid import UUID, uuid4
from enum import Enum
from pydantic import BaseModel, Field, ConfigDict, field_validator


# ============================================================================
# Enums
# ============================================================================

class TripScope(str, Enum):
    """Who a trip belongs to"""
    SYSTEM = "system"  # Curated by an admin
    USER = "user"


class ParticipantRole(str, Enum):
    """Role of a user inside one trip"""
    OWNER = "owner"
    ADMIN = "admin"
    EDITOR = "editor"
    VIEWER = "viewer"


ADMIN_GROUP = "admin"


# ============================================================================
# Caller identity
# ============================================================================

class CallerIdentity(BaseModel):
    """Authenticated caller as resolved by the routing layer"""
    user_id: Optional[UUID] = None
    group: str = ""

    @property
    def is_authenticated(self) -> bool:
        return self.user_id is not None

    @property
    def is_admin(self) -> bool:
        return self.group.lower() == ADMIN_GROUP


# ============================================================================
# Result envelope
# ============================================================================

class ResultMetadata(BaseModel):
    page: int = 1
    total: int = 0
    total_filtered: int = 0
    records_per_page: int = 50
    source: str = ""


class ResultEnvelope(BaseModel):
    """Returned by every listing operation"""
    metadata: ResultMetadata = Field(default_factory=ResultMetadata)
    data: List[dict[str, Any]] = Field(default_factory=list)
    errors: List[str] = Field(default_factory=list)


# ============================================================================
# Translated text
# ============================================================================

class TranslationInput(BaseModel):
    """The same text in every supported language"""
    model_config = ConfigDict(extra='ignore')

    pt: str = ""
    es: str = ""
    en: str = ""

    def is_empty(self) -> bool:
        return not (self.pt or self.es or self.en)

    def to_row(self, parent_id: UUID, table: str, field: str) -> dict[str, Any]:
        """Values for a translation row owned by parent_id"""
        return {
            "id": uuid4(),
            "parent_id": parent_id,
            "table": table,
            "field": field,
            "pt": self.pt,
            "es": self.es,
            "en": self.en,
        }


class _AuditedCreate(BaseModel):
    """Base for create bodies; unknown keys are rejected"""
    model_config = ConfigDict(extra='forbid')

    def audit_values(self, caller: CallerIdentity) -> dict[str, Any]:
        now = datetime.now()
        return {
            "created_by": caller.user_id,
            "created_date": now,
            "updated_by": caller.user_id,
            "updated_date": now,
        }


# ============================================================================
# Resource bodies
# ============================================================================

class CategoryCreate(_AuditedCreate):
    parent_id: Optional[UUID] = None
    title: TranslationInput = Field(default_factory=TranslationInput)


class LocationCreate(BaseModel):
    model_config = ConfigDict(extra='forbid')

    country_id: Optional[UUID] = None
    region_id: Optional[UUID] = None
    title: TranslationInput = Field(default_factory=TranslationInput)


class EventCreate(_AuditedCreate):
    title: TranslationInput = Field(default_factory=TranslationInput)
    description: TranslationInput = Field(default_factory=TranslationInput)
    main_category_id: Optional[UUID] = None
    secondary_category_id: Optional[UUID] = None
    country_id: Optional[UUID] = None
    region_id: Optional[UUID] = None
    city_id: Optional[UUID] = None
    address: str = ""


class HighlightCreate(_AuditedCreate):
    title: TranslationInput = Field(default_factory=TranslationInput)
    description: TranslationInput = Field(default_factory=TranslationInput)
    schedule_date: Optional[datetime] = None
    filter: str = ""
    country_id: Optional[UUID] = None
    region_id: Optional[UUID] = None
    city_id: Optional[UUID] = None
    trips: str = ""
    events: str = ""


class TripCreate(_AuditedCreate):
    title: TranslationInput = Field(default_factory=TranslationInput)
    description: TranslationInput = Field(default_factory=TranslationInput)


class UserCreate(_AuditedCreate):
    id: UUID
    first_name: str
    last_name: str = ""
    group: str = ""
    username: str
    email: str
    language_code: str = "en"
    principal_trip_id: Optional[UUID] = None
    image_path: str = ""
    country_id: Optional[UUID] = None
    region_id: Optional[UUID] = None
    city_id: Optional[UUID] = None
    about_me: str = ""

    @field_validator('email')
    @classmethod
    def validate_email(cls, v: str) -> str:
        if '@' not in v:
            raise ValueError('email must contain @')
        return v


# ============================================================================
# Trip sub-resources
# ============================================================================

EMAIL_PATTERN = re.compile(r'^[a-z0-9._%+\-]+@[a-z0-9.\-]+\.[a-z]{2,4}$')

# Every trip is created with one itinerary carrying this title
DEFAULT_ITINERARY_TITLE = TranslationInput(pt="Padrão", es="Estándar", en="Default")


class ItineraryCreate(_AuditedCreate):
    title: TranslationInput = Field(default_factory=TranslationInput)
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None


class InviteCreate(BaseModel):
    model_config = ConfigDict(extra='forbid')

    email: str

    @field_validator('email')
    @classmethod
    def validate_email(cls, v: str) -> str:
        v = v.strip().lower()
        if not EMAIL_PATTERN.match(v):
            raise ValueError('invalid email')
        return v
