"""
Metadata-driven data access for the travel planner

Entities are declared once in the registry; listing, lookup and mutation SQL
is derived from those declarations.
"""

from .entities import ENTITIES, get_entity_config
from .metadata import EntityDescriptor, extract_metadata
from .builder import QueryBuilder
from .materializer import RowMaterializer
from .mutations import MutationEngine
from .validators import (
    ValidationError,
    validate_listing_params,
    validate_update_map,
)

__all__ = [
    'ENTITIES',
    'get_entity_config',
    'EntityDescriptor',
    'extract_metadata',
    'QueryBuilder',
    'RowMaterializer',
    'MutationEngine',
    'ValidationError',
    'validate_listing_params',
    'validate_update_map',
]
