"""
Introspection metadata: type reference helpers and the explicit type cache.
"""

from schema_graph.introspection.typeref import (
    SCALAR_TYPES,
    UNKNOWN_TYPE_NAME,
    extract_relationship_fields,
    get_display_name,
    is_relationship_field,
    is_scalar_type,
    unwrap_type,
)
from schema_graph.introspection.cache import (
    CachingTypeFetcher,
    SnapshotTypeSource,
    TypeCache,
    TypeFetcher,
    validate_loaded_type,
)

__all__ = [
    "SCALAR_TYPES",
    "UNKNOWN_TYPE_NAME",
    "extract_relationship_fields",
    "get_display_name",
    "is_relationship_field",
    "is_scalar_type",
    "unwrap_type",
    "CachingTypeFetcher",
    "SnapshotTypeSource",
    "TypeCache",
    "TypeFetcher",
    "validate_loaded_type",
]
