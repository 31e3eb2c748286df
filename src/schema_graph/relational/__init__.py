"""
Relational metadata: FK export parsing, table/type name mapping and the
per-field FK lookup used to enrich graph edges.
"""

from schema_graph.relational.field_inference import (
    infer_field_name,
    infer_reverse_field_name,
    is_hierarchical_column,
    is_junction_table,
    is_self_reference,
    pluralize,
    snake_to_camel,
)
from schema_graph.relational.fk_lookup import (
    FKLookup,
    FKLookupResult,
    build_fk_lookup,
    export_lookup_for_debug,
    get_fk_metadata,
    get_fks_for_type,
    get_lookup_stats,
    is_fk,
)
from schema_graph.relational.fk_parser import (
    calculate_fk_stats,
    load_foreign_keys,
    parse_foreign_keys,
    validate_fk_data,
)
from schema_graph.relational.name_mapper import (
    NameMapper,
    NameMapperStats,
    build_name_mapper,
    build_name_mapper_from_models,
    build_type_name,
    export_mappings_csv,
    infer_table_name_from_type,
    infer_type_name_from_table,
    pascal_to_snake,
)

__all__ = [
    "infer_field_name",
    "infer_reverse_field_name",
    "is_hierarchical_column",
    "is_junction_table",
    "is_self_reference",
    "pluralize",
    "snake_to_camel",
    "FKLookup",
    "FKLookupResult",
    "build_fk_lookup",
    "export_lookup_for_debug",
    "get_fk_metadata",
    "get_fks_for_type",
    "get_lookup_stats",
    "is_fk",
    "calculate_fk_stats",
    "load_foreign_keys",
    "parse_foreign_keys",
    "validate_fk_data",
    "NameMapper",
    "NameMapperStats",
    "build_name_mapper",
    "build_name_mapper_from_models",
    "build_type_name",
    "export_mappings_csv",
    "infer_table_name_from_type",
    "infer_type_name_from_table",
    "pascal_to_snake",
]
