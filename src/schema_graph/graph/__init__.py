"""
Graph construction: builder, FK edge enhancement, filters and sessions.
"""

from schema_graph.graph.builder import GraphBuilder, apply_fk_lookup, build_graph
from schema_graph.graph.edge_enhancer import (
    enhance_edge,
    filter_edges_by_cardinality,
    filter_edges_by_direction,
    filter_fk_edges,
    get_edge_cardinality,
    get_edge_direction,
    get_edge_stats,
    get_fk_metadata_from_edge,
    is_fk_edge,
    validate_fk_enhancement,
)
from schema_graph.graph.filters import (
    APP_CORE_TYPES,
    AppCategory,
    AppFilterConfig,
    TypeFilterConfig,
    categorize_all_types,
    categorize_type,
    compose_type_filters,
    create_app_type_filter,
    create_default_app_filter_config,
    create_default_filter_config,
    create_pattern_type_filter,
    filter_by_depth,
    get_all_core_types,
    is_type_allowed,
    matches_pattern,
)
from schema_graph.graph.primary import (
    ModelKindsRegistry,
    create_primary_model_checker,
    model_name_to_type_name,
    normalize_type_name,
)
from schema_graph.graph.session import BuildToken, GraphSession

__all__ = [
    "GraphBuilder",
    "apply_fk_lookup",
    "build_graph",
    "enhance_edge",
    "filter_edges_by_cardinality",
    "filter_edges_by_direction",
    "filter_fk_edges",
    "get_edge_cardinality",
    "get_edge_direction",
    "get_edge_stats",
    "get_fk_metadata_from_edge",
    "is_fk_edge",
    "validate_fk_enhancement",
    "APP_CORE_TYPES",
    "AppCategory",
    "AppFilterConfig",
    "TypeFilterConfig",
    "categorize_all_types",
    "categorize_type",
    "compose_type_filters",
    "create_app_type_filter",
    "create_default_app_filter_config",
    "create_default_filter_config",
    "create_pattern_type_filter",
    "filter_by_depth",
    "get_all_core_types",
    "is_type_allowed",
    "matches_pattern",
    "ModelKindsRegistry",
    "create_primary_model_checker",
    "model_name_to_type_name",
    "normalize_type_name",
    "BuildToken",
    "GraphSession",
]
