"""
Schema Graph - FK-aware relationship graphs from schema introspection

Builds filtered, depth-bounded graphs of nodes and edges from a schema's
introspection metadata, enriched with direction and cardinality taken from
an independently exported set of relational foreign keys.

Features:
- Breadth-first graph builder with one fetch batch per depth
- Table <-> type name mapping with acronym and override rules
- Per-field FK lookup with junction table detection
- Pattern and app-category type filters
- Cancellable rebuilds through a generation-token session
"""

__version__ = "0.1.0"

from schema_graph.models import (
    FKCardinality,
    FKDirection,
    FKMetadata,
    GraphEdge,
    GraphNode,
    GraphResult,
    GraphStats,
    IntrospectionField,
    IntrospectionType,
    PgForeignKey,
    TransformOptions,
    TypeRef,
)
from schema_graph.introspection import CachingTypeFetcher, SnapshotTypeSource, TypeCache
from schema_graph.relational import (
    NameMapper,
    build_fk_lookup,
    build_name_mapper,
    build_name_mapper_from_models,
    parse_foreign_keys,
)
from schema_graph.graph import GraphSession, build_graph, enhance_edge
from schema_graph.config import GraphConfig, load_config

__all__ = [
    # Core models
    "FKCardinality",
    "FKDirection",
    "FKMetadata",
    "GraphEdge",
    "GraphNode",
    "GraphResult",
    "GraphStats",
    "IntrospectionField",
    "IntrospectionType",
    "PgForeignKey",
    "TransformOptions",
    "TypeRef",
    # Introspection
    "CachingTypeFetcher",
    "SnapshotTypeSource",
    "TypeCache",
    # Relational
    "NameMapper",
    "build_fk_lookup",
    "build_name_mapper",
    "build_name_mapper_from_models",
    "parse_foreign_keys",
    # Graph
    "GraphSession",
    "build_graph",
    "enhance_edge",
    # Config
    "GraphConfig",
    "load_config",
]
