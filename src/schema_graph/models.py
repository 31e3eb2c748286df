"""
Core data models for the schema_graph package.

Defines the structures shared by every stage of graph construction:
introspection metadata, relational foreign keys, derived FK metadata,
and the nodes, edges and statistics produced by the graph builder.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, Callable, Dict, List, Mapping, Optional


class TypeKind(str, Enum):
    """GraphQL type kinds as reported by introspection."""
    SCALAR = "SCALAR"
    OBJECT = "OBJECT"
    INTERFACE = "INTERFACE"
    UNION = "UNION"
    ENUM = "ENUM"
    INPUT_OBJECT = "INPUT_OBJECT"
    LIST = "LIST"
    NON_NULL = "NON_NULL"


class FKDirection(str, Enum):
    """Direction of a foreign key relationship from a field's perspective."""
    FORWARD = "forward"   # field owns the FK column
    REVERSE = "reverse"   # field is referenced by an FK


class FKCardinality(str, Enum):
    """Cardinality of a foreign key relationship."""
    MANY_TO_ONE = "many-to-one"
    ONE_TO_MANY = "one-to-many"
    MANY_TO_MANY = "many-to-many"


# ----------------------------------------------------------------------------
# Introspection
# ----------------------------------------------------------------------------


@dataclass(frozen=True)
class TypeRef:
    """A (possibly wrapped) reference to a named type."""
    kind: str
    name: Optional[str] = None
    of_type: Optional[TypeRef] = None

    def to_dict(self) -> Dict[str, Any]:
        """Convert to the introspection JSON shape."""
        return {
            "kind": self.kind,
            "name": self.name,
            "ofType": self.of_type.to_dict() if self.of_type else None,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> TypeRef:
        """Create from the introspection JSON shape (``ofType`` nesting)."""
        inner = data.get("ofType") or data.get("of_type")
        return cls(
            kind=data["kind"],
            name=data.get("name"),
            of_type=cls.from_dict(inner) if inner else None,
        )

    @classmethod
    def named(cls, name: str, kind: str = TypeKind.OBJECT.value) -> TypeRef:
        return cls(kind=kind, name=name)

    @classmethod
    def non_null(cls, inner: TypeRef) -> TypeRef:
        return cls(kind=TypeKind.NON_NULL.value, of_type=inner)

    @classmethod
    def list_of(cls, inner: TypeRef) -> TypeRef:
        return cls(kind=TypeKind.LIST.value, of_type=inner)


@dataclass(frozen=True)
class UnwrappedType:
    """A type reference with its NON_NULL/LIST wrappers removed."""
    name: str
    kind: str
    is_list: bool = False
    is_non_null: bool = False


@dataclass(frozen=True)
class IntrospectionField:
    """A single field on an introspected type."""
    name: str
    type: TypeRef
    description: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "description": self.description,
            "type": self.type.to_dict(),
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> IntrospectionField:
        return cls(
            name=data["name"],
            type=TypeRef.from_dict(data["type"]),
            description=data.get("description"),
        )


@dataclass(frozen=True)
class IntrospectionType:
    """
    Introspection data for one named type.

    Immutable once fetched; instances are shared through a TypeCache.
    """
    name: str
    kind: str
    fields: tuple = ()
    interfaces: tuple = ()
    description: Optional[str] = None

    def get_field(self, name: str) -> Optional[IntrospectionField]:
        for f in self.fields:
            if f.name == name:
                return f
        return None

    def to_dict(self) -> Dict[str, Any]:
        """Convert to the introspection JSON shape."""
        return {
            "name": self.name,
            "kind": self.kind,
            "description": self.description,
            "fields": [f.to_dict() for f in self.fields],
            "interfaces": [{"name": i} for i in self.interfaces],
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> IntrospectionType:
        """Create from a ``__type`` introspection payload."""
        interfaces = []
        for iface in data.get("interfaces") or []:
            if isinstance(iface, str):
                interfaces.append(iface)
            elif iface.get("name"):
                interfaces.append(iface["name"])

        return cls(
            name=data["name"],
            kind=data["kind"],
            fields=tuple(IntrospectionField.from_dict(f) for f in data.get("fields") or []),
            interfaces=tuple(interfaces),
            description=data.get("description"),
        )


# ----------------------------------------------------------------------------
# Relational foreign keys
# ----------------------------------------------------------------------------


@dataclass(frozen=True)
class PgForeignKey:
    """A foreign key constraint exported from the relational catalog."""
    source_table: str   # table holding the FK column
    source_column: str
    target_table: str   # referenced table
    target_column: str  # usually "id"

    def to_dict(self) -> Dict[str, str]:
        return {
            "source_table": self.source_table,
            "source_column": self.source_column,
            "target_table": self.target_table,
            "target_column": self.target_column,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> PgForeignKey:
        return cls(
            source_table=data["source_table"],
            source_column=data["source_column"],
            target_table=data["target_table"],
            target_column=data["target_column"],
        )


@dataclass(frozen=True)
class FKMetadata:
    """FK semantics derived from a PgForeignKey and the name mapper."""
    direction: FKDirection
    cardinality: FKCardinality
    source_table: str
    target_table: str
    source_column: str
    target_column: str
    field_name: str
    is_junction_table: bool = False
    original: Optional[PgForeignKey] = None

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "direction": self.direction.value,
            "cardinality": self.cardinality.value,
            "source_table": self.source_table,
            "target_table": self.target_table,
            "source_column": self.source_column,
            "target_column": self.target_column,
            "field_name": self.field_name,
            "is_junction_table": self.is_junction_table,
            "original": self.original.to_dict() if self.original else None,
        }


@dataclass
class FKParseStats:
    """Counters collected while building an FK lookup."""
    total_fks: int = 0
    forward_fks: int = 0
    reverse_fks: int = 0
    junction_tables: int = 0
    self_references: int = 0
    parse_errors: int = 0
    unmapped_tables: int = 0
    coverage_rate: float = 0.0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "total_fks": self.total_fks,
            "forward_fks": self.forward_fks,
            "reverse_fks": self.reverse_fks,
            "junction_tables": self.junction_tables,
            "self_references": self.self_references,
            "parse_errors": self.parse_errors,
            "unmapped_tables": self.unmapped_tables,
            "coverage_rate": self.coverage_rate,
        }


# ----------------------------------------------------------------------------
# Graph
# ----------------------------------------------------------------------------


@dataclass(frozen=True)
class GraphNode:
    """One node per (typename, depth) pair."""
    id: str
    typename: str
    depth: int
    is_root: bool = False
    is_primary_model: bool = False
    label: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "typename": self.typename,
            "label": self.label,
            "depth": self.depth,
            "is_root": self.is_root,
            "is_primary_model": self.is_primary_model,
        }


@dataclass(frozen=True)
class GraphEdge:
    """
    A relationship between two created nodes.

    ``data`` carries the FK stamp added by the edge enhancer
    (``is_fk`` plus direction/cardinality when known).
    """
    id: str
    source: str
    target: str
    field_name: str
    data: Mapping[str, Any] = field(default_factory=dict)

    def with_data(self, **updates: Any) -> GraphEdge:
        """Return a copy with ``data`` extended by ``updates``."""
        merged = dict(self.data)
        merged.update(updates)
        return replace(self, data=merged)

    def to_dict(self) -> Dict[str, Any]:
        data = {}
        for key, value in self.data.items():
            if isinstance(value, FKMetadata):
                value = value.to_dict()
            elif isinstance(value, Enum):
                value = value.value
            data[key] = value
        return {
            "id": self.id,
            "source": self.source,
            "target": self.target,
            "field_name": self.field_name,
            "data": data,
        }


@dataclass
class GraphStats:
    """Diagnostic counters for a graph build."""
    total_nodes: int = 0
    total_edges: int = 0
    nodes_per_depth: Dict[int, int] = field(default_factory=dict)
    filtered_nodes: int = 0
    types_fetched: int = 0
    edges_skipped_non_primary: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "total_nodes": self.total_nodes,
            "total_edges": self.total_edges,
            "nodes_per_depth": dict(self.nodes_per_depth),
            "filtered_nodes": self.filtered_nodes,
            "types_fetched": self.types_fetched,
            "edges_skipped_non_primary": self.edges_skipped_non_primary,
        }


@dataclass
class GraphResult:
    """Output of a graph build."""
    nodes: List[GraphNode] = field(default_factory=list)
    edges: List[GraphEdge] = field(default_factory=list)
    stats: GraphStats = field(default_factory=GraphStats)

    def get_node(self, node_id: str) -> Optional[GraphNode]:
        for node in self.nodes:
            if node.id == node_id:
                return node
        return None

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "nodes": [n.to_dict() for n in self.nodes],
            "edges": [e.to_dict() for e in self.edges],
            "stats": self.stats.to_dict(),
        }


TypePredicate = Callable[[str], bool]


@dataclass
class TransformOptions:
    """Options controlling a graph build."""
    max_depth: int
    # Scalar fields never become nodes; these two are carried for callers only.
    include_scalars: bool = False
    show_field_nodes: bool = False
    type_filter: Optional[TypePredicate] = None
    primary_model_checker: Optional[TypePredicate] = None
    fk_lookup: Optional[Mapping[str, FKMetadata]] = None
    max_types_per_depth: int = 100

    def __post_init__(self):
        if self.max_depth < 1:
            raise ValueError(f"max_depth must be >= 1, got {self.max_depth}")
        if self.max_types_per_depth < 1:
            raise ValueError(
                f"max_types_per_depth must be >= 1, got {self.max_types_per_depth}"
            )
