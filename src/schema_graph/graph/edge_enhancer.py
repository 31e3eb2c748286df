"""
Edge Enhancer - stamps graph edges with FK metadata.

Every edge leaving the builder carries ``is_fk``. When the FK lookup knows
the (source type, field) pair the edge also gets direction, cardinality,
tables and the junction flag; otherwise it stays purely structural.
"""

from __future__ import annotations

import logging
from dataclasses import replace
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple, Union

from schema_graph.models import FKCardinality, FKDirection, FKMetadata, GraphEdge
from schema_graph.relational.fk_lookup import lookup_key

logger = logging.getLogger(__name__)

FK_DATA_KEYS = (
    "fk_metadata",
    "direction",
    "cardinality",
    "source_table",
    "target_table",
    "is_junction_table",
)


def _mark_not_fk(edge: GraphEdge) -> GraphEdge:
    data = {key: value for key, value in edge.data.items() if key not in FK_DATA_KEYS}
    data["is_fk"] = False
    return replace(edge, data=data)


def enhance_edge(
    edge: GraphEdge,
    source_type: str,
    field_name: str,
    fk_lookup: Optional[Mapping[str, FKMetadata]],
) -> GraphEdge:
    """
    Return a copy of ``edge`` with FK data merged into ``edge.data``.

    Args:
        edge: Structural edge created by the graph builder
        source_type: Type name of the source node
        field_name: Field that produced the edge
        fk_lookup: ``"Type.field" -> FKMetadata`` mapping, or None

    Returns:
        New edge; the input edge is left untouched
    """
    if fk_lookup is None:
        return _mark_not_fk(edge)

    metadata = fk_lookup.get(lookup_key(source_type, field_name))
    if metadata is None:
        return _mark_not_fk(edge)

    logger.debug(
        f"FK edge {source_type}.{field_name}: {metadata.direction.value} "
        f"{metadata.cardinality.value} ({metadata.source_table} -> {metadata.target_table})"
    )
    return edge.with_data(
        is_fk=True,
        fk_metadata=metadata,
        direction=metadata.direction,
        cardinality=metadata.cardinality,
        source_table=metadata.source_table,
        target_table=metadata.target_table,
        is_junction_table=metadata.is_junction_table,
    )


def is_fk_edge(edge: GraphEdge) -> bool:
    return edge.data.get("is_fk") is True


def get_edge_direction(edge: GraphEdge) -> Optional[FKDirection]:
    return edge.data.get("direction")


def get_edge_cardinality(edge: GraphEdge) -> Optional[FKCardinality]:
    return edge.data.get("cardinality")


def get_fk_metadata_from_edge(edge: GraphEdge) -> Optional[FKMetadata]:
    return edge.data.get("fk_metadata")


def filter_fk_edges(edges: Iterable[GraphEdge]) -> List[GraphEdge]:
    return [edge for edge in edges if is_fk_edge(edge)]


def filter_edges_by_direction(
    edges: Iterable[GraphEdge],
    direction: Union[FKDirection, str],
) -> List[GraphEdge]:
    wanted = FKDirection(direction)
    return [edge for edge in edges if get_edge_direction(edge) == wanted]


def filter_edges_by_cardinality(
    edges: Iterable[GraphEdge],
    cardinality: Union[FKCardinality, str],
) -> List[GraphEdge]:
    wanted = FKCardinality(cardinality)
    return [edge for edge in edges if get_edge_cardinality(edge) == wanted]


def get_edge_stats(edges: List[GraphEdge]) -> Dict[str, Any]:
    """Summarise FK coverage of a set of edges."""
    total = len(edges)
    fk_count = len(filter_fk_edges(edges))

    return {
        "total": total,
        "fk_edges": fk_count,
        "non_fk_edges": total - fk_count,
        "fk_percentage": fk_count / total * 100 if total else 0.0,
        "forward_fks": len(filter_edges_by_direction(edges, FKDirection.FORWARD)),
        "reverse_fks": len(filter_edges_by_direction(edges, FKDirection.REVERSE)),
        "many_to_one": len(filter_edges_by_cardinality(edges, FKCardinality.MANY_TO_ONE)),
        "one_to_many": len(filter_edges_by_cardinality(edges, FKCardinality.ONE_TO_MANY)),
        "many_to_many": len(filter_edges_by_cardinality(edges, FKCardinality.MANY_TO_MANY)),
        "junction_tables": sum(1 for edge in edges if edge.data.get("is_junction_table") is True),
    }


def validate_fk_enhancement(edges: List[GraphEdge]) -> Tuple[bool, List[str]]:
    """
    Check that every edge went through enhance_edge.

    Returns:
        (valid, issues); FK edges must carry direction, cardinality and metadata
    """
    issues: List[str] = []

    for index, edge in enumerate(edges):
        if not isinstance(edge.data.get("is_fk"), bool):
            issues.append(f"Edge {index} ({edge.id}) missing is_fk")
            continue

        if edge.data["is_fk"]:
            for key in ("direction", "cardinality", "fk_metadata"):
                if not edge.data.get(key):
                    issues.append(f"FK edge {index} ({edge.id}) missing {key}")

    if issues:
        logger.warning(f"Found {len(issues)} issues in {len(edges)} edges")
    return not issues, issues
