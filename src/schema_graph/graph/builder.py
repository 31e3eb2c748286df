"""
Graph Builder - turns introspection metadata into a depth-bounded graph.

Three passes:
1. Nodes, breadth-first by depth. Types missing from the cache are fetched
   as one batch per depth.
2. Edges between existing nodes only, from primary-model parents.
3. FK enrichment of every edge through the edge enhancer.
"""

from __future__ import annotations

import logging
import time
from dataclasses import replace
from typing import Callable, Dict, List, Mapping, Optional, Tuple, Union

from schema_graph.graph.edge_enhancer import enhance_edge
from schema_graph.introspection.cache import TypeCache, TypeFetcher
from schema_graph.introspection.typeref import (
    extract_relationship_fields,
    get_display_name,
    unwrap_type,
)
from schema_graph.models import (
    FKMetadata,
    GraphEdge,
    GraphNode,
    GraphResult,
    GraphStats,
    IntrospectionType,
    TransformOptions,
)

logger = logging.getLogger(__name__)

TypeSource = Union[TypeCache, Mapping[str, IntrospectionType]]


def make_node_id(typename: str, depth: int) -> str:
    """``DeviceType`` at depth 1 -> ``DeviceType:root:1``."""
    return f"{typename}:root:{depth}"


def make_edge_id(source_id: str, field_name: str, target_id: str) -> str:
    return f"{source_id}-[{field_name}]-to-{target_id}"


class GraphBuilder:
    """
    Builds one graph from a set of root types.

    A builder is single-use: it keeps the types fetched during its build
    in a private working set and never writes to the shared type cache.
    Caching is the fetcher's concern (see CachingTypeFetcher).
    """

    def __init__(
        self,
        type_cache: TypeSource,
        options: TransformOptions,
        fetch_missing: Optional[TypeFetcher] = None,
        is_current: Optional[Callable[[], bool]] = None,
    ):
        """
        Initialize builder.

        Args:
            type_cache: Already known introspection types
            options: Depth, filter, primary-model and FK options
            fetch_missing: Batch fetch coroutine for types not in the cache
            is_current: Checked before each deeper level; once it returns
                False no further levels are fetched or created
        """
        self.type_cache = type_cache
        self.options = options
        self.fetch_missing = fetch_missing
        self.is_current = is_current

        self._fetched: Dict[str, IntrospectionType] = {}
        self.stats = GraphStats()

    def _get_type(self, typename: str) -> Optional[IntrospectionType]:
        type_info = self._fetched.get(typename)
        if type_info is None:
            type_info = self.type_cache.get(typename)
        return type_info

    def _passes_filter(self, typename: str) -> bool:
        type_filter = self.options.type_filter
        return type_filter is None or type_filter(typename)

    async def build(self, root_types: List[str]) -> GraphResult:
        """
        Build the graph.

        Args:
            root_types: Type names placed at depth 0

        Returns:
            GraphResult with nodes, FK-enhanced edges and statistics
        """
        logger.info(
            f"Building graph from {len(root_types)} roots "
            f"(max_depth={self.options.max_depth}, known types={len(self.type_cache)})"
        )

        nodes = await self._create_nodes(root_types)
        raw_edges = self._create_edges(nodes)
        edges = [
            enhance_edge(edge, source_type, field_name, self.options.fk_lookup)
            for edge, source_type, field_name in raw_edges
        ]

        self.stats.total_nodes = len(nodes)
        self.stats.total_edges = len(edges)

        logger.info(
            f"Graph built: {len(nodes)} nodes, {len(edges)} edges "
            f"(per depth {self.stats.nodes_per_depth}, fetched {self.stats.types_fetched}, "
            f"skipped {self.stats.edges_skipped_non_primary} non-primary edges)"
        )
        return GraphResult(nodes=nodes, edges=edges, stats=self.stats)

    # ------------------------------------------------------------------
    # Pass 1: nodes
    # ------------------------------------------------------------------

    async def _create_nodes(self, root_types: List[str]) -> List[GraphNode]:
        nodes: List[GraphNode] = []
        frontier = list(dict.fromkeys(root_types))

        for depth in range(self.options.max_depth):
            if not frontier:
                break
            if depth > 0 and self.is_current is not None and not self.is_current():
                logger.debug(f"Build superseded, stopping before depth {depth}")
                break

            await self._fetch_missing_types(frontier, depth)

            processed: List[IntrospectionType] = []
            for typename in frontier:
                type_info = self._get_type(typename)
                if type_info is None:
                    logger.debug(f"Type {typename} not available at depth {depth}, skipping")
                    continue

                nodes.append(self._create_node(type_info, depth))
                processed.append(type_info)

            frontier = self._next_frontier(processed)

        return nodes

    async def _fetch_missing_types(self, frontier: List[str], depth: int) -> None:
        missing = [name for name in frontier if self._get_type(name) is None]
        if not missing or self.fetch_missing is None:
            return

        cap = self.options.max_types_per_depth
        if len(missing) > cap:
            logger.warning(
                f"Too many types at depth {depth}: {len(missing)}, limiting to {cap}"
            )
            missing = missing[:cap]

        logger.debug(f"Fetching {len(missing)} types at depth {depth}: {missing}")
        start = time.monotonic()
        fetched = await self.fetch_missing(missing)
        duration = (time.monotonic() - start) * 1000

        self._fetched.update(fetched)
        self.stats.types_fetched += len(fetched)
        logger.info(
            f"Depth {depth}: fetched {len(fetched)}/{len(missing)} types in {duration:.0f}ms"
        )

    def _create_node(self, type_info: IntrospectionType, depth: int) -> GraphNode:
        checker = self.options.primary_model_checker
        node = GraphNode(
            id=make_node_id(type_info.name, depth),
            typename=type_info.name,
            depth=depth,
            is_root=depth == 0,
            is_primary_model=bool(checker and checker(type_info.name)),
            label=get_display_name(type_info.name),
        )

        self.stats.nodes_per_depth[depth] = self.stats.nodes_per_depth.get(depth, 0) + 1
        relationship_count = len(extract_relationship_fields(type_info))
        self.stats.filtered_nodes += len(type_info.fields) - relationship_count
        return node

    def _next_frontier(self, processed: List[IntrospectionType]) -> List[str]:
        referenced: Dict[str, None] = {}
        for type_info in processed:
            for field in extract_relationship_fields(type_info):
                child = unwrap_type(field.type).name
                if self._passes_filter(child):
                    referenced[child] = None
        return list(referenced)

    # ------------------------------------------------------------------
    # Pass 2: edges
    # ------------------------------------------------------------------

    def _create_edges(self, nodes: List[GraphNode]) -> List[Tuple[GraphEdge, str, str]]:
        index = {(node.typename, node.depth): node for node in nodes}
        edges: List[Tuple[GraphEdge, str, str]] = []

        for parent in nodes:
            type_info = self._get_type(parent.typename)
            if type_info is None:
                continue
            fields = extract_relationship_fields(type_info)

            # Non-primary models are leaves
            if not parent.is_primary_model:
                if fields:
                    logger.debug(
                        f"Skipping {len(fields)} edges from non-primary {parent.typename} "
                        f"at depth {parent.depth}"
                    )
                self.stats.edges_skipped_non_primary += len(fields)
                continue

            for field in fields:
                child_type = unwrap_type(field.type).name
                if not self._passes_filter(child_type):
                    continue

                child = index.get((child_type, parent.depth + 1))
                if child is None:
                    continue

                edge = GraphEdge(
                    id=make_edge_id(parent.id, field.name, child.id),
                    source=parent.id,
                    target=child.id,
                    field_name=field.name,
                )
                edges.append((edge, parent.typename, field.name))

        return edges


async def build_graph(
    root_types: List[str],
    type_cache: TypeSource,
    options: TransformOptions,
    fetch_missing: Optional[TypeFetcher] = None,
    is_current: Optional[Callable[[], bool]] = None,
) -> GraphResult:
    """
    Build a depth-bounded, FK-aware graph from root types.

    Args:
        root_types: Type names placed at depth 0
        type_cache: Already known introspection types
        options: Build options
        fetch_missing: Batch fetch coroutine for types not in the cache
        is_current: Optional cancellation check between depth levels

    Returns:
        GraphResult
    """
    builder = GraphBuilder(type_cache, options, fetch_missing, is_current)
    return await builder.build(root_types)


def apply_fk_lookup(
    result: GraphResult,
    fk_lookup: Optional[Mapping[str, FKMetadata]],
) -> GraphResult:
    """Re-run FK enrichment on a finished graph, e.g. after the lookup changed."""
    typenames = {node.id: node.typename for node in result.nodes}
    edges = [
        enhance_edge(edge, typenames[edge.source], edge.field_name, fk_lookup)
        for edge in result.edges
    ]
    return replace(result, edges=edges)
