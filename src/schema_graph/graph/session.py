"""
Graph session - owns the shared type cache and FK lookup across rebuilds.

Each rebuild takes a BuildToken from a generation counter. When parameters
change while a build is awaiting fetches, the older build stops before its
next depth level and its result is discarded instead of published. Fetches
already in flight are not aborted.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import FrozenSet, Iterable, List, Optional, Sequence

from schema_graph.graph.builder import apply_fk_lookup, build_graph
from schema_graph.introspection.cache import CachingTypeFetcher, SingleTypeFetcher, TypeCache
from schema_graph.models import GraphResult, PgForeignKey, TransformOptions, TypePredicate
from schema_graph.relational.fk_lookup import FKLookup, FKLookupResult, build_fk_lookup
from schema_graph.relational.name_mapper import (
    ModelName,
    NameMapper,
    build_name_mapper,
    build_name_mapper_from_models,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class BuildToken:
    """Generation number handed to one rebuild."""
    generation: int


class GraphSession:
    """
    Long-lived state behind repeated graph builds.

    Holds the type cache, the caching fetcher wrapped around the transport
    and, once FK rows are supplied, the name mapper and FK lookup. The
    lookup is rebuilt whenever the set of known type names changes.
    """

    def __init__(
        self,
        fetch_type: SingleTypeFetcher,
        cache: Optional[TypeCache] = None,
        primary_model_checker: Optional[TypePredicate] = None,
        type_filter: Optional[TypePredicate] = None,
    ):
        self.cache = cache if cache is not None else TypeCache()
        self.fetcher = CachingTypeFetcher(self.cache, fetch_type)
        self.primary_model_checker = primary_model_checker
        self.type_filter = type_filter

        self.name_mapper: Optional[NameMapper] = None
        self.fk_result: Optional[FKLookupResult] = None
        self.last_result: Optional[GraphResult] = None

        self._generation = 0
        self._foreign_keys: Optional[List[PgForeignKey]] = None
        self._model_names: Optional[List[ModelName]] = None
        self._typenames: Optional[List[str]] = None
        self._mapped_typenames: Optional[FrozenSet[str]] = None

    # ------------------------------------------------------------------
    # Cancellation
    # ------------------------------------------------------------------

    def next_token(self) -> BuildToken:
        self._generation += 1
        return BuildToken(self._generation)

    def is_current(self, token: BuildToken) -> bool:
        return token.generation == self._generation

    # ------------------------------------------------------------------
    # FK data
    # ------------------------------------------------------------------

    def set_fk_data(
        self,
        foreign_keys: Sequence[PgForeignKey],
        typenames: Optional[Iterable[str]] = None,
        model_names: Optional[Iterable[ModelName]] = None,
    ) -> Optional[FKLookupResult]:
        """
        Supply FK rows and build the lookup.

        Args:
            foreign_keys: Parsed FK export rows
            typenames: Discovered type names; defaults to the cached names
            model_names: Authoritative model names; when given the name
                mapper is built forward from them instead of from type names
        """
        self._foreign_keys = list(foreign_keys)
        self._typenames = list(typenames) if typenames is not None else None
        self._model_names = list(model_names) if model_names is not None else None
        self._mapped_typenames = None
        return self.refresh_fk_lookup()

    @property
    def fk_lookup(self) -> Optional[FKLookup]:
        return self.fk_result.lookup if self.fk_result else None

    def refresh_fk_lookup(self) -> Optional[FKLookupResult]:
        """Rebuild the name mapper and FK lookup if the known type set changed."""
        if self._foreign_keys is None:
            return None

        if self._model_names is not None:
            if self._mapped_typenames is None:
                self.name_mapper = build_name_mapper_from_models(self._model_names)
                self._mapped_typenames = frozenset()
                self.fk_result = build_fk_lookup(self._foreign_keys, self.name_mapper)
            return self.fk_result

        typenames = frozenset(self._typenames if self._typenames is not None else self.cache.names())
        if typenames == self._mapped_typenames:
            return self.fk_result

        logger.debug(f"Rebuilding FK lookup for {len(typenames)} types")
        self.name_mapper = build_name_mapper(sorted(typenames))
        self.fk_result = build_fk_lookup(self._foreign_keys, self.name_mapper)
        self._mapped_typenames = typenames
        return self.fk_result

    # ------------------------------------------------------------------
    # Builds
    # ------------------------------------------------------------------

    async def rebuild(
        self,
        root_types: List[str],
        max_depth: int,
        include_scalars: bool = False,
        show_field_nodes: bool = False,
        max_types_per_depth: int = 100,
    ) -> Optional[GraphResult]:
        """
        Build a graph for new parameters.

        Returns:
            The GraphResult, or None if a newer rebuild started meanwhile
        """
        token = self.next_token()
        previous = self.refresh_fk_lookup()

        options = TransformOptions(
            max_depth=max_depth,
            include_scalars=include_scalars,
            show_field_nodes=show_field_nodes,
            type_filter=self.type_filter,
            primary_model_checker=self.primary_model_checker,
            fk_lookup=self.fk_lookup,
            max_types_per_depth=max_types_per_depth,
        )
        result = await build_graph(
            root_types,
            self.cache,
            options,
            self.fetcher,
            is_current=lambda: self.is_current(token),
        )

        if not self.is_current(token):
            logger.debug(
                f"Discarding stale graph build {token.generation} "
                f"(current generation {self._generation})"
            )
            return None

        # The build may have discovered new types
        if self.refresh_fk_lookup() is not previous:
            result = apply_fk_lookup(result, self.fk_lookup)

        self.last_result = result
        return result

    def reset(self) -> None:
        """Drop cached types and results; pending builds become stale."""
        self.next_token()
        self.cache.clear()
        self.last_result = None
        if self._model_names is None:
            self._mapped_typenames = None
            self.fk_result = None
            self.name_mapper = None
