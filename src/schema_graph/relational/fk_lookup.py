"""
FK Lookup Builder - derives per-field FK metadata from relational rows.

The lookup is keyed ``"{TypeName}.{fieldName}"`` so the graph builder can
stamp an edge with its FK semantics in O(1). It is built once per
(FK dataset, name mapper) pair and is read-only afterwards.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any, Dict, Iterator, List, Optional, Protocol, Sequence

from schema_graph.models import (
    FKCardinality,
    FKDirection,
    FKMetadata,
    FKParseStats,
    PgForeignKey,
)
from schema_graph.relational.field_inference import (
    infer_field_name,
    is_junction_table,
    is_self_reference,
)

logger = logging.getLogger(__name__)

MAX_LOGGED_UNMAPPED = 20


class TableToTypeMapper(Protocol):
    """Anything that can translate a table name into a type name."""

    def table_to_type(self, table_name: str) -> Optional[str]:
        ...


def lookup_key(type_name: str, field_name: str) -> str:
    return f"{type_name}.{field_name}"


class FKLookup(Mapping):
    """Read-only ``"Type.field" -> FKMetadata`` mapping."""

    def __init__(self, entries: Optional[Dict[str, FKMetadata]] = None):
        self._entries: Dict[str, FKMetadata] = dict(entries or {})

    def __getitem__(self, key: str) -> FKMetadata:
        return self._entries[key]

    def __iter__(self) -> Iterator[str]:
        return iter(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    def __repr__(self) -> str:
        return f"FKLookup({len(self._entries)} entries)"


@dataclass
class FKLookupResult:
    """Output of build_fk_lookup."""
    lookup: FKLookup
    stats: FKParseStats
    unmapped_tables: List[str] = field(default_factory=list)


def build_fk_lookup(
    foreign_keys: Sequence[PgForeignKey],
    name_mapper: TableToTypeMapper,
) -> FKLookupResult:
    """
    Build the FK lookup from parsed foreign keys.

    Rows whose source or target table cannot be mapped are counted as parse
    errors and skipped. Only forward entries are created; reverse
    relationships come from the schema's own reverse fields. On a key
    collision the first entry wins and the duplicate counts as an error.

    Args:
        foreign_keys: Parsed foreign key rows
        name_mapper: Table -> type name translator

    Returns:
        FKLookupResult with the lookup, statistics and unmapped table names
    """
    entries: Dict[str, FKMetadata] = {}
    stats = FKParseStats(total_fks=len(foreign_keys))
    unmapped = set()

    for fk in foreign_keys:
        source_type = name_mapper.table_to_type(fk.source_table)
        target_type = name_mapper.table_to_type(fk.target_table)

        if not source_type:
            unmapped.add(fk.source_table)
        if not target_type:
            unmapped.add(fk.target_table)
        if not source_type or not target_type:
            stats.parse_errors += 1
            continue

        field_name = infer_field_name(fk.source_column)
        junction = is_junction_table(fk.source_table)
        key = lookup_key(source_type, field_name)

        # Counted for every mapped row, duplicates included
        if junction:
            stats.junction_tables += 1
        if is_self_reference(fk):
            stats.self_references += 1

        if key in entries:
            logger.warning(
                f"Duplicate FK key {key}: keeping "
                f"{entries[key].source_table}.{entries[key].source_column}, "
                f"dropping {fk.source_table}.{fk.source_column}"
            )
            stats.parse_errors += 1
            continue

        entries[key] = FKMetadata(
            direction=FKDirection.FORWARD,
            cardinality=FKCardinality.MANY_TO_MANY if junction else FKCardinality.MANY_TO_ONE,
            source_table=fk.source_table,
            target_table=fk.target_table,
            source_column=fk.source_column,
            target_column=fk.target_column,
            field_name=field_name,
            is_junction_table=junction,
            original=fk,
        )
        stats.forward_fks += 1

    stats.unmapped_tables = len(unmapped)
    stats.coverage_rate = stats.forward_fks / stats.total_fks * 100 if stats.total_fks else 0.0

    unmapped_sorted = sorted(unmapped)
    if unmapped_sorted:
        logger.warning(
            f"{len(unmapped_sorted)} tables could not be mapped to types: "
            f"{unmapped_sorted[:MAX_LOGGED_UNMAPPED]}"
        )
        if len(unmapped_sorted) > MAX_LOGGED_UNMAPPED:
            logger.warning(f"... and {len(unmapped_sorted) - MAX_LOGGED_UNMAPPED} more unmapped tables")

    logger.info(
        f"FK lookup: {len(entries)} entries from {stats.total_fks} FKs "
        f"({stats.junction_tables} junction, {stats.self_references} self-references, "
        f"{stats.parse_errors} errors, {stats.coverage_rate:.1f}% coverage)"
    )

    return FKLookupResult(lookup=FKLookup(entries), stats=stats, unmapped_tables=unmapped_sorted)


def get_fk_metadata(
    lookup: Mapping,
    type_name: str,
    field_name: str,
) -> Optional[FKMetadata]:
    """FK metadata for a type/field pair, or None if the field is not an FK."""
    return lookup.get(lookup_key(type_name, field_name))


def is_fk(lookup: Mapping, type_name: str, field_name: str) -> bool:
    return lookup_key(type_name, field_name) in lookup


def get_fks_for_type(lookup: Mapping, type_name: str) -> List[FKMetadata]:
    """All FK entries whose source type is ``type_name``."""
    prefix = f"{type_name}."
    return [meta for key, meta in lookup.items() if key.startswith(prefix)]


def get_lookup_stats(lookup: Mapping) -> Dict[str, int]:
    """Count lookup entries by direction and cardinality."""
    types = set()
    stats = {
        "total_entries": len(lookup),
        "unique_types": 0,
        "forward_fks": 0,
        "reverse_fks": 0,
        "junction_tables": 0,
        "many_to_one": 0,
        "one_to_many": 0,
        "many_to_many": 0,
    }

    for key, meta in lookup.items():
        types.add(key.split(".", 1)[0])

        if meta.direction == FKDirection.FORWARD:
            stats["forward_fks"] += 1
        elif meta.direction == FKDirection.REVERSE:
            stats["reverse_fks"] += 1

        if meta.cardinality == FKCardinality.MANY_TO_ONE:
            stats["many_to_one"] += 1
        elif meta.cardinality == FKCardinality.ONE_TO_MANY:
            stats["one_to_many"] += 1
        elif meta.cardinality == FKCardinality.MANY_TO_MANY:
            stats["many_to_many"] += 1

        if meta.is_junction_table:
            stats["junction_tables"] += 1

    stats["unique_types"] = len(types)
    return stats


def export_lookup_for_debug(lookup: Mapping) -> Dict[str, Dict[str, Any]]:
    """Plain-dict copy of a lookup for inspection or JSON dumps."""
    return {key: meta.to_dict() for key, meta in lookup.items()}
