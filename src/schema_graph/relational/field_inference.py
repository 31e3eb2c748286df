"""
Field Name Inference - maps relational column names to schema field names.

Foreign key columns are snake_case with an ``_id`` suffix
(``device_type_id``); the schema exposes the same relationship as a
camelCase field without the suffix (``deviceType``). This module also
recognises junction tables and self-referencing foreign keys.
"""

from __future__ import annotations

import re
from typing import Callable, List, Tuple

from schema_graph.models import PgForeignKey

# Columns whose field name does not follow the standard pattern
SPECIAL_CASE_COLUMNS = {
    "_cable_peer_type_id": "cablePeerType",
    "local_config_context_data_owner_content_type_id": "localConfigContextDataOwnerContentType",
    "owner_content_type_id": "ownerContentType",
    "termination_a_type_id": "terminationAType",
    "termination_b_type_id": "terminationType",
    "assigned_object_type_id": "assignedObjectType",
    "related_object_type_id": "relatedObjectType",
    "changed_object_type_id": "changedObjectType",
    "associated_object_type_id": "associatedObjectType",
}

JUNCTION_CONNECTOR = "_to_"

# Plural association suffixes that mark many-to-many junction tables
JUNCTION_SUFFIXES = (
    "_permissions",
    "_members",
    "_users",
    "_groups",
    "_tags",
    "_vlans",
    "_types",
    "_locations",
    "_assignments",
    "_associations",
    "_targets",
    "_clusters",
    "_platforms",
    "_tenants",
    "_content_types",
)

HIERARCHICAL_COLUMNS = frozenset([
    "parent_id",
    "master_id",
    "root_id",
    "ancestor_id",
    "super_id",
    "owner_id",
])

IRREGULAR_PLURALS = {
    "child": "children",
    "person": "people",
    "man": "men",
    "woman": "women",
    "tooth": "teeth",
    "foot": "feet",
    "mouse": "mice",
    "goose": "geese",
}

_SNAKE_BOUNDARY = re.compile(r"_([a-z0-9])")


def snake_to_camel(value: str) -> str:
    """
    Convert snake_case to camelCase.

    One leading underscore is dropped: ``_cable_peer`` -> ``cablePeer``.
    """
    normalized = value[1:] if value.startswith("_") else value
    return _SNAKE_BOUNDARY.sub(lambda m: m.group(1).upper(), normalized)


# Ordered (predicate, transform) rules; the first matching rule wins
FIELD_NAME_RULES: List[Tuple[Callable[[str], bool], Callable[[str], str]]] = [
    (lambda col: col in SPECIAL_CASE_COLUMNS, lambda col: SPECIAL_CASE_COLUMNS[col]),
    (lambda col: col.endswith("_id"), lambda col: snake_to_camel(col[:-3])),
    (lambda col: True, snake_to_camel),
]


def infer_field_name(column_name: str) -> str:
    """
    Infer the schema field name for a relational column.

    Examples:
        manufacturer_id     -> manufacturer
        device_type_id      -> deviceType
        _cable_peer_type_id -> cablePeerType
        device_name         -> deviceName
    """
    for matches, transform in FIELD_NAME_RULES:
        if matches(column_name):
            return transform(column_name)
    return column_name


def is_junction_table(table_name: str) -> bool:
    """
    Detect many-to-many junction tables by name.

    A table is a junction table when it contains the ``_to_`` connector,
    ends with a plural association suffix, or has three or more
    underscore-delimited segments whose last segment is plural.
    """
    if JUNCTION_CONNECTOR in table_name:
        return True

    if table_name.endswith(JUNCTION_SUFFIXES):
        return True

    # app_entity_entities pattern; two-segment names like extras_status are entities
    parts = table_name.split("_")
    if len(parts) >= 3 and parts[-1].endswith("s"):
        return True

    return False


def is_self_reference(fk: PgForeignKey) -> bool:
    """True when a foreign key points back at its own table."""
    return fk.source_table == fk.target_table


def is_hierarchical_column(column_name: str) -> bool:
    """Columns such as ``parent_id`` that usually model a hierarchy."""
    return column_name in HIERARCHICAL_COLUMNS


def pluralize(word: str) -> str:
    """
    Simple English pluralization.

    Irregular nouns keep the case of their first letter; words already
    ending in ``s`` are returned unchanged.
    """
    if not word:
        return word

    special = IRREGULAR_PLURALS.get(word.lower())
    if special:
        return special.capitalize() if word[0].isupper() else special

    if word.endswith("s"):
        return word

    if word.endswith("y") and len(word) > 1 and word[-2].lower() not in "aeiou":
        return word[:-1] + "ies"

    if word.endswith(("x", "z", "ch", "sh")):
        return word + "es"

    return word + "s"


def infer_reverse_field_name(source_table: str) -> str:
    """
    Guess the reverse (one-to-many) field name for a source table.

    The app prefix is dropped and the entity pluralized:
    ``dcim_device`` -> ``devices``, ``dcim_device_bay`` -> ``deviceBays``.
    """
    parts = source_table.split("_")
    if len(parts) < 2:
        return pluralize(source_table)

    entity = snake_to_camel("_".join(parts[1:]))
    return pluralize(entity)

