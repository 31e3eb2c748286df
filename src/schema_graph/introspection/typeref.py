"""
Helpers for reading introspection type references and fields.
"""

from __future__ import annotations

from typing import List

from schema_graph.models import (
    IntrospectionField,
    IntrospectionType,
    TypeKind,
    TypeRef,
    UnwrappedType,
)

# Standard scalars plus the custom scalars the schema exposes
SCALAR_TYPES = frozenset([
    "String",
    "Int",
    "Float",
    "Boolean",
    "ID",
    "DateTime",
    "Date",
    "Time",
    "JSON",
    "UUID",
    "Decimal",
    "BigInt",
])

RELATIONSHIP_KINDS = frozenset([TypeKind.OBJECT.value, TypeKind.INTERFACE.value])

# Introspection queries request at most NON_NULL -> LIST -> NON_NULL -> named
MAX_WRAPPER_DEPTH = 3

WRAPPER_KINDS = frozenset([TypeKind.NON_NULL.value, TypeKind.LIST.value])

UNKNOWN_TYPE_NAME = "Unknown"

TYPE_SUFFIX = "Type"


def unwrap_type(type_ref: TypeRef) -> UnwrappedType:
    """
    Strip NON_NULL and LIST wrappers from a type reference.

    Handles the ``T``, ``T!``, ``[T]``, ``[T!]``, ``[T]!`` and ``[T!]!``
    shapes. ``is_non_null`` reflects only the outermost wrapper.

    Deeper nesting such as ``[[Float!]!]!``, or a wrapper cut off by the
    introspection query depth, unwraps to ``UNKNOWN_TYPE_NAME`` with the
    wrapper's kind, which is never a relationship.

    Raises:
        ValueError: if a named (non-wrapper) type reference has no name
    """
    current = type_ref
    is_list = False
    is_non_null = False

    for level in range(MAX_WRAPPER_DEPTH + 1):
        if current.kind not in WRAPPER_KINDS:
            break

        if current.kind == TypeKind.NON_NULL.value:
            if level == 0:
                is_non_null = True
        else:
            is_list = True

        if level == MAX_WRAPPER_DEPTH or current.of_type is None:
            return UnwrappedType(
                name=UNKNOWN_TYPE_NAME,
                kind=current.kind,
                is_list=is_list,
                is_non_null=is_non_null,
            )
        current = current.of_type

    if current.name is None:
        raise ValueError(f"Type reference has neither name nor ofType: {type_ref!r}")

    return UnwrappedType(
        name=current.name,
        kind=current.kind,
        is_list=is_list,
        is_non_null=is_non_null,
    )


def is_scalar_type(typename: str) -> bool:
    """Check whether a type name is a known scalar."""
    return typename in SCALAR_TYPES


def is_relationship_field(field: IntrospectionField) -> bool:
    """
    Check whether a field points at another object type.

    Introspection meta fields (``__typename`` etc.) never count.
    """
    if field.name.startswith("__"):
        return False

    unwrapped = unwrap_type(field.type)
    if is_scalar_type(unwrapped.name):
        return False
    return unwrapped.kind in RELATIONSHIP_KINDS


def extract_relationship_fields(type_info: IntrospectionType) -> List[IntrospectionField]:
    """Return the relationship fields of a type, in declaration order."""
    return [f for f in type_info.fields if is_relationship_field(f)]


def get_display_name(typename: str) -> str:
    """
    Strip the trailing ``Type`` suffix for display.

    ``DeviceType`` -> ``Device``; ``DeviceTypeType`` -> ``DeviceType``;
    ``Query`` is returned unchanged.
    """
    if typename.endswith(TYPE_SUFFIX) and len(typename) > len(TYPE_SUFFIX):
        return typename[: -len(TYPE_SUFFIX)]
    return typename
