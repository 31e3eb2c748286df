"""
Type filters applied to child types during graph builds.

Two independent filters exist: a wildcard pattern allowlist and an
app-category filter. compose_type_filters joins the active ones with
logical AND into the single predicate TransformOptions expects.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Iterable, List, Optional, Tuple

from schema_graph.models import GraphEdge, GraphNode, TypePredicate

logger = logging.getLogger(__name__)

# Network-relevant types shown by default
DEFAULT_INCLUDE_PATTERNS = [
    # Core infrastructure
    "Device*",
    "Interface*",
    "Cable*",
    "Location*",
    "Rack*",
    "Power*",
    # IP addressing
    "IPAddress*",
    "Prefix*",
    "VLAN*",
    "VRF*",
    "Namespace*",
    # Circuits
    "Circuit*",
    "Provider*",
    "Termination*",
]


def matches_pattern(typename: str, pattern: str) -> bool:
    """
    Match a type name against a pattern with ``*`` wildcards.

    Without a wildcard the match is exact: ``Device*`` matches
    ``DeviceType``, ``*Interface*`` matches ``VMInterfaceType``.
    """
    if "*" not in pattern:
        return typename == pattern
    regex = "^" + ".*".join(re.escape(part) for part in pattern.split("*")) + "$"
    return re.match(regex, typename) is not None


@dataclass
class TypeFilterConfig:
    """Wildcard allowlist configuration."""
    include_patterns: List[str] = field(default_factory=list)
    enabled: bool = True


def is_type_allowed(typename: str, config: TypeFilterConfig) -> bool:
    """A disabled filter allows everything; an empty allowlist allows nothing."""
    if not config.enabled:
        return True
    if not config.include_patterns:
        return False
    return any(matches_pattern(typename, pattern) for pattern in config.include_patterns)


def create_default_filter_config() -> TypeFilterConfig:
    return TypeFilterConfig(include_patterns=list(DEFAULT_INCLUDE_PATTERNS), enabled=True)


def create_pattern_type_filter(config: TypeFilterConfig) -> TypePredicate:
    return lambda typename: is_type_allowed(typename, config)


class AppCategory(str, Enum):
    """Application categories used by the app filter."""
    DCIM = "DCIM"
    IPAM = "IPAM"
    CIRCUITS = "CIRCUITS"


APP_CORE_TYPES: Dict[AppCategory, List[str]] = {
    AppCategory.DCIM: [
        "DeviceType",
        "InterfaceType",
        "CableType",
        "LocationType",
        "RackType",
    ],
    AppCategory.IPAM: [
        "IPAddressType",
        "PrefixType",
        "VLANType",
        "VRFType",
    ],
    AppCategory.CIRCUITS: [
        "CircuitType",
        "ProviderType",
        "CircuitTerminationType",
    ],
}

# Ordered keyword tables; anything unmatched falls back to DCIM
CATEGORY_KEYWORDS: Tuple[Tuple[AppCategory, Tuple[str, ...]], ...] = (
    (AppCategory.IPAM, ("ipaddress", "prefix", "vlan", "vrf", "namespace")),
    (AppCategory.CIRCUITS, ("circuit", "provider")),
)


def get_all_core_types() -> List[str]:
    return [typename for types in APP_CORE_TYPES.values() for typename in types]


def categorize_type(typename: str) -> AppCategory:
    lower = typename.lower()
    for category, keywords in CATEGORY_KEYWORDS:
        if any(keyword in lower for keyword in keywords):
            return category
    return AppCategory.DCIM


def categorize_all_types(typenames: Iterable[str]) -> Dict[AppCategory, List[str]]:
    """Group type names by app category, preserving input order."""
    categorized: Dict[AppCategory, List[str]] = {category: [] for category in AppCategory}
    for typename in typenames:
        categorized[categorize_type(typename)].append(typename)

    logger.debug(
        "Categorized types: "
        + ", ".join(f"{category.value}={len(types)}" for category, types in categorized.items())
    )
    return categorized


@dataclass
class AppFilterConfig:
    """
    App-category filter configuration.

    A type passes if it is listed in ``additional_types`` or is a core type
    of an enabled app.
    """
    enabled_apps: Dict[AppCategory, bool] = field(
        default_factory=lambda: {category: True for category in AppCategory}
    )
    additional_types: List[str] = field(default_factory=list)
    enabled: bool = True

    def __post_init__(self):
        # Accept "ipam"-style keys from YAML
        self.enabled_apps = {
            AppCategory(key.upper()): bool(value)
            for key, value in self.enabled_apps.items()
        }


def create_app_type_filter(config: AppFilterConfig) -> TypePredicate:
    additional = set(config.additional_types)

    def app_filter(typename: str) -> bool:
        if not config.enabled:
            return True
        if typename in additional:
            return True
        return any(
            enabled and typename in APP_CORE_TYPES[category]
            for category, enabled in config.enabled_apps.items()
        )

    return app_filter


def create_default_app_filter_config() -> AppFilterConfig:
    return AppFilterConfig(additional_types=get_all_core_types())


def compose_type_filters(*filters: Optional[TypePredicate]) -> Optional[TypePredicate]:
    """
    Combine type predicates with logical AND.

    ``None`` entries are ignored; with no active filter the result is None,
    meaning every type is allowed.
    """
    active = [f for f in filters if f is not None]
    if not active:
        return None
    if len(active) == 1:
        return active[0]
    return lambda typename: all(f(typename) for f in active)


def filter_by_depth(
    nodes: List[GraphNode],
    edges: List[GraphEdge],
    max_depth: int,
) -> Tuple[List[GraphNode], List[GraphEdge]]:
    """Keep nodes shallower than ``max_depth`` and edges between them."""
    kept_nodes = [node for node in nodes if node.depth < max_depth]
    kept_ids = {node.id for node in kept_nodes}
    kept_edges = [edge for edge in edges if edge.source in kept_ids and edge.target in kept_ids]
    return kept_nodes, kept_edges
