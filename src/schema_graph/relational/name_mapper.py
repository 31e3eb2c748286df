"""
Name Mapper - bidirectional mapping between relational tables and schema types.

Tables are ``{app_label}_{model}`` in snake_case (``dcim_device``); schema
types are PascalCase with a ``Type`` suffix (``DeviceType``). Acronyms such
as IP, VLAN and VRF stay upper case, and a handful of compound names are
mapped through explicit overrides.

Two builders exist:
- build_name_mapper_from_models: forward, from authoritative model names
- build_name_mapper: reverse, best-effort, from discovered type names only
"""

from __future__ import annotations

import csv
import io
import logging
import re
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Tuple, Union

logger = logging.getLogger(__name__)

TYPE_SUFFIX = "Type"

# Segments kept upper case verbatim
ACRONYMS = frozenset([
    "IP", "VRF", "VLAN", "VM", "API", "URL", "HTTP", "HTTPS", "DNS", "BGP",
    "OSPF", "SNMP", "SSH", "ACL", "NAT", "VPN", "MAC", "MTU", "QOS", "STP",
    "VXLAN", "LACP", "RIR",
])

# Single segments that hide an acronym and do not tokenize on underscores
COMPOUND_SEGMENTS = {
    "ipaddress": "IPAddress",
    "vminterface": "VMInterface",
    "virtualmachine": "VirtualMachine",
}

# Whole-table overrides, consulted before any segment rule
SPECIAL_CASE_OVERRIDES = {
    "ipam_ipaddress": "IPAddressType",
    "ipam_vrf": "VRFType",
    "ipam_vlan": "VLANType",
    "ipam_rir": "RIRType",
    "virtualization_virtualmachine": "VirtualMachineType",
    "virtualization_vminterface": "VMInterfaceType",
}

REVERSE_SPECIAL_CASES = {type_name: table for table, type_name in SPECIAL_CASE_OVERRIDES.items()}

# Ordered namespace keyword tables; the first app whose keyword occurs in
# the type base name wins
APP_PREFIX_KEYWORDS: Tuple[Tuple[str, Tuple[str, ...]], ...] = (
    ("dcim", (
        "Device", "Rack", "Interface", "Cable", "Power", "Console",
        "Location", "Manufacturer", "Platform", "Module",
    )),
    ("ipam", ("IP", "VLAN", "VRF", "Prefix", "Namespace", "RIR", "Route")),
    ("circuits", ("Circuit", "Provider")),
    ("tenancy", ("Tenant",)),
    ("virtualization", ("VM", "Virtual", "Cluster")),
    ("extras", (
        "Tag", "Status", "Role", "Webhook", "CustomField", "Job",
        "ConfigContext", "Contact", "Team", "Secret", "Note",
    )),
    ("users", ("User", "Group", "Permission", "Token")),
    ("cloud", ("Cloud",)),
)

SegmentRule = Tuple[Callable[[str], bool], Callable[[str], str]]

# Ordered (predicate, transform) rules for one table/model segment
SEGMENT_RULES: List[SegmentRule] = [
    (lambda part: part.upper() in ACRONYMS, lambda part: part.upper()),
    (lambda part: part.lower() in COMPOUND_SEGMENTS, lambda part: COMPOUND_SEGMENTS[part.lower()]),
    (lambda part: True, lambda part: part[:1].upper() + part[1:].lower()),
]

_SEPARATORS = re.compile(r"[_.\-\s]+")
_PASCAL_BOUNDARY = re.compile(r"(?<=[a-z0-9])(?=[A-Z])|(?<=[A-Z])(?=[A-Z][a-z])")


@dataclass
class NameMapperStats:
    """Statistics about name mapping operations."""
    total_mappings: int = 0
    successful_mappings: int = 0
    failed_mappings: int = 0
    special_case_overrides: int = 0
    unmapped: List[str] = field(default_factory=list)

    @property
    def coverage_rate(self) -> float:
        if not self.total_mappings:
            return 0.0
        return self.successful_mappings / self.total_mappings * 100

    def to_dict(self) -> Dict[str, Any]:
        return {
            "total_mappings": self.total_mappings,
            "successful_mappings": self.successful_mappings,
            "failed_mappings": self.failed_mappings,
            "special_case_overrides": self.special_case_overrides,
            "unmapped": list(self.unmapped),
            "coverage_rate": self.coverage_rate,
        }


class NameMapper:
    """
    Bidirectional table <-> type name lookup.

    Mappings are 1:1 in each direction: once a table or a type is claimed,
    a conflicting mapping is refused.
    """

    def __init__(self, stats: Optional[NameMapperStats] = None):
        self._table_to_type: Dict[str, str] = {}
        self._type_to_table: Dict[str, str] = {}
        self.stats = stats or NameMapperStats()

    def table_to_type(self, table_name: str) -> Optional[str]:
        return self._table_to_type.get(table_name)

    def type_to_table(self, type_name: str) -> Optional[str]:
        normalized = type_name if type_name.endswith(TYPE_SUFFIX) else type_name + TYPE_SUFFIX
        return self._type_to_table.get(normalized)

    def has_mapping(self, identifier: str) -> bool:
        return identifier in self._table_to_type or identifier in self._type_to_table

    def add_mapping(self, table_name: str, type_name: str) -> bool:
        """
        Register a table/type pair.

        Returns False (and leaves the mapper unchanged) if either side is
        already mapped to something else.
        """
        existing_type = self._table_to_type.get(table_name)
        existing_table = self._type_to_table.get(type_name)

        if existing_type == type_name and existing_table == table_name:
            return True
        if existing_type is not None or existing_table is not None:
            logger.debug(
                f"Mapping conflict for {table_name} <-> {type_name} "
                f"(table -> {existing_type}, type -> {existing_table})"
            )
            return False

        self._table_to_type[table_name] = type_name
        self._type_to_table[type_name] = table_name
        return True

    @property
    def all_tables(self) -> List[str]:
        return sorted(self._table_to_type)

    @property
    def all_types(self) -> List[str]:
        return sorted(self._type_to_table)

    def __len__(self) -> int:
        return len(self._table_to_type)


def build_table_name(app_label: str, model: str) -> str:
    """``("dcim", "device")`` -> ``dcim_device``."""
    return f"{app_label}_{model}"


def convert_segment(part: str) -> str:
    for matches, transform in SEGMENT_RULES:
        if matches(part):
            return transform(part)
    return part


def build_type_name(model: str) -> str:
    """
    Build a schema type name from a model name.

    Examples:
        device      -> DeviceType
        vlan        -> VLANType
        ipaddress   -> IPAddressType
        device_type -> DeviceTypeType
    """
    parts = [p for p in _SEPARATORS.split(model) if p]
    return "".join(convert_segment(p) for p in parts) + TYPE_SUFFIX


def infer_type_name_from_table(table_name: str) -> Optional[str]:
    """
    Forward-map a table name (``{app}_{model}``) to a type name.

    Overrides are applied first; otherwise the app segment is dropped and
    the remainder converted with build_type_name.
    """
    if table_name in SPECIAL_CASE_OVERRIDES:
        return SPECIAL_CASE_OVERRIDES[table_name]

    parts = table_name.split("_", 1)
    if len(parts) < 2 or not parts[1]:
        return None
    return build_type_name(parts[1])


def pascal_to_snake(value: str) -> str:
    """
    Convert PascalCase to snake_case, keeping acronym runs together.

    ``DeviceType`` -> ``device_type``; ``VLANGroup`` -> ``vlan_group``.
    """
    return _PASCAL_BOUNDARY.sub("_", value).lower()


def infer_app_prefix(basename: str) -> Optional[str]:
    """Guess the app label for a type base name; None if no keyword matches."""
    for prefix, keywords in APP_PREFIX_KEYWORDS:
        if any(keyword in basename for keyword in keywords):
            return prefix
    return None


def infer_table_name_from_type(typename: str) -> Optional[str]:
    """
    Reverse-map a type name to a table name.

    Best effort: ``DeviceType`` -> ``dcim_device``, ``VLANType`` -> ``ipam_vlan``.
    Returns None when no app prefix can be inferred.
    """
    if typename in REVERSE_SPECIAL_CASES:
        return REVERSE_SPECIAL_CASES[typename]

    base = typename[: -len(TYPE_SUFFIX)] if typename.endswith(TYPE_SUFFIX) else typename
    if not base:
        return None

    prefix = infer_app_prefix(base)
    if prefix is None:
        return None
    return build_table_name(prefix, pascal_to_snake(base))


def build_name_mapper(typenames: Iterable[str]) -> NameMapper:
    """
    Build a mapper by reverse-engineering table names from type names.

    Used when only the discovered type names are known.
    """
    mapper = NameMapper()
    stats = mapper.stats

    for typename in typenames:
        stats.total_mappings += 1
        table_name = infer_table_name_from_type(typename)

        if table_name and mapper.add_mapping(table_name, typename):
            stats.successful_mappings += 1
            if typename in REVERSE_SPECIAL_CASES:
                stats.special_case_overrides += 1
        else:
            stats.failed_mappings += 1
            stats.unmapped.append(typename)

    _log_stats(stats)
    return mapper


ModelName = Union[str, Tuple[str, str], Mapping[str, Any]]


def _split_model_name(model: ModelName) -> Optional[Tuple[str, str]]:
    if isinstance(model, str):
        app_label, _, name = model.partition(".")
        return (app_label, name) if app_label and name else None
    if isinstance(model, Mapping):
        app_label, name = model.get("app_label"), model.get("model")
        return (app_label, name) if app_label and name else None
    if len(model) == 2:
        return model[0], model[1]
    return None


def build_name_mapper_from_models(models: Iterable[ModelName]) -> NameMapper:
    """
    Build a mapper forward from authoritative model names.

    Accepts ``"dcim.device"`` strings, ``(app_label, model)`` pairs, or
    content-type records with ``app_label`` and ``model`` keys.
    """
    mapper = NameMapper()
    stats = mapper.stats

    for model in models:
        stats.total_mappings += 1
        split = _split_model_name(model)
        if split is None:
            stats.failed_mappings += 1
            stats.unmapped.append(str(model))
            continue

        app_label, name = split
        table_name = build_table_name(app_label, name)
        type_name = infer_type_name_from_table(table_name)

        if type_name and mapper.add_mapping(table_name, type_name):
            stats.successful_mappings += 1
            if table_name in SPECIAL_CASE_OVERRIDES:
                stats.special_case_overrides += 1
        else:
            stats.failed_mappings += 1
            stats.unmapped.append(table_name)

    _log_stats(stats)
    return mapper


def export_mappings_csv(mapper: NameMapper) -> str:
    """Render all table/type pairs as CSV for review."""
    buffer = io.StringIO()
    writer = csv.writer(buffer, lineterminator="\n")
    writer.writerow(["Table Name", "Type Name"])
    for table in mapper.all_tables:
        writer.writerow([table, mapper.table_to_type(table)])
    return buffer.getvalue()


def _log_stats(stats: NameMapperStats) -> None:
    logger.info(
        f"Name mapper: {stats.successful_mappings}/{stats.total_mappings} mapped "
        f"({stats.coverage_rate:.1f}% coverage, {stats.special_case_overrides} overrides)"
    )
    if stats.unmapped:
        logger.debug(f"Unmapped names: {stats.unmapped[:20]}")
