"""
Run configuration for graph builds, loadable from YAML.

Example::

    root_types: [DeviceType, InterfaceType]
    max_depth: 3
    max_types_per_depth: 100
    type_patterns: ["Device*", "Interface*"]
    pattern_filter_enabled: true
    enabled_apps: {DCIM: true, IPAM: false, CIRCUITS: true}
    additional_types: [PlatformType]
    app_filter_enabled: false
    schema_snapshot: schema.json
    foreign_keys: fk_export.json
    model_kinds: model_kinds.yaml
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional

import yaml

from schema_graph.graph.filters import (
    AppFilterConfig,
    TypeFilterConfig,
    compose_type_filters,
    create_app_type_filter,
    create_pattern_type_filter,
    get_all_core_types,
)
from schema_graph.models import FKMetadata, TransformOptions, TypePredicate

logger = logging.getLogger(__name__)

PATH_FIELDS = ("schema_snapshot", "foreign_keys", "model_kinds", "content_types")


@dataclass
class GraphConfig:
    """Configuration for a graph build run."""
    root_types: List[str] = field(default_factory=list)
    max_depth: int = 3
    include_scalars: bool = False
    show_field_nodes: bool = False
    max_types_per_depth: int = 100

    # Wildcard allowlist; only applied when enabled
    type_patterns: List[str] = field(default_factory=list)
    pattern_filter_enabled: bool = False

    # App-category filter
    enabled_apps: Dict[str, bool] = field(
        default_factory=lambda: {"DCIM": True, "IPAM": True, "CIRCUITS": True}
    )
    additional_types: List[str] = field(default_factory=get_all_core_types)
    app_filter_enabled: bool = False

    # Input files
    schema_snapshot: Optional[Path] = None
    foreign_keys: Optional[Path] = None
    model_kinds: Optional[Path] = None
    content_types: Optional[Path] = None

    def __post_init__(self):
        if isinstance(self.root_types, str):
            self.root_types = [t.strip() for t in self.root_types.split(",") if t.strip()]
        for name in PATH_FIELDS:
            value = getattr(self, name)
            if isinstance(value, str):
                setattr(self, name, Path(value))

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> GraphConfig:
        """Create from a mapping; unknown keys are logged and ignored."""
        known = {f.name for f in fields(cls)}
        unknown = sorted(set(data) - known)
        if unknown:
            logger.warning(f"Ignoring unknown config keys: {unknown}")
        return cls(**{key: value for key, value in data.items() if key in known})

    def to_dict(self) -> Dict[str, Any]:
        result = {}
        for f in fields(self):
            value = getattr(self, f.name)
            result[f.name] = str(value) if isinstance(value, Path) else value
        return result

    def resolve_paths(self, base_dir: Path) -> None:
        """Make relative input paths relative to ``base_dir``."""
        for name in PATH_FIELDS:
            value = getattr(self, name)
            if value is not None and not value.is_absolute():
                setattr(self, name, Path(base_dir) / value)

    def build_type_filter(self) -> Optional[TypePredicate]:
        """AND of the enabled pattern and app filters, or None."""
        pattern_filter = None
        if self.pattern_filter_enabled:
            pattern_filter = create_pattern_type_filter(
                TypeFilterConfig(include_patterns=list(self.type_patterns), enabled=True)
            )

        app_filter = None
        if self.app_filter_enabled:
            app_filter = create_app_type_filter(
                AppFilterConfig(
                    enabled_apps=dict(self.enabled_apps),
                    additional_types=list(self.additional_types),
                    enabled=True,
                )
            )

        return compose_type_filters(pattern_filter, app_filter)

    def to_transform_options(
        self,
        primary_model_checker: Optional[TypePredicate] = None,
        fk_lookup: Optional[Mapping[str, FKMetadata]] = None,
    ) -> TransformOptions:
        return TransformOptions(
            max_depth=self.max_depth,
            include_scalars=self.include_scalars,
            show_field_nodes=self.show_field_nodes,
            type_filter=self.build_type_filter(),
            primary_model_checker=primary_model_checker,
            fk_lookup=fk_lookup,
            max_types_per_depth=self.max_types_per_depth,
        )


def load_config(path: Path) -> GraphConfig:
    """
    Load a GraphConfig from YAML.

    A missing file yields the defaults. Relative input paths are resolved
    against the config file's directory. A top-level ``graph:`` section is
    accepted as well as a flat document.
    """
    path = Path(path)
    if not path.exists():
        logger.warning(f"Config file not found: {path}")
        return GraphConfig()

    with open(path, "r") as f:
        data = yaml.safe_load(f) or {}

    if not isinstance(data, Mapping):
        raise ValueError(f"Config file {path} must contain a mapping, got {type(data).__name__}")

    section = data.get("graph", data)
    config = GraphConfig.from_dict(section)
    config.resolve_paths(path.parent)
    logger.info(f"Loaded config from {path}")
    return config
