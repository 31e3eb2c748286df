"""
Primary-model predicates.

Only primary models (types backed by a real relational model) get outgoing
edges in a graph. Two sources can decide that:
- content-type records ``{app_label, model}`` reported by the server
- a model-kinds document listing ``"app.model"`` names under data.primary
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Dict, Iterable, List, Mapping, Optional, Set

import yaml

from schema_graph.models import TypePredicate
from schema_graph.relational.name_mapper import TYPE_SUFFIX, build_type_name

logger = logging.getLogger(__name__)


def normalize_type_name(typename: str) -> str:
    """``IPAddressType`` -> ``ipaddress``."""
    if typename.endswith(TYPE_SUFFIX):
        typename = typename[: -len(TYPE_SUFFIX)]
    return typename.lower()


def build_content_type_model_set(content_types: Iterable[Mapping[str, Any]]) -> Set[str]:
    """Lower-cased model names from content-type records."""
    models = {str(ct["model"]).lower() for ct in content_types if ct.get("model")}
    logger.debug(f"Content type model set: {len(models)} models")
    return models


def create_primary_model_checker(content_types: Iterable[Mapping[str, Any]]) -> TypePredicate:
    """Predicate that is true for types whose model appears in ``content_types``."""
    models = build_content_type_model_set(content_types)
    return lambda typename: normalize_type_name(typename) in models


def model_name_to_type_name(model_name: str) -> Optional[str]:
    """
    ``dcim.device`` -> ``DeviceType``; ``ipam.ipaddress`` -> ``IPAddressType``.

    Returns None for names that are not ``app.model``.
    """
    parts = model_name.split(".")
    if len(parts) != 2 or not parts[1]:
        return None
    return build_type_name(parts[1])


class ModelKindsRegistry:
    """
    Registry of primary model names.

    Document shape (JSON or YAML)::

        data:
          primary:
            - dcim.device
            - ipam.ipaddress
    """

    def __init__(self, primary_models: Optional[Iterable[str]] = None):
        self.primary_models: List[str] = list(primary_models or [])
        self._type_names = {
            type_name
            for type_name in (model_name_to_type_name(m) for m in self.primary_models)
            if type_name
        }
        self._model_parts = {m.split(".")[-1].lower() for m in self.primary_models}

    @classmethod
    def from_data(cls, data: Optional[Mapping[str, Any]]) -> ModelKindsRegistry:
        primary = ((data or {}).get("data") or {}).get("primary") or []
        return cls(primary)

    @classmethod
    def from_file(cls, path: Path) -> ModelKindsRegistry:
        """Load a model-kinds document; a missing file yields an empty registry."""
        path = Path(path)
        if not path.exists():
            logger.warning(f"Model kinds file not found: {path}")
            return cls()

        with open(path, "r") as f:
            data = yaml.safe_load(f) or {}

        registry = cls.from_data(data)
        logger.info(f"Loaded {len(registry.primary_models)} primary models from {path}")
        return registry

    def is_primary_model(self, typename: str) -> bool:
        """
        Exact type-name match first, then a loose match on the model part
        with the first ``type`` removed.
        """
        if typename in self._type_names:
            return True
        return typename.lower().replace("type", "", 1) in self._model_parts

    def __call__(self, typename: str) -> bool:
        return self.is_primary_model(typename)

    def filter_primary_models(self, typenames: Iterable[str]) -> List[str]:
        return [t for t in typenames if self.is_primary_model(t)]

    def get_primary_model_stats(self, typenames: List[str]) -> Dict[str, Any]:
        matched = self.filter_primary_models(typenames)
        return {
            "total_types": len(typenames),
            "primary_models": len(matched),
            "matched_types": matched,
        }

    def __len__(self) -> int:
        return len(self.primary_models)
