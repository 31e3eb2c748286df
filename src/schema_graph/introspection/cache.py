"""
Introspection type cache and fetch adapters.

The cache is an explicit object owned by the caller and passed by reference
into graph builds. It only ever grows during a session: entries appear once
their fetch has fully succeeded and are removed only by ``clear()``.
"""

from __future__ import annotations

import asyncio
import json
import logging
import time
from datetime import datetime
from pathlib import Path
from types import MappingProxyType
from typing import Any, Awaitable, Callable, Dict, Iterable, List, Mapping, Optional, Union

from schema_graph.models import IntrospectionType, TypeKind

logger = logging.getLogger(__name__)

TypeFetcher = Callable[[List[str]], Awaitable[Dict[str, IntrospectionType]]]
SingleTypeFetcher = Callable[[str], Awaitable[IntrospectionType]]


class TypeCache:
    """Process-wide store of introspected types, keyed by type name."""

    def __init__(self, types: Optional[Iterable[IntrospectionType]] = None):
        self._types: Dict[str, IntrospectionType] = {}
        self._fetched_at: Dict[str, datetime] = {}
        if types:
            self.update(types)

    def get(self, name: str) -> Optional[IntrospectionType]:
        return self._types.get(name)

    def has(self, name: str) -> bool:
        return name in self._types

    def put(self, type_info: IntrospectionType) -> None:
        """Add a fully fetched type. Existing entries are kept as-is."""
        if type_info.name in self._types:
            return
        self._types[type_info.name] = type_info
        self._fetched_at[type_info.name] = datetime.now()

    def update(self, types: Iterable[IntrospectionType]) -> None:
        for type_info in types:
            self.put(type_info)

    def fetched_at(self, name: str) -> Optional[datetime]:
        return self._fetched_at.get(name)

    def names(self) -> List[str]:
        return sorted(self._types)

    def snapshot(self) -> Mapping[str, IntrospectionType]:
        """Read-only view of the current contents."""
        return MappingProxyType(self._types)

    def clear(self) -> None:
        logger.info(f"Clearing type cache ({len(self._types)} types)")
        self._types.clear()
        self._fetched_at.clear()

    def __contains__(self, name: object) -> bool:
        return name in self._types

    def __len__(self) -> int:
        return len(self._types)


def validate_loaded_type(type_info: Optional[IntrospectionType]) -> bool:
    """
    Check that a fetched type is usable.

    A type needs a name and a kind; object types must expose at least one field.
    """
    if type_info is None or not type_info.name or not type_info.kind:
        return False
    if type_info.kind == TypeKind.OBJECT.value and not type_info.fields:
        return False
    return True


class CachingTypeFetcher:
    """
    Batch fetcher that answers from a TypeCache and fetches the rest.

    Wraps a single-type fetch coroutine (the transport collaborator). Missing
    names are fetched concurrently and awaited together; failures and invalid
    payloads are logged and omitted from the result, never raised.
    """

    def __init__(self, cache: TypeCache, fetch_type: SingleTypeFetcher):
        self.cache = cache
        self.fetch_type = fetch_type

    async def __call__(self, typenames: List[str]) -> Dict[str, IntrospectionType]:
        return await self.fetch_types(typenames)

    async def fetch_types(self, typenames: List[str]) -> Dict[str, IntrospectionType]:
        result: Dict[str, IntrospectionType] = {}
        missing: List[str] = []

        for name in dict.fromkeys(typenames):
            cached = self.cache.get(name)
            if cached is not None:
                result[name] = cached
            else:
                missing.append(name)

        if not missing:
            return result

        start = time.monotonic()
        outcomes = await asyncio.gather(
            *(self.fetch_type(name) for name in missing),
            return_exceptions=True,
        )

        failed = 0
        for name, outcome in zip(missing, outcomes):
            if isinstance(outcome, BaseException):
                if not isinstance(outcome, Exception):
                    raise outcome
                logger.warning(f"Failed to fetch type {name}: {outcome}")
                failed += 1
                continue
            if not validate_loaded_type(outcome):
                logger.warning(f"Type {name} loaded but failed validation")
                failed += 1
                continue
            self.cache.put(outcome)
            result[outcome.name] = outcome

        logger.debug(
            f"Fetched {len(missing) - failed}/{len(missing)} types "
            f"in {(time.monotonic() - start) * 1000:.0f}ms"
        )
        return result


class SnapshotTypeSource:
    """
    Serves introspection types from a prefetched schema snapshot.

    Accepted shapes:
        {"types": {"DeviceType": {...}, ...}}
        {"types": [{...}, ...]}
        [{...}, ...]
    Each entry is a ``__type`` payload (name, kind, fields, interfaces).
    """

    def __init__(self, types: Mapping[str, IntrospectionType]):
        self._types = dict(types)

    @classmethod
    def from_data(cls, data: Union[Mapping[str, Any], List[Any]]) -> SnapshotTypeSource:
        raw = data.get("types", data) if isinstance(data, Mapping) else data
        entries = raw.values() if isinstance(raw, Mapping) else raw

        types: Dict[str, IntrospectionType] = {}
        skipped = 0
        for entry in entries:
            if not isinstance(entry, Mapping) or "name" not in entry or "kind" not in entry:
                skipped += 1
                continue
            type_info = IntrospectionType.from_dict(entry)
            types[type_info.name] = type_info

        if skipped:
            logger.warning(f"Skipped {skipped} malformed entries in schema snapshot")
        logger.info(f"Loaded {len(types)} types from schema snapshot")
        return cls(types)

    @classmethod
    def from_file(cls, path: Path) -> SnapshotTypeSource:
        path = Path(path)
        with open(path, "r") as f:
            data = json.load(f)
        return cls.from_data(data)

    @property
    def typenames(self) -> List[str]:
        return sorted(self._types)

    async def fetch_type(self, typename: str) -> IntrospectionType:
        """Single-type fetch; raises KeyError for unknown types."""
        try:
            return self._types[typename]
        except KeyError:
            raise KeyError(f'Type "{typename}" not found in schema snapshot') from None

    async def fetch_types(self, typenames: List[str]) -> Dict[str, IntrospectionType]:
        """Batch fetch; unknown names are silently omitted."""
        return {name: self._types[name] for name in typenames if name in self._types}
