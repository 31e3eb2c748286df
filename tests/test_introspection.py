"""
Tests for the introspection helpers.

Tests type unwrapping, relationship field detection, the type cache and
the fetch adapters.
"""

import asyncio
import json
import tempfile
from pathlib import Path

import pytest

from schema_graph.introspection import (
    CachingTypeFetcher,
    SnapshotTypeSource,
    TypeCache,
    UNKNOWN_TYPE_NAME,
    extract_relationship_fields,
    get_display_name,
    is_relationship_field,
    is_scalar_type,
    unwrap_type,
    validate_loaded_type,
)
from schema_graph.models import IntrospectionField, IntrospectionType, TypeRef


def obj(name):
    return TypeRef.named(name)


def scalar(name):
    return TypeRef.named(name, kind="SCALAR")


def make_type(typename, **fields):
    return IntrospectionType(
        name=typename,
        kind="OBJECT",
        fields=tuple(IntrospectionField(field_name, ref) for field_name, ref in fields.items()),
    )


class TestUnwrapType:
    """Tests for unwrap_type."""

    def test_named(self):
        result = unwrap_type(obj("DeviceType"))
        assert result.name == "DeviceType"
        assert result.kind == "OBJECT"
        assert result.is_list is False
        assert result.is_non_null is False

    def test_non_null(self):
        result = unwrap_type(TypeRef.non_null(obj("DeviceType")))
        assert result.is_non_null is True
        assert result.is_list is False

    def test_list_of_non_null(self):
        result = unwrap_type(TypeRef.list_of(TypeRef.non_null(obj("InterfaceType"))))
        assert result.name == "InterfaceType"
        assert result.is_list is True
        # only the outermost wrapper counts
        assert result.is_non_null is False

    def test_non_null_list_of_non_null(self):
        ref = TypeRef.non_null(TypeRef.list_of(TypeRef.non_null(obj("InterfaceType"))))
        result = unwrap_type(ref)
        assert result.name == "InterfaceType"
        assert result.is_list is True
        assert result.is_non_null is True

    def test_nested_list_is_unknown(self):
        # [[Float!]!]!
        ref = TypeRef.non_null(
            TypeRef.list_of(TypeRef.non_null(TypeRef.list_of(TypeRef.non_null(scalar("Float")))))
        )
        result = unwrap_type(ref)
        assert result.name == UNKNOWN_TYPE_NAME
        assert result.kind == "LIST"
        assert result.is_list is True
        assert result.is_non_null is True

    def test_cut_off_nested_list_is_unknown(self):
        # Shape returned when the introspection query runs out of ofType levels
        ref = TypeRef.non_null(TypeRef.list_of(TypeRef.non_null(TypeRef(kind="LIST"))))
        result = unwrap_type(ref)
        assert result.name == UNKNOWN_TYPE_NAME
        assert result.kind == "LIST"

    def test_wrapper_without_inner_is_unknown(self):
        result = unwrap_type(TypeRef(kind="LIST"))
        assert result.name == UNKNOWN_TYPE_NAME
        assert result.is_list is True

    def test_from_introspection_json(self):
        data = {
            "kind": "NON_NULL",
            "name": None,
            "ofType": {
                "kind": "LIST",
                "name": None,
                "ofType": {
                    "kind": "NON_NULL",
                    "name": None,
                    "ofType": {"kind": "LIST", "name": None, "ofType": None},
                },
            },
        }
        assert unwrap_type(TypeRef.from_dict(data)).name == UNKNOWN_TYPE_NAME

    def test_nameless_type_raises(self):
        with pytest.raises(ValueError):
            unwrap_type(TypeRef(kind="OBJECT"))


class TestRelationshipFields:
    """Tests for relationship field detection."""

    def test_scalar_types(self):
        assert is_scalar_type("String")
        assert is_scalar_type("DateTime")
        assert not is_scalar_type("DeviceType")

    def test_object_field_is_relationship(self):
        assert is_relationship_field(IntrospectionField("location", obj("LocationType")))

    def test_interface_field_is_relationship(self):
        field = IntrospectionField("node", TypeRef.named("Node", kind="INTERFACE"))
        assert is_relationship_field(field)

    def test_scalar_and_enum_are_not(self):
        assert not is_relationship_field(IntrospectionField("name", scalar("String")))
        assert not is_relationship_field(IntrospectionField("status", TypeRef.named("Status", kind="ENUM")))

    def test_nested_list_is_not(self):
        ref = TypeRef.list_of(TypeRef.list_of(TypeRef.list_of(obj("DeviceType"))))
        assert not is_relationship_field(IntrospectionField("matrix", ref))

    def test_meta_fields_are_not(self):
        assert not is_relationship_field(IntrospectionField("__typename", obj("DeviceType")))

    def test_extract_preserves_order(self):
        device = make_type(
            "DeviceType",
            id=scalar("ID"),
            location=obj("LocationType"),
            name=scalar("String"),
            interfaces=TypeRef.list_of(obj("InterfaceType")),
        )
        names = [f.name for f in extract_relationship_fields(device)]
        assert names == ["location", "interfaces"]


class TestDisplayName:
    """Tests for get_display_name."""

    def test_strips_suffix(self):
        assert get_display_name("DeviceType") == "Device"

    def test_strips_only_once(self):
        assert get_display_name("DeviceTypeType") == "DeviceType"

    def test_no_suffix(self):
        assert get_display_name("Query") == "Query"

    def test_bare_suffix_unchanged(self):
        assert get_display_name("Type") == "Type"


class TestTypeCache:
    """Tests for TypeCache."""

    def test_put_and_get(self):
        cache = TypeCache()
        device = make_type("DeviceType", id=scalar("ID"))
        cache.put(device)

        assert cache.get("DeviceType") is device
        assert "DeviceType" in cache
        assert cache.has("DeviceType")
        assert len(cache) == 1
        assert cache.fetched_at("DeviceType") is not None

    def test_put_does_not_overwrite(self):
        first = make_type("DeviceType", id=scalar("ID"))
        second = make_type("DeviceType", name=scalar("String"))
        cache = TypeCache([first])
        cache.put(second)
        assert cache.get("DeviceType") is first

    def test_snapshot_is_read_only(self):
        cache = TypeCache([make_type("DeviceType", id=scalar("ID"))])
        snapshot = cache.snapshot()
        with pytest.raises(TypeError):
            snapshot["Other"] = None

    def test_clear(self):
        cache = TypeCache([make_type("DeviceType", id=scalar("ID"))])
        cache.clear()
        assert len(cache) == 0
        assert cache.names() == []


class TestValidateLoadedType:
    """Tests for validate_loaded_type."""

    def test_object_needs_fields(self):
        assert not validate_loaded_type(IntrospectionType(name="EmptyType", kind="OBJECT"))
        assert validate_loaded_type(make_type("DeviceType", id=scalar("ID")))

    def test_enum_without_fields_is_valid(self):
        assert validate_loaded_type(IntrospectionType(name="Status", kind="ENUM"))

    def test_none_is_invalid(self):
        assert not validate_loaded_type(None)


class TestCachingTypeFetcher:
    """Tests for CachingTypeFetcher."""

    @pytest.fixture
    def types(self):
        return {
            "DeviceType": make_type("DeviceType", id=scalar("ID")),
            "LocationType": make_type("LocationType", id=scalar("ID")),
            "EmptyType": IntrospectionType(name="EmptyType", kind="OBJECT"),
        }

    def test_fetches_only_missing(self, types):
        calls = []

        async def fetch_type(name):
            calls.append(name)
            return types[name]

        cache = TypeCache([types["DeviceType"]])
        fetcher = CachingTypeFetcher(cache, fetch_type)
        result = asyncio.run(fetcher(["DeviceType", "LocationType"]))

        assert set(result) == {"DeviceType", "LocationType"}
        assert calls == ["LocationType"]
        assert "LocationType" in cache

    def test_failures_are_omitted(self, types):
        async def fetch_type(name):
            if name == "BrokenType":
                raise ConnectionError("boom")
            return types[name]

        cache = TypeCache()
        fetcher = CachingTypeFetcher(cache, fetch_type)
        result = asyncio.run(fetcher.fetch_types(["LocationType", "BrokenType"]))

        assert list(result) == ["LocationType"]
        assert "BrokenType" not in cache

    def test_invalid_types_are_not_cached(self, types):
        async def fetch_type(name):
            return types[name]

        cache = TypeCache()
        result = asyncio.run(CachingTypeFetcher(cache, fetch_type)(["EmptyType"]))

        assert result == {}
        assert "EmptyType" not in cache


class TestSnapshotTypeSource:
    """Tests for SnapshotTypeSource."""

    SNAPSHOT = {
        "types": {
            "DeviceType": {
                "name": "DeviceType",
                "kind": "OBJECT",
                "fields": [{"name": "id", "type": {"kind": "SCALAR", "name": "ID"}}],
            },
            "Broken": {"description": "no name or kind"},
        }
    }

    def test_from_data_skips_malformed(self):
        source = SnapshotTypeSource.from_data(self.SNAPSHOT)
        assert source.typenames == ["DeviceType"]

    def test_from_list(self):
        source = SnapshotTypeSource.from_data(list(self.SNAPSHOT["types"].values()))
        assert source.typenames == ["DeviceType"]

    def test_from_file(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            path = Path(tmpdir) / "schema.json"
            path.write_text(json.dumps(self.SNAPSHOT))
            source = SnapshotTypeSource.from_file(path)

        result = asyncio.run(source.fetch_types(["DeviceType", "MissingType"]))
        assert list(result) == ["DeviceType"]

    def test_fetch_type_unknown_raises(self):
        source = SnapshotTypeSource.from_data(self.SNAPSHOT)
        with pytest.raises(KeyError):
            asyncio.run(source.fetch_type("MissingType"))
