"""
Tests for the graph builder.

Covers breadth-first node creation, fetch batching and caps, primary-model
edge rules, type filters and FK enrichment of the resulting edges.
"""

import asyncio
import logging

import pytest

from conftest import list_of, obj, object_type, scalar
from schema_graph.graph.builder import apply_fk_lookup, build_graph, make_edge_id, make_node_id
from schema_graph.introspection.cache import TypeCache
from schema_graph.models import FKCardinality, FKDirection, TransformOptions, TypeRef
from schema_graph.relational.fk_lookup import build_fk_lookup
from schema_graph.relational.name_mapper import build_name_mapper


def all_primary(typename):
    return True


def run_build(root_types, type_cache, options, fetch_missing=None):
    return asyncio.run(build_graph(root_types, type_cache, options, fetch_missing))


def node_ids(result):
    return {node.id for node in result.nodes}


def edge_ids(result):
    return {edge.id for edge in result.edges}


class RecordingFetcher:
    """Batch fetcher over a dict that records every requested batch."""

    def __init__(self, types, missing=()):
        self.types = types
        self.missing = set(missing)
        self.batches = []

    async def __call__(self, typenames):
        self.batches.append(list(typenames))
        return {
            name: self.types[name]
            for name in typenames
            if name in self.types and name not in self.missing
        }


class TestEndToEnd:
    """The manufacturer/interface scenario."""

    @pytest.fixture
    def cache(self):
        types = [
            object_type(
                "DeviceType",
                ("manufacturer", obj("ManufacturerType")),
                ("interfaces", list_of("InterfaceType")),
            ),
            object_type("ManufacturerType"),
            object_type("InterfaceType"),
        ]
        return {t.name: t for t in types}

    def test_primary_device(self, cache):
        options = TransformOptions(
            max_depth=2,
            primary_model_checker=lambda name: name == "DeviceType",
        )
        result = run_build(["DeviceType"], cache, options)

        assert node_ids(result) == {
            "DeviceType:root:0",
            "ManufacturerType:root:1",
            "InterfaceType:root:1",
        }
        assert len(result.edges) == 2
        assert all(edge.source == "DeviceType:root:0" for edge in result.edges)
        assert result.stats.edges_skipped_non_primary == 0

    def test_nothing_primary(self, cache):
        result = run_build(["DeviceType"], cache, TransformOptions(max_depth=2))

        assert len(result.nodes) == 3
        assert result.edges == []
        assert result.stats.edges_skipped_non_primary == 2


class TestNodeCreation:
    """Tests for pass 1."""

    def test_roots_only_at_depth_one(self, schema_types):
        result = run_build(
            ["DeviceType", "UnknownType"],
            schema_types,
            TransformOptions(max_depth=1, primary_model_checker=all_primary),
        )

        assert [node.id for node in result.nodes] == ["DeviceType:root:0"]
        assert result.nodes[0].is_root is True
        assert result.edges == []

    def test_breadth_first_levels(self, schema_types):
        result = run_build(
            ["DeviceType"],
            TypeCache(schema_types.values()),
            TransformOptions(max_depth=3, primary_model_checker=all_primary),
        )

        assert result.stats.nodes_per_depth == {0: 1, 1: 4, 2: 2}
        assert [node.typename for node in result.nodes if node.depth == 1] == [
            "LocationType",
            "RackType",
            "InterfaceType",
            "TagType",
        ]
        assert {node.typename for node in result.nodes if node.depth == 2} == {
            "LocationType",
            "DeviceType",
        }

    def test_one_node_per_type_and_depth(self, schema_types):
        result = run_build(
            ["DeviceType", "DeviceType"],
            schema_types,
            TransformOptions(max_depth=3, primary_model_checker=all_primary),
        )
        keys = [(node.typename, node.depth) for node in result.nodes]
        assert len(keys) == len(set(keys))

    def test_node_fields(self, schema_types):
        result = run_build(["DeviceType"], schema_types, TransformOptions(max_depth=2))
        root = result.get_node(make_node_id("DeviceType", 0))

        assert root.label == "Device"
        assert root.is_root is True
        assert root.is_primary_model is False
        assert result.get_node("LocationType:root:1").is_root is False

    def test_filtered_field_count(self, schema_types):
        result = run_build(["DeviceType"], schema_types, TransformOptions(max_depth=2))
        # Device 3, Location 2, Rack 1, Interface 2, Tag 2 non-relationship fields
        assert result.stats.filtered_nodes == 10

    def test_nested_list_field_is_not_followed(self):
        float_matrix = TypeRef.non_null(
            TypeRef.list_of(TypeRef.non_null(TypeRef.list_of(TypeRef.non_null(scalar("Float")))))
        )
        cache = {
            t.name: t
            for t in [
                object_type(
                    "DeviceType",
                    ("coordinates", float_matrix),
                    ("location", obj("LocationType")),
                ),
                object_type("LocationType", ("id", scalar("ID"))),
            ]
        }
        result = run_build(
            ["DeviceType"],
            cache,
            TransformOptions(max_depth=2, primary_model_checker=all_primary),
        )

        assert node_ids(result) == {"DeviceType:root:0", "LocationType:root:1"}
        assert [edge.field_name for edge in result.edges] == ["location"]

    def test_type_filter_prunes_children(self, schema_types):
        options = TransformOptions(
            max_depth=2,
            primary_model_checker=all_primary,
            type_filter=lambda name: name != "TagType",
        )
        result = run_build(["DeviceType"], schema_types, options)

        assert "TagType:root:1" not in node_ids(result)
        assert len(result.edges) == 3


class TestFetching:
    """Tests for auto-fetching missing types."""

    def test_one_batch_per_depth(self, schema_types):
        fetcher = RecordingFetcher(schema_types)
        cache = TypeCache([schema_types["DeviceType"]])
        result = run_build(
            ["DeviceType"],
            cache,
            TransformOptions(max_depth=3, primary_model_checker=all_primary),
            fetcher,
        )

        assert fetcher.batches == [["LocationType", "RackType", "InterfaceType", "TagType"]]
        assert result.stats.types_fetched == 4
        assert len(result.nodes) == 7
        # the builder never writes to the shared cache
        assert len(cache) == 1

    def test_fetch_miss_drops_subtree(self, schema_types):
        fetcher = RecordingFetcher(schema_types, missing={"RackType"})
        cache = {"DeviceType": schema_types["DeviceType"]}
        result = run_build(
            ["DeviceType"],
            cache,
            TransformOptions(max_depth=2, primary_model_checker=all_primary),
            fetcher,
        )

        assert "RackType:root:1" not in node_ids(result)
        assert not any(edge.field_name == "rack" for edge in result.edges)
        assert result.stats.types_fetched == 3

    def test_cap_limits_fetches(self, schema_types, caplog):
        fetcher = RecordingFetcher(schema_types)
        cache = {"DeviceType": schema_types["DeviceType"]}
        options = TransformOptions(
            max_depth=2,
            primary_model_checker=all_primary,
            max_types_per_depth=2,
        )
        with caplog.at_level(logging.WARNING):
            result = run_build(["DeviceType"], cache, options, fetcher)

        assert fetcher.batches == [["LocationType", "RackType"]]
        assert result.stats.nodes_per_depth == {0: 1, 1: 2}
        assert "limiting to 2" in caplog.text

    def test_stops_when_no_longer_current(self, schema_types):
        fetcher = RecordingFetcher(schema_types)
        cache = {"DeviceType": schema_types["DeviceType"]}
        result = asyncio.run(
            build_graph(
                ["DeviceType"],
                cache,
                TransformOptions(max_depth=3, primary_model_checker=all_primary),
                fetcher,
                is_current=lambda: False,
            )
        )

        assert fetcher.batches == []
        assert node_ids(result) == {"DeviceType:root:0"}

    def test_missing_without_fetcher(self, schema_types):
        cache = {"DeviceType": schema_types["DeviceType"]}
        result = run_build(
            ["DeviceType"],
            cache,
            TransformOptions(max_depth=3, primary_model_checker=all_primary),
        )

        assert node_ids(result) == {"DeviceType:root:0"}
        assert result.edges == []


class TestEdgeCreation:
    """Tests for pass 2."""

    @pytest.fixture
    def result(self, schema_types):
        return run_build(
            ["DeviceType"],
            schema_types,
            TransformOptions(max_depth=3, primary_model_checker=all_primary),
        )

    def test_edge_count(self, result):
        assert len(result.edges) == 8

    def test_edges_only_between_adjacent_depths(self, result):
        depths = {node.id: node.depth for node in result.nodes}
        for edge in result.edges:
            assert depths[edge.target] == depths[edge.source] + 1

    def test_no_dangling_edges(self, result):
        ids = node_ids(result)
        for edge in result.edges:
            assert edge.source in ids
            assert edge.target in ids

    def test_edge_ids(self, result):
        expected = make_edge_id("DeviceType:root:0", "location", "LocationType:root:1")
        assert expected == "DeviceType:root:0-[location]-to-LocationType:root:1"
        assert expected in edge_ids(result)

    def test_list_and_singular_fields_alike(self, result):
        location = next(e for e in result.edges if e.field_name == "location")
        interfaces = next(e for e in result.edges if e.field_name == "interfaces")
        assert set(location.data) == set(interfaces.data)

    def test_non_primary_nodes_are_leaves(self, schema_types):
        options = TransformOptions(
            max_depth=3,
            primary_model_checker=lambda name: name != "LocationType",
        )
        result = run_build(["DeviceType"], schema_types, options)
        non_primary = {node.id for node in result.nodes if not node.is_primary_model}

        assert non_primary
        assert not any(edge.source in non_primary for edge in result.edges)
        # LocationType@1 has parent + devices
        assert result.stats.edges_skipped_non_primary == 4

    def test_idempotent_with_warm_cache(self, schema_types):
        options = TransformOptions(max_depth=3, primary_model_checker=all_primary)
        first = run_build(["DeviceType"], schema_types, options)
        second = run_build(["DeviceType"], schema_types, options)

        assert node_ids(first) == node_ids(second)
        assert edge_ids(first) == edge_ids(second)


class TestFKEnrichment:
    """Tests for pass 3."""

    @pytest.fixture
    def fk_lookup(self, schema_types, foreign_keys):
        mapper = build_name_mapper(schema_types)
        return build_fk_lookup(foreign_keys, mapper).lookup

    def test_without_lookup_every_edge_is_structural(self, schema_types):
        result = run_build(
            ["DeviceType"],
            schema_types,
            TransformOptions(max_depth=2, primary_model_checker=all_primary),
        )
        assert all(edge.data == {"is_fk": False} for edge in result.edges)

    def test_forward_fk_edges(self, schema_types, fk_lookup):
        options = TransformOptions(
            max_depth=3,
            primary_model_checker=all_primary,
            fk_lookup=fk_lookup,
        )
        result = run_build(["DeviceType"], schema_types, options)
        by_field = {(e.source, e.field_name): e for e in result.edges}

        location = by_field[("DeviceType:root:0", "location")]
        assert location.data["is_fk"] is True
        assert location.data["direction"] == FKDirection.FORWARD
        assert location.data["cardinality"] == FKCardinality.MANY_TO_ONE
        assert location.data["source_table"] == "dcim_device"

        assert by_field[("InterfaceType:root:1", "device")].data["is_fk"] is True
        assert by_field[("LocationType:root:1", "parent")].data["is_fk"] is True

    def test_reverse_fields_are_not_fk(self, schema_types, fk_lookup):
        options = TransformOptions(
            max_depth=3,
            primary_model_checker=all_primary,
            fk_lookup=fk_lookup,
        )
        result = run_build(["DeviceType"], schema_types, options)
        by_field = {(e.source, e.field_name): e for e in result.edges}

        assert by_field[("DeviceType:root:0", "interfaces")].data["is_fk"] is False
        assert by_field[("LocationType:root:1", "devices")].data["is_fk"] is False

    def test_apply_fk_lookup_afterwards(self, schema_types, fk_lookup):
        options = TransformOptions(max_depth=2, primary_model_checker=all_primary)
        result = run_build(["DeviceType"], schema_types, options)
        enhanced = apply_fk_lookup(result, fk_lookup)

        fk_fields = {e.field_name for e in enhanced.edges if e.data["is_fk"]}
        assert fk_fields == {"location", "rack"}
        # original result untouched
        assert not any(e.data["is_fk"] for e in result.edges)
