"""Tests for the FK lookup builder."""

import pytest

from schema_graph.models import FKCardinality, FKDirection, PgForeignKey
from schema_graph.relational.fk_lookup import (
    FKLookup,
    build_fk_lookup,
    export_lookup_for_debug,
    get_fk_metadata,
    get_fks_for_type,
    get_lookup_stats,
    is_fk,
)
from schema_graph.relational.name_mapper import build_name_mapper


@pytest.fixture
def mapper():
    return build_name_mapper([
        "DeviceType",
        "LocationType",
        "RackType",
        "InterfaceType",
        "TagType",
    ])


class TestBuildFKLookup:
    """Tests for build_fk_lookup."""

    def test_forward_entry(self, mapper):
        fks = [PgForeignKey("dcim_device", "location_id", "dcim_location", "id")]
        result = build_fk_lookup(fks, mapper)

        metadata = result.lookup["DeviceType.location"]
        assert metadata.direction == FKDirection.FORWARD
        assert metadata.cardinality == FKCardinality.MANY_TO_ONE
        assert metadata.source_table == "dcim_device"
        assert metadata.target_table == "dcim_location"
        assert metadata.field_name == "location"
        assert metadata.original == fks[0]
        assert result.stats.forward_fks == 1
        assert result.stats.coverage_rate == 100.0

    def test_no_reverse_entries(self, mapper):
        fks = [PgForeignKey("dcim_device", "location_id", "dcim_location", "id")]
        result = build_fk_lookup(fks, mapper)

        assert list(result.lookup) == ["DeviceType.location"]
        assert result.stats.reverse_fks == 0

    def test_unmapped_tables_are_errors(self, mapper):
        fks = [
            PgForeignKey("dcim_device", "location_id", "dcim_location", "id"),
            PgForeignKey("dcim_device", "platform_id", "dcim_platform", "id"),
            PgForeignKey("secrets_secret", "owner_id", "secrets_owner", "id"),
        ]
        result = build_fk_lookup(fks, mapper)

        assert len(result.lookup) == 1
        assert result.stats.parse_errors == 2
        assert result.stats.unmapped_tables == 3
        assert result.unmapped_tables == ["dcim_platform", "secrets_owner", "secrets_secret"]
        assert "DeviceType.platform" not in result.lookup

    def test_first_write_wins(self, mapper):
        first = PgForeignKey("dcim_device", "location_id", "dcim_location", "id")
        duplicate = PgForeignKey("dcim_device", "location_id", "dcim_rack", "id")
        result = build_fk_lookup([first, duplicate], mapper)

        assert result.lookup["DeviceType.location"].target_table == "dcim_location"
        assert result.stats.parse_errors == 1
        assert result.stats.forward_fks == 1

    def test_self_reference_counted(self, mapper):
        fks = [PgForeignKey("dcim_location", "parent_id", "dcim_location", "id")]
        result = build_fk_lookup(fks, mapper)

        assert result.stats.self_references == 1
        assert "LocationType.parent" in result.lookup

    def test_duplicate_rows_still_counted(self, mapper):
        row = PgForeignKey("dcim_location", "parent_id", "dcim_location", "id")
        result = build_fk_lookup([row, row], mapper)

        assert len(result.lookup) == 1
        assert result.stats.parse_errors == 1
        assert result.stats.self_references == 2

    def test_junction_is_many_to_many(self):
        mapper = build_name_mapper(["DeviceType", "TagType"])
        mapper.add_mapping("extras_device_to_tags", "DeviceToTagsType")
        fks = [PgForeignKey("extras_device_to_tags", "tag_id", "extras_tag", "id")]
        result = build_fk_lookup(fks, mapper)

        metadata = result.lookup["DeviceToTagsType.tag"]
        assert metadata.cardinality == FKCardinality.MANY_TO_MANY
        assert metadata.is_junction_table is True
        assert result.stats.junction_tables == 1

    def test_empty_input(self, mapper):
        result = build_fk_lookup([], mapper)
        assert len(result.lookup) == 0
        assert result.stats.coverage_rate == 0.0


class TestLookupHelpers:
    """Tests for the lookup query helpers."""

    @pytest.fixture
    def lookup(self, mapper):
        fks = [
            PgForeignKey("dcim_device", "location_id", "dcim_location", "id"),
            PgForeignKey("dcim_device", "rack_id", "dcim_rack", "id"),
            PgForeignKey("dcim_interface", "device_id", "dcim_device", "id"),
        ]
        return build_fk_lookup(fks, mapper).lookup

    def test_lookup_is_read_only(self, lookup):
        assert isinstance(lookup, FKLookup)
        with pytest.raises(TypeError):
            lookup["DeviceType.x"] = None

    def test_get_and_is_fk(self, lookup):
        assert get_fk_metadata(lookup, "DeviceType", "rack").target_table == "dcim_rack"
        assert get_fk_metadata(lookup, "DeviceType", "name") is None
        assert is_fk(lookup, "InterfaceType", "device")
        assert not is_fk(lookup, "DeviceType", "interfaces")

    def test_fks_for_type(self, lookup):
        fields = sorted(m.field_name for m in get_fks_for_type(lookup, "DeviceType"))
        assert fields == ["location", "rack"]

    def test_stats(self, lookup):
        stats = get_lookup_stats(lookup)
        assert stats["total_entries"] == 3
        assert stats["unique_types"] == 2
        assert stats["forward_fks"] == 3
        assert stats["many_to_one"] == 3
        assert stats["reverse_fks"] == 0

    def test_export_for_debug(self, lookup):
        exported = export_lookup_for_debug(lookup)
        assert exported["DeviceType.location"]["direction"] == "forward"
        assert exported["DeviceType.location"]["original"]["source_column"] == "location_id"
