"""Shared fixtures: a small DCIM-style schema and its FK export."""

import pytest

from schema_graph.models import IntrospectionField, IntrospectionType, PgForeignKey, TypeRef


def obj(name):
    return TypeRef.named(name)


def scalar(name):
    return TypeRef.named(name, kind="SCALAR")


def list_of(name):
    return TypeRef.non_null(TypeRef.list_of(TypeRef.non_null(obj(name))))


def object_type(name, *fields):
    return IntrospectionType(
        name=name,
        kind="OBJECT",
        fields=tuple(IntrospectionField(field_name, ref) for field_name, ref in fields),
    )


@pytest.fixture
def schema_types():
    """
    DeviceType -> LocationType, RackType, InterfaceType, TagType
    LocationType -> LocationType (parent), DeviceType (devices)
    RackType -> LocationType
    InterfaceType -> DeviceType
    """
    types = [
        object_type(
            "DeviceType",
            ("id", scalar("ID")),
            ("name", scalar("String")),
            ("status", TypeRef.named("Status", kind="ENUM")),
            ("location", TypeRef.non_null(obj("LocationType"))),
            ("rack", obj("RackType")),
            ("interfaces", list_of("InterfaceType")),
            ("tags", list_of("TagType")),
        ),
        object_type(
            "LocationType",
            ("id", scalar("ID")),
            ("name", scalar("String")),
            ("parent", obj("LocationType")),
            ("devices", list_of("DeviceType")),
        ),
        object_type(
            "RackType",
            ("id", scalar("ID")),
            ("location", obj("LocationType")),
        ),
        object_type(
            "InterfaceType",
            ("id", scalar("ID")),
            ("name", scalar("String")),
            ("device", TypeRef.non_null(obj("DeviceType"))),
        ),
        object_type(
            "TagType",
            ("id", scalar("ID")),
            ("name", scalar("String")),
        ),
    ]
    return {t.name: t for t in types}


@pytest.fixture
def snapshot_data(schema_types):
    """The schema in prefetched snapshot form."""
    return {"types": {name: t.to_dict() for name, t in schema_types.items()}}


@pytest.fixture
def foreign_keys():
    return [
        PgForeignKey("dcim_device", "location_id", "dcim_location", "id"),
        PgForeignKey("dcim_device", "rack_id", "dcim_rack", "id"),
        PgForeignKey("dcim_interface", "device_id", "dcim_device", "id"),
        PgForeignKey("dcim_location", "parent_id", "dcim_location", "id"),
        PgForeignKey("dcim_rack", "location_id", "dcim_location", "id"),
    ]
