"""Tests for twenty_mcp.schema.compiler: contract synthesis from metadata."""

import pytest

from conftest import field, obj, relation_field, write_export
from twenty_mcp.core.types import Cardinality, FieldDescriptor
from twenty_mcp.schema.compiler import (
    COMPLEX_SHAPES,
    MISSING,
    TYPE_MAP,
    SchemaCompiler,
    build_field_property,
    map_field_type,
    normalize_default_value,
    writable_properties,
)
from twenty_mcp.schema.store import MetadataStore


@pytest.fixture
def compiler(store):
    return SchemaCompiler(store)


class TestDefaultValues:
    @pytest.mark.parametrize("token", ["now", "NOW", "'now'", '"Now"', "uuid", "'currentUser'", "autoIncrement"])
    def test_server_computed_tokens_are_suppressed(self, token):
        assert normalize_default_value(token) is MISSING

    @pytest.mark.parametrize("token", ["''", '""'])
    def test_empty_string_literals(self, token):
        assert normalize_default_value(token) == ""

    def test_quotes_are_stripped(self):
        assert normalize_default_value("'TODO'") == "TODO"

    def test_containers_recurse(self):
        assert normalize_default_value({"amountMicros": None, "currencyCode": "'USD'"}) == {"currencyCode": "USD"}
        assert normalize_default_value(["'a'", "now"]) == ["a"]

    def test_empty_containers_are_absent(self):
        assert normalize_default_value({"firstName": None, "lastName": "now"}) is MISSING
        assert normalize_default_value([]) is MISSING

    def test_scalars_pass(self):
        assert normalize_default_value(False) is False
        assert normalize_default_value(0) == 0
        assert normalize_default_value(None) is MISSING


class TestFieldProperties:
    def test_unknown_kind_falls_back_to_string(self):
        prop = build_field_property(FieldDescriptor(name="mystery", kind="HOLOGRAM"))
        assert prop["type"] == "string"

    def test_select_enum_and_default(self):
        prop = build_field_property(FieldDescriptor(
            name="status", kind="SELECT", options=({"value": "TODO"}, {"value": "DONE"}), default_value="'TODO'",
        ))
        assert prop["enum"] == ["TODO", "DONE"]
        assert prop["default"] == "TODO"

    def test_multi_select_enum_on_items(self):
        prop = build_field_property(FieldDescriptor(
            name="tags", kind="MULTI_SELECT", options=({"value": "hot"}, {"value": "cold"}),
        ))
        assert prop["type"] == "array"
        assert prop["items"]["enum"] == ["hot", "cold"]
        assert "enum" not in prop

    def test_currency_shape(self):
        prop = build_field_property(FieldDescriptor(name="amount", kind="CURRENCY"))
        assert prop["required"] == ["amount", "currency"]
        assert prop["additionalProperties"] is False

    def test_links_shape(self):
        prop = build_field_property(FieldDescriptor(name="domainName", kind="LINKS"))
        assert set(prop["properties"]) == {"primaryLinkUrl", "primaryLinkLabel", "secondaryLinks"}
        assert prop["properties"]["secondaryLinks"]["type"] == ["array", "null"]

    def test_tables_are_keyed_by_raw_kind_strings(self):
        assert all(type(kind) is str for kind in TYPE_MAP)
        assert all(type(kind) is str for kind in COMPLEX_SHAPES)
        assert map_field_type("NUMBER") == "number"
        assert map_field_type("PHONES") == "array"
        assert COMPLEX_SHAPES["PHONES"] is COMPLEX_SHAPES["EMAILS"]

    def test_complex_shapes_are_not_shared(self):
        first = build_field_property(FieldDescriptor(name="emails", kind="EMAILS"))
        first["items"]["properties"]["value"]["description"] = "changed"
        second = build_field_property(FieldDescriptor(name="phones", kind="PHONES"))
        assert second["items"]["properties"]["value"]["description"] != "changed"


class TestCompile:
    def test_unknown_object_is_none(self, compiler):
        assert compiler.compile("spaceships") is None

    def test_people_contract(self, compiler):
        contract = compiler.compile("person")
        assert contract.name_plural == "people"
        assert contract.source == "metadata"

        props = contract.properties
        assert "id" not in props  # system field
        assert props["name"]["type"] == "object"
        assert props["jobTitle"]["default"] == ""
        assert "default" not in props["createdAt"]
        assert props["companyId"]["type"] == "string"
        assert props["noteTargetsIds"]["type"] == "array"

    def test_required_needs_non_nullable_without_default(self, compiler):
        contract = compiler.compile("companies")
        assert contract.required == ("name",)
        assert "idealCustomerProfile" not in contract.required

    def test_relations_carry_aliases(self, compiler):
        contract = compiler.compile("people")
        relations = {r.name: r for r in contract.relations}
        assert relations["company"].cardinality == Cardinality.SINGLE
        assert relations["company"].alias == "companyId"
        assert relations["noteTargets"].cardinality == Cardinality.MULTIPLE
        assert relations["noteTargets"].alias == "noteTargetsIds"

    def test_writable_properties_skip_read_only(self, compiler):
        contract = compiler.compile("people")
        assert "createdAt" not in contract.writable_properties
        assert "position" not in contract.writable_properties
        assert "city" in contract.writable_properties
        assert "createdAt" in contract.properties

    def test_alias_collision_keeps_declared_property(self, tmp_path):
        metadata = {"data": {"objects": [obj("deal", "deals", [
            field("companyId", "NUMBER", label="Legacy company number"),
            relation_field("company", "MANY_TO_ONE", "company", "companies"),
        ])]}}
        write_export(tmp_path, metadata)
        store = MetadataStore(str(tmp_path))
        assert store.load()

        contract = SchemaCompiler(store).compile("deals")
        assert contract.properties["companyId"]["type"] == "number"
        assert contract.relations[0].alias == "companyId"

    def test_unknown_relation_type_is_skipped(self, tmp_path):
        metadata = {"data": {"objects": [obj("deal", "deals", [
            field("title"),
            relation_field("weird", "SIDEWAYS", "thing", "things"),
        ])]}}
        write_export(tmp_path, metadata)
        store = MetadataStore(str(tmp_path))
        assert store.load()

        contract = SchemaCompiler(store).compile("deal")
        assert "weird" not in contract.properties
        assert contract.relations == ()


def test_writable_properties_fall_back_to_everything():
    props = {"createdAt": {"type": "string"}, "position": {"type": "number"}}
    assert writable_properties(props) == props
