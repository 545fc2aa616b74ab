"""Tests for twenty_mcp.mcp.sanitize: relation and link payload normalization."""

import logging

import pytest

from twenty_mcp.core.types import Cardinality, FieldDescriptor, ObjectContract, RelationInfo
from twenty_mcp.mcp.sanitize import (
    OMIT,
    IdListRef,
    IdRef,
    NullRef,
    ObjectRef,
    ObjectRefList,
    UnusableRef,
    classify_relation_value,
    normalize_links_value,
    sanitize_payload,
)


def _relation(name, cardinality, alias):
    return RelationInfo(name=name, cardinality=cardinality, alias=alias)


@pytest.fixture
def contract():
    return ObjectContract(
        name_singular="person",
        name_plural="people",
        relations=(
            _relation("company", Cardinality.SINGLE, "companyId"),
            _relation("noteTargets", Cardinality.MULTIPLE, "noteTargetsIds"),
        ),
        fields=(
            FieldDescriptor(name="city", kind="TEXT"),
            FieldDescriptor(name="linkedinLink", kind="LINKS"),
        ),
    )


class TestClassify:
    def test_variants(self):
        assert isinstance(classify_relation_value(None), NullRef)
        assert isinstance(classify_relation_value("abc"), IdRef)
        assert isinstance(classify_relation_value(5), IdRef)
        assert isinstance(classify_relation_value(["a"]), IdListRef)
        assert isinstance(classify_relation_value({"ids": ["a"]}), ObjectRefList)
        assert isinstance(classify_relation_value({"id": "a"}), ObjectRef)
        assert isinstance(classify_relation_value(True), UnusableRef)


class TestSingleRelations:
    def test_object_ref_round_trip(self, contract):
        assert sanitize_payload({"company": {"id": "X"}}, contract) == {"companyId": "X"}

    def test_value_key_and_trimming(self, contract):
        assert sanitize_payload({"company": {"value": " X "}}, contract) == {"companyId": "X"}
        assert sanitize_payload({"company": "  c1 "}, contract) == {"companyId": "c1"}

    def test_numbers_become_strings(self, contract):
        assert sanitize_payload({"companyId": 42}, contract) == {"companyId": "42"}
        assert sanitize_payload({"companyId": 42.0}, contract) == {"companyId": "42"}
        assert sanitize_payload({"companyId": 4.5}, contract) == {"companyId": "4.5"}

    def test_null_clears(self, contract):
        assert sanitize_payload({"company": None}, contract) == {"companyId": None}

    @pytest.mark.parametrize("value", ["", "   ", {"id": ""}, {"name": "Acme"}, [], True, float("nan")])
    def test_unusable_values_are_omitted(self, contract, value):
        assert sanitize_payload({"company": value}, contract) == {}

    def test_relation_name_is_never_emitted(self, contract):
        out = sanitize_payload({"company": {"id": "X"}, "city": "Paris"}, contract)
        assert "company" not in out
        assert out["city"] == "Paris"


class TestMultipleRelations:
    def test_mixed_list(self, contract):
        out = sanitize_payload({"noteTargets": [{"id": "a"}, "b"]}, contract)
        assert sorted(out["noteTargetsIds"]) == ["a", "b"]

    def test_duplicates_removed_in_first_occurrence_order(self, contract):
        out = sanitize_payload({"noteTargetsIds": ["b", "a", {"id": "b"}, 3, "3"]}, contract)
        assert out == {"noteTargetsIds": ["b", "a", "3"]}

    def test_ids_object_and_scalar(self, contract):
        assert sanitize_payload({"noteTargets": {"ids": ["x", None, ""]}}, contract) == {"noteTargetsIds": ["x"]}
        assert sanitize_payload({"noteTargets": "x"}, contract) == {"noteTargetsIds": ["x"]}
        assert sanitize_payload({"noteTargets": {"id": "x"}}, contract) == {"noteTargetsIds": ["x"]}

    @pytest.mark.parametrize("value", [None, [], {"ids": []}])
    def test_explicit_clears(self, contract, value):
        assert sanitize_payload({"noteTargets": value}, contract) == {"noteTargetsIds": []}

    def test_unusable_non_empty_input_is_omitted_with_warning(self, contract, caplog):
        caplog.set_level(logging.WARNING, logger="Twenty.mcp.sanitize")
        out = sanitize_payload({"noteTargets": [{"name": "nope"}, ""]}, contract)
        assert out == {}
        assert "noteTargetsIds" in caplog.text


class TestLinks:
    def test_string_is_wrapped(self, contract):
        out = sanitize_payload({"linkedinLink": " https://x.com "}, contract)
        assert out == {"linkedinLink": {
            "primaryLinkUrl": "https://x.com",
            "primaryLinkLabel": "",
            "secondaryLinks": None,
        }}

    def test_empty_string_still_wrapped(self):
        assert normalize_links_value("")["primaryLinkUrl"] == ""

    def test_normalization_is_idempotent(self):
        once = normalize_links_value("https://x.com")
        assert normalize_links_value(once) == once
        assert normalize_links_value(once) is once

    @pytest.mark.parametrize("value", [None, 5, ["https://x.com"], {"url": "https://x.com"}])
    def test_other_values_pass_through(self, value):
        assert normalize_links_value(value) is value


class TestIdStripping:
    @pytest.mark.parametrize("payload", [
        {"id": "abc"},
        {"id": None, "city": "Oslo"},
        {"id": "abc", "company": {"id": "X"}},
    ])
    def test_id_never_emitted(self, contract, payload):
        assert "id" not in sanitize_payload(payload, contract)

    def test_non_dict_payload(self, contract):
        assert sanitize_payload(None, contract) == {}


def test_omit_sentinel_repr():
    assert repr(OMIT) == "OMIT"
