"""Tests for the structured-column decode seam and element parsing."""

import json

from quotedoc.core.elements import element_to_json, parse_element, parse_elements
from quotedoc.core.encoding import (
    decode_structured_field,
    describe_raw_field,
    normalize_encoded_field,
)
from quotedoc.schemas.template import ElementType, HeaderElement, UnknownElement


ELEMENTS = [{"id": "h1", "type": "header", "content": {"title": "Quote"}}]


# ─── Decoding ────────────────────────────────────────────────────────────────

class TestDecodeStructuredField:
    def test_single_encoded(self):
        decoded = decode_structured_field(json.dumps(ELEMENTS), list, "elements")
        assert decoded.ok
        assert decoded.value == ELEMENTS

    def test_already_decoded(self):
        decoded = decode_structured_field(ELEMENTS, list, "elements")
        assert decoded.ok
        assert decoded.value is ELEMENTS

    def test_double_encoded_is_flagged(self):
        raw = json.dumps(json.dumps(ELEMENTS))
        decoded = decode_structured_field(raw, list, "elements")
        assert decoded.value == ELEMENTS
        assert decoded.problem == "double-encoded"

    def test_null_is_empty_default(self):
        decoded = decode_structured_field(None, dict, "settings")
        assert decoded.ok
        assert decoded.value == {}

    def test_object_object_literal(self):
        decoded = decode_structured_field("[object Object]", list, "elements")
        assert decoded.value == []
        assert "corrupted" in decoded.problem

    def test_invalid_json(self):
        decoded = decode_structured_field("{not json", dict, "layout")
        assert decoded.value == {}
        assert decoded.problem.startswith("invalid JSON")

    def test_wrong_container_type(self):
        decoded = decode_structured_field('{"a": 1}', list, "elements")
        assert decoded.value == []
        assert "expected list" in decoded.problem

    def test_bytes(self):
        decoded = decode_structured_field(b'{"pageSize": "A4"}', dict, "settings")
        assert decoded.ok
        assert decoded.value == {"pageSize": "A4"}


class TestNormalizeEncodedField:
    def test_canonical_value_unchanged(self):
        raw = json.dumps(ELEMENTS)
        assert normalize_encoded_field(raw, list) is raw

    def test_double_encoded_collapsed(self):
        raw = json.dumps(json.dumps(ELEMENTS))
        fixed = normalize_encoded_field(raw, list)
        assert json.loads(fixed) == ELEMENTS
        assert normalize_encoded_field(fixed, list) == fixed

    def test_corrupt_becomes_empty_container(self):
        assert normalize_encoded_field("[object Object]", list) == "[]"
        assert normalize_encoded_field("", dict) == "{}"
        assert normalize_encoded_field(None, dict) == "{}"


class TestDescribeRawField:
    def test_string(self):
        info = describe_raw_field("[object Object]", preview_length=7)
        assert info == {"type": "string", "length": 15, "startsWith": "[object"}

    def test_null(self):
        assert describe_raw_field(None) == {"type": "null"}

    def test_other(self):
        assert describe_raw_field([1, 2]) == {"type": "list"}


# ─── Element parsing ─────────────────────────────────────────────────────────

class TestParseElement:
    def test_typed_variant(self):
        element, problems = parse_element(ELEMENTS[0], 0)
        assert isinstance(element, HeaderElement)
        assert element.content.title == "Quote"
        assert problems == []

    def test_string_content_becomes_title(self):
        element, problems = parse_element({"id": "t", "type": "items_table", "content": "Cranes"}, 0)
        assert element.content.title == "Cranes"
        assert problems == []

    def test_string_content_becomes_text(self):
        element, _ = parse_element({"id": "c", "type": "custom_text", "content": "Hello"}, 0)
        assert element.content.text == "Hello"

    def test_encoded_content_is_decoded(self):
        raw = {"id": "h", "type": "header", "content": json.dumps({"title": "Encoded"})}
        element, _ = parse_element(raw, 0)
        assert element.content.title == "Encoded"

    def test_corrupted_content_uses_defaults(self):
        element, problems = parse_element({"id": "h", "type": "header", "content": "[object Object]"}, 0)
        assert isinstance(element, HeaderElement)
        assert element.content.title == ""
        assert problems

    def test_invalid_content_falls_back_to_defaults(self):
        raw = {"id": "s", "type": "spacer", "content": {"height": {"nested": True}}}
        element, problems = parse_element(raw, 0)
        assert element is not None
        assert element.content.height == "20px"
        assert any("invalid content" in p for p in problems)

    def test_numeric_position_keeps_content(self):
        raw = {
            "id": "h1",
            "type": "header",
            "position": {"x": 0, "y": 0, "width": 800, "height": 120},
            "content": {"title": "ACME QUOTE"},
        }
        element, problems = parse_element(raw, 0)
        assert element.content.title == "ACME QUOTE"
        assert element.position.width == 800
        assert problems == []

    def test_invalid_position_only_resets_position(self):
        raw = {
            "id": "h1",
            "type": "header",
            "position": {"width": {"bad": True}},
            "content": {"title": "ACME QUOTE"},
        }
        element, problems = parse_element(raw, 0)
        assert element.content.title == "ACME QUOTE"
        assert element.position.width == "100%"
        assert problems == ["h1: invalid position, using defaults"]

    def test_unknown_type(self):
        element, problems = parse_element({"id": "x", "type": "qr_code", "content": {"a": 1}}, 0)
        assert isinstance(element, UnknownElement)
        assert element.type is ElementType.UNKNOWN
        assert element.declared_type == "qr_code"
        assert problems == []

    def test_visibility_flags(self):
        hidden, _ = parse_element({"type": "divider", "visible": "false"}, 0)
        shown, _ = parse_element({"type": "divider"}, 0)
        assert hidden.visible is False
        assert shown.visible is True

    def test_missing_id_is_generated(self):
        element, _ = parse_element({"type": "divider"}, 4)
        assert element.id == "element-5"

    def test_non_object_is_dropped(self):
        elements, problems = parse_elements(["oops", ELEMENTS[0]])
        assert len(elements) == 1
        assert problems == ["element #1 is not an object"]

    def test_unknown_type_round_trips_declared_type(self):
        element, _ = parse_element({"id": "x", "type": "qr_code"}, 0)
        assert element_to_json(element)["type"] == "qr_code"
