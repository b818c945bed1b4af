"""Tests for the rendering engine."""

from unittest.mock import MagicMock

import pytest

from conftest import make_quotation, make_row
from quotedoc.schemas.template import ElementType
from quotedoc.services.context_builder import build_rendering_context
from quotedoc.services.renderer import RenderingEngine
from quotedoc.services.template_store import decode_template_row


@pytest.fixture
def engine() -> RenderingEngine:
    return RenderingEngine()


@pytest.fixture
def context():
    record, items = make_quotation()
    return build_rendering_context(record, items)


def _template(elements, **fields):
    return decode_template_row(make_row(elements=elements, **fields)).template


FULL_ELEMENTS = [
    {"id": "h1", "type": "header", "content": {"title": "{{company.name}}", "subtitle": "QUOTATION", "showQuotationNumber": True}},
    {"id": "c1", "type": "client_info"},
    {"id": "q1", "type": "quotation_info"},
    {"id": "j1", "type": "job_details"},
    {"id": "i1", "type": "items_table"},
    {"id": "ch1", "type": "charges_table"},
    {"id": "t1", "type": "totals", "content": {"showBreakdown": True}},
    {"id": "tr1", "type": "terms", "content": {"text": "• Payment in advance\n• GST extra"}},
    {"id": "s1", "type": "signature", "content": {"showDate": True}},
    {"id": "f1", "type": "footer", "content": {"text": "Thank you"}},
]


class TestRender:
    def test_deterministic(self, engine, context):
        template = _template(FULL_ELEMENTS)
        assert engine.render(template, context) == engine.render(template, context)

    def test_full_document(self, engine, context):
        html = engine.render(_template(FULL_ELEMENTS), context)
        assert html.startswith("<!DOCTYPE html>")
        assert context.company.name in html
        assert "Ravi Kumar" in html
        assert context.quotation.number in html
        assert "₹1,000" in html  # rate
        assert "₹3,000" in html  # rental and subtotal
        assert "₹3,540" in html
        assert "GST (18%)" in html
        assert "Payment in advance" in html
        assert "•" not in html

    def test_unresolved_placeholder_renders_empty(self, engine, context):
        template = _template(
            [{"id": "c", "type": "custom_text", "content": {"text": "Hello [{{no.such.path}}]"}}]
        )
        html = engine.render(template, context)
        assert "Hello []" in html
        assert "no.such.path" not in html

    def test_substituted_values_are_escaped(self, engine, context):
        context.client.name = "<script>alert(1)</script>"
        template = _template(
            [
                {"id": "c1", "type": "client_info"},
                {"id": "c2", "type": "custom_text", "content": {"text": "<b>{{client.name}}</b>"}},
            ]
        )
        html = engine.render(template, context)
        assert "<script>" not in html
        assert "&lt;script&gt;" in html
        assert "<b>&lt;script&gt;" in html

    def test_invisible_elements_skipped(self, engine, context):
        template = _template(
            [{"id": "c", "type": "custom_text", "visible": False, "content": {"text": "HIDDEN-TEXT"}}]
        )
        assert "HIDDEN-TEXT" not in engine.render(template, context)

    def test_unknown_type_skipped(self, engine, context, caplog):
        template = _template(
            [
                {"id": "x", "type": "qr_code", "content": {"text": "QR-PAYLOAD"}},
                {"id": "c", "type": "custom_text", "content": {"text": "AFTER"}},
            ]
        )
        html = engine.render(template, context)
        assert "QR-PAYLOAD" not in html
        assert "AFTER" in html
        assert "qr_code" in caplog.text

    def test_failing_element_does_not_fail_document(self, engine, context):
        engine._rules[ElementType.HEADER] = MagicMock(side_effect=RuntimeError("boom"))
        template = _template(
            [
                {"id": "h1", "type": "header", "content": {"title": "Broken"}},
                {"id": "c", "type": "custom_text", "content": {"text": "STILL-HERE"}},
            ]
        )
        html = engine.render(template, context)
        assert "<!-- element h1 skipped -->" in html
        assert "STILL-HERE" in html

    def test_table_style_overrides(self, engine, context):
        template = _template(
            [{"id": "i1", "type": "items_table", "style": {"tableHeaderBg": "#ff0000", "marginTop": 12}}]
        )
        html = engine.render(template, context)
        assert "background: #ff0000" in html
        assert "margin-top: 12px" in html
        assert "table-header-bg" not in html

    def test_table_header_defaults_to_theme(self, engine, context):
        html = engine.render(_template([{"id": "i1", "type": "items_table"}], theme="CREATIVE"), context)
        assert "background: #7c3aed" in html

    def test_hidden_item_column(self, engine, context):
        template = _template(
            [{"id": "i1", "type": "items_table", "content": {"columns": {"riskUsage": False}}}]
        )
        html = engine.render(template, context)
        assert "Risk &amp; Usage" not in html
        assert "Mob/Demob" in html

    def test_branding_overrides_theme(self, engine, context):
        template = _template(
            [{"id": "h1", "type": "header", "content": "Title"}],
            branding='{"primaryColor": "#123456"}',
        )
        assert "#123456" in engine.render(template, context)

    def test_page_geometry(self, engine, context):
        template = _template(
            [],
            settings='{"pageSize": "Letter", "orientation": "landscape", "margins": {"top": 20, "right": "1in", "bottom": 20, "left": 10}}',
        )
        html = engine.render(template, context)
        assert "size: Letter landscape; margin: 20mm 1in 20mm 10mm;" in html

    def test_corrupted_template_renders_degraded(self, engine, context):
        loaded = decode_template_row(make_row(elements="[object Object]", settings="[object Object]"))
        assert loaded.meta.degraded
        assert loaded.meta.column_names == ["elements", "settings"]
        html = engine.render(loaded.template, context)
        assert "quotation-document" in html

    def test_image_without_source_renders_nothing(self, engine, context):
        html = engine.render(_template([{"id": "img", "type": "image"}]), context)
        assert "q-image" not in html.split("<body>")[1]
