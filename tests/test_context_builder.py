"""Tests for the data context builder."""

from datetime import date, datetime, timezone

import pytest

from conftest import make_quotation
from quotedoc.config import Settings
from quotedoc.schemas.context import CompanyProfile, QuotationRecord
from quotedoc.services.context_builder import (
    build_rendering_context,
    format_currency,
    format_date,
    format_duration,
    generate_quotation_number,
    number_or_zero,
)


@pytest.fixture
def settings() -> Settings:
    return Settings(gst_rate=18.0, quotation_validity_days=15)


class TestNumberOrZero:
    @pytest.mark.parametrize(
        "value,expected",
        [
            (None, 0.0),
            ("", 0.0),
            ("abc", 0.0),
            ("NaN", 0.0),
            (float("nan"), 0.0),
            (float("inf"), 0.0),
            ("1,500", 1500.0),
            ("250.5 INR", 250.5),
            (42, 42.0),
            (True, 0.0),
        ],
    )
    def test_coercion(self, value, expected):
        assert number_or_zero(value) == expected


class TestFormatting:
    def test_duration_pluralization(self):
        assert format_duration(1) == "1 day"
        assert format_duration(3) == "3 days"
        assert format_duration(0.5) == "0.5 days"

    def test_currency_grouping(self):
        assert format_currency(1234567) == "₹12,34,567"
        assert format_currency(999) == "₹999"
        assert format_currency(1000) == "₹1,000"
        assert format_currency(None) == "₹0"
        assert format_currency("NaN") == "₹0"

    def test_currency_rounds_half_up(self):
        assert format_currency(1000.5) == "₹1,001"
        assert format_currency(-2500.4) == "-₹2,500"

    def test_date(self):
        assert format_date(date(2026, 3, 5)) == "5/3/2026"

    def test_quotation_number_is_stable(self):
        first = generate_quotation_number("quot_abc123")
        assert first == generate_quotation_number("quot_abc123")
        assert first.startswith("ASP-Q-")
        assert 1 <= int(first.rsplit("-", 1)[1]) <= 9999

    def test_quotation_number_without_underscore(self):
        assert generate_quotation_number("quotxyz9") == "ASP-Q-YZ9"


class TestBuildRenderingContext:
    def test_never_empty_items(self, settings):
        record, _ = make_quotation()
        context = build_rendering_context(record, [], settings=settings)
        assert len(context.items) == 1
        row = context.items[0]
        assert row.description == "Mobile Crane"
        assert row.quantity == 1
        assert row.rate == 1000
        assert row.rental == 3000

    def test_item_rows(self, settings):
        record, items = make_quotation(items=2)
        context = build_rendering_context(record, items, settings=settings)
        assert [row.no for row in context.items] == [1, 2]
        assert context.items[0].duration == "3 days"
        assert context.items[0].rental == 3000
        assert context.items[0].mob_demob == 15000

    def test_risk_usage_total_shared_by_rows(self, settings):
        record, items = make_quotation(items=3)
        context = build_rendering_context(record, items, settings=settings)
        assert {row.risk_usage for row in context.items} == {1000}
        assert context.totals.risk_usage_total == "₹1,000"

    def test_totals_are_formatted(self, settings):
        record, items = make_quotation()
        context = build_rendering_context(record, items, settings=settings)
        assert context.totals.subtotal == "₹3,000"
        assert context.totals.tax == "₹540"
        assert context.totals.total == "₹3,540"
        assert context.totals.mob_demob_cost == "₹15,000"
        assert context.totals.food_accom_cost == "₹0"

    def test_dates_and_validity(self, settings):
        record, items = make_quotation()
        context = build_rendering_context(record, items, settings=settings)
        assert context.quotation.date == "5/3/2026"
        assert context.quotation.valid_until == "20/3/2026"

    def test_today_used_without_created_at(self, settings):
        record = QuotationRecord(id="quot_x")
        context = build_rendering_context(record, [], settings=settings, today=date(2026, 1, 1))
        assert context.quotation.date == "1/1/2026"
        assert context.quotation.duration == "1 day"

    def test_missing_customer(self, settings):
        context = build_rendering_context(QuotationRecord(id="quot_x"), [], settings=settings)
        assert context.client.name == "Unknown Customer"

    def test_company_profile_overrides_settings(self, settings):
        record, items = make_quotation()
        assert build_rendering_context(record, items, settings=settings).company.name == settings.company_name

        record.company = CompanyProfile(name="Crane Co")
        assert build_rendering_context(record, items, settings=settings).company.name == "Crane Co"

    def test_stored_valid_until_wins(self, settings):
        record, items = make_quotation()
        record.valid_until = datetime(2026, 4, 1, tzinfo=timezone.utc)
        context = build_rendering_context(record, items, settings=settings)
        assert context.quotation.valid_until == "1/4/2026"

    def test_placeholder_aliases(self, settings):
        record, items = make_quotation()
        data = build_rendering_context(record, items, settings=settings).lookup_data()
        assert data["customer"]["name"] == "Ravi Kumar"
        assert data["quotation"]["quotation_number"] == data["quotation"]["number"]
        assert data["quotation"]["valid_until"] == data["quotation"]["validUntil"]
