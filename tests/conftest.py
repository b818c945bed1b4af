"""Shared fixtures: in-memory template store and quotation source."""

import json
from datetime import datetime, timezone
from typing import Any
from uuid import uuid4

import pytest

from quotedoc.schemas.context import CustomerRecord, LineItemRecord, QuotationRecord
from quotedoc.schemas.template import LoadedTemplate
from quotedoc.schemas.template_api import TemplateWrite
from quotedoc.services.template_store import RawTemplateRow, decode_template_row, encode_template_columns

UPDATED_AT = datetime(2026, 3, 5, 10, 30, tzinfo=timezone.utc)


def make_row(template_id: str = "tpl_1", elements: Any = None, **fields: Any) -> RawTemplateRow:
    """A stored template row; ``elements`` given as a list is encoded once."""
    if elements is None:
        elements = [{"id": "h1", "type": "header", "content": {"title": "{{company.name}}"}}]
    if isinstance(elements, list):
        elements = json.dumps(elements)
    defaults: dict[str, Any] = {
        "name": f"Template {template_id}",
        "theme": "MODERN",
        "is_default": False,
        "is_active": True,
        "layout": "{}",
        "settings": "{}",
        "branding": "{}",
        "created_at": UPDATED_AT,
        "updated_at": UPDATED_AT,
    }
    defaults.update(fields)
    return RawTemplateRow(id=template_id, elements=elements, **defaults)


class InMemoryTemplateStore:
    """TemplateStore over a dict of raw rows."""

    def __init__(
        self,
        rows: list[RawTemplateRow] | None = None,
        configured_id: str | None = None,
        unreachable: bool = False,
    ) -> None:
        self.rows = {row.id: row for row in rows or []}
        self.configured_id = configured_id
        self.unreachable = unreachable
        self.updates: list[tuple[str, dict[str, Any]]] = []

    def _check(self) -> None:
        if self.unreachable:
            raise ConnectionError("store unreachable")

    async def get_template_by_id(self, template_id: str) -> LoadedTemplate | None:
        self._check()
        row = self.rows.get(template_id)
        return decode_template_row(row) if row else None

    async def get_default_template(self) -> LoadedTemplate | None:
        self._check()
        for row in self.rows.values():
            if row.is_default and row.is_active:
                return decode_template_row(row)
        return None

    async def get_configured_default_id(self) -> str | None:
        self._check()
        return self.configured_id

    async def list_templates(self, include_inactive: bool = False) -> list[LoadedTemplate]:
        self._check()
        return [
            decode_template_row(row)
            for row in self.rows.values()
            if include_inactive or row.is_active
        ]

    async def list_raw_templates(self) -> list[RawTemplateRow]:
        self._check()
        return list(self.rows.values())

    async def get_raw_template(self, template_id: str) -> RawTemplateRow | None:
        self._check()
        return self.rows.get(template_id)

    async def update_template_fields(self, template_id: str, patch: dict[str, Any]) -> None:
        self._check()
        self.updates.append((template_id, patch))
        row = self.rows[template_id]
        for column, value in patch.items():
            setattr(row, column, value)

    async def create_template(self, data: TemplateWrite) -> LoadedTemplate:
        row = RawTemplateRow(
            id=f"tpl_{uuid4().hex[:12]}",
            name=data.name,
            description=data.description,
            theme=data.theme.value,
            category=data.category,
            is_active=data.is_active,
            created_by=data.created_by,
            created_at=UPDATED_AT,
            updated_at=UPDATED_AT,
            **encode_template_columns(data),
        )
        self.rows[row.id] = row
        if data.is_default:
            await self.set_default_template(row.id)
        return decode_template_row(row)

    async def replace_template(self, template_id: str, data: TemplateWrite) -> LoadedTemplate | None:
        row = self.rows.get(template_id)
        if not row:
            return None
        row.name = data.name
        row.description = data.description
        row.theme = data.theme.value
        row.is_active = data.is_active
        for column, value in encode_template_columns(data).items():
            setattr(row, column, value)
        if data.is_default:
            await self.set_default_template(template_id)
        return decode_template_row(row)

    async def deactivate_template(self, template_id: str) -> bool:
        row = self.rows.get(template_id)
        if not row:
            return False
        row.is_active = False
        row.is_default = False
        return True

    async def set_default_template(self, template_id: str) -> bool:
        row = self.rows.get(template_id)
        if not row or not row.is_active:
            return False
        for other in self.rows.values():
            other.is_default = other.id == template_id
        return True


class InMemoryQuotationSource:
    def __init__(self, quotations: dict[str, tuple[QuotationRecord, list[LineItemRecord]]] | None = None):
        self.quotations = quotations or {}

    async def get_quotation_with_line_items(self, quotation_id: str):
        return self.quotations.get(quotation_id)


def make_quotation(quotation_id: str = "quot_abc123", items: int = 1) -> tuple[QuotationRecord, list[LineItemRecord]]:
    """A 3-day quotation with ``items`` lines of quantity 1 at rate 1000."""
    record = QuotationRecord(
        id=quotation_id,
        machine_type="Mobile Crane",
        order_type="monthly",
        number_of_days=3,
        working_hours=8,
        shift="single",
        base_rate=1000,
        total_rent=3000,
        total_cost=3540,
        gst_amount=540,
        working_cost=3000,
        mob_demob_cost="15000",
        risk_adjustment=250,
        usage_load_factor=750,
        created_at=datetime(2026, 3, 5, 9, 0, tzinfo=timezone.utc),
        customer=CustomerRecord(name="Ravi Kumar", company="Kumar Infra", email="ravi@kumarinfra.in"),
    )
    line_items = [
        LineItemRecord(equipment_name=f"Crane {n + 1}", quantity=1, base_rate=1000)
        for n in range(items)
    ]
    return record, line_items


@pytest.fixture
def template_store() -> InMemoryTemplateStore:
    return InMemoryTemplateStore()


@pytest.fixture
def quotation_source() -> InMemoryQuotationSource:
    return InMemoryQuotationSource({"quot_abc123": make_quotation()})
