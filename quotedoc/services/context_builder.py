"""Data context builder: quotation record + line items -> rendering context.

Pure functions only: everything here is deterministic for a given record,
settings and reference date, so rendering stays reproducible.
"""

import math
import re
from datetime import date, datetime, timedelta
from decimal import ROUND_HALF_UP, Decimal
from typing import Any

from quotedoc.config import Settings, get_settings
from quotedoc.schemas.context import (
    ChargeRow,
    ClientBlock,
    CompanyBlock,
    ItemRow,
    LineItemRecord,
    QuotationBlock,
    QuotationRecord,
    RenderingContext,
    TaxInfo,
    Totals,
)

_NUMERIC_PREFIX = re.compile(r"^[+-]?(\d+(\.\d*)?|\.\d+)([eE][+-]?\d+)?")


def number_or_zero(value: Any) -> float:
    """Coerce a loosely typed numeric field to a finite float.

    Strings are parsed by their leading numeric prefix (thousands
    separators ignored); anything unparsable, missing or non-finite is 0.
    """
    if value is None or isinstance(value, bool):
        return 0.0
    if isinstance(value, (int, float, Decimal)):
        number = float(value)
    elif isinstance(value, str):
        match = _NUMERIC_PREFIX.match(value.strip().replace(",", ""))
        if not match:
            return 0.0
        number = float(match.group(0))
    else:
        return 0.0
    return number if math.isfinite(number) else 0.0


def _plain_number(value: float) -> str:
    return str(int(value)) if float(value).is_integer() else f"{value:g}"


def format_duration(days: float) -> str:
    """'1 day' / 'N days'."""
    unit = "day" if days == 1 else "days"
    return f"{_plain_number(days)} {unit}"


def _group_indian(digits: str) -> str:
    """Group digits the en-IN way: 12,34,56,789."""
    if len(digits) <= 3:
        return digits
    head, tail = digits[:-3], digits[-3:]
    groups: list[str] = []
    while len(head) > 2:
        groups.insert(0, head[-2:])
        head = head[:-2]
    if head:
        groups.insert(0, head)
    return ",".join(groups + [tail])


def format_currency(amount: Any, symbol: str = "₹") -> str:
    """Locale-grouped currency with zero fractional digits."""
    number = Decimal(str(number_or_zero(amount))).quantize(Decimal("1"), rounding=ROUND_HALF_UP)
    sign = "-" if number < 0 else ""
    return f"{sign}{symbol}{_group_indian(str(abs(int(number))))}"


def format_date(value: date | datetime) -> str:
    """en-IN short date, e.g. 5/3/2026."""
    return f"{value.day}/{value.month}/{value.year}"


def generate_quotation_number(quotation_id: str, prefix: str = "ASP-Q") -> str:
    """Stable display number derived from a ``quot_XXXX`` style id."""
    parts = quotation_id.split("_")
    if len(parts) >= 2:
        hash_code = 0
        for char in parts[1]:
            hash_code = (hash_code * 31 + ord(char)) & 0xFFFFFFFF
        if hash_code >= 0x80000000:
            hash_code -= 0x100000000
        number = abs(hash_code) % 9999 + 1
        return f"{prefix}-{number:03d}"
    return f"{prefix}-{quotation_id[5:8].upper()}"


def _company_block(record: QuotationRecord, settings: Settings) -> CompanyBlock:
    if record.company is not None:
        return CompanyBlock(
            name=record.company.name,
            address=record.company.address,
            phone=record.company.phone,
            email=record.company.email,
            website=record.company.website,
        )
    return CompanyBlock(
        name=settings.company_name,
        address=settings.company_address,
        phone=settings.company_phone,
        email=settings.company_email,
        website=settings.company_website,
    )


def _client_block(record: QuotationRecord) -> ClientBlock:
    customer = record.customer
    return ClientBlock(
        name=customer.name or "Unknown Customer",
        company=customer.company or "",
        address=customer.address or "",
        phone=customer.phone or "",
        email=customer.email or "",
    )


def _item_rows(
    record: QuotationRecord,
    line_items: list[LineItemRecord],
    duration_days: float,
    risk_usage_total: float,
) -> list[ItemRow]:
    job_type = record.order_type or "-"
    duration = format_duration(duration_days)
    mob_demob = number_or_zero(record.mob_demob_cost)

    rows: list[ItemRow] = []
    for index, item in enumerate(line_items):
        quantity = number_or_zero(item.quantity) or 1.0
        rate = number_or_zero(item.base_rate)
        rows.append(
            ItemRow(
                no=index + 1,
                description=item.description or item.equipment_name or "Equipment",
                job_type=job_type,
                quantity=quantity,
                duration=duration,
                rate=rate,
                rental=quantity * rate * duration_days,
                mob_demob=mob_demob,
                risk_usage=risk_usage_total,
            )
        )

    if not rows:
        # No equipment lines: one placeholder row from the header fields
        rate = number_or_zero(record.base_rate)
        rows.append(
            ItemRow(
                no=1,
                description=record.machine_type or "Equipment",
                job_type=job_type,
                quantity=1.0,
                duration=duration,
                rate=rate,
                rental=rate * duration_days,
                mob_demob=mob_demob,
                risk_usage=risk_usage_total,
            )
        )
    return rows


def _charge_rows(record: QuotationRecord, symbol: str) -> list[ChargeRow]:
    charges = [
        ("mobilization", "Mobilization & Demobilization", record.mob_demob_cost),
        ("rigger", "Rigger Charges", record.rigger_amount),
        ("helper", "Helper Charges", record.helper_amount),
        ("incidental", "Food & Accommodation", record.food_accom_cost),
    ]
    rows = []
    for key, label, raw in charges:
        amount = number_or_zero(raw)
        rows.append(
            ChargeRow(key=key, label=label, amount=amount, formatted=format_currency(amount, symbol))
        )
    return rows


def build_rendering_context(
    record: QuotationRecord,
    line_items: list[LineItemRecord],
    settings: Settings | None = None,
    today: date | None = None,
) -> RenderingContext:
    """Map a quotation and its equipment lines into a rendering context.

    ``today`` is only consulted when the record carries no creation date.
    """
    settings = settings or get_settings()
    symbol = settings.currency_symbol

    risk_adjustment = number_or_zero(record.risk_adjustment)
    usage_load_factor = number_or_zero(record.usage_load_factor)
    risk_usage_total = risk_adjustment + usage_load_factor

    duration_days = number_or_zero(record.number_of_days) or 1.0

    issued = record.created_at.date() if record.created_at else (today or date.today())
    valid_until = (
        record.valid_until.date()
        if record.valid_until
        else issued + timedelta(days=settings.quotation_validity_days)
    )
    working_hours = number_or_zero(record.working_hours)

    quotation = QuotationBlock(
        number=record.quotation_number
        or generate_quotation_number(record.id, settings.quotation_number_prefix),
        date=format_date(issued),
        valid_until=format_date(valid_until),
        machine_type=record.machine_type or "",
        order_type=record.order_type or "",
        duration=format_duration(duration_days),
        working_hours=_plain_number(working_hours) if working_hours else "",
        shift=record.shift or "",
        payment_terms=settings.default_payment_terms,
        tax_rate=settings.gst_rate,
    )

    totals = Totals(
        subtotal=format_currency(record.total_rent, symbol),
        tax=format_currency(record.gst_amount, symbol),
        total=format_currency(record.total_cost, symbol),
        working_cost=format_currency(record.working_cost, symbol),
        mob_demob_cost=format_currency(record.mob_demob_cost, symbol),
        food_accom_cost=format_currency(record.food_accom_cost, symbol),
        risk_adjustment=format_currency(risk_adjustment, symbol),
        usage_load_factor=format_currency(usage_load_factor, symbol),
        risk_usage_total=format_currency(risk_usage_total, symbol),
    )

    return RenderingContext(
        company=_company_block(record, settings),
        client=_client_block(record),
        quotation=quotation,
        items=_item_rows(record, line_items, duration_days, risk_usage_total),
        charges=_charge_rows(record, symbol),
        totals=totals,
        tax=TaxInfo(rate=settings.gst_rate),
        currency_symbol=symbol,
    )
