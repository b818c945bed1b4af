"""Quotation source: reads a quotation and its equipment lines."""

import logging
from typing import Protocol, runtime_checkable

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from quotedoc.config import get_settings
from quotedoc.core.encoding import decode_structured_field
from quotedoc.models.company import CompanySettings
from quotedoc.models.quotation import Quotation, QuotationMachine
from quotedoc.schemas.context import (
    CompanyProfile,
    CustomerRecord,
    LineItemRecord,
    QuotationRecord,
)
from quotedoc.services.context_builder import generate_quotation_number

settings = get_settings()
logger = logging.getLogger(__name__)


@runtime_checkable
class QuotationSource(Protocol):
    async def get_quotation_with_line_items(
        self, quotation_id: str
    ) -> tuple[QuotationRecord, list[LineItemRecord]] | None: ...


def _customer_record(quotation: Quotation) -> CustomerRecord:
    """Contact snapshot on the quotation wins over the linked customer row."""
    contact = decode_structured_field(quotation.customer_contact, dict, "customer_contact")
    if not contact.ok:
        logger.warning(
            "Quotation %s has unreadable customer contact: %s", quotation.id, contact.problem
        )
    data = contact.value if isinstance(contact.value, dict) else {}
    customer = quotation.customer

    def pick(key: str, fallback: str | None) -> str | None:
        value = data.get(key)
        if isinstance(value, str) and value.strip():
            return value
        return fallback

    return CustomerRecord(
        name=pick("name", quotation.customer_name or (customer.name if customer else None)),
        company=pick("company", customer.company_name if customer else None),
        address=pick("address", customer.address if customer else None),
        phone=pick("phone", customer.phone if customer else None),
        email=pick("email", customer.email if customer else None),
    )


def _line_item(machine: QuotationMachine) -> LineItemRecord:
    equipment = machine.equipment
    return LineItemRecord(
        equipment_name=equipment.name if equipment else None,
        equipment_code=equipment.equipment_id if equipment else None,
        quantity=machine.quantity,
        base_rate=machine.base_rate,
        running_cost_per_km=machine.running_cost_per_km,
    )


class SqlQuotationSource:
    """QuotationSource over the CRM quotation tables."""

    def __init__(self, db: AsyncSession) -> None:
        self.db = db

    async def _company_profile(self) -> CompanyProfile | None:
        result = await self.db.execute(
            select(CompanySettings)
            .where(CompanySettings.is_active.is_(True))
            .order_by(CompanySettings.updated_at.desc())
            .limit(1)
        )
        row = result.scalar_one_or_none()
        if not row:
            return None
        return CompanyProfile(
            name=row.company_name,
            address=row.address or "",
            phone=row.phone or "",
            email=row.email or "",
            website=row.website or "",
            gst_number=row.gst_number or "",
        )

    async def get_quotation_with_line_items(
        self, quotation_id: str
    ) -> tuple[QuotationRecord, list[LineItemRecord]] | None:
        result = await self.db.execute(
            select(Quotation)
            .where(Quotation.id == quotation_id)
            .options(
                selectinload(Quotation.customer),
                selectinload(Quotation.machines).selectinload(QuotationMachine.equipment),
            )
        )
        quotation = result.scalar_one_or_none()
        if not quotation:
            return None

        record = QuotationRecord(
            id=quotation.id,
            quotation_number=generate_quotation_number(
                quotation.id, settings.quotation_number_prefix
            ),
            machine_type=quotation.machine_type,
            order_type=quotation.order_type,
            number_of_days=quotation.number_of_days,
            working_hours=quotation.working_hours,
            shift=quotation.shift,
            base_rate=quotation.base_rate,
            total_rent=quotation.total_rent,
            total_cost=quotation.total_cost,
            working_cost=quotation.working_cost,
            mob_demob_cost=quotation.mob_demob_cost,
            food_accom_cost=quotation.food_accom_cost,
            usage_load_factor=quotation.usage_load_factor,
            risk_adjustment=quotation.risk_adjustment,
            rigger_amount=quotation.rigger_amount,
            helper_amount=quotation.helper_amount,
            gst_amount=quotation.gst_amount,
            status=quotation.status,
            notes=quotation.notes,
            valid_until=quotation.valid_until,
            created_at=quotation.created_at,
            updated_at=quotation.updated_at,
            customer=_customer_record(quotation),
            company=await self._company_profile(),
        )
        return record, [_line_item(m) for m in quotation.machines]
