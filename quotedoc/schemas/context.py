"""Rendering context: normalized per-document data fed to the renderer."""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field

from quotedoc.schemas.template import CamelModel


# ── Business record (input to the context builder) ──


class CustomerRecord(BaseModel):
    name: str | None = None
    company: str | None = None
    address: str | None = None
    phone: str | None = None
    email: str | None = None


class CompanyProfile(BaseModel):
    name: str = ""
    address: str = ""
    phone: str = ""
    email: str = ""
    website: str = ""
    gst_number: str = ""


class LineItemRecord(BaseModel):
    """One equipment line of a quotation, as read from the store."""

    equipment_name: str | None = None
    equipment_code: str | None = None
    description: str | None = None
    quantity: Any = None
    base_rate: Any = None
    running_cost_per_km: Any = None


class QuotationRecord(BaseModel):
    """Quotation header fields with the joined customer and company data.

    Monetary fields are kept loosely typed: the pricing collaborator stores
    them as numerics, strings or nulls and the context builder coerces.
    """

    id: str
    quotation_number: str | None = None
    machine_type: str | None = None
    order_type: str | None = None
    number_of_days: Any = None
    working_hours: Any = None
    shift: str | None = None
    base_rate: Any = None
    total_rent: Any = None
    total_cost: Any = None
    working_cost: Any = None
    mob_demob_cost: Any = None
    food_accom_cost: Any = None
    usage_load_factor: Any = None
    risk_adjustment: Any = None
    rigger_amount: Any = None
    helper_amount: Any = None
    gst_amount: Any = None
    status: str | None = None
    notes: str | None = None
    valid_until: datetime | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None
    customer: CustomerRecord = Field(default_factory=CustomerRecord)
    company: CompanyProfile | None = None


# ── Rendering context (output of the context builder) ──


class CompanyBlock(CamelModel):
    name: str = ""
    address: str = ""
    phone: str = ""
    email: str = ""
    website: str = ""


class ClientBlock(CamelModel):
    name: str = ""
    company: str = ""
    address: str = ""
    phone: str = ""
    email: str = ""


class QuotationBlock(CamelModel):
    number: str = ""
    date: str = ""
    valid_until: str = ""
    machine_type: str = ""
    order_type: str = ""
    duration: str = ""
    working_hours: str = ""
    shift: str = ""
    payment_terms: str = ""
    tax_rate: float = 0.0


class ItemRow(CamelModel):
    no: int
    description: str
    job_type: str
    quantity: float
    duration: str
    rate: float
    rental: float
    mob_demob: float
    risk_usage: float


class ChargeRow(CamelModel):
    key: str
    label: str
    amount: float
    formatted: str


class Totals(CamelModel):
    """Money totals, already formatted for display."""

    subtotal: str = ""
    tax: str = ""
    total: str = ""
    working_cost: str = ""
    mob_demob_cost: str = ""
    food_accom_cost: str = ""
    risk_adjustment: str = ""
    usage_load_factor: str = ""
    risk_usage_total: str = ""


class TaxInfo(CamelModel):
    rate: float = 0.0


class RenderingContext(CamelModel):
    company: CompanyBlock = Field(default_factory=CompanyBlock)
    client: ClientBlock = Field(default_factory=ClientBlock)
    quotation: QuotationBlock = Field(default_factory=QuotationBlock)
    items: list[ItemRow] = Field(default_factory=list)
    charges: list[ChargeRow] = Field(default_factory=list)
    totals: Totals = Field(default_factory=Totals)
    tax: TaxInfo = Field(default_factory=TaxInfo)
    currency_symbol: str = ""

    def lookup_data(self) -> dict[str, Any]:
        """Mapping used for ``{{path}}`` placeholder lookup."""
        data = self.model_dump(by_alias=True)
        data["customer"] = data["client"]
        data["quotation"]["quotation_number"] = data["quotation"]["number"]
        data["quotation"]["valid_until"] = data["quotation"]["validUntil"]
        return data
