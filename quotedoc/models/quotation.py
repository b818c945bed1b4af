"""Business records read by the document pipeline (owned by the CRM)."""

from datetime import datetime

from sqlalchemy import DateTime, ForeignKey, Integer, Numeric, String, Text, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from quotedoc.database import Base


class Customer(Base):
    __tablename__ = "customers"

    id: Mapped[str] = mapped_column(String(100), primary_key=True)
    name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    company_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    email: Mapped[str | None] = mapped_column(String(255), nullable=True)
    phone: Mapped[str | None] = mapped_column(String(50), nullable=True)
    address: Mapped[str | None] = mapped_column(Text, nullable=True)


class Equipment(Base):
    __tablename__ = "equipment"

    id: Mapped[str] = mapped_column(String(100), primary_key=True)
    equipment_id: Mapped[str | None] = mapped_column(String(100), nullable=True)
    name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    category: Mapped[str | None] = mapped_column(String(100), nullable=True)
    max_lifting_capacity: Mapped[float | None] = mapped_column(Numeric, nullable=True)


class Quotation(Base):
    __tablename__ = "quotations"

    id: Mapped[str] = mapped_column(String(100), primary_key=True)
    customer_id: Mapped[str | None] = mapped_column(
        String(100),
        ForeignKey("customers.id", ondelete="SET NULL"),
        nullable=True,
    )
    customer_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    customer_contact: Mapped[str | None] = mapped_column(Text, nullable=True)
    machine_type: Mapped[str | None] = mapped_column(String(100), nullable=True)
    order_type: Mapped[str | None] = mapped_column(String(50), nullable=True)
    number_of_days: Mapped[int | None] = mapped_column(Integer, nullable=True)
    working_hours: Mapped[float | None] = mapped_column(Numeric, nullable=True)
    shift: Mapped[str | None] = mapped_column(String(50), nullable=True)
    site_distance: Mapped[float | None] = mapped_column(Numeric, nullable=True)
    usage: Mapped[str | None] = mapped_column(String(50), nullable=True)
    risk_factor: Mapped[str | None] = mapped_column(String(50), nullable=True)

    base_rate: Mapped[float | None] = mapped_column(Numeric, nullable=True)
    total_rent: Mapped[float | None] = mapped_column(Numeric, nullable=True)
    total_cost: Mapped[float | None] = mapped_column(Numeric, nullable=True)
    working_cost: Mapped[float | None] = mapped_column(Numeric, nullable=True)
    mob_demob_cost: Mapped[float | None] = mapped_column(Numeric, nullable=True)
    food_accom_cost: Mapped[float | None] = mapped_column(Numeric, nullable=True)
    usage_load_factor: Mapped[float | None] = mapped_column(Numeric, nullable=True)
    risk_adjustment: Mapped[float | None] = mapped_column(Numeric, nullable=True)
    rigger_amount: Mapped[float | None] = mapped_column(Numeric, nullable=True)
    helper_amount: Mapped[float | None] = mapped_column(Numeric, nullable=True)
    gst_amount: Mapped[float | None] = mapped_column(Numeric, nullable=True)

    status: Mapped[str | None] = mapped_column(String(50), nullable=True)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    valid_until: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
    )

    # Relationships
    customer: Mapped[Customer | None] = relationship("Customer")
    machines: Mapped[list["QuotationMachine"]] = relationship(
        "QuotationMachine",
        order_by="QuotationMachine.created_at",
    )


class QuotationMachine(Base):
    __tablename__ = "quotation_machines"

    id: Mapped[str] = mapped_column(String(100), primary_key=True)
    quotation_id: Mapped[str] = mapped_column(
        String(100),
        ForeignKey("quotations.id", ondelete="CASCADE"),
        index=True,
    )
    equipment_id: Mapped[str | None] = mapped_column(
        String(100),
        ForeignKey("equipment.id", ondelete="SET NULL"),
        nullable=True,
    )
    quantity: Mapped[int | None] = mapped_column(Integer, nullable=True)
    base_rate: Mapped[float | None] = mapped_column(Numeric, nullable=True)
    running_cost_per_km: Mapped[float | None] = mapped_column(Numeric, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
    )

    equipment: Mapped[Equipment | None] = relationship("Equipment")
