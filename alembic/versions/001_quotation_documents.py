"""Quotation document tables.

Revision ID: 001
Revises: 
Create Date: 2026-10-17

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    # Templates (structured columns are TEXT: stored rows may be malformed)
    op.create_table(
        "enhanced_templates",
        sa.Column("id", sa.String(100), primary_key=True),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("description", sa.Text),
        sa.Column("theme", sa.String(50), server_default="MODERN"),
        sa.Column("category", sa.String(100)),
        sa.Column("is_default", sa.Boolean, server_default=sa.false()),
        sa.Column("is_active", sa.Boolean, server_default=sa.true()),
        sa.Column("created_by", sa.String(100)),
        sa.Column("elements", sa.Text),
        sa.Column("layout", sa.Text),
        sa.Column("settings", sa.Text),
        sa.Column("branding", sa.Text),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )
    op.create_index("ix_enhanced_templates_is_default", "enhanced_templates", ["is_default"])
    op.create_index("ix_enhanced_templates_is_active", "enhanced_templates", ["is_active"])

    # System configuration
    op.create_table(
        "system_config",
        sa.Column("config_key", sa.String(100), primary_key=True),
        sa.Column("config_value", sa.Text),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )

    # Company profile
    op.create_table(
        "company_settings",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("company_name", sa.String(255), nullable=False),
        sa.Column("address", sa.Text),
        sa.Column("phone", sa.String(50)),
        sa.Column("email", sa.String(255)),
        sa.Column("website", sa.String(255)),
        sa.Column("gst_number", sa.String(50)),
        sa.Column("is_active", sa.Boolean, server_default=sa.true()),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )

    # Customers
    op.create_table(
        "customers",
        sa.Column("id", sa.String(100), primary_key=True),
        sa.Column("name", sa.String(255)),
        sa.Column("company_name", sa.String(255)),
        sa.Column("email", sa.String(255)),
        sa.Column("phone", sa.String(50)),
        sa.Column("address", sa.Text),
    )

    # Equipment
    op.create_table(
        "equipment",
        sa.Column("id", sa.String(100), primary_key=True),
        sa.Column("equipment_id", sa.String(100)),
        sa.Column("name", sa.String(255)),
        sa.Column("category", sa.String(100)),
        sa.Column("max_lifting_capacity", sa.Numeric),
    )

    # Quotations
    op.create_table(
        "quotations",
        sa.Column("id", sa.String(100), primary_key=True),
        sa.Column("customer_id", sa.String(100), sa.ForeignKey("customers.id", ondelete="SET NULL")),
        sa.Column("customer_name", sa.String(255)),
        sa.Column("customer_contact", sa.Text),
        sa.Column("machine_type", sa.String(100)),
        sa.Column("order_type", sa.String(50)),
        sa.Column("number_of_days", sa.Integer),
        sa.Column("working_hours", sa.Numeric),
        sa.Column("shift", sa.String(50)),
        sa.Column("site_distance", sa.Numeric),
        sa.Column("usage", sa.String(50)),
        sa.Column("risk_factor", sa.String(50)),
        sa.Column("base_rate", sa.Numeric),
        sa.Column("total_rent", sa.Numeric),
        sa.Column("total_cost", sa.Numeric),
        sa.Column("working_cost", sa.Numeric),
        sa.Column("mob_demob_cost", sa.Numeric),
        sa.Column("food_accom_cost", sa.Numeric),
        sa.Column("usage_load_factor", sa.Numeric),
        sa.Column("risk_adjustment", sa.Numeric),
        sa.Column("rigger_amount", sa.Numeric),
        sa.Column("helper_amount", sa.Numeric),
        sa.Column("gst_amount", sa.Numeric),
        sa.Column("status", sa.String(50)),
        sa.Column("notes", sa.Text),
        sa.Column("valid_until", sa.DateTime(timezone=True)),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )

    # Quotation equipment lines
    op.create_table(
        "quotation_machines",
        sa.Column("id", sa.String(100), primary_key=True),
        sa.Column("quotation_id", sa.String(100), sa.ForeignKey("quotations.id", ondelete="CASCADE"), nullable=False),
        sa.Column("equipment_id", sa.String(100), sa.ForeignKey("equipment.id", ondelete="SET NULL")),
        sa.Column("quantity", sa.Integer),
        sa.Column("base_rate", sa.Numeric),
        sa.Column("running_cost_per_km", sa.Numeric),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )
    op.create_index("ix_quotation_machines_quotation_id", "quotation_machines", ["quotation_id"])


def downgrade() -> None:
    op.drop_table("quotation_machines")
    op.drop_table("quotations")
    op.drop_table("equipment")
    op.drop_table("customers")
    op.drop_table("company_settings")
    op.drop_table("system_config")
    op.drop_table("enhanced_templates")
