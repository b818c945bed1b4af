"""Enhanced template model: user-editable quotation document definitions."""

from datetime import datetime

from sqlalchemy import Boolean, DateTime, String, Text, func
from sqlalchemy.orm import Mapped, mapped_column

from quotedoc.database import Base

# Columns holding encoded structured data. Kept as TEXT because stored
# rows may be malformed or double-encoded; decoding happens in
# quotedoc.core.encoding only.
STRUCTURED_COLUMNS: tuple[str, ...] = ("elements", "layout", "settings", "branding")


class EnhancedTemplate(Base):
    __tablename__ = "enhanced_templates"

    id: Mapped[str] = mapped_column(String(100), primary_key=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    theme: Mapped[str] = mapped_column(String(50), default="MODERN")
    category: Mapped[str | None] = mapped_column(String(100), nullable=True)
    is_default: Mapped[bool] = mapped_column(Boolean, default=False, index=True)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, index=True)
    created_by: Mapped[str | None] = mapped_column(String(100), nullable=True)

    elements: Mapped[str | None] = mapped_column(Text, nullable=True)
    layout: Mapped[str | None] = mapped_column(Text, nullable=True)
    settings: Mapped[str | None] = mapped_column(Text, nullable=True)
    branding: Mapped[str | None] = mapped_column(Text, nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
    )
