"""SQLAlchemy models package."""

from quotedoc.models.template import EnhancedTemplate, STRUCTURED_COLUMNS
from quotedoc.models.system_config import SystemConfig
from quotedoc.models.company import CompanySettings
from quotedoc.models.quotation import Customer, Equipment, Quotation, QuotationMachine

__all__ = [
    "EnhancedTemplate",
    "STRUCTURED_COLUMNS",
    "SystemConfig",
    "CompanySettings",
    "Customer",
    "Equipment",
    "Quotation",
    "QuotationMachine",
]
