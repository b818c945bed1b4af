"""FastAPI dependencies."""

from typing import Annotated

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from quotedoc.database import get_db
from quotedoc.services.document_service import QuotationDocumentService
from quotedoc.services.quotation_source import QuotationSource, SqlQuotationSource
from quotedoc.services.rasterizer import DocumentRasterizer, document_rasterizer
from quotedoc.services.template_repair import TemplateRepairService
from quotedoc.services.template_store import SqlTemplateStore, TemplateStore

DbSession = Annotated[AsyncSession, Depends(get_db)]


async def get_template_store(db: DbSession) -> TemplateStore:
    return SqlTemplateStore(db)


async def get_quotation_source(db: DbSession) -> QuotationSource:
    return SqlQuotationSource(db)


def get_rasterizer() -> DocumentRasterizer:
    """Process-wide rasterizer; overridden in tests."""
    return document_rasterizer


TemplateStoreDep = Annotated[TemplateStore, Depends(get_template_store)]
QuotationSourceDep = Annotated[QuotationSource, Depends(get_quotation_source)]
RasterizerDep = Annotated[DocumentRasterizer, Depends(get_rasterizer)]


async def get_document_service(
    store: TemplateStoreDep,
    quotations: QuotationSourceDep,
    rasterizer: RasterizerDep,
) -> QuotationDocumentService:
    return QuotationDocumentService(store, quotations, rasterizer=rasterizer)


async def get_repair_service(store: TemplateStoreDep) -> TemplateRepairService:
    return TemplateRepairService(store)


DocumentServiceDep = Annotated[QuotationDocumentService, Depends(get_document_service)]
RepairServiceDep = Annotated[TemplateRepairService, Depends(get_repair_service)]
