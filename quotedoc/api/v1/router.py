"""API v1 router aggregating all endpoints."""

from fastapi import APIRouter

from quotedoc.api.v1 import quotation_documents, template_maintenance, templates

api_router = APIRouter()

api_router.include_router(quotation_documents.router, prefix="/quotations", tags=["quotation-documents"])
# Registered before the template CRUD routes so "/maintenance/..." never matches "/{template_id}".
api_router.include_router(
    template_maintenance.router, prefix="/templates/maintenance", tags=["template-maintenance"]
)
api_router.include_router(templates.router, prefix="/templates", tags=["templates"])
