"""Pydantic schemas for templates, rendering context and API payloads."""

from quotedoc.schemas.context import LineItemRecord, QuotationRecord, RenderingContext
from quotedoc.schemas.document import DocumentRequest, PreviewResponse, PrintCapabilities
from quotedoc.schemas.template import (
    ElementType,
    LoadedTemplate,
    QuotationTemplate,
    ResolvedTemplate,
    TemplateMeta,
    TemplateSource,
)
from quotedoc.schemas.template_api import TemplateSummary, TemplateWrite
