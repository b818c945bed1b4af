"""Quotation document delivery schemas."""

from pydantic import Field

from quotedoc.schemas.template import CamelModel, DegradedColumn, TemplateSource


class DocumentRequest(CamelModel):
    """Body of the print and download endpoints."""

    quotation_id: str = Field(min_length=1)
    template_id: str | None = None


class ResolvedTemplateInfo(CamelModel):
    id: str
    name: str
    theme: str
    source: TemplateSource
    requested_id: str | None = None
    element_count: int
    degraded: bool = False
    degraded_columns: list[DegradedColumn] = Field(default_factory=list)


class PreviewResponse(CamelModel):
    success: bool = True
    quotation_id: str
    html: str
    resolved_template_meta: ResolvedTemplateInfo


class PrintCapabilities(CamelModel):
    success: bool = True
    enabled: bool
    engine: str
    page_formats: list[str]
    orientations: list[str]
    timeout_seconds: float
