"""Template builder API schemas: writes, summaries, maintenance reports."""

from datetime import datetime
from typing import Any

from pydantic import Field

from quotedoc.schemas.template import Branding, CamelModel, PageSettings, TemplateMeta, ThemeName


class TemplateWrite(CamelModel):
    """Full template payload from the builder; saving replaces the whole row."""

    name: str = "Untitled Template"
    description: str | None = None
    theme: ThemeName = ThemeName.MODERN
    category: str | None = "Quotation"
    is_default: bool = False
    is_active: bool = True
    created_by: str | None = None
    elements: list[dict[str, Any]] = Field(default_factory=list)
    layout: dict[str, Any] = Field(default_factory=dict)
    settings: PageSettings = Field(default_factory=PageSettings)
    branding: Branding = Field(default_factory=Branding)


class TemplateSummary(CamelModel):
    id: str
    name: str
    description: str | None = None
    theme: str
    category: str | None = None
    is_default: bool
    is_active: bool
    element_count: int
    degraded: bool = False
    updated_at: datetime | None = None


class ColumnDiagnostic(CamelModel):
    type: str
    length: int | None = None
    starts_with: str | None = None


class TemplateDiagnostics(CamelModel):
    id: str
    name: str | None = None
    theme: str | None = None
    element_count: int = 0
    elements_preview: list[dict[str, Any]] = Field(default_factory=list)
    diagnostics: dict[str, ColumnDiagnostic]
    created_at: datetime | None = None
    updated_at: datetime | None = None


class DebugTemplatesResponse(CamelModel):
    success: bool = True
    count: int
    templates: list[TemplateDiagnostics]
    message: str = ""


class RawTemplateResponse(CamelModel):
    success: bool = True
    id: str
    diagnostics: dict[str, ColumnDiagnostic]
    raw: dict[str, Any]


class RepairReportEntry(CamelModel):
    id: str
    mutated: dict[str, bool]
    changed: bool
    error: str | None = None


class RepairResponse(CamelModel):
    success: bool = True
    repaired: int
    total: int
    report: list[RepairReportEntry]


class RepairJobResponse(CamelModel):
    success: bool = True
    job_id: str | None = None
    message: str = ""


class TemplateRead(CamelModel):
    success: bool = True
    template: dict[str, Any]
    meta: TemplateMeta
