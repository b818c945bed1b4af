"""Template repair service: self-healing of malformed stored columns.

Maintenance only, never on the render path. Each row is written in its
own transaction, so an interrupted pass can simply be run again.
"""

import json
import logging
from typing import Any

from quotedoc.core.encoding import (
    CORRUPT_LITERALS,
    decode_structured_field,
    describe_raw_field,
    normalize_encoded_field,
)
from quotedoc.models.template import STRUCTURED_COLUMNS
from quotedoc.schemas.template_api import (
    ColumnDiagnostic,
    RawTemplateResponse,
    RepairReportEntry,
    TemplateDiagnostics,
)
from quotedoc.services.template_store import RawTemplateRow, TemplateStore

logger = logging.getLogger(__name__)

COLUMN_TYPES: dict[str, type] = {
    "elements": list,
    "layout": dict,
    "settings": dict,
    "branding": dict,
}


def _repair_element_contents(elements: list[Any]) -> bool:
    """Fix element ``content`` values that are corrupted or encoded strings.

    Plain string contents (a bare title or text) are legitimate and left
    alone. Returns True when anything changed.
    """
    changed = False
    for element in elements:
        if not isinstance(element, dict):
            continue
        content = element.get("content")
        if not isinstance(content, str):
            continue
        text = content.strip()
        if text in CORRUPT_LITERALS:
            element["content"] = {}
            changed = True
        elif text.startswith(("{", '"{')):
            element["content"] = decode_structured_field(text, dict, "content").value
            changed = True
    return changed


def fix_column(raw: Any, column: str) -> str:
    """Canonical single encoding of one stored structured column."""
    expected = COLUMN_TYPES[column]
    fixed = normalize_encoded_field(raw, expected, column)
    if column != "elements":
        return fixed
    elements = decode_structured_field(fixed, list, column).value
    if _repair_element_contents(elements):
        return json.dumps(elements, ensure_ascii=False)
    return fixed


class TemplateRepairService:
    """Scans stored templates and normalizes their structured columns."""

    def __init__(self, store: TemplateStore) -> None:
        self.store = store

    async def repair_all(self) -> list[RepairReportEntry]:
        """Repair every stored template; idempotent."""
        rows = await self.store.list_raw_templates()
        report: list[RepairReportEntry] = []

        for row in rows:
            mutated = {column: False for column in STRUCTURED_COLUMNS}
            patch: dict[str, str] = {}
            for column in STRUCTURED_COLUMNS:
                raw = getattr(row, column)
                fixed = fix_column(raw, column)
                if fixed != raw:
                    mutated[column] = True
                    patch[column] = fixed

            if not patch:
                report.append(RepairReportEntry(id=row.id, mutated=mutated, changed=False))
                continue

            try:
                await self.store.update_template_fields(row.id, patch)
            except Exception as e:
                logger.exception("Failed to repair template %s", row.id)
                report.append(
                    RepairReportEntry(
                        id=row.id,
                        mutated={column: False for column in STRUCTURED_COLUMNS},
                        changed=False,
                        error=str(e),
                    )
                )
                continue

            logger.info("Repaired template %s columns: %s", row.id, sorted(patch))
            report.append(RepairReportEntry(id=row.id, mutated=mutated, changed=True))

        repaired = sum(1 for entry in report if entry.changed)
        logger.info("Template repair finished: %d/%d repaired", repaired, len(report))
        return report

    @staticmethod
    def diagnose_row(row: RawTemplateRow) -> TemplateDiagnostics:
        """Structural diagnostic of a stored row, tolerant of corruption."""
        diagnostics = {
            column: ColumnDiagnostic.model_validate(describe_raw_field(getattr(row, column)))
            for column in STRUCTURED_COLUMNS
        }
        elements = decode_structured_field(row.elements, list, "elements").value
        preview = []
        for element in elements[:3]:
            if not isinstance(element, dict):
                preview.append({"type": None, "id": None, "content": str(element)[:100]})
                continue
            content = element.get("content")
            if not isinstance(content, str):
                content = json.dumps(content, ensure_ascii=False)[:100]
            preview.append({"type": element.get("type"), "id": element.get("id"), "content": content})

        return TemplateDiagnostics(
            id=row.id,
            name=row.name,
            theme=row.theme,
            element_count=len(elements),
            elements_preview=preview,
            diagnostics=diagnostics,
            created_at=row.created_at,
            updated_at=row.updated_at,
        )

    async def diagnose_all(self) -> list[TemplateDiagnostics]:
        rows = await self.store.list_raw_templates()
        return [self.diagnose_row(row) for row in rows]

    async def diagnose(self, template_id: str) -> RawTemplateResponse | None:
        row = await self.store.get_raw_template(template_id)
        if row is None:
            return None
        diagnostics = self.diagnose_row(row).diagnostics
        raw = {
            "id": row.id,
            "name": row.name,
            "description": row.description,
            "theme": row.theme,
            "category": row.category,
            "isDefault": row.is_default,
            "isActive": row.is_active,
            "createdBy": row.created_by,
            "elements": row.elements,
            "layout": row.layout,
            "settings": row.settings,
            "branding": row.branding,
            "createdAt": row.created_at.isoformat() if row.created_at else None,
            "updatedAt": row.updated_at.isoformat() if row.updated_at else None,
        }
        return RawTemplateResponse(id=row.id, diagnostics=diagnostics, raw=raw)
