"""Template store adapter: persistence of enhanced templates.

Stored structured columns are decoded through ``quotedoc.core.encoding``
here and nowhere else on the read path; callers only ever see canonical
``QuotationTemplate`` objects with a ``TemplateMeta`` describing anything
that had to be defaulted.
"""

from __future__ import annotations

import json
import logging
from contextlib import asynccontextmanager
from dataclasses import dataclass
from datetime import datetime
from typing import Any, AsyncGenerator, Protocol, runtime_checkable
from uuid import uuid4

from pydantic import ValidationError
from sqlalchemy import func, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from quotedoc.config import get_settings
from quotedoc.core.elements import element_to_json, parse_elements
from quotedoc.core.encoding import decode_structured_field
from quotedoc.models.system_config import SystemConfig
from quotedoc.models.template import EnhancedTemplate
from quotedoc.schemas.template import (
    Branding,
    LoadedTemplate,
    PageSettings,
    QuotationTemplate,
    TemplateMeta,
)
from quotedoc.schemas.template_api import TemplateWrite

settings = get_settings()
logger = logging.getLogger(__name__)


@dataclass
class RawTemplateRow:
    """A template row exactly as stored, structured columns undecoded."""

    id: str
    name: str | None = None
    description: str | None = None
    theme: str | None = None
    category: str | None = None
    is_default: bool = False
    is_active: bool = True
    created_by: str | None = None
    elements: Any = None
    layout: Any = None
    settings: Any = None
    branding: Any = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @classmethod
    def from_model(cls, row: EnhancedTemplate) -> RawTemplateRow:
        return cls(
            id=row.id,
            name=row.name,
            description=row.description,
            theme=row.theme,
            category=row.category,
            is_default=bool(row.is_default),
            is_active=bool(row.is_active),
            created_by=row.created_by,
            elements=row.elements,
            layout=row.layout,
            settings=row.settings,
            branding=row.branding,
            created_at=row.created_at,
            updated_at=row.updated_at,
        )


def decode_template_row(row: RawTemplateRow) -> LoadedTemplate:
    """Decode a stored row into a canonical template; never raises."""
    meta = TemplateMeta()

    decoded = decode_structured_field(row.elements, list, "elements")
    if decoded.problem:
        meta.add("elements", decoded.problem)
    elements, problems = parse_elements(decoded.value)
    for problem in problems:
        meta.add("elements", problem)

    layout = decode_structured_field(row.layout, dict, "layout")
    if layout.problem:
        meta.add("layout", layout.problem)

    page = decode_structured_field(row.settings, dict, "settings")
    if page.problem:
        meta.add("settings", page.problem)
    try:
        page_settings = PageSettings.model_validate(page.value)
    except ValidationError:
        meta.add("settings", "invalid page settings")
        page_settings = PageSettings()

    brand = decode_structured_field(row.branding, dict, "branding")
    if brand.problem:
        meta.add("branding", brand.problem)
    try:
        branding = Branding.model_validate(brand.value)
    except ValidationError:
        meta.add("branding", "invalid branding")
        branding = Branding()

    if meta.degraded:
        logger.warning(
            "Template %s decoded in degraded mode: %s",
            row.id,
            [f"{c.column}: {c.reason}" for c in meta.degraded_columns],
        )

    template = QuotationTemplate(
        id=row.id,
        name=row.name or "Untitled Template",
        description=row.description,
        theme=row.theme or "MODERN",
        category=row.category,
        is_default=row.is_default,
        is_active=row.is_active,
        created_by=row.created_by,
        created_at=row.created_at,
        updated_at=row.updated_at,
        elements=elements,
        layout=layout.value,
        settings=page_settings,
        branding=branding,
    )
    return LoadedTemplate(template=template, meta=meta)


def template_to_json(template: QuotationTemplate) -> dict[str, Any]:
    """Canonical template in the camelCase shape the builder edits."""
    data = template.model_dump(mode="json", by_alias=True)
    data["elements"] = [element_to_json(e) for e in template.elements]
    return data


def encode_template_columns(data: TemplateWrite) -> dict[str, str]:
    """Normalize a builder payload into single-encoded structured columns."""
    elements, problems = parse_elements(data.elements)
    if problems:
        logger.info("Normalized %d element problem(s) on save", len(problems))
    return {
        "elements": json.dumps([element_to_json(e) for e in elements], ensure_ascii=False),
        "layout": json.dumps(data.layout, ensure_ascii=False),
        "settings": json.dumps(data.settings.model_dump(mode="json", by_alias=True), ensure_ascii=False),
        "branding": json.dumps(data.branding.model_dump(mode="json", by_alias=True), ensure_ascii=False),
    }


@runtime_checkable
class TemplateStore(Protocol):
    """Narrow persistence interface used by the resolver and repair service."""

    async def get_template_by_id(self, template_id: str) -> LoadedTemplate | None: ...

    async def get_default_template(self) -> LoadedTemplate | None: ...

    async def get_configured_default_id(self) -> str | None: ...

    async def list_templates(self, include_inactive: bool = False) -> list[LoadedTemplate]: ...

    async def list_raw_templates(self) -> list[RawTemplateRow]: ...

    async def get_raw_template(self, template_id: str) -> RawTemplateRow | None: ...

    async def update_template_fields(self, template_id: str, patch: dict[str, Any]) -> None: ...

    async def create_template(self, data: TemplateWrite) -> LoadedTemplate: ...

    async def replace_template(self, template_id: str, data: TemplateWrite) -> LoadedTemplate | None: ...

    async def deactivate_template(self, template_id: str) -> bool: ...

    async def set_default_template(self, template_id: str) -> bool: ...


class SqlTemplateStore:
    """TemplateStore over the ``enhanced_templates`` table."""

    def __init__(self, db: AsyncSession) -> None:
        self.db = db

    @asynccontextmanager
    async def _rolling_back(self) -> AsyncGenerator[None, None]:
        """Roll back a failed statement so the session stays usable afterwards."""
        try:
            yield
        except SQLAlchemyError:
            await self.db.rollback()
            raise

    async def _get_row(self, template_id: str) -> EnhancedTemplate | None:
        result = await self.db.execute(
            select(EnhancedTemplate).where(EnhancedTemplate.id == template_id)
        )
        return result.scalar_one_or_none()

    # ── Reads ──

    async def get_template_by_id(self, template_id: str) -> LoadedTemplate | None:
        async with self._rolling_back():
            row = await self._get_row(template_id)
        if not row:
            return None
        return decode_template_row(RawTemplateRow.from_model(row))

    async def get_default_template(self) -> LoadedTemplate | None:
        async with self._rolling_back():
            result = await self.db.execute(
                select(EnhancedTemplate)
                .where(
                    EnhancedTemplate.is_default.is_(True),
                    EnhancedTemplate.is_active.is_(True),
                )
                .order_by(EnhancedTemplate.updated_at.desc())
                .limit(1)
            )
            row = result.scalar_one_or_none()
        if not row:
            return None
        return decode_template_row(RawTemplateRow.from_model(row))

    async def get_configured_default_id(self) -> str | None:
        async with self._rolling_back():
            result = await self.db.execute(
                select(SystemConfig.config_value).where(
                    SystemConfig.config_key == settings.default_template_config_key
                )
            )
            value = result.scalar_one_or_none()
        if not value:
            return None
        # Config values are sometimes stored JSON-encoded ("\"tpl_x\"").
        value = value.strip().strip('"').strip()
        return value or None

    async def list_templates(self, include_inactive: bool = False) -> list[LoadedTemplate]:
        q = select(EnhancedTemplate).order_by(EnhancedTemplate.updated_at.desc())
        if not include_inactive:
            q = q.where(EnhancedTemplate.is_active.is_(True))
        async with self._rolling_back():
            result = await self.db.execute(q)
            rows = list(result.scalars().all())
        return [decode_template_row(RawTemplateRow.from_model(r)) for r in rows]

    async def list_raw_templates(self) -> list[RawTemplateRow]:
        async with self._rolling_back():
            result = await self.db.execute(
                select(EnhancedTemplate).order_by(EnhancedTemplate.created_at.desc())
            )
            rows = list(result.scalars().all())
        return [RawTemplateRow.from_model(r) for r in rows]

    async def get_raw_template(self, template_id: str) -> RawTemplateRow | None:
        async with self._rolling_back():
            row = await self._get_row(template_id)
        return RawTemplateRow.from_model(row) if row else None

    # ── Writes ──

    async def update_template_fields(self, template_id: str, patch: dict[str, Any]) -> None:
        """Update columns of one row in its own transaction."""
        async with self._rolling_back():
            await self.db.execute(
                update(EnhancedTemplate)
                .where(EnhancedTemplate.id == template_id)
                .values(**patch, updated_at=func.now())
            )
            await self.db.commit()

    async def create_template(self, data: TemplateWrite) -> LoadedTemplate:
        row = EnhancedTemplate(
            id=f"tpl_{uuid4().hex[:12]}",
            name=data.name,
            description=data.description,
            theme=data.theme.value,
            category=data.category,
            is_default=False,
            is_active=data.is_active,
            created_by=data.created_by,
            **encode_template_columns(data),
        )
        self.db.add(row)
        await self.db.flush()
        if data.is_default:
            await self.set_default_template(row.id)
        await self.db.refresh(row)
        return decode_template_row(RawTemplateRow.from_model(row))

    async def replace_template(self, template_id: str, data: TemplateWrite) -> LoadedTemplate | None:
        """Full replace on save; concurrent editors resolve as last writer wins."""
        row = await self._get_row(template_id)
        if not row:
            return None
        row.name = data.name
        row.description = data.description
        row.theme = data.theme.value
        row.category = data.category
        row.is_active = data.is_active
        for column, value in encode_template_columns(data).items():
            setattr(row, column, value)
        await self.db.flush()
        if data.is_default and data.is_active:
            await self.set_default_template(row.id)
        elif not data.is_default and row.is_default:
            row.is_default = False
            await self.db.flush()
        await self.db.refresh(row)
        return decode_template_row(RawTemplateRow.from_model(row))

    async def deactivate_template(self, template_id: str) -> bool:
        row = await self._get_row(template_id)
        if not row:
            return False
        row.is_active = False
        row.is_default = False
        await self.db.flush()
        return True

    async def set_default_template(self, template_id: str) -> bool:
        """Make one template the single system-wide default."""
        row = await self._get_row(template_id)
        if not row or not row.is_active:
            return False
        await self.db.execute(
            update(EnhancedTemplate)
            .where(EnhancedTemplate.id != template_id, EnhancedTemplate.is_default.is_(True))
            .values(is_default=False)
        )
        row.is_default = True
        await self.db.flush()
        return True
