"""Template resolver: picks the template to render.

Priority: explicit id -> configured default -> store default -> built-in
fallback. An explicit id never falls through: rendering a different
document than the one asked for is worse than failing.
"""

import logging

from quotedoc.core.errors import TemplateMismatchError, TemplateNotFoundError
from quotedoc.schemas.template import (
    ClientInfoElement,
    CompanyInfoElement,
    HeaderContent,
    HeaderElement,
    ItemsTableElement,
    LoadedTemplate,
    QuotationTemplate,
    ResolvedTemplate,
    TemplateMeta,
    TemplateSource,
    ThemeName,
    TotalsElement,
)
from quotedoc.services.template_store import TemplateStore

logger = logging.getLogger(__name__)

FALLBACK_TEMPLATE_ID = "builtin-default"


def build_fallback_template() -> QuotationTemplate:
    """Minimal in-memory template used when nothing usable is stored."""
    return QuotationTemplate(
        id=FALLBACK_TEMPLATE_ID,
        name="Built-in Default Template",
        description="Fallback quotation template",
        theme=ThemeName.PROFESSIONAL.value,
        category="Quotation",
        is_default=True,
        is_active=True,
        created_by="system",
        elements=[
            HeaderElement(
                id="header-1",
                content=HeaderContent(
                    title="{{company.name}}",
                    subtitle="QUOTATION",
                    show_date=True,
                    show_quotation_number=True,
                ),
            ),
            CompanyInfoElement(id="company-info-1"),
            ClientInfoElement(id="client-info-1"),
            ItemsTableElement(id="items-table-1"),
            TotalsElement(id="totals-1"),
        ],
    )


class TemplateResolver:
    """Resolves the template for one render request."""

    def __init__(self, store: TemplateStore) -> None:
        self.store = store

    async def resolve(self, explicit_id: str | None = None) -> ResolvedTemplate:
        if explicit_id:
            return await self._resolve_explicit(explicit_id)

        loaded = await self._configured_default()
        if loaded:
            return self._resolved(loaded, TemplateSource.CONFIGURED)

        loaded = await self._store_default()
        if loaded:
            return self._resolved(loaded, TemplateSource.STORE_DEFAULT)

        logger.info("No stored default template available, using built-in fallback")
        return ResolvedTemplate(
            template=build_fallback_template(),
            meta=TemplateMeta(),
            source=TemplateSource.FALLBACK,
        )

    async def _resolve_explicit(self, template_id: str) -> ResolvedTemplate:
        loaded = await self.store.get_template_by_id(template_id)
        if loaded is None:
            logger.error("Requested template %s does not exist", template_id)
            raise TemplateNotFoundError(template_id)
        if loaded.template.id != template_id:
            logger.error(
                "Template mismatch: requested %s but store returned %s",
                template_id,
                loaded.template.id,
            )
            raise TemplateMismatchError(template_id, loaded.template.id)
        return self._resolved(loaded, TemplateSource.EXPLICIT, requested_id=template_id)

    async def _configured_default(self) -> LoadedTemplate | None:
        try:
            configured_id = await self.store.get_configured_default_id()
            if not configured_id:
                return None
            loaded = await self.store.get_template_by_id(configured_id)
        except Exception as e:
            logger.warning(f"Configured default template lookup failed: {e}")
            return None

        if loaded is None:
            logger.warning("Configured default template %s not found", configured_id)
            return None
        if loaded.template.id != configured_id or not loaded.template.is_active:
            logger.warning("Configured default template %s is not usable", configured_id)
            return None
        return loaded

    async def _store_default(self) -> LoadedTemplate | None:
        try:
            return await self.store.get_default_template()
        except Exception as e:
            logger.warning(f"Default template query failed, falling back: {e}")
            return None

    @staticmethod
    def _resolved(
        loaded: LoadedTemplate,
        source: TemplateSource,
        requested_id: str | None = None,
    ) -> ResolvedTemplate:
        logger.info(
            "Resolved template %s (%s) via %s%s",
            loaded.template.id,
            loaded.template.name,
            source.value,
            " [degraded]" if loaded.meta.degraded else "",
        )
        return ResolvedTemplate(
            template=loaded.template,
            meta=loaded.meta,
            source=source,
            requested_id=requested_id,
        )
