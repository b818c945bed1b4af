"""Quotation document service: resolve, build context, render, rasterize.

Rendering is side-effect free: the only I/O is the store reads and, for
downloads, the rasterizer call.
"""

import hashlib
import logging
import re
from dataclasses import dataclass
from datetime import datetime

from quotedoc.config import Settings, get_settings
from quotedoc.core.errors import QuotationNotFoundError
from quotedoc.schemas.document import ResolvedTemplateInfo
from quotedoc.schemas.template import ResolvedTemplate
from quotedoc.services.context_builder import build_rendering_context
from quotedoc.services.quotation_source import QuotationSource
from quotedoc.services.rasterizer import DocumentRasterizer, RasterResult, document_rasterizer
from quotedoc.services.renderer import RenderingEngine, rendering_engine
from quotedoc.services.template_resolver import TemplateResolver
from quotedoc.services.template_store import TemplateStore

logger = logging.getLogger(__name__)

_BODY_OPEN = re.compile(r"<body[^>]*>", re.IGNORECASE)


def compute_etag(template_id: str, updated_at: datetime | None, degraded: bool) -> str:
    """Weak validator for an iframe preview; a pure function of its inputs."""
    stamp = updated_at.isoformat() if updated_at else ""
    digest = hashlib.sha256(f"{template_id}|{stamp}|{int(degraded)}".encode("utf-8"))
    return f'W/"{digest.hexdigest()[:32]}"'


def etag_matches(if_none_match: str | None, etag: str) -> bool:
    if not if_none_match:
        return False
    if if_none_match.strip() == "*":
        return True
    opaque = etag.removeprefix("W/")
    for candidate in if_none_match.split(","):
        if candidate.strip().removeprefix("W/") == opaque:
            return True
    return False


def _comment_text(value: object) -> str:
    return str(value).replace("--", "- -").replace(">", "")


def template_info(resolved: ResolvedTemplate) -> ResolvedTemplateInfo:
    template = resolved.template
    return ResolvedTemplateInfo(
        id=template.id,
        name=template.name,
        theme=template.theme,
        source=resolved.source,
        requested_id=resolved.requested_id,
        element_count=len(template.elements),
        degraded=resolved.meta.degraded,
        degraded_columns=resolved.meta.degraded_columns,
    )


def debug_comment(resolved: ResolvedTemplate) -> str:
    """HTML comment identifying the template a document was rendered with."""
    template = resolved.template
    lines = [
        "TEMPLATE_DEBUG:",
        f"ID: {_comment_text(template.id)}",
        f"NAME: {_comment_text(template.name)}",
        f"ELEMENTS: {len(template.elements)}",
        f"THEME: {_comment_text(template.theme)}",
        f"SOURCE: {resolved.source.value}",
        f"REQUESTED_ID: {_comment_text(resolved.requested_id or 'none')}",
        f"DEGRADED: {str(resolved.meta.degraded).lower()}",
    ]
    if resolved.meta.degraded:
        reasons = "; ".join(
            f"{c.column}: {_comment_text(c.reason)}" for c in resolved.meta.degraded_columns
        )
        lines.append(f"DEGRADED_COLUMNS: {reasons}")
    return "<!-- " + "\n     ".join(lines) + " -->"


def template_headers(resolved: ResolvedTemplate) -> dict[str, str]:
    headers = {
        "X-Template-Id": resolved.template.id,
        "X-Template-Source": resolved.source.value,
        "X-Template-Degraded": str(resolved.meta.degraded).lower(),
    }
    if resolved.meta.degraded:
        headers["X-Template-Degraded-Columns"] = ",".join(resolved.meta.column_names)
    return headers


@dataclass
class RenderedDocument:
    quotation_id: str
    html: str
    resolved: ResolvedTemplate

    @property
    def etag(self) -> str:
        template = self.resolved.template
        return compute_etag(template.id, template.updated_at, self.resolved.meta.degraded)

    @property
    def headers(self) -> dict[str, str]:
        return template_headers(self.resolved)


class QuotationDocumentService:
    """Produces preview, print and download documents for one quotation."""

    def __init__(
        self,
        store: TemplateStore,
        quotations: QuotationSource,
        rasterizer: DocumentRasterizer = document_rasterizer,
        engine: RenderingEngine = rendering_engine,
        settings: Settings | None = None,
    ) -> None:
        self.resolver = TemplateResolver(store)
        self.quotations = quotations
        self.rasterizer = rasterizer
        self.engine = engine
        self.settings = settings or get_settings()

    async def render(self, quotation_id: str, template_id: str | None = None) -> RenderedDocument:
        """Resolve the template and render the quotation to HTML.

        Raises:
            QuotationNotFoundError: the quotation does not exist.
            TemplateNotFoundError: an explicit template id could not be honored.
        """
        loaded = await self.quotations.get_quotation_with_line_items(quotation_id)
        if loaded is None:
            raise QuotationNotFoundError(quotation_id)
        record, line_items = loaded

        resolved = await self.resolver.resolve(template_id)
        context = build_rendering_context(record, line_items, settings=self.settings)
        html = self.engine.render(resolved.template, context)

        comment = debug_comment(resolved)
        match = _BODY_OPEN.search(html)
        if match:
            html = html[: match.end()] + "\n" + comment + html[match.end():]
        else:
            html = comment + "\n" + html

        logger.info(
            "Rendered quotation %s with template %s (%s%s)",
            quotation_id,
            resolved.template.id,
            resolved.source.value,
            ", degraded" if resolved.meta.degraded else "",
        )
        return RenderedDocument(quotation_id=quotation_id, html=html, resolved=resolved)

    async def download(
        self, quotation_id: str, template_id: str | None = None
    ) -> tuple[RenderedDocument, RasterResult]:
        document = await self.render(quotation_id, template_id)
        result = await self.rasterizer.rasterize(document.html, document.resolved.template.settings)
        if result.is_fallback:
            logger.warning("Quotation %s delivered as printable HTML", quotation_id)
        return document, result
