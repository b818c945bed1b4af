"""Quotation document endpoints: preview, iframe preview, print, download."""

import re
from typing import Annotated, Literal

from fastapi import APIRouter, Header, Query, Response, status
from fastapi.responses import HTMLResponse
from markupsafe import escape

from quotedoc.core.errors import QuotationNotFoundError, TemplateNotFoundError
from quotedoc.deps import DocumentServiceDep, RasterizerDep
from quotedoc.schemas.document import DocumentRequest, PreviewResponse, PrintCapabilities
from quotedoc.services.document_service import etag_matches, template_info
from quotedoc.services.rasterizer import wrap_html_for_print

router = APIRouter()

TemplateIdQuery = Annotated[str | None, Query(alias="templateId")]

IFRAME_HEADERS = {
    "X-Frame-Options": "SAMEORIGIN",
    "Content-Security-Policy": "frame-ancestors 'self'",
}


_UNSAFE_FILENAME = re.compile(r"[^\w.-]")


def _filename(quotation_id: str, extension: str) -> str:
    safe_id = _UNSAFE_FILENAME.sub("_", quotation_id)
    return f"quotation_{safe_id}.{extension}"


@router.get("/print/capabilities", response_model=PrintCapabilities)
async def print_capabilities(rasterizer: RasterizerDep) -> PrintCapabilities:
    """Page formats and orientations supported for PDF download."""
    return PrintCapabilities.model_validate(rasterizer.capabilities())


@router.get("/{quotation_id}/preview", response_model=None)
async def preview_quotation(
    quotation_id: str,
    service: DocumentServiceDep,
    template_id: TemplateIdQuery = None,
    output_format: Annotated[Literal["html", "json"], Query(alias="format")] = "html",
) -> Response | PreviewResponse:
    """Render a quotation for preview. Never rasterizes."""
    document = await service.render(quotation_id, template_id)
    if output_format == "json":
        payload = PreviewResponse(
            quotation_id=quotation_id,
            html=document.html,
            resolved_template_meta=template_info(document.resolved),
        )
        response = Response(
            content=payload.model_dump_json(by_alias=True),
            media_type="application/json",
        )
    else:
        response = HTMLResponse(content=document.html)
    response.headers.update(document.headers)
    return response


@router.get("/{quotation_id}/preview/iframe", response_class=HTMLResponse)
async def preview_quotation_iframe(
    quotation_id: str,
    service: DocumentServiceDep,
    template_id: TemplateIdQuery = None,
    if_none_match: Annotated[str | None, Header()] = None,
) -> Response:
    """Embeddable preview with a weak validator; unchanged documents answer 304."""
    try:
        document = await service.render(quotation_id, template_id)
    except (QuotationNotFoundError, TemplateNotFoundError) as e:
        body = (
            "<!DOCTYPE html><html><head><meta charset=\"utf-8\"><title>Not found</title></head>"
            f"<body><h3>Preview unavailable</h3><p>{escape(str(e))}</p></body></html>"
        )
        return HTMLResponse(content=body, status_code=status.HTTP_404_NOT_FOUND, headers=IFRAME_HEADERS)

    etag = document.etag
    headers = {
        **IFRAME_HEADERS,
        **document.headers,
        "ETag": etag,
        "Cache-Control": "no-cache",
    }
    if etag_matches(if_none_match, etag):
        return Response(status_code=status.HTTP_304_NOT_MODIFIED, headers=headers)
    return HTMLResponse(content=document.html, headers=headers)


@router.post("/print", response_class=HTMLResponse)
async def print_quotation(data: DocumentRequest, service: DocumentServiceDep) -> HTMLResponse:
    """HTML for direct browser printing."""
    document = await service.render(data.quotation_id, data.template_id)
    return HTMLResponse(content=wrap_html_for_print(document.html), headers=document.headers)


@router.post("/print/pdf")
async def download_quotation(data: DocumentRequest, service: DocumentServiceDep) -> Response:
    """PDF download, or printable HTML when the rasterizer is unavailable."""
    document, result = await service.download(data.quotation_id, data.template_id)
    headers = dict(document.headers)
    if result.is_fallback:
        headers["Content-Disposition"] = f"inline; filename={_filename(data.quotation_id, 'html')}"
        headers["X-Document-Fallback"] = "true"
    else:
        headers["Content-Disposition"] = f"attachment; filename={_filename(data.quotation_id, 'pdf')}"
    return Response(content=result.content, media_type=result.media_type, headers=headers)
