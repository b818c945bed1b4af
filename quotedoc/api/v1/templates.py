"""Template builder endpoints: CRUD and default selection."""

from fastapi import APIRouter, HTTPException, status

from quotedoc.deps import TemplateStoreDep
from quotedoc.schemas.template import LoadedTemplate
from quotedoc.schemas.template_api import TemplateRead, TemplateSummary, TemplateWrite
from quotedoc.services.template_store import template_to_json

router = APIRouter()


def _summary(loaded: LoadedTemplate) -> TemplateSummary:
    template = loaded.template
    return TemplateSummary(
        id=template.id,
        name=template.name,
        description=template.description,
        theme=template.theme,
        category=template.category,
        is_default=template.is_default,
        is_active=template.is_active,
        element_count=len(template.elements),
        degraded=loaded.meta.degraded,
        updated_at=template.updated_at,
    )


def _read(loaded: LoadedTemplate) -> TemplateRead:
    return TemplateRead(template=template_to_json(loaded.template), meta=loaded.meta)


def _not_found(template_id: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_404_NOT_FOUND,
        detail=f"Template {template_id} not found",
    )


@router.get("", response_model=list[TemplateSummary])
async def list_templates(
    store: TemplateStoreDep,
    include_inactive: bool = False,
) -> list[TemplateSummary]:
    """List templates, most recently edited first."""
    templates = await store.list_templates(include_inactive=include_inactive)
    return [_summary(t) for t in templates]


@router.post("", response_model=TemplateRead, status_code=status.HTTP_201_CREATED)
async def create_template(data: TemplateWrite, store: TemplateStoreDep) -> TemplateRead:
    loaded = await store.create_template(data)
    return _read(loaded)


@router.get("/{template_id}", response_model=TemplateRead)
async def get_template(template_id: str, store: TemplateStoreDep) -> TemplateRead:
    loaded = await store.get_template_by_id(template_id)
    if not loaded:
        raise _not_found(template_id)
    return _read(loaded)


@router.put("/{template_id}", response_model=TemplateRead)
async def replace_template(
    template_id: str,
    data: TemplateWrite,
    store: TemplateStoreDep,
) -> TemplateRead:
    """Save the whole template. The last save wins."""
    loaded = await store.replace_template(template_id, data)
    if not loaded:
        raise _not_found(template_id)
    return _read(loaded)


@router.delete("/{template_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_template(template_id: str, store: TemplateStoreDep) -> None:
    """Soft delete: the template is deactivated, never removed."""
    if not await store.deactivate_template(template_id):
        raise _not_found(template_id)


@router.post("/{template_id}/default", response_model=TemplateRead)
async def set_default_template(template_id: str, store: TemplateStoreDep) -> TemplateRead:
    if not await store.set_default_template(template_id):
        raise _not_found(template_id)
    loaded = await store.get_template_by_id(template_id)
    if not loaded:
        raise _not_found(template_id)
    return _read(loaded)
