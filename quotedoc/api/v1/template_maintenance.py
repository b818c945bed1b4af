"""Template maintenance endpoints: diagnostics and repair of stored rows."""

from arq import ArqRedis, create_pool
from fastapi import APIRouter, HTTPException, status

from quotedoc.deps import RepairServiceDep
from quotedoc.schemas.template_api import (
    DebugTemplatesResponse,
    RawTemplateResponse,
    RepairJobResponse,
    RepairResponse,
)
from quotedoc.workers.settings import redis_settings

router = APIRouter()


async def get_arq_pool() -> ArqRedis:
    """Get Arq Redis connection pool."""
    return await create_pool(redis_settings)


@router.get("/debug", response_model=DebugTemplatesResponse)
async def debug_templates(service: RepairServiceDep) -> DebugTemplatesResponse:
    """Structural diagnostic of every stored template's encoded columns."""
    templates = await service.diagnose_all()
    return DebugTemplatesResponse(
        count=len(templates),
        templates=templates,
        message=f"Found {len(templates)} templates",
    )


@router.get("/{template_id}/raw", response_model=RawTemplateResponse)
async def raw_template(template_id: str, service: RepairServiceDep) -> RawTemplateResponse:
    result = await service.diagnose(template_id)
    if result is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Template {template_id} not found",
        )
    return result


@router.post("/repair", response_model=RepairResponse | RepairJobResponse)
async def repair_templates(
    service: RepairServiceDep,
    background: bool = False,
) -> RepairResponse | RepairJobResponse:
    """Normalize every stored template; safe to run repeatedly."""
    if background:
        pool = await get_arq_pool()
        job = await pool.enqueue_job("repair_templates")
        await pool.close()
        return RepairJobResponse(
            job_id=job.job_id if job else None,
            message="Template repair queued",
        )

    report = await service.repair_all()
    return RepairResponse(
        repaired=sum(1 for entry in report if entry.changed),
        total=len(report),
        report=report,
    )
