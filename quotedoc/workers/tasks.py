"""Arq task definitions for template maintenance."""

import logging

from arq import cron
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from quotedoc.config import get_settings
from quotedoc.services.template_repair import TemplateRepairService
from quotedoc.services.template_store import SqlTemplateStore
from quotedoc.workers.settings import redis_settings

settings = get_settings()
logger = logging.getLogger(__name__)


# Create engine for worker (separate from web app)
engine = create_async_engine(
    settings.database_url,
    echo=settings.debug,
    pool_pre_ping=True,
)
async_session_maker = async_sessionmaker(engine, expire_on_commit=False)


async def get_db() -> AsyncSession:
    """Get database session for worker."""
    return async_session_maker()


async def repair_templates(ctx: dict) -> dict:
    """
    Normalize the structured columns of every stored template.

    Each row is committed on its own, so a crashed run is resumed by
    simply running the job again.

    Args:
        ctx: Arq context

    Returns:
        Dict with repair counts
    """
    db = await get_db()
    try:
        report = await TemplateRepairService(SqlTemplateStore(db)).repair_all()
        repaired = [entry.id for entry in report if entry.changed]
        failed = [entry.id for entry in report if entry.error]
        if failed:
            logger.error("Template repair failed for %d template(s): %s", len(failed), failed)
        return {"total": len(report), "repaired": len(repaired), "failed": len(failed)}
    except Exception as e:
        logger.exception("Template repair job failed")
        await db.rollback()
        return {"error": str(e)}
    finally:
        await db.close()


async def scheduled_repair_templates(ctx: dict) -> dict:
    """Nightly cron entry point for ``repair_templates``."""
    logger.info("Cron: running scheduled template repair")
    return await repair_templates(ctx)


# ── Lifecycle ───────────────────────────────────────────────────────


async def startup(ctx: dict) -> None:
    """Worker startup hook."""
    logger.info("Worker starting up...")


async def shutdown(ctx: dict) -> None:
    """Worker shutdown hook."""
    logger.info("Worker shutting down...")
    await engine.dispose()


class WorkerSettings:
    """Arq worker settings."""

    functions = [repair_templates]
    cron_jobs = (
        [cron(scheduled_repair_templates, hour={2}, minute={30})]
        if settings.template_repair_cron_enabled
        else []
    )
    on_startup = startup
    on_shutdown = shutdown
    redis_settings = redis_settings
    max_jobs = 4
    job_timeout = 600  # 10 minutes max per job
    keep_result = 3600  # Keep results for 1 hour
