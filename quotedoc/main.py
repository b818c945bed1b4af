"""FastAPI application entry point."""

import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy import text

from quotedoc.api.v1.router import api_router
from quotedoc.config import get_settings
from quotedoc.core.errors import QuotationNotFoundError, TemplateNotFoundError
from quotedoc.database import engine
from quotedoc.services.rasterizer import document_rasterizer

settings = get_settings()

logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan handler."""
    # Startup
    # Rendering still works from the built-in template when the store is down
    try:
        async with engine.begin() as conn:
            await conn.execute(text("SELECT 1"))
    except Exception as e:
        logger.warning(f"Database not reachable at startup: {e}")

    yield

    # Shutdown
    await document_rasterizer.close()
    await engine.dispose()


app = FastAPI(
    title="QuoteDoc",
    description="Quotation document templating, rendering and PDF export",
    version="0.1.0",
    lifespan=lifespan,
    debug=settings.debug,
)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # Configure properly in production
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
    expose_headers=["ETag", "X-Template-Id", "X-Template-Source", "X-Template-Degraded"],
)


@app.exception_handler(TemplateNotFoundError)
async def template_not_found_handler(request: Request, exc: TemplateNotFoundError) -> JSONResponse:
    """Explicit template ids are never silently substituted."""
    return JSONResponse(
        status_code=404,
        content={
            "success": False,
            "error": "Template not found",
            "message": str(exc),
            "templateId": exc.template_id,
        },
    )


@app.exception_handler(QuotationNotFoundError)
async def quotation_not_found_handler(request: Request, exc: QuotationNotFoundError) -> JSONResponse:
    return JSONResponse(
        status_code=404,
        content={
            "success": False,
            "error": "Quotation not found",
            "message": str(exc),
            "quotationId": exc.quotation_id,
        },
    )


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Global exception handler."""
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    if settings.debug:
        return JSONResponse(
            status_code=500,
            content={"detail": str(exc), "type": type(exc).__name__},
        )
    return JSONResponse(
        status_code=500,
        content={"detail": "Internal server error"},
    )


# Include API router
app.include_router(api_router, prefix="/api/v1")


@app.get("/health")
async def health_check() -> dict[str, str]:
    """Health check endpoint."""
    return {"status": "healthy"}
