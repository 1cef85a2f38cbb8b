# src/noisegarden/main.py
"""Main entry point for the Noisegarden application."""

from __future__ import annotations

import logging

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import JSONResponse

from noisegarden.api.v1 import (
    auth_router,
    content_router,
    mentions_router,
    moderation_router,
    notifications_router,
    polls_router,
    users_router,
)
from noisegarden.core.errors import EngineError
from noisegarden.core.settings import settings
from noisegarden.services.expiry import ExpirySweepWorker
from noisegarden.services.notifications import get_push_client

logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)
logger = logging.getLogger(__name__)

# Initialize FastAPI app
app = FastAPI(
    title="Noisegarden API",
    description="Ephemeral content and community moderation engine",
    version=settings.app_version,
)

# Add CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=settings.cors_allow_credentials,
    allow_methods=settings.cors_allow_methods,
    allow_headers=settings.cors_allow_headers,
)

# Add GZip middleware for compression
app.add_middleware(GZipMiddleware)

# Include API routers
app.include_router(auth_router, prefix="/api/v1")
app.include_router(content_router, prefix="/api/v1")
app.include_router(moderation_router, prefix="/api/v1")
app.include_router(mentions_router, prefix="/api/v1")
app.include_router(polls_router, prefix="/api/v1")
app.include_router(notifications_router, prefix="/api/v1")
app.include_router(users_router, prefix="/api/v1")


@app.exception_handler(EngineError)
async def engine_error_handler(request: Request, exc: EngineError) -> JSONResponse:
    """Translate service-level failures into HTTP responses."""
    if exc.status_code >= 500:
        logger.error("Unhandled engine error on %s: %s", request.url.path, exc.detail)
    return JSONResponse(status_code=exc.status_code, content=exc.payload())


@app.on_event("startup")
async def on_startup() -> None:
    if settings.expiry_sweep_mode == "background":
        worker = ExpirySweepWorker()
        await worker.start()
        app.state.sweep_worker = worker
        logger.info(
            "Background expiry sweep every %s seconds",
            settings.expiry_sweep_interval_seconds,
        )
    else:
        app.state.sweep_worker = None


@app.on_event("shutdown")
async def on_shutdown() -> None:
    worker: ExpirySweepWorker | None = getattr(app.state, "sweep_worker", None)
    if worker:
        await worker.stop()
    await get_push_client().close()


@app.get("/health")
async def health_check() -> dict[str, str]:
    """Health check endpoint to verify the service is running."""
    return {"status": "ok"}


@app.get("/")
async def root() -> dict[str, str]:
    """Root endpoint with basic information about the API."""
    return {
        "name": settings.app_name,
        "version": settings.app_version,
        "description": "Ephemeral content and community moderation engine",
        "docs": "/docs",
        "redoc": "/redoc",
    }


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("noisegarden.main:app", host="0.0.0.0", port=8000, reload=settings.debug)
