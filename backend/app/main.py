"""FastAPI application entry point."""

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from datetime import datetime, timezone

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy import text

from backend.app.api.router import api_router
from backend.app.config import get_settings
from backend.app.core.exceptions import TracklineError
from backend.app.core.logging import setup_logging
from backend.app.db.session import close_db, engine, init_db

logger = logging.getLogger(__name__)

settings = get_settings()


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan manager."""
    # Startup
    setup_logging()
    await init_db()
    yield
    # Shutdown
    await close_db()


app = FastAPI(
    title=settings.app_name,
    description="GPS track recording with distance, speed and elevation statistics",
    version="1.0.0",
    docs_url="/docs" if settings.debug else None,
    redoc_url="/redoc" if settings.debug else None,
    openapi_url="/openapi.json" if settings.debug else None,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=[settings.frontend_url],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(TracklineError)
async def trackline_error_handler(request: Request, exc: TracklineError) -> JSONResponse:
    """Translate service exceptions into JSON error responses."""
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc.message}")
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.message, "code": exc.code, **exc.details},
    )


# Include API router
app.include_router(api_router, prefix="/api")


@app.get("/health")
async def health_check() -> dict:
    """Basic health check endpoint."""
    return {
        "status": "healthy",
        "app_name": settings.app_name,
        "environment": settings.app_env,
    }


@app.get("/health/deep")
async def deep_health_check() -> dict:
    """
    Deep health check endpoint with database status.
    """
    services: dict[str, dict] = {}
    overall_status = "healthy"

    try:
        async with engine.begin() as conn:
            start = datetime.now(timezone.utc)
            await conn.execute(text("SELECT 1"))
            latency_ms = (datetime.now(timezone.utc) - start).total_seconds() * 1000
            services["database"] = {
                "status": "up",
                "latency_ms": round(latency_ms, 2),
            }
    except Exception as e:
        logger.error(f"Database health check failed: {e}")
        services["database"] = {"status": "down", "error": "unreachable"}
        overall_status = "unhealthy"

    return {
        "status": overall_status,
        "app_name": settings.app_name,
        "environment": settings.app_env,
        "services": services,
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }


@app.get("/")
async def root() -> dict:
    """Root endpoint."""
    return {
        "message": f"Welcome to {settings.app_name}",
        "docs": "/docs" if settings.debug else "disabled",
        "health": "/health",
    }


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "backend.app.main:app",
        host=settings.api_host,
        port=settings.api_port,
        reload=settings.is_development,
    )
