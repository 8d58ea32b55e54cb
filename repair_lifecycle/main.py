"""Repair lifecycle — FastAPI application factory."""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from repair_lifecycle.adapters.persistence.database import engine
from repair_lifecycle.config import settings
from repair_lifecycle.infrastructure.api.dependencies import build_lifecycle_service
from repair_lifecycle.infrastructure.api.errors import register_error_handlers
from repair_lifecycle.infrastructure.api.routes_health import router as health_router
from repair_lifecycle.infrastructure.api.routes_jobs import escalation_router
from repair_lifecycle.infrastructure.api.routes_jobs import router as jobs_router
from repair_lifecycle.infrastructure.escalation_worker import EscalationWorker

logger = logging.getLogger(__name__)


def configure_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s | %(message)s",
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup and shutdown events."""
    try:
        async with engine.begin():
            pass  # Connection pool warmed up
        logger.info("Database connection established")
    except Exception as e:
        logger.warning("Database not available on startup: %s", e)

    service = build_lifecycle_service(settings)
    app.state.lifecycle = service

    worker = None
    if settings.escalation_worker_enabled:
        worker = EscalationWorker(service.scheduler, settings.escalation_interval_seconds)
        worker.start()

    yield

    if worker is not None:
        await worker.stop()
    await engine.dispose()


def create_app() -> FastAPI:
    configure_logging(settings.log_level)

    app = FastAPI(
        title="Repair Lifecycle",
        description="Repair job lifecycle, escalation and technician assignment",
        version="0.1.0",
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["http://localhost:3000", "http://127.0.0.1:3000"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    register_error_handlers(app)

    # Register routers
    app.include_router(health_router, prefix="/api")
    app.include_router(jobs_router, prefix="/api")
    app.include_router(escalation_router, prefix="/api")

    return app


app = create_app()
