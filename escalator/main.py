"""Escalation engine FastAPI application."""

from contextlib import asynccontextmanager
from typing import Any

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from escalator import __version__
from escalator.config import settings
from escalator.database import close_database
from escalator.logging_config import get_logger, setup_logging
from escalator.routers import escalation, health
from escalator.services.scheduler import start_scheduler, stop_scheduler

setup_logging(
    log_format=settings.log_format,
    log_level=settings.log_level,
    service_name=settings.service_name,
)
logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler."""
    logger.info("Escalation API started")

    if settings.escalation_engine_enabled:
        start_scheduler()
    else:
        logger.info("Escalation engine disabled by configuration")

    yield

    logger.info("Shutting down escalation API...")
    stop_scheduler()
    await close_database()
    logger.info("Escalation API shutdown complete")


app = FastAPI(
    title="Escalation Engine API",
    description="Escalation rule engine for property and compliance operations",
    version=__version__,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(health.router)
app.include_router(escalation.router)


@app.get("/")
async def root() -> dict[str, Any]:
    """Root endpoint."""
    return {
        "name": "Escalation Engine API",
        "version": __version__,
        "docs": "/docs",
    }
