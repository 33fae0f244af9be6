"""
LabelIQ FastAPI Application
Main entry point with service wiring, middleware, and configuration management
"""

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.exceptions import RequestValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException
import asyncio
import logging
import uvicorn
from contextlib import asynccontextmanager, suppress
import anyio

from api.routes import analysis, knowledge, intelligence, profile, sync, storage, health
from api.responses import ErrorResponse

from domain.models import init_database
from services import PersistentStore, SourceOrchestrator

from app.config import settings
from app.context import build_services

from api.middleware import (
    RequestLoggingMiddleware,
    validation_exception_handler,
    http_exception_handler,
    service_validation_exception_handler,
    not_found_exception_handler,
    storage_exception_handler,
    labeliq_exception_handler,
    general_exception_handler,
)
from app.exceptions import LabelIQError, ServiceValidationError, NotFoundError, StorageError

# Setup logging with configured level and format
logging.basicConfig(
    level=getattr(logging, settings.log_level.upper()), format=settings.log_format
)
_logger = logging.getLogger("labeliq.main")


async def retention_loop(store: PersistentStore, orchestrator: SourceOrchestrator, interval_sec: float):
    """Run the retention sweep and purge expired source caches every interval until cancelled"""
    while True:
        await anyio.sleep(interval_sec)
        purged = orchestrator.purge_caches()
        if purged:
            _logger.info(f"Purged {purged} expired source cache entries")
        try:
            report = await anyio.to_thread.run_sync(store.sweep)
            if report.ran:
                _logger.info(f"Scheduled retention sweep removed {sum(report.deleted.values())} record(s)")
        except StorageError as e:
            _logger.warning(f"Scheduled retention sweep failed, retrying next interval: {e}")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Lifespan context manager for application startup and shutdown.
    Builds the service context, initializes the store with retries and
    schedules retention sweeps.
    """
    _logger.info(f"Starting LabelIQ in {settings.environment.value} mode")

    services = build_services(settings)
    app.state.services = services

    for attempt in range(1, settings.db_init_attempts + 1):
        try:
            # Run blocking init in a thread to avoid blocking the event loop
            await anyio.to_thread.run_sync(init_database, services.engine)
            _logger.info("Database initialization succeeded")
            break
        except Exception as exc:
            _logger.warning(
                "Database init attempt %d/%d failed: %s",
                attempt,
                settings.db_init_attempts,
                exc,
            )
            if attempt < settings.db_init_attempts:
                await anyio.sleep(settings.db_init_delay_sec)
            else:
                _logger.error(
                    "Database initialization failed after %d attempts", attempt
                )
                await services.aclose()
                raise

    # Startup sweep (skipped when the last one is recent) and default profile
    await anyio.to_thread.run_sync(services.store.sweep)
    await anyio.to_thread.run_sync(services.store.ensure_default_profile)

    sweeper = asyncio.create_task(
        retention_loop(services.store, services.orchestrator, settings.retention_sweep_interval_hours * 3600)
    )

    try:
        yield
    finally:
        _logger.info("Shutting down LabelIQ")
        sweeper.cancel()
        with suppress(asyncio.CancelledError):
            await sweeper
        await services.aclose()
        _logger.info("Service context closed")


# Create FastAPI application with enhanced configuration
app = FastAPI(
    title=settings.api_title,
    version=settings.app_version,
    description=settings.api_description,
    lifespan=lifespan,
    debug=settings.debug,
    openapi_url=(
        f"{settings.api_prefix}/openapi.json" if not settings.is_production() else None
    ),
    docs_url=f"{settings.api_prefix}/docs" if not settings.is_production() else None,
    redoc_url=f"{settings.api_prefix}/redoc" if not settings.is_production() else None,
)

# Add CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=settings.cors_allow_credentials,
    allow_methods=settings.cors_allow_methods,
    allow_headers=settings.cors_allow_headers,
)

# Add request logging middleware
app.add_middleware(RequestLoggingMiddleware)

# Register exception handlers
app.add_exception_handler(RequestValidationError, validation_exception_handler)
app.add_exception_handler(StarletteHTTPException, http_exception_handler)
app.add_exception_handler(ServiceValidationError, service_validation_exception_handler)
app.add_exception_handler(NotFoundError, not_found_exception_handler)
app.add_exception_handler(StorageError, storage_exception_handler)
app.add_exception_handler(LabelIQError, labeliq_exception_handler)
app.add_exception_handler(Exception, general_exception_handler)

# Every route documents the shared error envelope
_error_responses = {
    400: {"model": ErrorResponse},
    404: {"model": ErrorResponse},
    422: {"model": ErrorResponse},
    503: {"model": ErrorResponse},
}

for module in (health, analysis, knowledge, intelligence, profile, sync, storage):
    app.include_router(module.router, prefix=settings.api_prefix, responses=_error_responses)


if __name__ == "__main__":
    uvicorn.run(
        "main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.is_development(),
        log_level=settings.log_level.lower(),
    )
