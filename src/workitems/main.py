"""FastAPI application entry point for the work item service.

Wires configuration, the repository, the event emitter and the
WorkItemService into the application, and exposes operational endpoints
(/health, /ready, /metrics) next to the work item routes.
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, HTTPException, Request
from fastapi.responses import PlainTextResponse

from .api.routes import router as work_items_router
from .config import WorkItemSettings, get_settings
from .events.emitter import create_event_emitter
from .events.metrics import generate_metrics_output
from .persistence.memory import InMemoryWorkItemRepository
from .persistence.postgres import PostgresWorkItemRepository
from .service.service import WorkItemService

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


def _redact_secret(value: str, visible_chars: int = 4) -> str:
    """Redact a secret value, showing only the first few characters."""
    if len(value) <= visible_chars:
        return "*" * len(value)
    return value[:visible_chars] + "*" * (len(value) - visible_chars)


def _log_configuration(settings: WorkItemSettings) -> None:
    """Log configuration values with secrets redacted."""
    logger.info("Work item service configuration:")
    if settings.database_url:
        logger.info(f"  Database URL: {_redact_secret(settings.database_url)}")
    else:
        logger.info("  Database URL: not set, using in-process repository")
    logger.info(
        f"  Pool Size: {settings.db_min_pool_size}-{settings.db_max_pool_size}"
    )
    logger.info(f"  Command Timeout: {settings.db_command_timeout_seconds}s")
    logger.info(
        f"  Event Sinks: {', '.join(sink.value for sink in settings.event_sinks)}"
    )
    logger.info(f"  Host: {settings.host}")
    logger.info(f"  Port: {settings.port}")


def _create_repository(settings: WorkItemSettings):
    if settings.database_url:
        return PostgresWorkItemRepository(
            settings.database_url,
            min_pool_size=settings.db_min_pool_size,
            max_pool_size=settings.db_max_pool_size,
            command_timeout=settings.db_command_timeout_seconds,
        )
    logger.warning("No database configured; work items will not be persisted")
    return InMemoryWorkItemRepository()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager for startup and shutdown.

    Handles:
    - Configuration loading and validation
    - Repository connection
    - Service wiring
    - Graceful shutdown
    """
    logger.info("Work item service starting up...")

    settings = get_settings()
    logging.getLogger().setLevel(settings.log_level)
    _log_configuration(settings)

    repository = _create_repository(settings)
    if isinstance(repository, PostgresWorkItemRepository):
        await repository.connect()

    event_emitter = create_event_emitter(settings.event_sinks)

    app.state.repository = repository
    app.state.event_emitter = event_emitter
    app.state.work_item_service = WorkItemService(
        repository=repository,
        event_emitter=event_emitter,
    )

    logger.info("Work item service started successfully")

    yield

    logger.info("Work item service shutting down...")

    await event_emitter.close()
    if isinstance(repository, PostgresWorkItemRepository):
        await repository.disconnect()

    logger.info("Work item service shutdown complete")


app = FastAPI(
    title="Work Item Service",
    description="Multi-tenant work item tracking with atomic bulk transitions",
    version="1.0.0",
    lifespan=lifespan,
)
app.include_router(work_items_router)


@app.get("/health")
async def health():
    """Liveness probe endpoint."""
    return {"status": "healthy"}


@app.get("/ready")
async def ready(request: Request):
    """Readiness probe endpoint.

    Raises:
        HTTPException: 503 if the database is unavailable.
    """
    repository = getattr(request.app.state, "repository", None)
    database_status = "healthy"
    if isinstance(repository, PostgresWorkItemRepository):
        if not await repository.health_check():
            database_status = "unhealthy"

    if database_status != "healthy":
        raise HTTPException(
            status_code=503,
            detail={"status": "not_ready", "dependencies": {"database": database_status}},
        )

    return {
        "status": "ready",
        "dependencies": {
            "database": database_status,
        },
    }


@app.get("/metrics", response_class=PlainTextResponse)
async def metrics():
    """Prometheus metrics endpoint."""
    return PlainTextResponse(generate_metrics_output().decode("utf-8"))


if __name__ == "__main__":
    import uvicorn

    dev_settings = get_settings()
    uvicorn.run(
        "src.workitems.main:app",
        host=dev_settings.host,
        port=dev_settings.port,
        reload=True,
    )
