"""colivo - task scheduling and tracking for coliving properties."""

import logging
import sys
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.responses import JSONResponse

from src.core.config import DEV_SECRET_KEY, settings
from src.core.kv_store import KeyValueStore, create_kv_store
from src.core.logging import configure_logfire, instrument_fastapi
from src.interface.tasks_router import register_error_handlers, router as tasks_router
from src.modules.tasks.store import TaskStore


logger = logging.getLogger(__name__)


async def check_store_connectivity(kv: KeyValueStore) -> None:
    """Verify the key-value store answers.

    Raises:
        ConnectionError: If the store does not respond to a ping
    """
    if await kv.ping():
        logger.info("startup_validation", extra={"service": "kv_store", "status": "ok"})
        return
    logger.error("startup_validation", extra={"service": "kv_store", "status": "failed"})
    raise ConnectionError("Key-value store did not respond to ping")


async def validate_startup_configuration(kv: KeyValueStore) -> None:
    """Validate credentials and store connectivity, exiting on failure."""
    logger.info("startup_validation_begin")

    try:
        if settings.is_production:
            settings.require_credential("redis_url", "Redis")
            if settings.require_credential("secret_key", "Session secret") == DEV_SECRET_KEY:
                msg = "SECRET_KEY is still the development default. Set a unique signing secret."
                raise ValueError(msg)
        await check_store_connectivity(kv)
        logger.info("startup_validation_complete", extra={"status": "ok"})
    except (ValueError, ConnectionError) as e:
        logger.error("startup_validation_failed", extra={"error": str(e)})
        print(f"\n❌ Startup validation failed: {e}\n", file=sys.stderr)  # noqa: T201
        sys.exit(1)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Application lifespan context manager."""
    # Configure logging first so validation logs are captured
    configure_logfire()

    kv = create_kv_store()
    await validate_startup_configuration(kv)
    app.state.task_store = TaskStore(kv)
    yield
    await kv.close()


app = FastAPI(
    title="colivo",
    description="Task scheduling and tracking for coliving properties",
    version="0.1.0",
    lifespan=lifespan,
)

# Instrument FastAPI with Logfire
instrument_fastapi(app)

register_error_handlers(app)
app.include_router(tasks_router)


@app.get("/health")
async def health_check() -> JSONResponse:
    """Health check endpoint."""
    return JSONResponse(content={"status": "healthy"}, status_code=200)
