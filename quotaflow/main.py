"""
Quotaflow - Period-based Commission Engine

FastAPI application exposing the commission engine to deal and target
flows, with:
- Commission recalculation triggers
- Commission summary reporting
- Daily reconciliation of missed calculations (APScheduler)
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

from quotaflow.api import api_router
from quotaflow.config import settings
from quotaflow.scheduler import scheduler, setup_scheduler

# Configure logging
logging.basicConfig(
    level=getattr(logging, settings.log_level.upper()),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan manager.

    Startup:
    - Schedules the commission reconciliation job

    Shutdown:
    - Stops the scheduler
    """
    logger.info("Starting Quotaflow...")

    setup_scheduler()
    scheduler.start()

    logger.info("Quotaflow started successfully!")

    yield

    logger.info("Shutting down Quotaflow...")
    scheduler.shutdown(wait=False)


# Create FastAPI application
app = FastAPI(
    title="Quotaflow",
    description="Period-based commission engine",
    version="1.0.0",
    lifespan=lifespan,
    docs_url="/docs" if not settings.is_production else None,
    redoc_url="/redoc" if not settings.is_production else None,
)

app.include_router(api_router)  # /api/* endpoints


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "quotaflow.main:app",
        host="0.0.0.0",
        port=8000,
        reload=not settings.is_production,
    )
