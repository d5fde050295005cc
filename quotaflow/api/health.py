"""
Health check endpoints.
"""

from fastapi import APIRouter, Depends, Response, status
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from quotaflow.config import settings
from quotaflow.db import get_db
from quotaflow.scheduler import RECONCILIATION_JOB_ID, scheduler

router = APIRouter(prefix="/health", tags=["Health"])


def _reconciliation_status() -> str:
    if not settings.reconciliation_enabled:
        return "disabled"
    job = scheduler.get_job(RECONCILIATION_JOB_ID)
    if job is None:
        return "not_scheduled"
    next_run = getattr(job, "next_run_time", None)
    return next_run.isoformat() if next_run else "scheduled"


@router.get("")
async def health_check():
    """Returns 200 while the process is up."""
    return {"status": "healthy", "service": "quotaflow"}


@router.get("/ready")
async def readiness_check(response: Response, db: AsyncSession = Depends(get_db)):
    """
    Database connectivity plus the next reconciliation run.

    Responds 503 when the database is unreachable, since every engine
    operation needs it.
    """
    reconciliation = _reconciliation_status()
    try:
        await db.execute(text("SELECT 1"))
    except SQLAlchemyError as e:
        response.status_code = status.HTTP_503_SERVICE_UNAVAILABLE
        return {
            "status": "not_ready",
            "database": f"error: {e}",
            "reconciliation": reconciliation,
        }

    return {
        "status": "ready",
        "database": "connected",
        "reconciliation": reconciliation,
    }


@router.get("/live")
async def liveness_check():
    return {"status": "alive"}
