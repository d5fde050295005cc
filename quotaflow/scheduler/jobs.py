"""
Background job definitions using APScheduler.

Jobs include:
- Daily commission reconciliation: prices closed-won deals that real-time
  triggers missed
"""

import logging
import time
from typing import List

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from quotaflow.config import settings
from quotaflow.db import get_db_context
from quotaflow.models import AuditAction, Deal
from quotaflow.services.commission import calculate_deal_commission
from quotaflow.services.exceptions import CommissionError
from quotaflow.services.stages import is_closed_won
from quotaflow.utils.audit import log_action

logger = logging.getLogger(__name__)

# Global scheduler instance
scheduler = AsyncIOScheduler(timezone="UTC")

RECONCILIATION_JOB_ID = "commission_reconciliation"


async def find_unpriced_won_deals(db: AsyncSession, limit: int) -> List[Deal]:
    """
    Up to limit closed-won deals with no commission, oldest first per rep.

    Open and lost deals also have a null commission and stage is free
    text, so the query pages through unpriced deals until enough
    closed-won ones are found.
    """
    query = (
        select(Deal)
        .where(Deal.commission_amount.is_(None))
        .order_by(Deal.user_id, Deal.close_date, Deal.id)
    )
    found: List[Deal] = []
    offset = 0
    while len(found) < limit:
        result = await db.execute(query.offset(offset).limit(limit))
        page = list(result.scalars().all())
        found.extend(d for d in page if is_closed_won(d.stage))
        if len(page) < limit:
            break
        offset += limit
    return found[:limit]


async def reconcile_missing_commissions(db: AsyncSession, limit: int = 500) -> dict:
    """
    Price closed-won deals that have no commission yet.

    One period recalculation prices every deal in the period, so deals
    already priced earlier in the same sweep are skipped. A failure on one
    deal is logged and the sweep moves on.

    Returns:
        Counts of processed, calculated, skipped and failed deals
    """
    started = time.monotonic()
    pending = await find_unpriced_won_deals(db, limit)
    logger.info(f"Found {len(pending)} closed deals without commission")

    calculated = 0
    skipped = 0
    errors = 0
    for deal in pending:
        if deal.has_commission:
            # Priced by an earlier deal's period recalculation
            calculated += 1
            continue
        try:
            await calculate_deal_commission(db, deal.id)
        except CommissionError as e:
            errors += 1
            logger.error(f"Error calculating commission for deal {deal.id}: {e}")
            continue

        if deal.has_commission:
            calculated += 1
        else:
            skipped += 1

    summary = {
        "processed": len(pending),
        "calculated": calculated,
        "skipped_no_target": skipped,
        "errors": errors,
        "duration_seconds": round(time.monotonic() - started, 3),
    }
    log_action(
        db,
        AuditAction.RECONCILIATION_RUN,
        entity_type="system",
        action_metadata=summary,
    )
    await db.commit()

    logger.info(
        f"Commission reconciliation finished: {calculated} calculated, "
        f"{skipped} without target, {errors} errors"
    )
    return summary


async def commission_reconciliation_job():
    """Daily sweep for closed-won deals missing commission."""
    logger.debug("Running commission reconciliation job")
    try:
        async with get_db_context() as db:
            await reconcile_missing_commissions(db, limit=settings.reconciliation_batch_size)
    except Exception as e:
        logger.error(f"Commission reconciliation job error: {e}")


def setup_scheduler():
    """
    Configure and add all scheduled jobs.

    Called during application startup.
    """
    if not settings.reconciliation_enabled:
        logger.info("Commission reconciliation disabled")
        return

    scheduler.add_job(
        commission_reconciliation_job,
        trigger=CronTrigger(hour=settings.reconciliation_hour, minute=0, timezone="UTC"),
        id=RECONCILIATION_JOB_ID,
        name="Reconcile missing commissions",
        replace_existing=True,
    )

    logger.info(
        f"Scheduler configured: commission reconciliation daily at "
        f"{settings.reconciliation_hour:02d}:00 UTC"
    )
