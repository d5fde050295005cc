"""
Period-based commission engine.

Commission is never calculated for one deal in isolation. Any change to a
closed-won deal re-prices every closed-won deal in the same target
period: attainment over the whole period decides which accelerator or
decelerator tier applies and whether performance gates pass, so adding or
removing one deal can move everyone else's rate.

Entry points:
- calculate_deal_commission: a deal was created or saved as closed-won
- handle_deal_update: a deal changed stage
- recalculate_for_target: a target was created or edited
- get_commission_summary: read-only totals for dashboards and reconciliation

Every write for a period is committed in a single transaction.
"""

import logging
from contextlib import asynccontextmanager
from datetime import date, datetime, timezone
from typing import Any, AsyncIterator, Collection, List, Optional, Sequence

from sqlalchemy import and_, select
from sqlalchemy.ext.asyncio import AsyncSession

from quotaflow.config import settings
from quotaflow.models import AuditAction, Deal, Target, period_granularity
from quotaflow.schemas.commission import (
    CommissionSummary,
    PeriodMetrics,
    PeriodRecalculationResult,
    RateDecision,
)
from quotaflow.services import gates as gate_rules
from quotaflow.services import money
from quotaflow.services.exceptions import (
    CategoryMismatchError,
    DealNotFoundError,
    TargetNotFoundError,
)
from quotaflow.services.rates import derive_rate, parse_commission_structure
from quotaflow.services.stages import is_closed_won
from quotaflow.utils.audit import log_action

logger = logging.getLogger(__name__)


# ── Target resolution ─────────────────────────────────────


async def find_active_targets(db: AsyncSession, user_id: int, day: date) -> List[Target]:
    """Active targets of a user whose period contains day (inclusive)."""
    result = await db.execute(
        select(Target).where(
            and_(
                Target.user_id == user_id,
                Target.is_active == True,
                Target.period_start <= day,
                Target.period_end >= day,
            )
        )
    )
    return list(result.scalars().all())


def _target_priority(target: Target):
    created = target.created_at.timestamp() if target.created_at else 0.0
    return (
        -money.to_decimal(target.quota_amount),
        period_granularity(target.period_type),
        -created,
        -(target.id or 0),
    )


def select_target(candidates: Sequence[Target], deal: Optional[Deal] = None) -> Optional[Target]:
    """
    Pick the one authoritative target among overlapping candidates.

    With a deal, only targets that accept its product category are
    eligible: the deal's own category or unrestricted targets for a
    categorized deal, unrestricted targets only for an uncategorized
    one. Candidates existing but none eligible raises
    CategoryMismatchError.

    Order: highest quota, then finest period (monthly before quarterly
    before annual), then most recently created.
    """
    if not candidates:
        return None

    eligible = list(candidates)
    if deal is not None:
        category_id = deal.product_category_id
        if category_id is not None:
            eligible = [t for t in candidates if t.product_category_id in (None, category_id)]
        else:
            eligible = [t for t in candidates if t.product_category_id is None]

        if not eligible:
            raise CategoryMismatchError(
                deal.id,
                category_id,
                [t.product_category_id for t in candidates],
            )

    return min(eligible, key=_target_priority)


# ── Period aggregation ────────────────────────────────────


async def collect_period_deals(
    db: AsyncSession,
    user_id: int,
    target: Target,
    exclude_deal_ids: Collection[int] = (),
) -> List[Deal]:
    """
    Closed-won deals of a user that fall inside the target period.

    Stage is free text, so the closed-won filter runs through is_closed_won
    rather than in SQL. A category-restricted target only collects deals
    of its category.
    """
    query = select(Deal).where(
        and_(
            Deal.user_id == user_id,
            Deal.close_date >= target.period_start,
            Deal.close_date <= target.period_end,
        )
    )
    if target.product_category_id is not None:
        query = query.where(Deal.product_category_id == target.product_category_id)

    result = await db.execute(query.order_by(Deal.close_date, Deal.id))
    return [
        deal
        for deal in result.scalars().all()
        if deal.id not in exclude_deal_ids
        and is_closed_won(deal.stage)
    ]


def compute_period_metrics(deals: Sequence[Deal], quota_amount: Any) -> PeriodMetrics:
    total_sales = money.sum_money(deal.amount for deal in deals)
    count = len(deals)
    average = money.quantize_money(total_sales / count) if count else money.ZERO
    return PeriodMetrics(
        total_sales=total_sales,
        quota_amount=money.to_decimal(quota_amount),
        attainment_percent=money.calculate_attainment(total_sales, quota_amount),
        deal_count=count,
        average_deal_size=average,
    )


def _breakdown(target: Target, metrics: PeriodMetrics, decision: RateDecision) -> dict:
    return {
        "target_id": target.id,
        "period_start": target.period_start.isoformat(),
        "period_end": target.period_end.isoformat(),
        "metrics": metrics.model_dump(mode="json"),
        **decision.model_dump(mode="json"),
    }


@asynccontextmanager
async def _transaction(db: AsyncSession) -> AsyncIterator[None]:
    """
    Commit everything staged in the block, or roll all of it back.

    Any error raised inside the block discards the staged writes and
    propagates.
    """
    try:
        yield
        await db.commit()
    except Exception:
        await db.rollback()
        raise


# ── Engine operations ─────────────────────────────────────


async def recalculate_period_commissions(
    db: AsyncSession,
    user_id: int,
    date_in_period: date,
    deal_id: Optional[int] = None,
    *,
    target_id: Optional[int] = None,
    exclude_deal_ids: Collection[int] = (),
) -> Optional[PeriodRecalculationResult]:
    """
    Re-price every closed-won deal in the target period containing a date.

    Args:
        db: Database session
        user_id: Rep whose period is recalculated
        date_in_period: Any date inside the period
        deal_id: Deal that triggered the recalculation; its product
            category restricts which targets are eligible
        target_id: Use this target instead of resolving one
        exclude_deal_ids: Deals to leave out of the period even if they
            are still stored as closed-won

    Returns:
        The recalculation summary, or None when no active target covers
        the date or the period has no closed-won deals.

    Raises:
        DealNotFoundError: deal_id does not exist
        CategoryMismatchError: active targets exist but none accepts the
            deal's product category
        InvalidCommissionConfigError: the target's structure or gates
            JSON is invalid
    """
    deal = None
    if deal_id is not None:
        deal = await db.get(Deal, deal_id)
        if deal is None:
            raise DealNotFoundError(deal_id)

    if target_id is not None:
        target = await db.get(Target, target_id)
        if target is None or not target.is_active:
            logger.info(f"Target {target_id} missing or inactive, skipping recalculation")
            return None
    else:
        candidates = await find_active_targets(db, user_id, date_in_period)
        target = select_target(candidates, deal)
        if target is None:
            logger.info(f"No active target for user {user_id} on {date_in_period}")
            return None

    deals = await collect_period_deals(db, user_id, target, exclude_deal_ids)
    if not deals:
        logger.info(
            f"No closed-won deals for user {user_id} in target {target.id} "
            f"({target.period_start}..{target.period_end})"
        )
        return None

    metrics = compute_period_metrics(deals, target.quota_amount)
    gates = gate_rules.parse_performance_gates(target.performance_gates, target.id)
    structure = parse_commission_structure(target.commission_structure, target.id)
    gate_results = gate_rules.evaluate_gates(gates, metrics)
    decision = derive_rate(
        target.commission_rate,
        structure,
        metrics.attainment_percent,
        gate_results,
        target_id=target.id,
    )

    commissions = money.allocate_commissions([d.amount for d in deals], decision.final_rate)
    stored_rate = money.quantize_rate(decision.final_rate)
    breakdown = _breakdown(target, metrics, decision)
    calculated_at = datetime.now(timezone.utc)

    total_commission = money.sum_money(commissions)
    deal_ids = [d.id for d in deals]

    async with _transaction(db):
        for period_deal, commission in zip(deals, commissions):
            period_deal.commission_rate = stored_rate
            period_deal.commission_amount = commission
            period_deal.commission_calculated_at = calculated_at
            period_deal.target_id = target.id
            period_deal.commission_breakdown = breakdown

        log_action(
            db,
            AuditAction.RECALCULATE_PERIOD,
            entity_type="target",
            entity_id=target.id,
            action_metadata={
                "trigger_deal_id": deal_id,
                "deal_ids": deal_ids,
                "attainment_percent": str(metrics.attainment_percent),
                "final_rate": str(decision.final_rate),
                "hard_gate_failed": decision.hard_gate_failed,
                "total_commission": str(total_commission),
            },
            user_id=user_id,
        )

    logger.info(
        f"Recalculated {len(deals)} deals for user {user_id} in target {target.id}: "
        f"sales {money.format_currency(metrics.total_sales, settings.currency_symbol)}, "
        f"attainment {money.quantize_money(metrics.attainment_percent)}%, "
        f"rate {stored_rate}, "
        f"commission {money.format_currency(total_commission, settings.currency_symbol)}"
    )

    return PeriodRecalculationResult(
        user_id=user_id,
        target_id=target.id,
        period_start=target.period_start,
        period_end=target.period_end,
        metrics=metrics,
        decision=decision,
        deal_ids=deal_ids,
        total_commission=total_commission,
    )


async def calculate_deal_commission(db: AsyncSession, deal_id: int) -> Deal:
    """
    Price a deal by recalculating its whole target period.

    Deals that are not closed-won are returned untouched. A closed-won
    deal with no covering target has any stale commission cleared.

    Raises:
        DealNotFoundError: the deal does not exist
        CategoryMismatchError: see recalculate_period_commissions
    """
    deal = await db.get(Deal, deal_id)
    if deal is None:
        raise DealNotFoundError(deal_id)

    if not is_closed_won(deal.stage):
        logger.debug(f"Deal {deal_id} is not closed won (stage: {deal.stage}), skipping")
        return deal

    result = await recalculate_period_commissions(
        db,
        deal.user_id,
        deal.close_date,
        deal_id=deal.id,
    )

    if result is None and deal.has_commission:
        logger.warning(f"Deal {deal_id} has no applicable target, clearing commission")
        async with _transaction(db):
            deal.clear_commission()
            log_action(
                db,
                AuditAction.CLEAR_COMMISSION,
                entity_type="deal",
                entity_id=deal.id,
                action_metadata={"reason": "no_active_target"},
                user_id=deal.user_id,
            )

    return deal


async def handle_deal_update(
    db: AsyncSession,
    deal_id: int,
    old_stage: Optional[str],
    new_stage: Optional[str],
) -> Optional[Deal]:
    """
    React to a deal stage change.

    Into closed-won: price the deal (and its period). Out of closed-won:
    clear the deal's commission and re-price the rest of its period,
    since losing the deal can drop everyone else to a lower tier. The
    clear and the re-pricing commit together. Any other transition is a
    no-op and returns None.
    """
    was_won = is_closed_won(old_stage)
    is_won = is_closed_won(new_stage)

    if not was_won and is_won:
        logger.info(f"Deal {deal_id} moved to closed won, calculating commission")
        return await calculate_deal_commission(db, deal_id)

    if was_won and not is_won:
        deal = await db.get(Deal, deal_id)
        if deal is None:
            raise DealNotFoundError(deal_id)

        logger.info(f"Deal {deal_id} moved from closed won to '{new_stage}', clearing commission")
        previous_target_id = deal.target_id
        user_id, close_date = deal.user_id, deal.close_date

        # Commits with the re-pricing, or alone when nothing is left to price
        async with _transaction(db):
            deal.clear_commission()
            log_action(
                db,
                AuditAction.CLEAR_COMMISSION,
                entity_type="deal",
                entity_id=deal.id,
                action_metadata={"old_stage": old_stage, "new_stage": new_stage},
                user_id=user_id,
            )
            await recalculate_period_commissions(
                db,
                user_id,
                close_date,
                deal_id=None if previous_target_id else deal_id,
                target_id=previous_target_id,
                exclude_deal_ids={deal_id},
            )
        return deal

    logger.debug(f"Deal {deal_id} stage change '{old_stage}' -> '{new_stage}' needs no recalculation")
    return None


async def recalculate_for_target(
    db: AsyncSession,
    target_id: int,
) -> Optional[PeriodRecalculationResult]:
    """
    Re-price a target's period after the target was created or edited.

    Returns None for inactive targets and periods without closed-won deals.

    Raises:
        TargetNotFoundError: the target does not exist
    """
    target = await db.get(Target, target_id)
    if target is None:
        raise TargetNotFoundError(target_id)

    if not target.is_active:
        logger.info(f"Target {target_id} is inactive, nothing to recalculate")
        return None

    deals = await collect_period_deals(db, target.user_id, target)
    if not deals:
        logger.info(f"Target {target_id} has no closed-won deals in its period")
        return None

    logger.info(f"Recalculating {len(deals)} deals for target {target_id}")
    return await recalculate_period_commissions(
        db,
        target.user_id,
        target.period_start,
        target_id=target.id,
    )


async def get_commission_summary(
    db: AsyncSession,
    user_id: int,
    period_start: date,
    period_end: date,
) -> CommissionSummary:
    """
    Commission totals for a rep's closed-won deals in a date range.

    deals_with_pending_commission counts closed-won deals that have no
    commission yet, which the reconciliation job uses as a health signal.
    """
    result = await db.execute(
        select(Deal).where(
            and_(
                Deal.user_id == user_id,
                Deal.close_date >= period_start,
                Deal.close_date <= period_end,
            )
        )
    )
    won = [d for d in result.scalars().all() if is_closed_won(d.stage)]

    return CommissionSummary(
        total_deals=len(won),
        total_sales=money.sum_money(d.amount for d in won),
        total_commission=money.sum_money(
            d.commission_amount for d in won if d.commission_amount is not None
        ),
        deals_with_pending_commission=sum(1 for d in won if d.commission_amount is None),
    )
