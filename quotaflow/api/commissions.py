"""Commission engine trigger endpoints."""

from datetime import date

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from quotaflow.db import get_db
from quotaflow.schemas.commission import (
    CommissionSummary,
    DealCommissionResponse,
    StageChangeRequest,
    TargetRecalculationResponse,
)
from quotaflow.services import commission as engine
from quotaflow.services.exceptions import (
    CategoryMismatchError,
    CommissionError,
    InvalidCommissionConfigError,
    NotFoundError,
)

router = APIRouter(prefix="/commissions", tags=["Commissions"])


def _http_error(e: CommissionError) -> HTTPException:
    if isinstance(e, NotFoundError):
        return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    if isinstance(e, CategoryMismatchError):
        return HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e))
    if isinstance(e, InvalidCommissionConfigError):
        return HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(e))
    return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))


@router.post("/deals/{deal_id}/calculate", response_model=DealCommissionResponse)
async def calculate_deal(
    deal_id: int,
    db: AsyncSession = Depends(get_db),
):
    """Recalculate the period of a deal saved as closed-won."""
    try:
        deal = await engine.calculate_deal_commission(db, deal_id)
    except CommissionError as e:
        raise _http_error(e)
    return DealCommissionResponse.model_validate(deal)


@router.post("/deals/{deal_id}/stage-change")
async def deal_stage_changed(
    deal_id: int,
    request: StageChangeRequest,
    db: AsyncSession = Depends(get_db),
):
    """Apply the commission side effects of a deal stage change."""
    try:
        deal = await engine.handle_deal_update(db, deal_id, request.old_stage, request.new_stage)
    except CommissionError as e:
        raise _http_error(e)

    if deal is None:
        return {"deal_id": deal_id, "recalculated": False}
    return {
        "deal_id": deal_id,
        "recalculated": True,
        "deal": DealCommissionResponse.model_validate(deal),
    }


@router.post("/targets/{target_id}/recalculate", response_model=TargetRecalculationResponse)
async def recalculate_target(
    target_id: int,
    db: AsyncSession = Depends(get_db),
):
    """Re-price a target's period after it was created or edited."""
    try:
        result = await engine.recalculate_for_target(db, target_id)
    except CommissionError as e:
        raise _http_error(e)

    return TargetRecalculationResponse(
        target_id=target_id,
        recalculated=result is not None,
        deals_updated=result.deals_updated if result else 0,
        result=result,
    )


@router.get("/summary", response_model=CommissionSummary)
async def commission_summary(
    user_id: int = Query(..., ge=1),
    period_start: date = Query(...),
    period_end: date = Query(...),
    db: AsyncSession = Depends(get_db),
):
    """Commission totals for a rep and date range."""
    if period_end < period_start:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="period_end must not be before period_start",
        )
    return await engine.get_commission_summary(db, user_id, period_start, period_end)
