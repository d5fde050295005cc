"""Business logic services."""

from quotaflow.services.commission import (
    calculate_deal_commission,
    get_commission_summary,
    handle_deal_update,
    recalculate_for_target,
    recalculate_period_commissions,
)
from quotaflow.services.exceptions import (
    CategoryMismatchError,
    CommissionError,
    DealNotFoundError,
    InvalidCommissionConfigError,
    NotFoundError,
    TargetNotFoundError,
)
from quotaflow.services.stages import DealStage, parse_stage

__all__ = [
    # Engine
    "calculate_deal_commission",
    "recalculate_period_commissions",
    "handle_deal_update",
    "recalculate_for_target",
    "get_commission_summary",
    # Stages
    "DealStage",
    "parse_stage",
    # Errors
    "CommissionError",
    "NotFoundError",
    "DealNotFoundError",
    "TargetNotFoundError",
    "CategoryMismatchError",
    "InvalidCommissionConfigError",
]
