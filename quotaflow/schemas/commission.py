"""
Commission configuration and result schemas.

Targets store their commission structure and performance gates as JSON.
The engine validates that JSON into the models below before using it:
CommissionStructure is a discriminated union on "type", one model per
structure kind, each carrying only its own fields.
"""

from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Annotated, Any, List, Literal, Optional, Union

from pydantic import BaseModel, Field, computed_field, field_validator


# ── Performance gates ─────────────────────────────────────


class GateMetric(str, Enum):
    """Period aggregate a gate is evaluated against."""
    QUOTA_ATTAINMENT = "quota_attainment"
    TOTAL_SALES = "total_sales"
    QUOTA_AMOUNT = "quota_amount"
    DEAL_COUNT = "deal_count"
    AVERAGE_DEAL_SIZE = "average_deal_size"


_METRIC_ALIASES = {
    "attainment": GateMetric.QUOTA_ATTAINMENT.value,
    "attainment_percent": GateMetric.QUOTA_ATTAINMENT.value,
    "attainment_percentage": GateMetric.QUOTA_ATTAINMENT.value,
    "quota": GateMetric.QUOTA_AMOUNT.value,
    "sales": GateMetric.TOTAL_SALES.value,
}


class GateEnforcement(str, Enum):
    HARD = "hard"
    SOFT = "soft"


class PenaltyType(str, Enum):
    ZERO_COMMISSION = "zero_commission"
    PERCENTAGE_REDUCTION = "percentage_reduction"


GateOperator = Literal[">=", ">", "<=", "<", "=="]


class PerformanceGate(BaseModel):
    """
    A pass/fail rule over period aggregates.

    For zero_commission gates the condition describes the failure
    ("attainment <= 50" zeroes commission when attainment is 50 or less).
    For percentage_reduction gates the condition describes the
    requirement, and penalty_value percent is taken off the rate when it
    is not met.
    """

    name: str = ""
    metric: GateMetric
    operator: GateOperator
    value: Decimal
    enforcement: GateEnforcement = GateEnforcement.HARD
    penalty_type: PenaltyType = PenaltyType.ZERO_COMMISSION
    penalty_value: Optional[Decimal] = Field(None, ge=0, le=100)
    description: Optional[str] = None

    @field_validator("metric", mode="before")
    @classmethod
    def resolve_metric_alias(cls, v: Any) -> Any:
        if isinstance(v, str):
            key = v.strip().lower()
            return _METRIC_ALIASES.get(key, key)
        return v


class GateResult(BaseModel):
    """Outcome of one gate for one period."""

    name: str
    metric: GateMetric
    operator: GateOperator
    value: Decimal
    actual: Decimal
    enforcement: GateEnforcement
    penalty_type: PenaltyType
    penalty_value: Optional[Decimal] = None
    passed: bool


# ── Commission structures ─────────────────────────────────


class MultiplierTier(BaseModel):
    """Attainment threshold (percent) and the rate multiplier it carries."""

    threshold: Decimal = Field(..., ge=0)
    multiplier: Decimal = Field(..., ge=0)
    description: Optional[str] = None


class AmountTier(BaseModel):
    """Deal-amount threshold and the rate applied above it."""

    threshold: Decimal = Field(..., ge=0)
    rate: Decimal = Field(..., ge=0, le=1)


class BaseRateStructure(BaseModel):
    type: Literal["base_rate"] = "base_rate"


class AcceleratorStructure(BaseModel):
    type: Literal["accelerator"] = "accelerator"
    accelerators: List[MultiplierTier] = Field(default_factory=list)


class DeceleratorStructure(BaseModel):
    type: Literal["decelerator"] = "decelerator"
    decelerators: List[MultiplierTier] = Field(default_factory=list)


class TieredStructure(BaseModel):
    type: Literal["tiered"] = "tiered"
    tiers: List[AmountTier] = Field(default_factory=list)


CommissionStructure = Annotated[
    Union[
        BaseRateStructure,
        AcceleratorStructure,
        DeceleratorStructure,
        TieredStructure,
    ],
    Field(discriminator="type"),
]


# ── Engine results ────────────────────────────────────────


class PeriodMetrics(BaseModel):
    """Aggregates over the closed-won deals of one target period."""

    total_sales: Decimal
    quota_amount: Decimal
    attainment_percent: Decimal
    deal_count: int
    average_deal_size: Decimal


class RateDecision(BaseModel):
    """How the final rate for a period was reached."""

    base_rate: Decimal
    structure_type: str
    multiplier: Decimal = Decimal("1")
    soft_gate_factor: Decimal = Decimal("1")
    final_rate: Decimal
    hard_gate_failed: bool = False
    gate_results: List[GateResult] = Field(default_factory=list)
    limitation: Optional[str] = None


class PeriodRecalculationResult(BaseModel):
    """Summary of one period recalculation."""

    user_id: int
    target_id: int
    period_start: date
    period_end: date
    metrics: PeriodMetrics
    decision: RateDecision
    deal_ids: List[int]
    total_commission: Decimal

    @computed_field
    @property
    def deals_updated(self) -> int:
        return len(self.deal_ids)


class CommissionSummary(BaseModel):
    """Read-only commission totals for a rep and date range."""

    total_deals: int
    total_sales: Decimal
    total_commission: Decimal
    deals_with_pending_commission: int


# ── API payloads ──────────────────────────────────────────


class StageChangeRequest(BaseModel):
    """Stage transition reported by a deal update flow."""

    old_stage: Optional[str] = Field(None, max_length=100)
    new_stage: Optional[str] = Field(None, max_length=100)


class DealCommissionResponse(BaseModel):
    """Deal with its engine-owned commission fields."""

    id: int
    user_id: int
    deal_name: str
    amount: Decimal
    stage: Optional[str]
    close_date: date
    product_category_id: Optional[int] = None
    commission_rate: Optional[Decimal] = None
    commission_amount: Optional[Decimal] = None
    commission_calculated_at: Optional[datetime] = None
    target_id: Optional[int] = None
    commission_breakdown: Optional[dict[str, Any]] = None

    model_config = {"from_attributes": True}


class TargetRecalculationResponse(BaseModel):
    """Response for a target-triggered recalculation."""

    target_id: int
    recalculated: bool
    deals_updated: int = 0
    result: Optional[PeriodRecalculationResult] = None
