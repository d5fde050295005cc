"""Pydantic schemas for commission configuration, results and API payloads."""

from quotaflow.schemas.commission import (
    AcceleratorStructure,
    AmountTier,
    BaseRateStructure,
    CommissionStructure,
    CommissionSummary,
    DealCommissionResponse,
    DeceleratorStructure,
    GateEnforcement,
    GateMetric,
    GateResult,
    MultiplierTier,
    PenaltyType,
    PerformanceGate,
    PeriodMetrics,
    PeriodRecalculationResult,
    RateDecision,
    StageChangeRequest,
    TargetRecalculationResponse,
    TieredStructure,
)

__all__ = [
    # Gates
    "PerformanceGate",
    "GateMetric",
    "GateEnforcement",
    "PenaltyType",
    "GateResult",
    # Structures
    "CommissionStructure",
    "BaseRateStructure",
    "AcceleratorStructure",
    "DeceleratorStructure",
    "TieredStructure",
    "MultiplierTier",
    "AmountTier",
    # Results
    "PeriodMetrics",
    "RateDecision",
    "PeriodRecalculationResult",
    "CommissionSummary",
    # API
    "StageChangeRequest",
    "DealCommissionResponse",
    "TargetRecalculationResponse",
]
