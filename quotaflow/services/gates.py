"""
Performance gate evaluation.

Gates only ever see period aggregates (PeriodMetrics), never individual
deals, so evaluating the same period twice always gives the same result.
"""

import logging
import operator
from decimal import Decimal
from typing import Any, Callable, Dict, List, Optional

from pydantic import TypeAdapter, ValidationError

from quotaflow.schemas.commission import (
    GateEnforcement,
    GateMetric,
    GateResult,
    PenaltyType,
    PerformanceGate,
    PeriodMetrics,
)
from quotaflow.services.exceptions import InvalidCommissionConfigError

logger = logging.getLogger(__name__)

OPERATORS: Dict[str, Callable[[Decimal, Decimal], bool]] = {
    ">=": operator.ge,
    ">": operator.gt,
    "<=": operator.le,
    "<": operator.lt,
    "==": operator.eq,
}

_gate_list = TypeAdapter(List[PerformanceGate])


def parse_performance_gates(raw: Any, target_id: Optional[int] = None) -> List[PerformanceGate]:
    """
    Validate a target's performance_gates JSON.

    Accepts the {"gates": [...]} shape saved by the target configuration
    UI or a bare list. None and empty values mean no gates.
    """
    if not raw:
        return []
    if isinstance(raw, dict):
        raw = raw.get("gates") or []
    try:
        return _gate_list.validate_python(raw)
    except ValidationError as e:
        raise InvalidCommissionConfigError(target_id, "performance_gates", str(e)) from e


def resolve_metric(metric: GateMetric, metrics: PeriodMetrics) -> Decimal:
    """Actual value of a gate metric for the period."""
    if metric is GateMetric.QUOTA_ATTAINMENT:
        return metrics.attainment_percent
    if metric is GateMetric.TOTAL_SALES:
        return metrics.total_sales
    if metric is GateMetric.QUOTA_AMOUNT:
        return metrics.quota_amount
    if metric is GateMetric.DEAL_COUNT:
        return Decimal(metrics.deal_count)
    if metric is GateMetric.AVERAGE_DEAL_SIZE:
        return metrics.average_deal_size
    raise ValueError(f"Unsupported gate metric: {metric}")


def evaluate_gate(gate: PerformanceGate, metrics: PeriodMetrics) -> GateResult:
    """
    Evaluate one gate.

    A zero_commission gate names the failing condition, so meeting the
    numeric condition means the gate did NOT pass: "attainment <= 50"
    passes at 80% and fails at 30%. Any other penalty type passes when
    its condition is met.
    """
    actual = resolve_metric(gate.metric, metrics)
    condition_met = OPERATORS[gate.operator](actual, gate.value)

    if gate.penalty_type is PenaltyType.ZERO_COMMISSION:
        passed = not condition_met
    else:
        passed = condition_met

    return GateResult(
        name=gate.name,
        metric=gate.metric,
        operator=gate.operator,
        value=gate.value,
        actual=actual,
        enforcement=gate.enforcement,
        penalty_type=gate.penalty_type,
        penalty_value=gate.penalty_value,
        passed=passed,
    )


def evaluate_gates(gates: List[PerformanceGate], metrics: PeriodMetrics) -> List[GateResult]:
    results = [evaluate_gate(gate, metrics) for gate in gates]
    for result in results:
        if not result.passed:
            logger.info(
                f"Gate '{result.name}' not passed ({result.enforcement.value}): "
                f"{result.metric.value}={result.actual} {result.operator} {result.value}"
            )
    return results


def hard_gate_failed(results: List[GateResult]) -> bool:
    """True if any hard gate did not pass."""
    return any(
        not r.passed and r.enforcement is GateEnforcement.HARD
        for r in results
    )


def soft_gate_factor(results: List[GateResult]) -> Decimal:
    """
    Combined rate factor from failed soft percentage_reduction gates.

    Two failed 10% gates give 0.9 * 0.9 = 0.81. Soft zero_commission gates
    are advisory and do not change the rate.
    """
    factor = Decimal("1")
    for r in results:
        if r.passed or r.enforcement is not GateEnforcement.SOFT:
            continue
        if r.penalty_type is PenaltyType.PERCENTAGE_REDUCTION and r.penalty_value:
            factor *= (Decimal("100") - r.penalty_value) / Decimal("100")
    return factor
