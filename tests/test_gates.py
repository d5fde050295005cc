"""
Tests for performance gate parsing and evaluation.
"""

from decimal import Decimal

import pytest

from quotaflow.schemas.commission import (
    GateEnforcement,
    GateMetric,
    PenaltyType,
    PerformanceGate,
    PeriodMetrics,
)
from quotaflow.services.exceptions import InvalidCommissionConfigError
from quotaflow.services.gates import (
    evaluate_gate,
    evaluate_gates,
    hard_gate_failed,
    parse_performance_gates,
    soft_gate_factor,
)


def make_metrics(attainment="80", total_sales="80000", deal_count=4) -> PeriodMetrics:
    total = Decimal(total_sales)
    return PeriodMetrics(
        total_sales=total,
        quota_amount=Decimal("100000"),
        attainment_percent=Decimal(attainment),
        deal_count=deal_count,
        average_deal_size=total / deal_count if deal_count else Decimal("0"),
    )


def zero_gate(op="<=", value="50", enforcement="hard", metric="quota_attainment") -> PerformanceGate:
    return PerformanceGate(
        name="Minimum attainment",
        metric=metric,
        operator=op,
        value=Decimal(value),
        enforcement=enforcement,
        penalty_type="zero_commission",
    )


class TestParsePerformanceGates:
    def test_wrapped_and_bare_lists(self):
        gate = {"metric": "quota_attainment", "operator": "<", "value": 50}
        assert len(parse_performance_gates({"gates": [gate]})) == 1
        assert len(parse_performance_gates([gate])) == 1

    @pytest.mark.parametrize("raw", [None, {}, [], {"gates": []}, {"gates": None}])
    def test_empty_means_no_gates(self, raw):
        assert parse_performance_gates(raw) == []

    def test_defaults(self):
        [gate] = parse_performance_gates([{"metric": "total_sales", "operator": ">=", "value": 1}])
        assert gate.enforcement is GateEnforcement.HARD
        assert gate.penalty_type is PenaltyType.ZERO_COMMISSION

    def test_metric_aliases(self):
        [gate] = parse_performance_gates([{"metric": "Attainment", "operator": ">=", "value": 1}])
        assert gate.metric is GateMetric.QUOTA_ATTAINMENT

    def test_invalid_gate_raises_config_error(self):
        with pytest.raises(InvalidCommissionConfigError) as exc_info:
            parse_performance_gates([{"metric": "quota_attainment", "operator": "~", "value": 1}], target_id=7)
        assert exc_info.value.target_id == 7
        assert exc_info.value.field == "performance_gates"

    def test_penalty_value_bounded(self):
        with pytest.raises(InvalidCommissionConfigError):
            parse_performance_gates([{
                "metric": "quota_attainment",
                "operator": ">=",
                "value": 50,
                "penalty_type": "percentage_reduction",
                "penalty_value": 150,
            }])


class TestEvaluateGate:
    def test_zero_commission_gate_passes_when_condition_not_met(self):
        result = evaluate_gate(zero_gate("<=", "50"), make_metrics(attainment="80"))
        assert result.passed is True
        assert result.actual == Decimal("80")

    def test_zero_commission_gate_fails_when_condition_met(self):
        result = evaluate_gate(zero_gate("<=", "50"), make_metrics(attainment="30"))
        assert result.passed is False

    def test_boundary_is_inclusive_for_lte(self):
        result = evaluate_gate(zero_gate("<=", "50"), make_metrics(attainment="50"))
        assert result.passed is False

    def test_percentage_reduction_gate_passes_when_condition_met(self):
        gate = PerformanceGate(
            metric="deal_count",
            operator=">=",
            value=Decimal("3"),
            enforcement="soft",
            penalty_type="percentage_reduction",
            penalty_value=Decimal("20"),
        )
        assert evaluate_gate(gate, make_metrics(deal_count=4)).passed is True
        assert evaluate_gate(gate, make_metrics(deal_count=2)).passed is False

    def test_other_metrics(self):
        metrics = make_metrics(total_sales="80000", deal_count=4)
        assert evaluate_gate(zero_gate("<", "50000", metric="total_sales"), metrics).passed is True
        assert evaluate_gate(zero_gate("<", "25000", metric="average_deal_size"), metrics).passed is False
        assert evaluate_gate(zero_gate("==", "100000", metric="quota_amount"), metrics).passed is False


class TestGateOutcomes:
    def test_hard_failure_detected(self):
        results = evaluate_gates([zero_gate("<", "50")], make_metrics(attainment="30"))
        assert hard_gate_failed(results) is True

    def test_soft_zero_commission_is_advisory(self):
        results = evaluate_gates([zero_gate("<", "50", enforcement="soft")], make_metrics(attainment="30"))
        assert hard_gate_failed(results) is False
        assert soft_gate_factor(results) == Decimal("1")

    def test_soft_reductions_compound(self):
        gates = [
            PerformanceGate(
                name=f"Gate {i}",
                metric="quota_attainment",
                operator=">=",
                value=Decimal("90"),
                enforcement="soft",
                penalty_type="percentage_reduction",
                penalty_value=Decimal("10"),
            )
            for i in range(2)
        ]
        results = evaluate_gates(gates, make_metrics(attainment="80"))
        assert soft_gate_factor(results) == Decimal("0.81")

    def test_no_gates(self):
        results = evaluate_gates([], make_metrics())
        assert results == []
        assert hard_gate_failed(results) is False
        assert soft_gate_factor(results) == Decimal("1")
