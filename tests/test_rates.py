"""
Tests for commission structure parsing and rate derivation.
"""

from decimal import Decimal

import pytest

from quotaflow.schemas.commission import (
    AcceleratorStructure,
    BaseRateStructure,
    DeceleratorStructure,
    GateResult,
    MultiplierTier,
    TieredStructure,
)
from quotaflow.services.exceptions import InvalidCommissionConfigError
from quotaflow.services.rates import (
    TIERED_LIMITATION,
    accelerator_multiplier,
    decelerator_multiplier,
    derive_rate,
    parse_commission_structure,
)


def tiers(*pairs):
    return [MultiplierTier(threshold=Decimal(t), multiplier=Decimal(m)) for t, m in pairs]


def gate_result(passed: bool, enforcement="hard", penalty_type="zero_commission", penalty_value=None):
    return GateResult(
        name="gate",
        metric="quota_attainment",
        operator="<",
        value=Decimal("50"),
        actual=Decimal("30"),
        enforcement=enforcement,
        penalty_type=penalty_type,
        penalty_value=penalty_value,
        passed=passed,
    )


class TestParseCommissionStructure:
    @pytest.mark.parametrize("raw", [None, {}, {"type": "flat"}, {"type": "performance_gate"}])
    def test_base_rate_shapes(self, raw):
        assert isinstance(parse_commission_structure(raw), BaseRateStructure)

    def test_accelerator(self):
        structure = parse_commission_structure({
            "type": "accelerator",
            "accelerators": [{"threshold": 100, "multiplier": 1.5}],
        })
        assert isinstance(structure, AcceleratorStructure)
        assert structure.accelerators[0].multiplier == Decimal("1.5")

    def test_decelerator_and_tiered(self):
        assert isinstance(
            parse_commission_structure({"type": "decelerator", "decelerators": []}),
            DeceleratorStructure,
        )
        assert isinstance(
            parse_commission_structure({"type": "Tiered", "tiers": [{"threshold": 0, "rate": 0.1}]}),
            TieredStructure,
        )

    def test_unknown_type_raises_config_error(self):
        with pytest.raises(InvalidCommissionConfigError) as exc_info:
            parse_commission_structure({"type": "spiff"}, target_id=3)
        assert exc_info.value.field == "commission_structure"

    def test_negative_multiplier_rejected(self):
        with pytest.raises(InvalidCommissionConfigError):
            parse_commission_structure({
                "type": "accelerator",
                "accelerators": [{"threshold": 100, "multiplier": -1}],
            })


class TestMultipliers:
    def test_accelerator_highest_qualifying_tier(self):
        ladder = tiers(("100", "1.5"), ("120", "2.0"))
        assert accelerator_multiplier(ladder, Decimal("99.99")) == Decimal("1")
        assert accelerator_multiplier(ladder, Decimal("100")) == Decimal("1.5")
        assert accelerator_multiplier(ladder, Decimal("130")) == Decimal("2.0")

    @pytest.mark.parametrize(
        "attainment, expected",
        [("160", "1.5"), ("120", "1.2"), ("90", "1.0")],
    )
    def test_accelerator_picks_best_tier_not_first(self, attainment, expected):
        ladder = tiers(("100", "1.2"), ("150", "1.5"))
        assert accelerator_multiplier(ladder, Decimal(attainment)) == Decimal(expected)

    def test_accelerator_ignores_tier_order(self):
        ladder = tiers(("120", "2.0"), ("100", "1.5"))
        assert accelerator_multiplier(ladder, Decimal("125")) == Decimal("2.0")

    def test_decelerator_lowest_qualifying_tier(self):
        ladder = tiers(("50", "0.5"), ("80", "0.8"))
        assert decelerator_multiplier(ladder, Decimal("40")) == Decimal("0.5")
        assert decelerator_multiplier(ladder, Decimal("60")) == Decimal("0.8")
        assert decelerator_multiplier(ladder, Decimal("80")) == Decimal("1")

    def test_empty_ladders(self):
        assert accelerator_multiplier([], Decimal("200")) == Decimal("1")
        assert decelerator_multiplier([], Decimal("0")) == Decimal("1")


class TestDeriveRate:
    def test_accelerated_rate(self):
        structure = AcceleratorStructure(accelerators=tiers(("100", "1.5")))
        decision = derive_rate(Decimal("0.05"), structure, Decimal("110"), [])
        assert decision.final_rate == Decimal("0.075")
        assert decision.multiplier == Decimal("1.5")
        assert decision.structure_type == "accelerator"

    def test_hard_gate_short_circuits_structure(self):
        structure = AcceleratorStructure(accelerators=tiers(("0", "2")))
        decision = derive_rate(Decimal("0.05"), structure, Decimal("30"), [gate_result(passed=False)])
        assert decision.final_rate == Decimal("0")
        assert decision.hard_gate_failed is True

    def test_passed_hard_gate_does_not_change_rate(self):
        decision = derive_rate(Decimal("0.05"), BaseRateStructure(), Decimal("80"), [gate_result(passed=True)])
        assert decision.final_rate == Decimal("0.05")

    def test_soft_reduction_applied(self):
        failed = gate_result(
            passed=False,
            enforcement="soft",
            penalty_type="percentage_reduction",
            penalty_value=Decimal("20"),
        )
        decision = derive_rate(Decimal("0.05"), BaseRateStructure(), Decimal("80"), [failed])
        assert decision.soft_gate_factor == Decimal("0.8")
        assert decision.final_rate == Decimal("0.04")

    def test_decelerated_rate(self):
        structure = DeceleratorStructure(decelerators=tiers(("50", "0.5"), ("80", "0.8")))
        decision = derive_rate(Decimal("0.05"), structure, Decimal("60"), [])
        assert decision.final_rate == Decimal("0.04")

    def test_tiered_falls_back_to_base_rate(self, caplog):
        structure = TieredStructure()
        decision = derive_rate(Decimal("0.05"), structure, Decimal("150"), [], target_id=9)
        assert decision.final_rate == Decimal("0.05")
        assert decision.limitation == TIERED_LIMITATION
        assert "tiered" in caplog.text
