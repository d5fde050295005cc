"""
Commission rate derivation for a target period.

The final rate is the target's base rate times the structure multiplier
for the period's attainment, times the soft gate factor. A failed hard
gate overrides all of it with a zero rate.
"""

import logging
from decimal import Decimal
from typing import Any, List, Optional

from pydantic import TypeAdapter, ValidationError

from quotaflow.schemas.commission import (
    AcceleratorStructure,
    BaseRateStructure,
    CommissionStructure,
    DeceleratorStructure,
    GateResult,
    MultiplierTier,
    RateDecision,
    TieredStructure,
)
from quotaflow.services import gates as gate_rules
from quotaflow.services.exceptions import InvalidCommissionConfigError
from quotaflow.services.money import to_decimal

logger = logging.getLogger(__name__)

ONE = Decimal("1")
ZERO = Decimal("0")

TIERED_LIMITATION = "tiered_structure_not_applied_at_period_level"

# Structure types written by older versions of the target configuration UI
_BASE_RATE_ALIASES = {"base_rate", "base", "flat", "none", "performance_gate"}

_structure = TypeAdapter(CommissionStructure)


def parse_commission_structure(raw: Any, target_id: Optional[int] = None):
    """
    Validate a target's commission_structure JSON into its structure model.

    None or an empty dict is a flat base rate.
    """
    if not raw:
        return BaseRateStructure()
    if isinstance(raw, dict):
        kind = str(raw.get("type") or "base_rate").strip().lower()
        raw = {**raw, "type": "base_rate" if kind in _BASE_RATE_ALIASES else kind}
    try:
        return _structure.validate_python(raw)
    except ValidationError as e:
        raise InvalidCommissionConfigError(target_id, "commission_structure", str(e)) from e


def accelerator_multiplier(tiers: List[MultiplierTier], attainment: Decimal) -> Decimal:
    """
    Greatest multiplier among tiers whose threshold has been reached.

    The multiplier decides, not the threshold, so a misordered tier list
    still pays the best qualifying tier. No qualifying tier: 1.
    """
    qualifying = [t.multiplier for t in tiers if t.threshold <= attainment]
    return max(qualifying) if qualifying else ONE


def decelerator_multiplier(tiers: List[MultiplierTier], attainment: Decimal) -> Decimal:
    """
    Smallest multiplier among tiers whose floor attainment is still below.

    No qualifying tier: 1.
    """
    qualifying = [t.multiplier for t in tiers if t.threshold > attainment]
    return min(qualifying) if qualifying else ONE


def structure_multiplier(structure, attainment: Decimal) -> Decimal:
    """Rate multiplier for a commission structure at the given attainment."""
    if isinstance(structure, BaseRateStructure):
        return ONE
    if isinstance(structure, AcceleratorStructure):
        return accelerator_multiplier(structure.accelerators, attainment)
    if isinstance(structure, DeceleratorStructure):
        return decelerator_multiplier(structure.decelerators, attainment)
    if isinstance(structure, TieredStructure):
        # Tiers are keyed on individual deal amounts, which a period rate can't express
        return ONE
    raise TypeError(f"Unhandled commission structure: {type(structure).__name__}")


def derive_rate(
    base_rate: Any,
    structure,
    attainment: Decimal,
    gate_results: List[GateResult],
    target_id: Optional[int] = None,
) -> RateDecision:
    """Final commission rate for a period."""
    base_rate = to_decimal(base_rate)

    if gate_rules.hard_gate_failed(gate_results):
        return RateDecision(
            base_rate=base_rate,
            structure_type=structure.type,
            multiplier=ZERO,
            soft_gate_factor=ONE,
            final_rate=ZERO,
            hard_gate_failed=True,
            gate_results=gate_results,
        )

    limitation = None
    if isinstance(structure, TieredStructure):
        limitation = TIERED_LIMITATION
        logger.warning(
            f"Target {target_id} uses a tiered commission structure; "
            f"period recalculation pays the base rate {base_rate}"
        )

    multiplier = structure_multiplier(structure, attainment)
    factor = gate_rules.soft_gate_factor(gate_results)

    return RateDecision(
        base_rate=base_rate,
        structure_type=structure.type,
        multiplier=multiplier,
        soft_gate_factor=factor,
        final_rate=base_rate * multiplier * factor,
        hard_gate_failed=False,
        gate_results=gate_results,
        limitation=limitation,
    )
