"""
Monetary arithmetic on Decimal values.

Nothing here touches the global decimal context. Every function that
rounds takes the rounding mode as an argument, defaulting to
ROUND_HALF_UP, and amounts are always quantized to whole pence.
"""

from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Iterable, List, Union

Number = Union[Decimal, int, float, str, None]

CENT = Decimal("0.01")
RATE_QUANTUM = Decimal("0.000001")
ZERO = Decimal("0")
HUNDRED = Decimal("100")


def to_decimal(value: Number) -> Decimal:
    """
    Convert a value to Decimal.

    None becomes zero. Floats go through str() so 0.1 stays 0.1 rather
    than its binary expansion.
    """
    if value is None:
        return ZERO
    if isinstance(value, Decimal):
        return value
    if isinstance(value, float):
        value = str(value)
    try:
        return Decimal(value.strip() if isinstance(value, str) else value)
    except (InvalidOperation, TypeError, ValueError) as e:
        raise ValueError(f"Invalid monetary value: {value!r}") from e


def quantize_money(value: Number, rounding: str = ROUND_HALF_UP) -> Decimal:
    """Round to the nearest penny."""
    return to_decimal(value).quantize(CENT, rounding=rounding)


def quantize_rate(value: Number, rounding: str = ROUND_HALF_UP) -> Decimal:
    """Round a rate fraction to the precision stored on deals."""
    return to_decimal(value).quantize(RATE_QUANTUM, rounding=rounding)


def calculate_commission(
    amount: Number,
    rate: Number,
    rounding: str = ROUND_HALF_UP,
) -> Decimal:
    """Commission for one amount at one rate, rounded to the penny."""
    return quantize_money(to_decimal(amount) * to_decimal(rate), rounding)


def allocate_commissions(
    amounts: Iterable[Number],
    rate: Number,
    rounding: str = ROUND_HALF_UP,
) -> List[Decimal]:
    """
    Commission for each amount at a shared rate.

    Each share is rounded on its own, then any pennies lost or gained by
    rounding are handed back so the shares add up to the rounded total
    commission of the whole period. Pennies go to the shares that were
    rounded furthest from their exact value; ties go to the earlier share.

    33.33, 33.33 and 33.34 at 10% give 3.33, 3.33 and 3.34.
    """
    rate = to_decimal(rate)
    exact = [to_decimal(amount) * rate for amount in amounts]
    shares = [quantize_money(value, rounding) for value in exact]
    if not shares:
        return shares

    expected_total = quantize_money(sum(exact, ZERO), rounding)
    residual_cents = int((expected_total - sum(shares, ZERO)) / CENT)
    if residual_cents == 0:
        return shares

    step = CENT if residual_cents > 0 else -CENT
    order = sorted(
        range(len(shares)),
        key=lambda i: exact[i] - shares[i],
        reverse=residual_cents > 0,
    )
    for i in order[:abs(residual_cents)]:
        shares[i] += step
    return shares


def calculate_attainment(actual: Number, quota: Number) -> Decimal:
    """
    Attainment as a percentage of quota.

    Returns zero for a zero or missing quota. The result is not rounded;
    callers compare it against tier thresholds as-is.
    """
    quota = to_decimal(quota)
    if quota.is_zero():
        return ZERO
    return to_decimal(actual) / quota * HUNDRED


def sum_money(values: Iterable[Number]) -> Decimal:
    """Sum monetary values without rounding."""
    return sum((to_decimal(v) for v in values), ZERO)


def format_currency(value: Number, symbol: str = "£") -> str:
    """Format a value as currency, e.g. £1,234.50."""
    return f"{symbol}{quantize_money(value):,.2f}"
