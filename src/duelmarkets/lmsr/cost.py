"""LMSR cost function C(q) = b * ln(sum_i exp(q_i / b)) in fixed point."""

from __future__ import annotations

from typing import Sequence

from duelmarkets.errors import InvalidParameter
from duelmarkets.lmsr.fixed_math import (
    LN2,
    LOG2_E,
    MIN_POWER_POW2,
    ONE,
    EstimationMode,
    binary_log,
    from_fixed,
    pow2,
    to_fixed,
)

# Shifted exponents are clamped here; 2^-64 is below one unit of the 192.64 format.
EXP_FLOOR = MIN_POWER_POW2


def validate(quantities: Sequence[int], liquidity: int) -> None:
    """Reject inputs outside the cost function's domain before any math runs."""
    if len(quantities) < 2:
        raise InvalidParameter(f"outcome count must be >= 2, got {len(quantities)}")
    if liquidity <= 0:
        raise InvalidParameter(f"liquidity parameter must be > 0, got {liquidity}")
    for i, q in enumerate(quantities):
        if q < 0:
            raise InvalidParameter(f"quantity {i} is negative ({q})")


def shifted_terms(quantities: Sequence[int], liquidity: int) -> tuple[int, list[int]]:
    """Return (max exponent, [2^(e_i - max)]) with e_i = q_i * log2(e) / b, all 192.64."""
    b_fixed = to_fixed(liquidity)
    exponents = [to_fixed(q) * LOG2_E // b_fixed for q in quantities]
    max_exp = max(exponents)
    terms = [pow2(max(e - max_exp, EXP_FLOOR), EstimationMode.MIDPOINT) for e in exponents]
    return max_exp, terms


def cost_fixed(quantities: Sequence[int], liquidity: int) -> int:
    """C(q) as a 192.64 value. Quantities and liquidity are micro-units."""
    validate(quantities, liquidity)
    max_exp, terms = shifted_terms(quantities, liquidity)
    log2_total = max_exp + binary_log(sum(terms), EstimationMode.MIDPOINT)
    return to_fixed(liquidity) * log2_total * LN2 // (ONE * ONE)


def cost(quantities: Sequence[int], liquidity: int) -> int:
    """C(q) in micro-units (floor)."""
    return from_fixed(cost_fixed(quantities, liquidity))


def symmetric_cost(outcome_count: int, quantity: int, liquidity: int) -> int:
    """Closed form b*ln(N) + q for a vector of N equal quantities, micro-units."""
    if outcome_count < 2 or liquidity <= 0:
        raise InvalidParameter("symmetric_cost needs N >= 2 and b > 0")
    ln_n = binary_log(outcome_count * ONE, EstimationMode.MIDPOINT) * LN2 // ONE
    return from_fixed(to_fixed(liquidity) * ln_n // ONE) + quantity
