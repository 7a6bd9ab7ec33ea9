"""Quote engine: instantaneous prices and buy/sell deltas from two cost evaluations.

Pure functions over (quantities, liquidity); safe to call from any number of
preview clients. Buy and sell are separate entry points, never a signed amount.
Rounding favours the market: buys are charged the ceiling of the fixed-point
difference and sells are paid its floor, so sell(q + d*e_k, d) is at most one
micro-unit below buy(q, d).
"""

from __future__ import annotations

from typing import Sequence

from duelmarkets.errors import InsufficientOutstandingShares, InvalidParameter, OutcomeOutOfRange
from duelmarkets.lmsr.cost import cost_fixed, shifted_terms, symmetric_cost, validate
from duelmarkets.lmsr.fixed_math import ONE, from_fixed, from_fixed_ceil


def _check_outcome(quantities: Sequence[int], outcome: int) -> None:
    if not 0 <= outcome < len(quantities):
        raise OutcomeOutOfRange(f"outcome {outcome} not in [0, {len(quantities)})")


def _check_amount(amount: int) -> None:
    if amount < 0:
        raise InvalidParameter(f"amount must be >= 0, got {amount}")


def prices_fixed(quantities: Sequence[int], liquidity: int) -> list[int]:
    """Per-outcome instantaneous prices, 192.64."""
    validate(quantities, liquidity)
    _, terms = shifted_terms(quantities, liquidity)
    total = sum(terms)
    return [term * ONE // total for term in terms]


def prices(quantities: Sequence[int], liquidity: int) -> list[int]:
    """Per-outcome instantaneous prices in micro-units. Sum is 10^6 minus at most N."""
    return [from_fixed(p) for p in prices_fixed(quantities, liquidity)]


def price(quantities: Sequence[int], liquidity: int, outcome: int) -> int:
    _check_outcome(quantities, outcome)
    return prices(quantities, liquidity)[outcome]


def buy_quote(quantities: Sequence[int], liquidity: int, outcome: int, amount: int) -> int:
    """Cost in micro-units of buying `amount` shares of `outcome`: C(q + amount*e_k) - C(q), rounded up."""
    validate(quantities, liquidity)
    _check_outcome(quantities, outcome)
    _check_amount(amount)
    if amount == 0:
        return 0
    after = list(quantities)
    after[outcome] += amount
    return max(0, from_fixed_ceil(cost_fixed(after, liquidity) - cost_fixed(quantities, liquidity)))


def sell_quote(quantities: Sequence[int], liquidity: int, outcome: int, amount: int) -> int:
    """Proceeds in micro-units of selling `amount` shares of `outcome`: C(q) - C(q - amount*e_k), rounded down."""
    validate(quantities, liquidity)
    _check_outcome(quantities, outcome)
    _check_amount(amount)
    if amount > quantities[outcome]:
        raise InsufficientOutstandingShares(
            f"sell {amount} exceeds outstanding {quantities[outcome]} for outcome {outcome}"
        )
    if amount == 0:
        return 0
    after = list(quantities)
    after[outcome] -= amount
    return max(0, from_fixed(cost_fixed(quantities, liquidity) - cost_fixed(after, liquidity)))


def shares_for_cost(quantities: Sequence[int], liquidity: int, outcome: int, budget: int) -> int:
    """Largest share amount whose buy cost does not exceed `budget` (micro-units)."""
    validate(quantities, liquidity)
    _check_outcome(quantities, outcome)
    if budget <= 0:
        return 0
    hi = max(1, budget)
    while buy_quote(quantities, liquidity, outcome, hi) <= budget:
        hi *= 2
    lo = 0  # invariant: quote(lo) <= budget < quote(hi)
    while lo + 1 < hi:
        mid = (lo + hi) // 2
        if buy_quote(quantities, liquidity, outcome, mid) <= budget:
            lo = mid
        else:
            hi = mid
    return lo


def shares_for_proceeds(
    quantities: Sequence[int], liquidity: int, outcome: int, target: int
) -> int | None:
    """Smallest sell amount whose proceeds reach `target`, or None if even q_k falls short."""
    validate(quantities, liquidity)
    _check_outcome(quantities, outcome)
    if target <= 0:
        return 0
    hi = quantities[outcome]
    if sell_quote(quantities, liquidity, outcome, hi) < target:
        return None
    lo = 0  # invariant: proceeds(lo) < target <= proceeds(hi)
    while lo + 1 < hi:
        mid = (lo + hi) // 2
        if sell_quote(quantities, liquidity, outcome, mid) >= target:
            hi = mid
        else:
            lo = mid
    return hi


def max_subsidy(outcome_count: int, liquidity: int) -> int:
    """Worst-case market-maker loss b*ln(N), micro-units."""
    return symmetric_cost(outcome_count, 0, liquidity)
