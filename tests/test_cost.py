"""LMSR cost function: domain checks, numeric policy, closed-form cross-checks."""

import math

import pytest

from duelmarkets.errors import InvalidParameter
from duelmarkets.lmsr.cost import cost, cost_fixed, symmetric_cost
from duelmarkets.lmsr.fixed_math import MICRO


def float_cost(q, b):
    """Reference C(q) in micro-units via shifted log-sum-exp on floats."""
    m = max(q) / b
    return b * (m + math.log(sum(math.exp(qi / b - m) for qi in q)))


@pytest.mark.parametrize(
    "q,b",
    [
        ([0, 0], MICRO),
        ([0, 0, 0], 100 * MICRO),
        ([10 * MICRO, 0, 0], 100 * MICRO),
        ([250 * MICRO, 40 * MICRO, 3 * MICRO], 300 * MICRO),
        ([1, 2, 3, 4, 5, 6, 7, 8], 5 * MICRO),
    ],
)
def test_cost_matches_reference_within_rounding(q, b):
    assert abs(cost(q, b) - float_cost(q, b)) <= 2


def test_symmetric_shortcut():
    b = 100 * MICRO
    for n in (2, 3, 8):
        for x in (0, 7 * MICRO, 1000 * MICRO):
            assert abs(cost([x] * n, b) - symmetric_cost(n, x, b)) <= 2
            assert abs(symmetric_cost(n, x, b) - (b * math.log(n) + x)) <= 2


def test_exact_cost_vectors():
    assert cost_fixed([0, 0, 0], 100 * MICRO) == 2_026_581_972_529_293_964_408
    assert cost([0, 0, 0], 100 * MICRO) == 109_861_228
    assert cost_fixed([0, 0], MICRO) == 12_786_308_645_202_655_664
    assert cost_fixed([250 * MICRO, 40 * MICRO, 3 * MICRO], 300 * MICRO) == 8_266_311_754_985_050_876_092
    assert symmetric_cost(3, 0, 100 * MICRO) == 109_861_228


def test_invalid_parameters_rejected():
    with pytest.raises(InvalidParameter):
        cost([0, 0], 0)
    with pytest.raises(InvalidParameter):
        cost([0, 0], -5)
    with pytest.raises(InvalidParameter):
        cost([0], MICRO)
    with pytest.raises(InvalidParameter):
        cost([0, -1], MICRO)
    with pytest.raises(ValueError):
        cost_fixed([], MICRO)


def test_large_quantities_stay_bounded():
    """Shifted evaluation: huge absolute quantities relative to b do not overflow."""
    b = MICRO
    q = [10**12, 10**12 - 5 * MICRO, 0]
    c = cost(q, b)
    assert q[0] <= c <= q[0] + b
    assert abs(c - float_cost(q, b)) <= 2


def test_monotone_and_convex_along_one_outcome():
    b = 50 * MICRO
    step = 5 * MICRO
    values = [cost([k * step, 0, 0], b) for k in range(30)]
    diffs = [b2 - a for a, b2 in zip(values, values[1:])]
    assert all(d > 0 for d in diffs)
    assert all(d2 >= d1 - 1 for d1, d2 in zip(diffs, diffs[1:]))
    assert all(d <= step for d in diffs)
