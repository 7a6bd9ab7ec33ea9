"""Deterministic 192.64 fixed-point exp2/log2.

Integer-only so every runtime evaluating the same input produces the same bits.
Any change to the constants or the series below must bump MATH_VERSION and the
golden vectors in tests/test_fixed_math.py.
"""

from __future__ import annotations

from decimal import ROUND_DOWN, Decimal
from enum import Enum

# v2: buy costs round up to the next micro-unit; sell proceeds and prices round down
MATH_VERSION = "fixed192x64-v2"

MICRO = 1_000_000

ONE = 0x10000000000000000
LN2 = 0xB17217F7D1CF79AC
LOG2_E = 0x171547652B82FE177

MAX_POWER_POW2 = 3541774862152233910271
MIN_POWER_POW2 = -1180591620717411303424

_UINT256_MAX = (1 << 256) - 1

# (coefficient, shift): ln2^i / i! scaled to 2^(64 + shift)
_POW2_SERIES = (
    (0xB17217F7D1CF79AB, 0),
    (0xF5FDEFFC162C7543, 2),
    (0xE35846B82505FC59, 4),
    (0x9D955B7DD273B94E, 6),
    (0xAEC3FF3C53398883, 9),
    (0xA184897C363C3B7A, 12),
    (0xFFE5FE2C45863435, 16),
    (0xB160111D2E411FEC, 19),
    (0xDA929E9CAF3E1ED2, 23),
    (0xF267A8AC5C764FB7, 27),
    (0xF465639A8DD92607, 31),
    (0xE1DEB287E14C2F15, 35),
    (0xC0B0C98B3687CB14, 39),
    (0x98A4B26AC3C54B9F, 43),
    (0xE1B7421D82010F33, 48),
    (0x9C744D73CFC59C91, 52),
    (0xCC2225A0E12D3EAB, 57),
    (0xFB8BB5EDA1B4AEB9, 62),
)


class EstimationMode(Enum):
    LOWER_BOUND = "lower"
    UPPER_BOUND = "upper"
    MIDPOINT = "midpoint"


def _pick(bounds: tuple[int, int], mode: EstimationMode) -> int:
    lower, upper = bounds
    if mode is EstimationMode.LOWER_BOUND:
        return lower
    if mode is EstimationMode.UPPER_BOUND:
        return upper
    return (upper - lower) // 2 + lower


def pow2_bounds(x: int) -> tuple[int, int]:
    """Lower and upper bound of 2^x, x and result in 192.64."""
    if x > MAX_POWER_POW2:
        raise ValueError("pow2 input too large")
    if x < MIN_POWER_POW2:
        return (0, 1)

    # floor split: x = shift * ONE + z with 0 <= z < ONE
    shift, z = divmod(x, ONE)

    result = ONE << 64
    zpow = z
    for coefficient, extra_shift in _POW2_SERIES:
        result += (coefficient * zpow) >> extra_shift
        zpow = zpow * z // ONE

    shift -= 64
    if shift >= 0:
        if result >> (256 - shift) != 0:
            return (_UINT256_MAX, _UINT256_MAX)
        lower = result << shift
        upper = lower + ((8 * ONE) << shift)
        return (lower, min(upper, _UINT256_MAX))
    lower = result >> -shift
    upper = lower + ((8 * ONE) >> -shift) + 1
    return (lower, upper)


def pow2(x: int, mode: EstimationMode = EstimationMode.MIDPOINT) -> int:
    return _pick(pow2_bounds(x), mode)


def floor_log2(x: int) -> int:
    """Integer part of log2(x) for x in 192.64."""
    if x <= 0:
        raise ValueError("floor_log2 of non-positive value is undefined")
    lo, hi = -64, 193
    while lo + 1 < hi:
        mid = (hi + lo) >> 1
        y = x << -mid if mid < 0 else x >> mid
        if y < ONE:
            hi = mid
        else:
            lo = mid
    return lo


def log2_bounds(x: int) -> tuple[int, int]:
    """Lower and upper bound of log2(x), x and result in 192.64."""
    if x <= 0:
        raise ValueError("log2 input must be positive")
    lower = floor_log2(x)
    y = x << -lower if lower < 0 else x >> lower
    lower *= ONE
    for m in range(1, 65):
        if y == ONE:
            break
        y = y * y // ONE
        if y >= 2 * ONE:
            lower += ONE >> m
            y //= 2
    return (lower, lower + 4)


def binary_log(x: int, mode: EstimationMode = EstimationMode.MIDPOINT) -> int:
    return _pick(log2_bounds(x), mode)


def to_fixed(micro: int) -> int:
    """Micro-units -> 192.64."""
    return micro * ONE // MICRO


def from_fixed(fx: int) -> int:
    """192.64 -> micro-units (floor)."""
    return fx * MICRO // ONE


def from_fixed_ceil(fx: int) -> int:
    """192.64 -> micro-units (ceiling)."""
    return -(-fx * MICRO // ONE)


def to_micro(value: int | float | str | Decimal) -> int:
    """Collateral/share units -> micro-units, truncating below one micro."""
    dec = Decimal(str(value)) if not isinstance(value, Decimal) else value
    return int((dec * MICRO).to_integral_value(rounding=ROUND_DOWN))


def from_micro(micro: int) -> Decimal:
    return Decimal(micro) / MICRO
