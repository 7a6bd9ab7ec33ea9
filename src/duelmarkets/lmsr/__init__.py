"""LMSR cost function and quote engine on deterministic 192.64 fixed-point math."""

from duelmarkets.lmsr.cost import cost, cost_fixed, symmetric_cost
from duelmarkets.lmsr.fixed_math import MATH_VERSION, MICRO, from_micro, to_micro
from duelmarkets.lmsr.quote import (
    buy_quote,
    max_subsidy,
    price,
    prices,
    sell_quote,
    shares_for_cost,
    shares_for_proceeds,
)

__all__ = [
    "MATH_VERSION",
    "MICRO",
    "buy_quote",
    "cost",
    "cost_fixed",
    "from_micro",
    "max_subsidy",
    "price",
    "prices",
    "sell_quote",
    "shares_for_cost",
    "shares_for_proceeds",
    "symmetric_cost",
    "to_micro",
]
