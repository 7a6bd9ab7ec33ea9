"""Canonical schema (Pydantic) - Market, Position, Fixture, ledger and trade results."""

from duelmarkets.models.market import Fixture, Market, MarketKind, MarketStatus, Position
from duelmarkets.models.trade import ExecutionResult, LedgerEntry, LedgerKind, TradeSide

__all__ = [
    "Market",
    "MarketKind",
    "MarketStatus",
    "Position",
    "Fixture",
    "ExecutionResult",
    "LedgerEntry",
    "LedgerKind",
    "TradeSide",
]
