"""LedgerEntry and ExecutionResult - append-only market history and trade receipts."""

from __future__ import annotations

from enum import Enum
from typing import Any

from pydantic import BaseModel, Field


class TradeSide(str, Enum):
    BUY = "BUY"
    SELL = "SELL"


class LedgerKind(str, Enum):
    CREATE = "create"
    BUY = "buy"
    SELL = "sell"
    HALT = "halt"
    RESOLVE = "resolve"
    VOID = "void"
    REDEEM = "redeem"
    BRACKET = "bracket"  # tournament roster, round and result records


class LedgerEntry(BaseModel):
    """One committed mutation of a market, totally ordered by seq within the market."""

    market_id: str
    seq: int = Field(..., ge=0)
    kind: LedgerKind
    timestamp: int
    trader: str | None = None
    outcome: int | None = None
    amount: int = 0
    value: int = 0  # cost charged, proceeds paid or payout, micro-units
    fee: int = 0
    detail: dict[str, Any] = Field(default_factory=dict)


class ExecutionResult(BaseModel):
    """Committed trade: LMSR cost (BUY) or proceeds (SELL), the fee on top, and post-trade state."""

    market_id: str
    trader: str
    side: TradeSide
    outcome: int
    amount: int
    value: int
    fee: int = 0
    quantities: list[int]
    prices: list[int]
    seq: int
