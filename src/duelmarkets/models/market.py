"""Market, Position, Fixture - canonical entities. Amounts are micro-unit ints."""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, Field


class MarketStatus(str, Enum):
    OPEN = "open"
    LOCKED = "locked"
    RESOLVED = "resolved"
    VOIDED = "voided"

    @property
    def terminal(self) -> bool:
        return self in (MarketStatus.RESOLVED, MarketStatus.VOIDED)


class MarketKind(str, Enum):
    MATCH = "match"
    TOURNAMENT = "tournament"


class Market(BaseModel):
    """LMSR market state. quantities[i] is outstanding shares of outcome i."""

    market_id: str
    outcome_count: int = Field(..., ge=2)
    liquidity: int = Field(..., gt=0, description="LMSR b, micro-units")
    quantities: list[int]
    status: MarketStatus = MarketStatus.OPEN
    resolved_outcome: int | None = None
    lock_time: int | None = None  # unix seconds; trading cutoff
    resolution_deadline: int  # unix seconds
    created_at: int = 0
    kind: MarketKind = MarketKind.MATCH
    label: str = ""
    fee_bps: int = Field(0, ge=0, le=10_000, description="Trade fee, basis points of LMSR value")
    platform_pool: int = 0  # fee half kept by the platform
    rewards_pool: int = 0  # fee half credited to liquidity stakers


class Position(BaseModel):
    """Held shares for one (trader, market). Never deleted; redeemed marks it spent."""

    trader: str
    market_id: str
    shares: list[int]
    total_cost: int = 0
    total_proceeds: int = 0
    total_fees: int = 0
    redeemed: bool = False
    payout: int = 0

    @property
    def net_contributed(self) -> int:
        return self.total_cost - self.total_proceeds


class Fixture(BaseModel):
    """Tournament fixture, consumed in round order."""

    match_id: int
    timestamp: int = 0
    round_number: int = 0
    resolved: bool = False
    winner_index: int | None = None
    is_round_final: bool = False
    is_tournament_final: bool = False
    home_team_id: int | None = None
    away_team_id: int | None = None
