"""Settlement engine - market lifecycle state machine, trade execution and redemption.

Markets live in an arena keyed by id. Each market record owns a lock: every
quantity update and lifecycle transition for one market is serialized through
it and appended to that market's ledger in commit order.

    OPEN -> LOCKED -> RESOLVED | VOIDED   (terminal)
"""

from __future__ import annotations

import threading
import time
import uuid
from typing import Any, Callable

import structlog

from duelmarkets.errors import (
    AlreadyRedeemed,
    InsufficientOutstandingShares,
    InvalidParameter,
    MarketAlreadyResolved,
    MarketNotFound,
    MarketNotLocked,
    MarketNotOpen,
    MarketNotResolved,
    NoPosition,
    OutcomeOutOfRange,
    ResolutionWindowExpired,
    SlippageExceeded,
)
from duelmarkets.lmsr.fixed_math import MICRO
from duelmarkets.lmsr.quote import buy_quote, prices, sell_quote
from duelmarkets.models import (
    ExecutionResult,
    LedgerEntry,
    LedgerKind,
    Market,
    MarketKind,
    MarketStatus,
    Position,
    TradeSide,
)
from duelmarkets.settlement.ledger import MarketLedger

log = structlog.get_logger(__name__)

CommitSink = Callable[[LedgerEntry], None]

FEE_DENOMINATOR = 10_000


def _now(now: int | None) -> int:
    return int(time.time()) if now is None else int(now)


def trade_fee(value: int, fee_bps: int) -> int:
    """Fee on an LMSR value in micro-units: half to the platform, half to stakers.

    Each half rounds up, so the fee is always even. It never exceeds the value.
    """
    half = -(-value * fee_bps // (2 * FEE_DENOMINATOR))
    return min(2 * half, value - value % 2)


def _check_fee_bps(fee_bps: int) -> None:
    if not 0 <= fee_bps <= FEE_DENOMINATOR:
        raise InvalidParameter(f"fee_bps must be in [0, {FEE_DENOMINATOR}], got {fee_bps}")


class _MarketRecord:
    """Mutable state of one market. Only touched while holding `lock`."""

    __slots__ = ("market", "positions", "ledger", "lock")

    def __init__(self, market: Market) -> None:
        self.market = market
        self.positions: dict[str, Position] = {}
        self.ledger = MarketLedger(market.market_id)
        self.lock = threading.Lock()


class SettlementEngine:
    """Authoritative single-writer-per-market LMSR settlement."""

    def __init__(
        self,
        redemption_unit: int = MICRO,
        on_commit: CommitSink | None = None,
        fee_bps: int = 0,
    ) -> None:
        if redemption_unit <= 0:
            raise InvalidParameter(f"redemption_unit must be > 0, got {redemption_unit}")
        _check_fee_bps(fee_bps)
        self.redemption_unit = redemption_unit
        self.fee_bps = fee_bps
        self._on_commit = on_commit
        self._markets: dict[str, _MarketRecord] = {}
        self._registry_lock = threading.Lock()

    # --- internals -------------------------------------------------------

    def _record(self, market_id: str) -> _MarketRecord:
        record = self._markets.get(market_id)
        if record is None:
            raise MarketNotFound(f"unknown market {market_id}")
        return record

    def _commit(self, record: _MarketRecord, kind: LedgerKind, timestamp: int, **fields: Any) -> LedgerEntry:
        entry = record.ledger.append(kind, timestamp, **fields)
        if self._on_commit is not None:
            self._on_commit(entry)
        return entry

    def _refresh(self, record: _MarketRecord, ts: int) -> None:
        """Apply time-driven transitions: cutoff locks, an elapsed deadline voids."""
        market = record.market
        if market.status is MarketStatus.OPEN:
            past_cutoff = market.lock_time is not None and ts >= market.lock_time
            if past_cutoff or ts > market.resolution_deadline:
                market.status = MarketStatus.LOCKED
                self._commit(record, LedgerKind.HALT, ts, detail={"reason": "cutoff"})
                log.info("market_locked", market_id=market.market_id, reason="cutoff", ts=ts)
        if market.status is MarketStatus.LOCKED and ts > market.resolution_deadline:
            market.status = MarketStatus.VOIDED
            self._commit(record, LedgerKind.VOID, ts, detail={"reason": "deadline"})
            log.warning("market_voided", market_id=market.market_id, reason="deadline", ts=ts)

    @staticmethod
    def _collect_fee(market: Market, fee: int) -> None:
        """Split a fee equally between the platform and rewards pools."""
        market.platform_pool += fee // 2
        market.rewards_pool += fee // 2

    @staticmethod
    def _check_outcome(market: Market, outcome: int) -> None:
        if not 0 <= outcome < market.outcome_count:
            raise OutcomeOutOfRange(f"outcome {outcome} not in [0, {market.outcome_count})")

    # --- lifecycle -------------------------------------------------------

    def create_market(
        self,
        outcome_count: int,
        liquidity: int,
        resolution_deadline: int,
        *,
        lock_time: int | None = None,
        market_id: str | None = None,
        kind: MarketKind | str = MarketKind.MATCH,
        label: str = "",
        fee_bps: int | None = None,
        now: int | None = None,
    ) -> str:
        """Create an Open market with all-zero quantities. Returns its id.

        `fee_bps` defaults to the engine-wide rate and is fixed for the market's life.
        """
        if outcome_count < 2:
            raise InvalidParameter(f"outcome count must be >= 2, got {outcome_count}")
        if liquidity <= 0:
            raise InvalidParameter(f"liquidity parameter must be > 0, got {liquidity}")
        if lock_time is not None and lock_time > resolution_deadline:
            raise InvalidParameter("lock_time must not be after resolution_deadline")
        fee_bps = self.fee_bps if fee_bps is None else fee_bps
        _check_fee_bps(fee_bps)
        ts = _now(now)
        mid = market_id or uuid.uuid4().hex[:12]
        market = Market(
            market_id=mid,
            outcome_count=outcome_count,
            liquidity=liquidity,
            quantities=[0] * outcome_count,
            lock_time=lock_time,
            resolution_deadline=resolution_deadline,
            created_at=ts,
            kind=MarketKind(kind),
            label=label,
            fee_bps=fee_bps,
        )
        with self._registry_lock:
            if mid in self._markets:
                raise InvalidParameter(f"market {mid} already exists")
            record = _MarketRecord(market)
            self._markets[mid] = record
        with record.lock:
            self._commit(
                record,
                LedgerKind.CREATE,
                ts,
                amount=outcome_count,
                value=liquidity,
                detail={
                    "resolution_deadline": resolution_deadline,
                    "lock_time": lock_time,
                    "kind": market.kind.value,
                    "label": label,
                    "fee_bps": fee_bps,
                },
            )
        log.info("market_created", market_id=mid, outcomes=outcome_count, liquidity=liquidity, kind=market.kind.value)
        return mid

    def refresh(self, market_id: str, now: int | None = None) -> MarketStatus:
        """Evaluate cutoff and deadline against `now`; return the resulting status."""
        record = self._record(market_id)
        with record.lock:
            self._refresh(record, _now(now))
            return record.market.status

    def halt(self, market_id: str, now: int | None = None) -> MarketStatus:
        """Explicit Open -> Locked (oracle pipeline halt). No-op when already Locked."""
        record = self._record(market_id)
        ts = _now(now)
        with record.lock:
            self._refresh(record, ts)
            market = record.market
            if market.status is MarketStatus.LOCKED:
                return market.status
            if market.status is not MarketStatus.OPEN:
                raise MarketNotOpen(f"market {market_id} is {market.status.value}")
            market.status = MarketStatus.LOCKED
            self._commit(record, LedgerKind.HALT, ts, detail={"reason": "halt"})
        log.info("market_locked", market_id=market_id, reason="halt", ts=ts)
        return MarketStatus.LOCKED

    def resolve(self, market_id: str, outcome: int, now: int | None = None) -> MarketStatus:
        """Locked -> Resolved with `outcome`. Repeating the same outcome is a no-op."""
        record = self._record(market_id)
        ts = _now(now)
        with record.lock:
            self._refresh(record, ts)
            market = record.market
            self._check_outcome(market, outcome)
            if market.status is MarketStatus.RESOLVED:
                if market.resolved_outcome == outcome:
                    return market.status
                raise MarketAlreadyResolved(
                    f"market {market_id} resolved to {market.resolved_outcome}, not {outcome}"
                )
            if market.status is MarketStatus.VOIDED:
                if ts > market.resolution_deadline:
                    raise ResolutionWindowExpired(
                        f"market {market_id} deadline {market.resolution_deadline} elapsed"
                    )
                raise MarketAlreadyResolved(f"market {market_id} is voided")
            if market.status is MarketStatus.OPEN:
                raise MarketNotLocked(f"market {market_id} is still open")
            market.status = MarketStatus.RESOLVED
            market.resolved_outcome = outcome
            self._commit(record, LedgerKind.RESOLVE, ts, outcome=outcome)
        log.info("market_resolved", market_id=market_id, outcome=outcome)
        return MarketStatus.RESOLVED

    def void(self, market_id: str, now: int | None = None, reason: str = "cancelled") -> MarketStatus:
        """Oracle reports the event cancelled: Open/Locked -> Voided. Idempotent."""
        record = self._record(market_id)
        ts = _now(now)
        with record.lock:
            self._refresh(record, ts)
            market = record.market
            if market.status is MarketStatus.VOIDED:
                return market.status
            if market.status is MarketStatus.RESOLVED:
                raise MarketAlreadyResolved(f"market {market_id} resolved to {market.resolved_outcome}")
            if market.status is MarketStatus.OPEN:
                market.status = MarketStatus.LOCKED
                self._commit(record, LedgerKind.HALT, ts, detail={"reason": "halt"})
            market.status = MarketStatus.VOIDED
            self._commit(record, LedgerKind.VOID, ts, detail={"reason": reason})
        log.warning("market_voided", market_id=market_id, reason=reason)
        return MarketStatus.VOIDED

    # --- trading ---------------------------------------------------------

    def quote_buy(self, market_id: str, outcome: int, amount: int) -> int:
        record = self._record(market_id)
        with record.lock:
            market = record.market
            return buy_quote(market.quantities, market.liquidity, outcome, amount)

    def quote_sell(self, market_id: str, outcome: int, amount: int) -> int:
        record = self._record(market_id)
        with record.lock:
            market = record.market
            return sell_quote(market.quantities, market.liquidity, outcome, amount)

    def market_prices(self, market_id: str) -> list[int]:
        record = self._record(market_id)
        with record.lock:
            return prices(record.market.quantities, record.market.liquidity)

    def execute_buy(
        self,
        market_id: str,
        trader: str,
        outcome: int,
        amount: int,
        max_cost: int,
        now: int | None = None,
    ) -> ExecutionResult:
        """Buy `amount` shares at the live price plus the market fee.

        SlippageExceeded if cost + fee > max_cost.
        """
        record = self._record(market_id)
        ts = _now(now)
        with record.lock:
            self._refresh(record, ts)
            market = record.market
            if market.status is not MarketStatus.OPEN:
                raise MarketNotOpen(f"market {market_id} is {market.status.value}")
            self._check_outcome(market, outcome)
            if amount <= 0:
                raise InvalidParameter(f"buy amount must be > 0, got {amount}")
            cost = buy_quote(market.quantities, market.liquidity, outcome, amount)
            fee = trade_fee(cost, market.fee_bps)
            if cost + fee > max_cost:
                raise SlippageExceeded(f"cost {cost} plus fee {fee} exceeds max_cost {max_cost}")

            quantities = list(market.quantities)
            quantities[outcome] += amount
            new_prices = prices(quantities, market.liquidity)
            position = record.positions.get(trader) or Position(
                trader=trader, market_id=market_id, shares=[0] * market.outcome_count
            )
            shares = list(position.shares)
            shares[outcome] += amount

            market.quantities = quantities
            self._collect_fee(market, fee)
            record.positions[trader] = position.model_copy(
                update={
                    "shares": shares,
                    "total_cost": position.total_cost + cost,
                    "total_fees": position.total_fees + fee,
                }
            )
            entry = self._commit(
                record, LedgerKind.BUY, ts, trader=trader, outcome=outcome, amount=amount, value=cost, fee=fee
            )
        log.info("trade_executed", market_id=market_id, side="BUY", trader=trader, outcome=outcome, amount=amount, cost=cost, fee=fee)
        return ExecutionResult(
            market_id=market_id,
            trader=trader,
            side=TradeSide.BUY,
            outcome=outcome,
            amount=amount,
            value=cost,
            fee=fee,
            quantities=quantities,
            prices=new_prices,
            seq=entry.seq,
        )

    def execute_sell(
        self,
        market_id: str,
        trader: str,
        outcome: int,
        amount: int,
        min_proceeds: int,
        now: int | None = None,
    ) -> ExecutionResult:
        """Sell held shares at the live price less the market fee.

        SlippageExceeded if proceeds - fee < min_proceeds.
        """
        record = self._record(market_id)
        ts = _now(now)
        with record.lock:
            self._refresh(record, ts)
            market = record.market
            if market.status is not MarketStatus.OPEN:
                raise MarketNotOpen(f"market {market_id} is {market.status.value}")
            self._check_outcome(market, outcome)
            if amount <= 0:
                raise InvalidParameter(f"sell amount must be > 0, got {amount}")
            position = record.positions.get(trader)
            held = position.shares[outcome] if position is not None else 0
            if held < amount:
                raise InsufficientOutstandingShares(
                    f"trader {trader} holds {held} of outcome {outcome}, cannot sell {amount}"
                )
            proceeds = sell_quote(market.quantities, market.liquidity, outcome, amount)
            fee = trade_fee(proceeds, market.fee_bps)
            if proceeds - fee < min_proceeds:
                raise SlippageExceeded(f"proceeds {proceeds} less fee {fee} below min_proceeds {min_proceeds}")

            quantities = list(market.quantities)
            quantities[outcome] -= amount
            new_prices = prices(quantities, market.liquidity)
            shares = list(position.shares)
            shares[outcome] -= amount

            market.quantities = quantities
            self._collect_fee(market, fee)
            record.positions[trader] = position.model_copy(
                update={
                    "shares": shares,
                    "total_proceeds": position.total_proceeds + proceeds,
                    "total_fees": position.total_fees + fee,
                }
            )
            entry = self._commit(
                record, LedgerKind.SELL, ts, trader=trader, outcome=outcome, amount=amount, value=proceeds, fee=fee
            )
        log.info("trade_executed", market_id=market_id, side="SELL", trader=trader, outcome=outcome, amount=amount, proceeds=proceeds, fee=fee)
        return ExecutionResult(
            market_id=market_id,
            trader=trader,
            side=TradeSide.SELL,
            outcome=outcome,
            amount=amount,
            value=proceeds,
            fee=fee,
            quantities=quantities,
            prices=new_prices,
            seq=entry.seq,
        )

    # --- redemption ------------------------------------------------------

    def redeem(self, market_id: str, trader: str, now: int | None = None) -> int:
        """Pay out a position once. Resolved: winning shares; Voided: net contributed capital."""
        record = self._record(market_id)
        ts = _now(now)
        with record.lock:
            self._refresh(record, ts)
            market = record.market
            if not market.status.terminal:
                raise MarketNotResolved(f"market {market_id} is {market.status.value}")
            position = record.positions.get(trader)
            if position is None:
                raise NoPosition(f"trader {trader} has no position in {market_id}")
            if position.redeemed:
                raise AlreadyRedeemed(f"trader {trader} already redeemed {market_id}")
            if market.status is MarketStatus.RESOLVED:
                winning = position.shares[market.resolved_outcome]
                payout = winning * self.redemption_unit // MICRO
            else:
                payout = max(0, position.net_contributed)
            record.positions[trader] = position.model_copy(update={"redeemed": True, "payout": payout})
            self._commit(
                record,
                LedgerKind.REDEEM,
                ts,
                trader=trader,
                outcome=market.resolved_outcome,
                value=payout,
                detail={"status": market.status.value},
            )
        log.info("payout_redeemed", market_id=market_id, trader=trader, payout=payout, status=market.status.value)
        return payout

    # --- annotations -----------------------------------------------------

    def annotate(self, market_id: str, detail: dict[str, Any], now: int | None = None) -> LedgerEntry:
        """Commit a BRACKET entry carrying `detail`. Market state is untouched."""
        record = self._record(market_id)
        with record.lock:
            return self._commit(record, LedgerKind.BRACKET, _now(now), detail=dict(detail))

    # --- queries ---------------------------------------------------------

    def has_market(self, market_id: str) -> bool:
        return market_id in self._markets

    def ledger_length(self, market_id: str) -> int:
        record = self._record(market_id)
        with record.lock:
            return len(record.ledger)

    def set_commit_sink(self, on_commit: CommitSink | None) -> None:
        """Replace the sink notified after each commit (e.g. persistence after replay)."""
        self._on_commit = on_commit

    def get_market(self, market_id: str) -> Market:
        record = self._record(market_id)
        with record.lock:
            return record.market.model_copy(deep=True)

    def get_position(self, market_id: str, trader: str) -> Position | None:
        record = self._record(market_id)
        with record.lock:
            position = record.positions.get(trader)
            return position.model_copy(deep=True) if position is not None else None

    def positions(self, market_id: str) -> list[Position]:
        """All positions (bettors) of a market, in first-trade order."""
        record = self._record(market_id)
        with record.lock:
            return [p.model_copy(deep=True) for p in record.positions.values()]

    def ledger(self, market_id: str) -> list[LedgerEntry]:
        record = self._record(market_id)
        with record.lock:
            return record.ledger.entries()

    def market_ids(self, status: MarketStatus | None = None) -> list[str]:
        with self._registry_lock:
            records = list(self._markets.values())
        return [r.market.market_id for r in records if status is None or r.market.status is status]

    def collateral(self, market_id: str) -> int:
        """Collateral held by the market: costs charged minus proceeds and payouts paid. Fees excluded."""
        record = self._record(market_id)
        with record.lock:
            return sum(p.total_cost - p.total_proceeds - p.payout for p in record.positions.values())
