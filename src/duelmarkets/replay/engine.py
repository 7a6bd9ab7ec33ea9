"""Deterministic replay from the ledger - rebuild settlement state entry by entry."""

from __future__ import annotations

from typing import TYPE_CHECKING, Iterable

import structlog

from duelmarkets.errors import LedgerMismatch, SlippageExceeded
from duelmarkets.lmsr.fixed_math import MICRO
from duelmarkets.models import LedgerEntry, LedgerKind
from duelmarkets.settlement.engine import CommitSink, SettlementEngine
from duelmarkets.storage.ledger import load_entries

if TYPE_CHECKING:
    from duckdb import DuckDBPyConnection

log = structlog.get_logger(__name__)


def _check(entry: LedgerEntry, recomputed: int, fee: int = 0) -> None:
    if recomputed != entry.value or fee != entry.fee:
        raise LedgerMismatch(
            f"{entry.market_id}#{entry.seq} {entry.kind.value}: recorded {entry.value}+{entry.fee}, "
            f"replayed {recomputed}+{fee}"
        )


def apply_entry(engine: SettlementEngine, entry: LedgerEntry) -> None:
    """Re-apply one committed entry through the public engine API at its recorded time."""
    ts = entry.timestamp
    kind = entry.kind
    if kind is LedgerKind.CREATE:
        detail = entry.detail
        engine.create_market(
            entry.amount,
            entry.value,
            int(detail["resolution_deadline"]),
            lock_time=detail.get("lock_time"),
            market_id=entry.market_id,
            kind=detail.get("kind", "match"),
            label=detail.get("label", ""),
            fee_bps=detail.get("fee_bps", 0),
            now=ts,
        )
    elif kind in (LedgerKind.BUY, LedgerKind.SELL):
        if kind is LedgerKind.BUY:
            execute, bound = engine.execute_buy, entry.value + entry.fee
        else:
            execute, bound = engine.execute_sell, entry.value - entry.fee
        try:
            result = execute(entry.market_id, entry.trader, entry.outcome, entry.amount, bound, now=ts)
        except SlippageExceeded as e:
            raise LedgerMismatch(f"{entry.market_id}#{entry.seq} {kind.value}: {e}") from e
        _check(entry, result.value, result.fee)
    elif kind is LedgerKind.HALT:
        if entry.detail.get("reason") == "cutoff":
            engine.refresh(entry.market_id, now=ts)
        else:
            engine.halt(entry.market_id, now=ts)
    elif kind is LedgerKind.RESOLVE:
        engine.resolve(entry.market_id, entry.outcome, now=ts)
    elif kind is LedgerKind.VOID:
        reason = entry.detail.get("reason", "cancelled")
        if reason == "deadline":
            engine.refresh(entry.market_id, now=ts)
        else:
            engine.void(entry.market_id, now=ts, reason=reason)
    elif kind is LedgerKind.REDEEM:
        _check(entry, engine.redeem(entry.market_id, entry.trader, now=ts))
    elif kind is LedgerKind.BRACKET:
        engine.annotate(entry.market_id, entry.detail, now=ts)


def replay_ledger(
    entries: Iterable[LedgerEntry],
    engine: SettlementEngine | None = None,
    redemption_unit: int = MICRO,
    fee_bps: int = 0,
) -> SettlementEngine:
    """
    Rebuild an engine from ledger entries in commit order.
    Deterministic: same entries -> same quantities, positions, statuses and ledger.
    Time-driven entries (cutoff/deadline) are reproduced by the engine's own refresh
    at the recorded timestamp, so they are skipped when already applied.
    """
    engine = engine or SettlementEngine(redemption_unit=redemption_unit, fee_bps=fee_bps)
    count = 0
    for entry in entries:
        if entry.kind is not LedgerKind.CREATE and engine.has_market(entry.market_id):
            if engine.ledger_length(entry.market_id) > entry.seq:
                continue  # already produced by an implicit transition
        apply_entry(engine, entry)
        count += 1
    log.debug("ledger_replayed", entries=count, markets=len(engine.market_ids()))
    return engine


def load_engine(
    conn: DuckDBPyConnection,
    redemption_unit: int = MICRO,
    on_commit: CommitSink | None = None,
    fee_bps: int = 0,
) -> SettlementEngine:
    """Replay the persisted ledger, then attach `on_commit` for new mutations only.

    `fee_bps` applies to markets created afterwards; replayed markets keep their recorded rate.
    """
    engine = replay_ledger(load_entries(conn), redemption_unit=redemption_unit, fee_bps=fee_bps)
    engine.set_commit_sink(on_commit)
    return engine
