"""Ledger entry append and query - the durable form of each market's history."""

from __future__ import annotations

import json
from typing import TYPE_CHECKING, Any

from duelmarkets.models import LedgerEntry, LedgerKind

if TYPE_CHECKING:
    from duckdb import DuckDBPyConnection

_COLUMNS = "market_id, seq, kind, timestamp, trader, outcome, amount, value, fee, detail"
_PLACEHOLDERS = ", ".join("?" * 10)


def entry_row(entry: LedgerEntry) -> tuple[Any, ...]:
    return (
        entry.market_id,
        entry.seq,
        entry.kind.value,
        entry.timestamp,
        entry.trader,
        entry.outcome,
        entry.amount,
        entry.value,
        entry.fee,
        json.dumps(entry.detail),
    )


def append_entry(conn: DuckDBPyConnection, entry: LedgerEntry) -> None:
    """Append a single committed entry. Prefer append_entries_batch for bulk writes."""
    conn.execute(
        f"INSERT INTO ledger_entries ({_COLUMNS}) VALUES ({_PLACEHOLDERS})",
        list(entry_row(entry)),
    )


def append_entries_batch(conn: DuckDBPyConnection, entries: list[LedgerEntry]) -> None:
    if not entries:
        return
    conn.executemany(
        f"INSERT INTO ledger_entries ({_COLUMNS}) VALUES ({_PLACEHOLDERS})",
        [entry_row(e) for e in entries],
    )


def load_entries(conn: DuckDBPyConnection, market_id: str | None = None) -> list[LedgerEntry]:
    """Entries in commit order (global insertion id), optionally for one market."""
    sql = f"SELECT {_COLUMNS} FROM ledger_entries"
    params: list[Any] = []
    if market_id:
        sql += " WHERE market_id = ?"
        params.append(market_id)
    sql += " ORDER BY id ASC"
    out = []
    for row in conn.execute(sql, params).fetchall():
        detail = row[9]
        if isinstance(detail, str):
            detail = json.loads(detail) if detail else {}
        out.append(
            LedgerEntry(
                market_id=row[0],
                seq=row[1],
                kind=LedgerKind(row[2]),
                timestamp=row[3],
                trader=row[4],
                outcome=row[5],
                amount=int(row[6]),
                value=int(row[7]),
                fee=int(row[8] or 0),
                detail=detail or {},
            )
        )
    return out


def ledger_stats(conn: DuckDBPyConnection) -> dict[str, Any]:
    """Return ledger statistics: total count, time range, count by market and by kind."""
    total = conn.execute("SELECT COUNT(*) FROM ledger_entries").fetchone()[0]
    min_ts, max_ts = conn.execute("SELECT MIN(timestamp), MAX(timestamp) FROM ledger_entries").fetchone()
    by_market = conn.execute(
        "SELECT market_id, COUNT(*) AS cnt FROM ledger_entries GROUP BY market_id ORDER BY cnt DESC LIMIT 20"
    ).fetchall()
    by_kind = conn.execute(
        "SELECT kind, COUNT(*) AS cnt FROM ledger_entries GROUP BY kind ORDER BY kind"
    ).fetchall()
    return {
        "total_entries": total,
        "min_ts": min_ts,
        "max_ts": max_ts,
        "by_market": [{"market_id": r[0], "count": r[1]} for r in by_market],
        "by_kind": {r[0]: r[1] for r in by_kind},
    }
