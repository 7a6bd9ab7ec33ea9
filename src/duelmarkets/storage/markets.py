"""Market snapshot persistence (derived cache of engine state)."""

from __future__ import annotations

import json
import time
from typing import TYPE_CHECKING

from duelmarkets.models import Market

if TYPE_CHECKING:
    from duckdb import DuckDBPyConnection


def upsert_market(conn: DuckDBPyConnection, market: Market) -> None:
    """Insert or replace a market snapshot in the markets table."""
    conn.execute(
        """
        INSERT INTO markets (market_id, kind, label, outcome_count, liquidity, status, resolved_outcome,
                             quantities, lock_time, resolution_deadline, created_at, fee_bps, platform_pool,
                             rewards_pool, last_updated)
        VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
        ON CONFLICT (market_id) DO UPDATE SET
            kind = excluded.kind,
            label = excluded.label,
            outcome_count = excluded.outcome_count,
            liquidity = excluded.liquidity,
            status = excluded.status,
            resolved_outcome = excluded.resolved_outcome,
            quantities = excluded.quantities,
            lock_time = excluded.lock_time,
            resolution_deadline = excluded.resolution_deadline,
            created_at = excluded.created_at,
            fee_bps = excluded.fee_bps,
            platform_pool = excluded.platform_pool,
            rewards_pool = excluded.rewards_pool,
            last_updated = excluded.last_updated
        """,
        [
            market.market_id,
            market.kind.value,
            market.label,
            market.outcome_count,
            market.liquidity,
            market.status.value,
            market.resolved_outcome,
            json.dumps(market.quantities),
            market.lock_time,
            market.resolution_deadline,
            market.created_at,
            market.fee_bps,
            market.platform_pool,
            market.rewards_pool,
            int(time.time() * 1000),
        ],
    )


def list_markets(conn: DuckDBPyConnection, status: str | None = None) -> list[dict]:
    """List market snapshots (optionally by status) as list of dicts, newest first."""
    sql = (
        "SELECT market_id, kind, label, outcome_count, liquidity, status, resolved_outcome, "
        "quantities, resolution_deadline, fee_bps, platform_pool, rewards_pool FROM markets"
    )
    params: list[str] = []
    if status:
        sql += " WHERE status = ?"
        params.append(status)
    sql += " ORDER BY created_at DESC"
    rows = conn.execute(sql, params).fetchall()
    columns = [
        "market_id", "kind", "label", "outcome_count", "liquidity", "status",
        "resolved_outcome", "quantities", "resolution_deadline", "fee_bps", "platform_pool", "rewards_pool",
    ]
    out = []
    for r in rows:
        d = dict(zip(columns, r))
        if isinstance(d["quantities"], str):
            d["quantities"] = json.loads(d["quantities"])
        out.append(d)
    return out
