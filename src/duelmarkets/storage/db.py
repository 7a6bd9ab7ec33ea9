"""DuckDB connection and schema init."""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING

import duckdb

if TYPE_CHECKING:
    from duckdb import DuckDBPyConnection

SCHEMA_SQL = """
-- Global insertion order across markets
CREATE SEQUENCE IF NOT EXISTS ledger_seq START 1;

-- Market ledger (append-only, event sourcing), seq is per market
CREATE TABLE IF NOT EXISTS ledger_entries (
    id              BIGINT DEFAULT nextval('ledger_seq'),
    market_id       VARCHAR NOT NULL,
    seq             BIGINT NOT NULL,
    kind            VARCHAR NOT NULL,
    timestamp       BIGINT NOT NULL,
    trader          VARCHAR,
    outcome         INTEGER,
    amount          HUGEINT NOT NULL,
    value           HUGEINT NOT NULL,
    fee             HUGEINT NOT NULL DEFAULT 0,
    detail          JSON,
    PRIMARY KEY (market_id, seq)
);

-- Latest market snapshot (derived, rebuilt from the ledger on replay)
CREATE TABLE IF NOT EXISTS markets (
    market_id           VARCHAR PRIMARY KEY,
    kind                VARCHAR NOT NULL,
    label               VARCHAR,
    outcome_count       INTEGER NOT NULL,
    liquidity           HUGEINT NOT NULL,
    status              VARCHAR NOT NULL,
    resolved_outcome    INTEGER,
    quantities          JSON,
    lock_time           BIGINT,
    resolution_deadline BIGINT NOT NULL,
    fee_bps             INTEGER NOT NULL DEFAULT 0,
    platform_pool       HUGEINT NOT NULL DEFAULT 0,
    rewards_pool        HUGEINT NOT NULL DEFAULT 0,
    created_at          BIGINT NOT NULL,
    last_updated        BIGINT
);
"""


def get_connection(db_path: str | Path, read_only: bool = False) -> DuckDBPyConnection:
    """Return a DuckDB connection. Caller must close or use as context manager.
    Use ":memory:" for an in-process database (tests)."""
    if str(db_path) == ":memory:":
        return duckdb.connect(":memory:")
    path = Path(db_path)
    if not read_only:
        path.parent.mkdir(parents=True, exist_ok=True)
    return duckdb.connect(str(path), read_only=read_only)


def init_schema(conn: DuckDBPyConnection) -> None:
    """Create tables and sequences if they do not exist."""
    for stmt in SCHEMA_SQL.split(";"):
        stmt = stmt.strip()
        if stmt:
            try:
                conn.execute(stmt)
            except duckdb.Error as e:
                if "already exists" not in str(e).lower():
                    raise
