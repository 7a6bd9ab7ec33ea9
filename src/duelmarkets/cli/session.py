"""Engine session shared by subcommands: replay the ledger, persist new commits."""

from __future__ import annotations

from contextlib import contextmanager
from decimal import Decimal
from typing import Iterator

import typer

from duelmarkets.errors import MarketError
from duelmarkets.lmsr.fixed_math import from_micro
from duelmarkets.models import LedgerEntry
from duelmarkets.replay.engine import load_engine
from duelmarkets.settlement import SettlementEngine
from duelmarkets.storage.db import get_connection, init_schema
from duelmarkets.storage.ledger import append_entry
from duelmarkets.storage.markets import upsert_market


@contextmanager
def engine_session(ctx: typer.Context) -> Iterator[SettlementEngine]:
    """Yield an engine rebuilt from the ledger; typed market errors exit with code 1."""
    settings = ctx.obj["settings"]
    conn = get_connection(ctx.obj["db_path"])
    init_schema(conn)
    touched: set[str] = set()

    def persist(entry: LedgerEntry) -> None:
        append_entry(conn, entry)
        touched.add(entry.market_id)

    try:
        engine = load_engine(
            conn,
            redemption_unit=settings.redemption_unit,
            on_commit=persist,
            fee_bps=settings.fee_bps,
        )
        try:
            yield engine
        except MarketError as e:
            typer.echo(f"Error ({type(e).__name__}): {e}", err=True)
            raise typer.Exit(1) from e
        finally:
            for market_id in sorted(touched):
                upsert_market(conn, engine.get_market(market_id))
    finally:
        conn.close()


def fmt(micro: int) -> str:
    """Micro-units as a 6-decimal string."""
    return f"{from_micro(micro).quantize(Decimal('0.000001'))}"


def fmt_prices(values: list[int]) -> str:
    return "  ".join(f"[{i}] {fmt(p)}" for i, p in enumerate(values))
