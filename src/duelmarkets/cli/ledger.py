"""Ledger subcommand: stats."""

from __future__ import annotations

import typer

from duelmarkets.storage.db import get_connection, init_schema
from duelmarkets.storage.ledger import ledger_stats

app = typer.Typer(help="Market ledger statistics")


@app.command("stats")
def stats(ctx: typer.Context) -> None:
    """Show ledger statistics (counts, time range, by market and kind)."""
    conn = get_connection(ctx.obj["db_path"])
    init_schema(conn)
    try:
        s = ledger_stats(conn)
        typer.echo(f"Total entries: {s['total_entries']}")
        typer.echo(f"Min ts: {s.get('min_ts')}")
        typer.echo(f"Max ts: {s.get('max_ts')}")
        for kind, count in s["by_kind"].items():
            typer.echo(f"  {kind:<8} {count}")
        if s.get("by_market"):
            typer.echo("By market (top 20):")
            for row in s["by_market"]:
                typer.echo(f"  {row['market_id']}  {row['count']}")
    finally:
        conn.close()
