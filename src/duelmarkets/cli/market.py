"""Market subcommand: create, list, show."""

from __future__ import annotations

import typer

from duelmarkets.cli.session import engine_session, fmt, fmt_prices
from duelmarkets.lmsr.fixed_math import to_micro
from duelmarkets.lmsr.quote import max_subsidy
from duelmarkets.storage.db import get_connection, init_schema
from duelmarkets.storage.markets import list_markets as storage_list_markets

app = typer.Typer(help="Market creation and inspection")


@app.command("create")
def create(
    ctx: typer.Context,
    deadline: int = typer.Option(..., "--deadline", "-d", help="Resolution deadline (unix seconds)"),
    outcomes: int | None = typer.Option(None, "--outcomes", "-n", help="Outcome count (default from config)"),
    liquidity: str | None = typer.Option(None, "--liquidity", "-b", help="Liquidity parameter b, in units"),
    lock_time: int | None = typer.Option(None, "--lock-time", help="Trading cutoff (unix seconds)"),
    label: str = typer.Option("", "--label", help="Free-form label, e.g. fixture name"),
    market_id: str | None = typer.Option(None, "--id", help="Explicit market id"),
) -> None:
    """Create an Open market with all-zero quantities."""
    settings = ctx.obj["settings"]
    n = outcomes or settings.default_outcome_count
    b = to_micro(liquidity if liquidity is not None else settings.default_liquidity)
    with engine_session(ctx) as engine:
        mid = engine.create_market(n, b, deadline, lock_time=lock_time, market_id=market_id, label=label)
        typer.echo(f"Market id: {mid}")
        typer.echo(f"Outcomes: {n}  b: {fmt(b)}  Max subsidy: {fmt(max_subsidy(n, b))}  Fee: {settings.fee_bps} bps")


@app.command("list")
def list_markets(
    ctx: typer.Context,
    status: str | None = typer.Option(None, "--status", "-s", help="open|locked|resolved|voided"),
) -> None:
    """List market snapshots from the local database."""
    conn = get_connection(ctx.obj["db_path"])
    init_schema(conn)
    try:
        rows = storage_list_markets(conn, status=status)
        for r in rows:
            label = (r.get("label") or "")[:40]
            typer.echo(f"  {r['market_id']}  {r['status']:<9} n={r['outcome_count']}  {label}")
        typer.echo(f"Total: {len(rows)} markets")
    finally:
        conn.close()


@app.command("show")
def show(
    ctx: typer.Context,
    market_id: str = typer.Argument(..., help="Market ID"),
) -> None:
    """Show status, quantities, prices and bettors of a market."""
    with engine_session(ctx) as engine:
        market = engine.get_market(market_id)
        typer.echo(f"Market: {market.market_id}  ({market.kind.value}) {market.label}")
        typer.echo(f"Status: {market.status.value}  Resolved outcome: {market.resolved_outcome}")
        typer.echo(f"b: {fmt(market.liquidity)}  Deadline: {market.resolution_deadline}  Lock: {market.lock_time}")
        typer.echo(f"Quantities: {fmt_prices(market.quantities)}")
        typer.echo(f"Prices:     {fmt_prices(engine.market_prices(market_id))}")
        typer.echo(f"Collateral: {fmt(engine.collateral(market_id))}")
        typer.echo(
            f"Fee: {market.fee_bps} bps  Platform pool: {fmt(market.platform_pool)}  "
            f"Rewards pool: {fmt(market.rewards_pool)}"
        )
        for pos in engine.positions(market_id):
            spent = "redeemed" if pos.redeemed else "open"
            typer.echo(f"  {pos.trader}  shares={[fmt(s) for s in pos.shares]}  net={fmt(pos.net_contributed)}  {spent}")
