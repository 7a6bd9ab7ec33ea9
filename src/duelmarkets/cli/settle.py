"""Settle subcommand: refresh, halt, resolve, void, redeem."""

from __future__ import annotations

import typer

from duelmarkets.cli.session import engine_session, fmt

app = typer.Typer(help="Market lifecycle and redemption")


@app.command("refresh")
def refresh(ctx: typer.Context, market_id: str = typer.Argument(..., help="Market ID")) -> None:
    """Apply cutoff / deadline transitions as of now."""
    with engine_session(ctx) as engine:
        typer.echo(f"Status: {engine.refresh(market_id).value}")


@app.command("halt")
def halt(ctx: typer.Context, market_id: str = typer.Argument(..., help="Market ID")) -> None:
    """Stop trading (Open -> Locked)."""
    with engine_session(ctx) as engine:
        typer.echo(f"Status: {engine.halt(market_id).value}")


@app.command("resolve")
def resolve(
    ctx: typer.Context,
    market_id: str = typer.Argument(..., help="Market ID"),
    outcome: int = typer.Option(..., "--outcome", "-k", help="Winning outcome index"),
) -> None:
    """Resolve a Locked market to an outcome. Repeating the same outcome is a no-op."""
    with engine_session(ctx) as engine:
        typer.echo(f"Status: {engine.resolve(market_id, outcome).value}")


@app.command("void")
def void(ctx: typer.Context, market_id: str = typer.Argument(..., help="Market ID")) -> None:
    """Void a market whose event was cancelled; positions become refundable."""
    with engine_session(ctx) as engine:
        typer.echo(f"Status: {engine.void(market_id).value}")


@app.command("redeem")
def redeem(
    ctx: typer.Context,
    market_id: str = typer.Argument(..., help="Market ID"),
    trader: str = typer.Option(..., "--trader", "-t", help="Trader id"),
) -> None:
    """Redeem a trader's position once."""
    with engine_session(ctx) as engine:
        typer.echo(f"Payout: {fmt(engine.redeem(market_id, trader))}")
