"""Trade subcommand: quote, size, buy, sell."""

from __future__ import annotations

import typer

from duelmarkets.cli.session import engine_session, fmt, fmt_prices
from duelmarkets.lmsr.fixed_math import to_micro
from duelmarkets.lmsr.quote import shares_for_cost
from duelmarkets.settlement.engine import trade_fee

app = typer.Typer(help="Quotes and trade execution")


@app.command("quote")
def quote(
    ctx: typer.Context,
    market_id: str = typer.Argument(..., help="Market ID"),
    outcome: int = typer.Option(..., "--outcome", "-k", help="Outcome index"),
    amount: str = typer.Option(..., "--amount", "-a", help="Shares, in units"),
    sell: bool = typer.Option(False, "--sell", help="Quote proceeds of a sell instead of a buy"),
) -> None:
    """Preview the cost (or proceeds) of a trade against current quantities, and its fee."""
    shares = to_micro(amount)
    with engine_session(ctx) as engine:
        fee_bps = engine.get_market(market_id).fee_bps
        if sell:
            value = engine.quote_sell(market_id, outcome, shares)
            typer.echo(f"Proceeds: {fmt(value)}")
        else:
            value = engine.quote_buy(market_id, outcome, shares)
            typer.echo(f"Cost: {fmt(value)}")
        typer.echo(f"Fee: {fmt(trade_fee(value, fee_bps))}")


@app.command("size")
def size(
    ctx: typer.Context,
    market_id: str = typer.Argument(..., help="Market ID"),
    outcome: int = typer.Option(..., "--outcome", "-k", help="Outcome index"),
    budget: str = typer.Option(..., "--budget", help="Collateral to spend, in units"),
) -> None:
    """Largest number of shares a budget buys at current quantities."""
    with engine_session(ctx) as engine:
        market = engine.get_market(market_id)
        shares = shares_for_cost(market.quantities, market.liquidity, outcome, to_micro(budget))
        typer.echo(f"Shares: {fmt(shares)}")


@app.command("buy")
def buy(
    ctx: typer.Context,
    market_id: str = typer.Argument(..., help="Market ID"),
    trader: str = typer.Option(..., "--trader", "-t", help="Trader id"),
    outcome: int = typer.Option(..., "--outcome", "-k", help="Outcome index"),
    amount: str = typer.Option(..., "--amount", "-a", help="Shares, in units"),
    max_cost: str = typer.Option(..., "--max-cost", help="Slippage bound, in units"),
) -> None:
    """Buy shares; rejected if the live cost plus fee exceeds --max-cost."""
    with engine_session(ctx) as engine:
        result = engine.execute_buy(market_id, trader, outcome, to_micro(amount), to_micro(max_cost))
        typer.echo(f"Bought {fmt(result.amount)} of outcome {result.outcome} for {fmt(result.value)}  fee {fmt(result.fee)}")
        typer.echo(f"Prices: {fmt_prices(result.prices)}")


@app.command("sell")
def sell(
    ctx: typer.Context,
    market_id: str = typer.Argument(..., help="Market ID"),
    trader: str = typer.Option(..., "--trader", "-t", help="Trader id"),
    outcome: int = typer.Option(..., "--outcome", "-k", help="Outcome index"),
    amount: str = typer.Option(..., "--amount", "-a", help="Shares, in units"),
    min_proceeds: str = typer.Option("0", "--min-proceeds", help="Slippage bound, in units"),
) -> None:
    """Sell held shares; rejected if live proceeds less fee fall below --min-proceeds."""
    with engine_session(ctx) as engine:
        result = engine.execute_sell(market_id, trader, outcome, to_micro(amount), to_micro(min_proceeds))
        typer.echo(f"Sold {fmt(result.amount)} of outcome {result.outcome} for {fmt(result.value)}  fee {fmt(result.fee)}")
        typer.echo(f"Prices: {fmt_prices(result.prices)}")
