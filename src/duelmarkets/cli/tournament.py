"""Tournament subcommand: create a bracket market, feed it rounds and results from the oracle."""

from __future__ import annotations

import typer

from duelmarkets.cli.oracle import fetch, load_result
from duelmarkets.cli.session import engine_session, fmt
from duelmarkets.errors import UnresolvableEvent
from duelmarkets.lmsr.fixed_math import to_micro
from duelmarkets.oracle.adapter import discover_round
from duelmarkets.tournament import TournamentBracket, create_tournament_market

app = typer.Typer(help="Knockout tournament markets")


def _parse_teams(teams: str) -> list[int]:
    try:
        return [int(t) for t in teams.split(",") if t.strip()]
    except ValueError as e:
        raise typer.BadParameter(f"team ids must be integers: {teams}") from e


@app.command("create")
def create(
    ctx: typer.Context,
    teams: str = typer.Option(..., "--teams", help="Comma-separated team ids; outcome i is team i"),
    deadline: int = typer.Option(..., "--deadline", "-d", help="Resolution deadline (unix seconds)"),
    liquidity: str | None = typer.Option(None, "--liquidity", "-b", help="Liquidity parameter b, in units"),
    lock_time: int | None = typer.Option(None, "--lock-time", help="Trading cutoff (unix seconds)"),
    label: str = typer.Option("", "--label", help="Free-form label, e.g. competition name"),
    market_id: str | None = typer.Option(None, "--id", help="Explicit market id"),
) -> None:
    """Create a tournament market with one outcome per team."""
    settings = ctx.obj["settings"]
    roster = _parse_teams(teams)
    b = to_micro(liquidity if liquidity is not None else settings.default_liquidity)
    with engine_session(ctx) as engine:
        bracket = create_tournament_market(
            engine, roster, b, deadline, lock_time=lock_time, market_id=market_id, label=label
        )
        typer.echo(f"Market id: {bracket.market_id}")
        typer.echo(f"Roster: {bracket.roster}  b: {fmt(b)}")


@app.command("round")
def round_(
    ctx: typer.Context,
    market_id: str = typer.Argument(..., help="Tournament market ID"),
    league: int = typer.Argument(..., help="Competition id"),
    season: int = typer.Argument(..., help="Season year"),
) -> None:
    """Enqueue the competition's latest round into the bracket."""
    payload = fetch(ctx, lambda client: discover_round(client, league, season))
    with engine_session(ctx) as engine:
        bracket = TournamentBracket.load(engine, market_id)
        if not bracket.enqueue_round(payload):
            typer.echo("Round is empty; nothing enqueued")
            return
        final = " (final)" if any(f.is_tournament_final for f in bracket.current_round) else ""
        typer.echo(f"Round {bracket.round_number}{final}: fixtures {payload.fixture_ids}")


@app.command("result")
def result(
    ctx: typer.Context,
    market_id: str = typer.Argument(..., help="Tournament market ID"),
    fixture_id: int = typer.Argument(..., help="api-football fixture id in the current round"),
) -> None:
    """Record a fixture result; the final's result resolves the market. Not-yet-final exits 2."""
    payload = fetch(ctx, lambda client: load_result(client, fixture_id))
    if payload is None:
        typer.echo(f"Fixture {fixture_id} cancelled; waiting for a replayed or awarded result")
        raise typer.Exit(2)
    with engine_session(ctx) as engine:
        bracket = TournamentBracket.load(engine, market_id)
        try:
            fixture = bracket.record_result(fixture_id, payload)
        except UnresolvableEvent as e:
            typer.echo(f"Not resolvable yet: {e}")
            raise typer.Exit(2) from e
        typer.echo(f"Fixture {fixture_id}: winner {bracket.roster[fixture.winner_index]}")
        if bracket.champion is not None:
            typer.echo(f"Champion: {bracket.roster[bracket.champion]}")
            typer.echo(f"Status: {engine.get_market(market_id).status.value}")


@app.command("show")
def show(
    ctx: typer.Context,
    market_id: str = typer.Argument(..., help="Tournament market ID"),
) -> None:
    """Show roster, current round, eliminations and champion."""
    with engine_session(ctx) as engine:
        bracket = TournamentBracket.load(engine, market_id)
        typer.echo(f"Roster: {bracket.roster}")
        typer.echo(f"Round: {bracket.round_number}")
        for f in bracket.current_round:
            winner = bracket.roster[f.winner_index] if f.winner_index is not None else "-"
            typer.echo(f"  {f.match_id}  ts={f.timestamp}  winner={winner}")
        typer.echo(f"Eliminated: {sorted(bracket.roster[i] for i in bracket.eliminated)}")
        champion = bracket.roster[bracket.champion] if bracket.champion is not None else "-"
        typer.echo(f"Champion: {champion}")
