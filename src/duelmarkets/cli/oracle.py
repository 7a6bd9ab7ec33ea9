"""Oracle subcommand: fetch a match result or a tournament round and print its payload."""

from __future__ import annotations

from typing import Callable, TypeVar

import httpx
import typer

from duelmarkets.cli.session import engine_session
from duelmarkets.errors import MarketError, UnresolvableEvent
from duelmarkets.models import MarketStatus
from duelmarkets.oracle.adapter import MatchOutcome, classify_fixture, discover_round, fixture_cancelled
from duelmarkets.oracle.client import FootballApiClient
from duelmarkets.oracle.payloads import ResultPayload

app = typer.Typer(help="Oracle result adapter (api-football)")

T = TypeVar("T")


def _client(ctx: typer.Context) -> FootballApiClient:
    settings = ctx.obj["settings"]
    if not settings.oracle_api_key:
        typer.echo("API key not set (see oracle.api_key_env in config).", err=True)
        raise typer.Exit(1)
    return FootballApiClient(
        settings.oracle_api_key,
        base_url=settings.oracle_api_base,
        timeout=settings.oracle_timeout_sec,
    )


def fetch(ctx: typer.Context, call: Callable[[FootballApiClient], T]) -> T:
    """Run one oracle query. Not-yet-final exits 2, bad data or HTTP failure exits 1."""
    with _client(ctx) as client:
        try:
            return call(client)
        except UnresolvableEvent as e:
            typer.echo(f"Not resolvable yet: {e}")
            raise typer.Exit(2) from e
        except MarketError as e:
            typer.echo(f"Error ({type(e).__name__}): {e}", err=True)
            raise typer.Exit(1) from e
        except httpx.HTTPError as e:
            typer.echo(f"Error (HTTP): {e}", err=True)
            raise typer.Exit(1) from e


def load_result(client: FootballApiClient, fixture_id: int) -> ResultPayload | None:
    """ResultPayload of a finished fixture; None when the fixture was cancelled."""
    raw = client.get_fixture(fixture_id)
    if fixture_cancelled(raw):
        return None
    return classify_fixture(raw)


@app.command("result")
def result(
    ctx: typer.Context,
    fixture_id: int = typer.Argument(..., help="api-football fixture id"),
    market_id: str | None = typer.Option(None, "--market", "-m", help="Apply the result to this market"),
) -> None:
    """Classify a fixture; with --market, resolve (or void, if cancelled) the market."""
    payload = fetch(ctx, lambda client: load_result(client, fixture_id))
    if payload is None:
        typer.echo(f"Fixture {fixture_id} cancelled")
        if market_id:
            with engine_session(ctx) as engine:
                typer.echo(f"Status: {engine.void(market_id).value}")
        return
    typer.echo(f"Outcome: {MatchOutcome(payload.outcome).name}  home={payload.home_team_id}  away={payload.away_team_id}")
    typer.echo(f"Payload: 0x{payload.encode().hex()}")
    if market_id:
        with engine_session(ctx) as engine:
            if engine.get_market(market_id).status is MarketStatus.OPEN:
                engine.halt(market_id)
            typer.echo(f"Status: {engine.resolve(market_id, payload.outcome).value}")


@app.command("round")
def round_(
    ctx: typer.Context,
    league: int = typer.Argument(..., help="Competition id"),
    season: int = typer.Argument(..., help="Season year"),
) -> None:
    """Discover the latest round of a competition and print its RoundPayload."""
    payload = fetch(ctx, lambda client: discover_round(client, league, season))
    typer.echo(f"Words: {payload.words()}")
    typer.echo(f"Payload: 0x{payload.encode().hex()}")
