"""Root CLI app - entry point and command registration."""

from pathlib import Path

import typer

from duelmarkets.config import get_settings
from duelmarkets.config.settings import configure_logging

app = typer.Typer(
    name="duel",
    help="Duel - LMSR prediction markets: create, quote, trade, settle and resolve from oracle data.",
    no_args_is_help=True,
)


@app.callback()
def main(
    ctx: typer.Context,
    config_dir: Path | None = typer.Option(
        None, "--config-dir", "-C", help="Config directory (default: ./config or package config)"
    ),
    profile: str | None = typer.Option(
        None, "--profile", "-p", help="Config profile (e.g. dev) to overlay on default.toml"
    ),
    db_path: str | None = typer.Option(None, "--db-path", help="Override storage.db_path"),
) -> None:
    """Configure logging and store options in context."""
    settings = get_settings(profile, config_dir)
    configure_logging(settings)
    ctx.obj = {
        "settings": settings,
        "config_dir": config_dir,
        "profile": profile,
        "db_path": db_path or settings.db_path,
    }


# Subcommands registered from other modules
from duelmarkets.cli import ledger, market, oracle, settle, tournament, trade  # noqa: E402

app.add_typer(market.app, name="market")
app.add_typer(trade.app, name="trade")
app.add_typer(settle.app, name="settle")
app.add_typer(oracle.app, name="oracle")
app.add_typer(tournament.app, name="tournament")
app.add_typer(ledger.app, name="ledger")


def run() -> None:
    app()


if __name__ == "__main__":
    run()
