"""Turn api-football fixture data into ResultPayload / RoundPayload.

Outputs are a pure function of the queried event data, so callers may retry
the same query freely; UnresolvableEvent means "not yet", not a terminal failure.
"""

from __future__ import annotations

from enum import IntEnum
from typing import TYPE_CHECKING, Any

import structlog

from duelmarkets.errors import MalformedOracleData, UnresolvableEvent
from duelmarkets.oracle.payloads import ResultPayload, RoundPayload, pack_u32

if TYPE_CHECKING:
    from duelmarkets.oracle.client import FootballApiClient

log = structlog.get_logger(__name__)

FINISHED_STATUSES = frozenset({"FT", "AET", "PEN"})
CANCELLED_STATUSES = frozenset({"CANC", "ABD", "AWD"})


class MatchOutcome(IntEnum):
    HOME = 0
    DRAW = 1  # "None" on the wire
    AWAY = 2


def _require(obj: Any, *path: str) -> Any:
    """Walk nested dict keys; a missing or null step is MalformedOracleData."""
    cur = obj
    for key in path:
        if not isinstance(cur, dict) or cur.get(key) is None:
            raise MalformedOracleData(f"missing field {'.'.join(path)}")
        cur = cur[key]
    return cur


def _require_int(obj: Any, *path: str) -> int:
    value = _require(obj, *path)
    if not isinstance(value, int) or isinstance(value, bool):
        raise MalformedOracleData(f"field {'.'.join(path)} is not an integer: {value!r}")
    return value


def fixture_status(raw: dict[str, Any]) -> str:
    return str(_require(raw, "fixture", "status", "short"))


def fixture_cancelled(raw: dict[str, Any]) -> bool:
    """True when the event will never produce a result (cancelled, abandoned, awarded)."""
    return fixture_status(raw) in CANCELLED_STATUSES


def classify_fixture(raw: dict[str, Any]) -> ResultPayload:
    """Resolve a finished fixture into [outcome, homeTeamId, awayTeamId]."""
    status = fixture_status(raw)
    if status not in FINISHED_STATUSES:
        raise UnresolvableEvent(f"game not finished yet (status {status})")
    home_goals = _require_int(raw, "goals", "home")
    away_goals = _require_int(raw, "goals", "away")
    if home_goals == away_goals:
        outcome = MatchOutcome.DRAW
    elif home_goals > away_goals:
        outcome = MatchOutcome.HOME
    else:
        outcome = MatchOutcome.AWAY
    payload = ResultPayload(
        outcome=int(outcome),
        home_team_id=_require_int(raw, "teams", "home", "id"),
        away_team_id=_require_int(raw, "teams", "away", "id"),
    )
    pack_u32(payload.words())
    return payload


def build_round_payload(fixtures: list[dict[str, Any]]) -> RoundPayload:
    """Sort a round's fixtures by kickoff and flatten them. Zero fixtures -> empty payload."""
    if not fixtures:
        return RoundPayload()
    entries: list[tuple[int, str, int]] = []
    for item in fixtures:
        fixture_id = _require_int(item, "fixture", "id")
        timestamp = _require_int(item, "fixture", "timestamp")
        date = str((item.get("fixture") or {}).get("date") or "")
        entries.append((timestamp, date, fixture_id))
    entries.sort(key=lambda e: (e[0], e[1]))
    payload = RoundPayload(
        is_tournament_end=1 if len(entries) == 1 else 0,
        last_index=len(entries) - 1,
        fixture_ids=[e[2] for e in entries],
        timestamps=[e[0] for e in entries],
    )
    pack_u32(payload.words())
    return payload


def discover_round(client: FootballApiClient, league: int, season: int) -> RoundPayload:
    """Fetch the latest round of a competition season and build its RoundPayload."""
    rounds = client.get_rounds(league, season)
    if not rounds:
        raise MalformedOracleData(f"no rounds data for league={league} season={season}")
    latest = rounds[-1]
    fixtures = client.get_round_fixtures(league, season, latest)
    payload = build_round_payload(fixtures)
    log.info("round_discovered", league=league, season=season, round=latest, fixtures=len(payload.fixture_ids))
    return payload
