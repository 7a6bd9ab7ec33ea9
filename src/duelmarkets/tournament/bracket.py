"""Tournament bracket: sequences round-by-round fixture results into one winning outcome.

The outcome vector is the full initial roster and never shrinks; eliminated
teams stay in the cost function with prices driven toward zero by trading.
Round r+1 is only enqueued once every fixture of round r is resolved.
"""

from __future__ import annotations

from typing import Sequence

import structlog

from duelmarkets.errors import (
    InvalidParameter,
    MalformedOracleData,
    MarketAlreadyResolved,
    RoundInProgress,
    UnresolvableEvent,
)
from duelmarkets.models import Fixture, LedgerKind, MarketKind, MarketStatus
from duelmarkets.oracle.adapter import MatchOutcome
from duelmarkets.oracle.payloads import ResultPayload, RoundPayload
from duelmarkets.settlement.engine import SettlementEngine

log = structlog.get_logger(__name__)


class TournamentBracket:
    """Fixture queue for one tournament market. Outcome index = position in `roster`.

    Roster, rounds and results are committed to the market ledger as BRACKET
    entries, so `load` can rebuild the bracket after a restart.
    """

    def __init__(
        self,
        engine: SettlementEngine,
        market_id: str,
        roster: Sequence[int],
        *,
        record: bool = True,
        now: int | None = None,
    ) -> None:
        market = engine.get_market(market_id)
        if len(roster) != market.outcome_count:
            raise InvalidParameter(
                f"roster has {len(roster)} teams, market {market_id} has {market.outcome_count} outcomes"
            )
        if len(set(roster)) != len(roster):
            raise InvalidParameter("roster contains duplicate team ids")
        self.engine = engine
        self.market_id = market_id
        self.roster = list(roster)
        self._team_index = {team_id: i for i, team_id in enumerate(self.roster)}
        self._round: dict[int, Fixture] = {}
        self._round_number = 0
        self._history: list[list[Fixture]] = []
        self._eliminated: set[int] = set()
        self._champion: int | None = None
        if record:
            engine.annotate(market_id, {"event": "roster", "roster": self.roster}, now=now)

    @classmethod
    def load(cls, engine: SettlementEngine, market_id: str) -> TournamentBracket:
        """Rebuild a bracket from the market's BRACKET entries. Commits nothing."""
        bracket: TournamentBracket | None = None
        for entry in engine.ledger(market_id):
            if entry.kind is not LedgerKind.BRACKET:
                continue
            detail = dict(entry.detail)
            event = detail.pop("event", None)
            if event == "roster":
                bracket = cls(engine, market_id, detail["roster"], record=False)
            elif bracket is None:
                raise MalformedOracleData(f"{market_id}#{entry.seq}: bracket {event} before roster")
            elif event == "round":
                bracket._apply_round(RoundPayload.model_validate(detail))
            elif event == "result":
                match_id = int(detail.pop("match_id"))
                bracket._apply_result(match_id, ResultPayload.model_validate(detail))
        if bracket is None:
            raise InvalidParameter(f"market {market_id} has no tournament roster")
        return bracket

    @property
    def round_number(self) -> int:
        return self._round_number

    @property
    def current_round(self) -> list[Fixture]:
        return [f.model_copy() for f in self._round.values()]

    @property
    def history(self) -> list[list[Fixture]]:
        return [[f.model_copy() for f in rnd] for rnd in self._history]

    @property
    def round_complete(self) -> bool:
        return all(f.resolved for f in self._round.values())

    @property
    def eliminated(self) -> set[int]:
        """Roster indices knocked out so far."""
        return set(self._eliminated)

    @property
    def champion(self) -> int | None:
        return self._champion

    def team_index(self, team_id: int) -> int:
        try:
            return self._team_index[team_id]
        except KeyError:
            raise MalformedOracleData(f"team {team_id} not in tournament roster") from None

    def enqueue_round(self, payload: RoundPayload, now: int | None = None) -> bool:
        """Load the next round's fixtures. Returns False for an empty round payload."""
        if self._champion is not None:
            raise MarketAlreadyResolved(f"tournament {self.market_id} already decided")
        if not self.round_complete:
            pending = [f.match_id for f in self._round.values() if not f.resolved]
            raise RoundInProgress(f"round {self._round_number} has unresolved fixtures {pending}")
        if payload.empty:
            log.info("round_empty", market_id=self.market_id, round=self._round_number)
            return False
        if len(payload.fixture_ids) != len(payload.timestamps):
            raise MalformedOracleData("round payload fixture/timestamp counts differ")
        self.engine.annotate(self.market_id, {"event": "round", **payload.model_dump()}, now=now)
        self._apply_round(payload)
        log.info(
            "round_enqueued",
            market_id=self.market_id,
            round=self._round_number,
            fixtures=len(self._round),
            final=self._round_is_final(),
        )
        return True

    def record_result(self, match_id: int, result: ResultPayload, now: int | None = None) -> Fixture:
        """Apply a fixture result. Resolving the tournament final resolves the market.

        The final's result is only recorded once the market resolve succeeds, so a
        failed resolve leaves the fixture open for a retry.
        """
        fixture = self._fixture(match_id)
        winner, _ = self._decide(match_id, result)
        if fixture.resolved:
            if fixture.winner_index == winner:
                return fixture.model_copy()
            raise MarketAlreadyResolved(
                f"match {match_id} already won by {fixture.winner_index}, not {winner}"
            )

        if fixture.is_tournament_final:
            if self.engine.get_market(self.market_id).status is MarketStatus.OPEN:
                self.engine.halt(self.market_id, now=now)
            self.engine.resolve(self.market_id, winner, now=now)
        self.engine.annotate(
            self.market_id, {"event": "result", "match_id": match_id, **result.model_dump()}, now=now
        )
        fixture = self._apply_result(match_id, result)
        log.info("fixture_resolved", market_id=self.market_id, match_id=match_id, winner=winner, round=self._round_number)
        if self._champion is not None:
            log.info("tournament_resolved", market_id=self.market_id, champion=winner, team_id=self.roster[winner])
        return fixture

    # --- state transitions, shared by live calls and load --------------------

    def _fixture(self, match_id: int) -> Fixture:
        fixture = self._round.get(match_id)
        if fixture is None:
            raise MalformedOracleData(f"match {match_id} is not in round {self._round_number}")
        return fixture

    def _decide(self, match_id: int, result: ResultPayload) -> tuple[int, int]:
        """(winner, loser) roster indices of a knockout result."""
        home = self.team_index(result.home_team_id)
        away = self.team_index(result.away_team_id)
        if result.outcome == MatchOutcome.HOME:
            return home, away
        if result.outcome == MatchOutcome.AWAY:
            return away, home
        if result.outcome == MatchOutcome.DRAW:
            raise UnresolvableEvent(f"match {match_id} ended level; knockout winner not decided")
        raise MalformedOracleData(f"unknown outcome {result.outcome} for match {match_id}")

    def _round_is_final(self) -> bool:
        return any(f.is_tournament_final for f in self._round.values())

    def _apply_round(self, payload: RoundPayload) -> None:
        if self._round:
            self._history.append(list(self._round.values()))
        self._round_number += 1
        last = len(payload.fixture_ids) - 1
        final = payload.is_tournament_end == 1 and last == 0
        self._round = {
            match_id: Fixture(
                match_id=match_id,
                timestamp=ts,
                round_number=self._round_number,
                is_round_final=i == last,
                is_tournament_final=final,
            )
            for i, (match_id, ts) in enumerate(zip(payload.fixture_ids, payload.timestamps))
        }

    def _apply_result(self, match_id: int, result: ResultPayload) -> Fixture:
        winner, loser = self._decide(match_id, result)
        fixture = self._fixture(match_id).model_copy(
            update={
                "resolved": True,
                "winner_index": winner,
                "home_team_id": result.home_team_id,
                "away_team_id": result.away_team_id,
            }
        )
        self._round[match_id] = fixture
        self._eliminated.add(loser)
        if fixture.is_tournament_final:
            self._champion = winner
        return fixture.model_copy()


def create_tournament_market(
    engine: SettlementEngine,
    roster: Sequence[int],
    liquidity: int,
    resolution_deadline: int,
    *,
    lock_time: int | None = None,
    market_id: str | None = None,
    label: str = "",
    now: int | None = None,
) -> TournamentBracket:
    """Create a market with one outcome per roster team and attach a bracket to it."""
    mid = engine.create_market(
        len(roster),
        liquidity,
        resolution_deadline,
        lock_time=lock_time,
        market_id=market_id,
        kind=MarketKind.TOURNAMENT,
        label=label,
        now=now,
    )
    return TournamentBracket(engine, mid, roster, now=now)
