"""Tournament bracket: round sequencing, eliminations and final resolution."""

import pytest

from duelmarkets.errors import (
    InvalidParameter,
    MalformedOracleData,
    MarketAlreadyResolved,
    RoundInProgress,
    UnresolvableEvent,
)
from duelmarkets.lmsr.fixed_math import MICRO
from duelmarkets.models import LedgerKind, MarketKind, MarketStatus
from duelmarkets.oracle.payloads import ResultPayload, RoundPayload
from duelmarkets.settlement import SettlementEngine
from duelmarkets.tournament import TournamentBracket, create_tournament_market

T0 = 1_700_000_000
DEADLINE = T0 + 30 * 86_400
ROSTER = [10, 20, 30, 40]

SEMIS = RoundPayload(is_tournament_end=0, last_index=1, fixture_ids=[101, 102], timestamps=[T0, T0 + 3600])
FINAL = RoundPayload(is_tournament_end=1, last_index=0, fixture_ids=[201], timestamps=[T0 + 86_400])


@pytest.fixture
def engine():
    return SettlementEngine()


@pytest.fixture
def bracket(engine):
    return create_tournament_market(engine, ROSTER, 50 * MICRO, DEADLINE, market_id="cup", now=T0 - 10)


def test_tournament_market_has_one_outcome_per_team(engine, bracket):
    m = engine.get_market("cup")
    assert m.kind is MarketKind.TOURNAMENT
    assert m.outcome_count == 4
    assert bracket.team_index(30) == 2
    with pytest.raises(MalformedOracleData):
        bracket.team_index(99)


def test_roster_must_match_market(engine):
    mid = engine.create_market(3, MICRO, DEADLINE, now=T0)
    with pytest.raises(InvalidParameter):
        TournamentBracket(engine, mid, ROSTER)
    mid4 = engine.create_market(4, MICRO, DEADLINE, now=T0)
    with pytest.raises(InvalidParameter):
        TournamentBracket(engine, mid4, [1, 1, 2, 3])


def test_full_bracket_resolves_market_to_champion(engine, bracket):
    engine.execute_buy("cup", "alice", 3, 10 * MICRO, max_cost=10**18, now=T0 - 5)

    assert bracket.enqueue_round(SEMIS) is True
    assert bracket.round_number == 1
    assert [f.is_round_final for f in bracket.current_round] == [False, True]

    bracket.record_result(101, ResultPayload(outcome=0, home_team_id=10, away_team_id=20), now=T0 + 7200)
    assert not bracket.round_complete
    with pytest.raises(RoundInProgress):
        bracket.enqueue_round(FINAL)

    bracket.record_result(102, ResultPayload(outcome=2, home_team_id=30, away_team_id=40), now=T0 + 7200)
    assert bracket.round_complete
    assert bracket.eliminated == {1, 2}

    assert bracket.enqueue_round(FINAL) is True
    assert bracket.current_round[0].is_tournament_final
    assert len(bracket.history) == 1

    final = bracket.record_result(201, ResultPayload(outcome=2, home_team_id=10, away_team_id=40), now=T0 + 90_000)
    assert final.winner_index == 3
    assert bracket.champion == 3
    m = engine.get_market("cup")
    assert m.status is MarketStatus.RESOLVED
    assert m.resolved_outcome == 3
    assert engine.redeem("cup", "alice", now=T0 + 90_001) == 10 * MICRO

    with pytest.raises(MarketAlreadyResolved):
        bracket.enqueue_round(SEMIS)


def test_repeated_result_is_noop_and_conflict_fails(bracket):
    bracket.enqueue_round(SEMIS)
    home_win = ResultPayload(outcome=0, home_team_id=10, away_team_id=20)
    first = bracket.record_result(101, home_win, now=T0)
    again = bracket.record_result(101, home_win, now=T0)
    assert first == again
    with pytest.raises(MarketAlreadyResolved):
        bracket.record_result(101, ResultPayload(outcome=2, home_team_id=10, away_team_id=20), now=T0)


def test_draw_is_not_a_knockout_result(bracket):
    bracket.enqueue_round(SEMIS)
    with pytest.raises(UnresolvableEvent) as exc_info:
        bracket.record_result(101, ResultPayload(outcome=1, home_team_id=10, away_team_id=20), now=T0)
    assert exc_info.value.retryable
    assert not bracket.round_complete


def test_unknown_match_or_outcome_rejected(bracket):
    bracket.enqueue_round(SEMIS)
    with pytest.raises(MalformedOracleData):
        bracket.record_result(999, ResultPayload(outcome=0, home_team_id=10, away_team_id=20), now=T0)
    with pytest.raises(MalformedOracleData):
        bracket.record_result(101, ResultPayload(outcome=7, home_team_id=10, away_team_id=20), now=T0)


def test_empty_round_is_not_enqueued(bracket):
    assert bracket.enqueue_round(RoundPayload()) is False
    assert bracket.round_number == 0
    assert bracket.current_round == []


def _play_semis(bracket):
    bracket.enqueue_round(SEMIS, now=T0)
    bracket.record_result(101, ResultPayload(outcome=0, home_team_id=10, away_team_id=20), now=T0 + 7200)
    bracket.record_result(102, ResultPayload(outcome=2, home_team_id=30, away_team_id=40), now=T0 + 7200)


def test_failed_final_resolve_leaves_fixture_open_for_retry(engine, bracket, monkeypatch):
    _play_semis(bracket)
    bracket.enqueue_round(FINAL, now=T0 + 7300)
    final = ResultPayload(outcome=2, home_team_id=10, away_team_id=40)

    real_resolve = engine.resolve
    calls = []

    def flaky_resolve(market_id, outcome, now=None):
        calls.append(outcome)
        if len(calls) == 1:
            raise UnresolvableEvent("relay timed out")
        return real_resolve(market_id, outcome, now=now)

    monkeypatch.setattr(engine, "resolve", flaky_resolve)

    with pytest.raises(UnresolvableEvent):
        bracket.record_result(201, final, now=T0 + 90_000)
    assert bracket.champion is None
    assert not bracket.current_round[0].resolved
    assert bracket.eliminated == {1, 2}
    assert engine.get_market("cup").status is MarketStatus.LOCKED

    fixture = bracket.record_result(201, final, now=T0 + 90_000)
    assert fixture.winner_index == 3
    assert bracket.champion == 3
    assert calls == [3, 3]
    assert engine.get_market("cup").resolved_outcome == 3


def test_bracket_state_is_recorded_in_the_ledger(engine, bracket):
    bracket.enqueue_round(SEMIS, now=T0)
    bracket.record_result(101, ResultPayload(outcome=0, home_team_id=10, away_team_id=20), now=T0 + 7200)

    events = [e.detail["event"] for e in engine.ledger("cup") if e.kind is LedgerKind.BRACKET]
    assert events == ["roster", "round", "result"]

    length = engine.ledger_length("cup")
    loaded = TournamentBracket.load(engine, "cup")
    assert engine.ledger_length("cup") == length
    assert loaded.roster == ROSTER
    assert loaded.round_number == 1
    assert loaded.eliminated == {1}
    assert [f.resolved for f in loaded.current_round] == [True, False]
    assert loaded.current_round[0].winner_index == 0

    loaded.record_result(102, ResultPayload(outcome=2, home_team_id=30, away_team_id=40), now=T0 + 7200)
    loaded.enqueue_round(FINAL, now=T0 + 7300)
    loaded.record_result(201, ResultPayload(outcome=0, home_team_id=10, away_team_id=40), now=T0 + 90_000)
    assert loaded.champion == 0

    again = TournamentBracket.load(engine, "cup")
    assert again.champion == 0
    assert again.eliminated == {1, 2, 3}
    assert len(again.history) == 1


def test_load_requires_a_roster(engine):
    mid = engine.create_market(4, MICRO, DEADLINE, now=T0)
    with pytest.raises(InvalidParameter):
        TournamentBracket.load(engine, mid)
