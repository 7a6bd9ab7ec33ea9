"""Oracle adapter: fixture classification, round payloads, u32 codec and api client."""

import httpx
import pytest

from duelmarkets.errors import MalformedOracleData, UnresolvableEvent
from duelmarkets.oracle import (
    FootballApiClient,
    MatchOutcome,
    ResultPayload,
    RoundPayload,
    build_round_payload,
    classify_fixture,
    discover_round,
    fixture_cancelled,
    pack_u32,
    unpack_u32,
)


def raw_fixture(status="FT", home_goals=2, away_goals=1, home_id=33, away_id=34, fixture_id=555, timestamp=1700000000):
    return {
        "fixture": {"id": fixture_id, "timestamp": timestamp, "status": {"short": status}},
        "teams": {"home": {"id": home_id}, "away": {"id": away_id}},
        "goals": {"home": home_goals, "away": away_goals},
    }


def test_home_win_and_draw():
    assert classify_fixture(raw_fixture(home_goals=2, away_goals=1)).outcome == MatchOutcome.HOME
    assert classify_fixture(raw_fixture(home_goals=1, away_goals=1)).outcome == MatchOutcome.DRAW
    assert classify_fixture(raw_fixture(home_goals=0, away_goals=3)).outcome == MatchOutcome.AWAY


@pytest.mark.parametrize("status", ["FT", "AET", "PEN"])
def test_finished_statuses_resolve(status):
    payload = classify_fixture(raw_fixture(status=status))
    assert payload.words() == [0, 33, 34]


@pytest.mark.parametrize("status", ["NS", "1H", "HT", "2H", "PST"])
def test_unfinished_status_is_transient(status):
    with pytest.raises(UnresolvableEvent) as exc_info:
        classify_fixture(raw_fixture(status=status))
    assert exc_info.value.retryable


def test_missing_fields_are_malformed():
    raw = raw_fixture()
    raw["goals"]["home"] = None
    with pytest.raises(MalformedOracleData):
        classify_fixture(raw)
    raw = raw_fixture()
    del raw["teams"]["away"]
    with pytest.raises(MalformedOracleData):
        classify_fixture(raw)
    with pytest.raises(MalformedOracleData):
        classify_fixture({})


def test_team_id_beyond_u32_is_rejected():
    with pytest.raises(MalformedOracleData):
        classify_fixture(raw_fixture(home_id=2**32))


def test_cancelled_fixture_detection():
    assert fixture_cancelled(raw_fixture(status="CANC"))
    assert fixture_cancelled(raw_fixture(status="ABD"))
    assert not fixture_cancelled(raw_fixture(status="FT"))


def test_single_fixture_round_is_tournament_end():
    payload = build_round_payload([raw_fixture(fixture_id=555, timestamp=1700000000)])
    assert payload.words() == [1, 0, 555, 1700000000]


def test_empty_round_payload():
    payload = build_round_payload([])
    assert payload.empty
    assert payload.words() == [0, 0]
    assert payload.encode() == b"\x00" * 8


def test_round_sorted_by_kickoff():
    fixtures = [
        raw_fixture(fixture_id=3, timestamp=300),
        raw_fixture(fixture_id=1, timestamp=100),
        raw_fixture(fixture_id=2, timestamp=200),
    ]
    payload = build_round_payload(fixtures)
    assert payload.words() == [0, 2, 1, 2, 3, 100, 200, 300]


def test_u32_codec_bounds():
    assert pack_u32([0, 0xFFFFFFFF]) == b"\x00\x00\x00\x00\xff\xff\xff\xff"
    assert unpack_u32(b"\x00\x00\x02\x2b") == [555]
    with pytest.raises(MalformedOracleData):
        pack_u32([2**32])
    with pytest.raises(MalformedOracleData):
        pack_u32([-1])
    with pytest.raises(MalformedOracleData):
        pack_u32([True])
    with pytest.raises(MalformedOracleData):
        unpack_u32(b"\x00\x01\x02")


def test_payload_decode_validates_shape():
    result = ResultPayload(outcome=2, home_team_id=7, away_team_id=9)
    assert ResultPayload.decode(result.encode()) == result
    with pytest.raises(MalformedOracleData):
        ResultPayload.decode(pack_u32([1, 2]))

    rnd = RoundPayload.decode(pack_u32([0, 1, 11, 12, 500, 600]))
    assert rnd.fixture_ids == [11, 12] and rnd.timestamps == [500, 600]
    assert RoundPayload.decode(pack_u32([0, 0])).empty
    with pytest.raises(MalformedOracleData):
        RoundPayload.decode(pack_u32([0, 3, 11, 500]))
    with pytest.raises(MalformedOracleData):
        RoundPayload.decode(pack_u32([0]))


def api_transport(routes):
    """MockTransport serving `routes[path]` as the api-football `response` list."""

    def handler(request: httpx.Request) -> httpx.Response:
        assert request.headers["x-apisports-key"] == "test-key"
        body = routes.get(request.url.path)
        if body is None:
            return httpx.Response(404, json={"errors": ["not found"]})
        if callable(body):
            body = body(request)
        return httpx.Response(200, json={"response": body})

    return httpx.MockTransport(handler)


def test_client_fetches_fixture():
    transport = api_transport({"/fixtures": lambda req: [raw_fixture(fixture_id=int(req.url.params["id"]))]})
    with FootballApiClient("test-key", transport=transport) as client:
        raw = client.get_fixture(777)
    assert raw["fixture"]["id"] == 777
    assert classify_fixture(raw).outcome == MatchOutcome.HOME


def test_client_missing_fixture_and_http_errors():
    with FootballApiClient("test-key", transport=api_transport({"/fixtures": []})) as client:
        with pytest.raises(MalformedOracleData):
            client.get_fixture(1)
    with FootballApiClient("test-key", transport=api_transport({})) as client:
        with pytest.raises(httpx.HTTPStatusError):
            client.get_fixture(1)


def test_discover_round_uses_latest_round():
    seen = {}

    def round_fixtures(request):
        seen["round"] = request.url.params["round"]
        return [raw_fixture(fixture_id=42, timestamp=1700000500)]

    transport = api_transport(
        {
            "/fixtures/rounds": ["Round of 16", "Quarter-finals", "Final"],
            "/fixtures": round_fixtures,
        }
    )
    with FootballApiClient("test-key", transport=transport) as client:
        payload = discover_round(client, league=1, season=2026)
    assert seen["round"] == "Final"
    assert payload.words() == [1, 0, 42, 1700000500]


def test_discover_round_without_rounds_is_malformed():
    with FootballApiClient("test-key", transport=api_transport({"/fixtures/rounds": []})) as client:
        with pytest.raises(MalformedOracleData):
            discover_round(client, league=1, season=2026)
