"""Oracle result adapter - fixture classification, round discovery and u32 payload codec."""

from duelmarkets.oracle.adapter import (
    MatchOutcome,
    build_round_payload,
    classify_fixture,
    discover_round,
    fixture_cancelled,
)
from duelmarkets.oracle.client import FootballApiClient
from duelmarkets.oracle.payloads import ResultPayload, RoundPayload, pack_u32, unpack_u32

__all__ = [
    "FootballApiClient",
    "MatchOutcome",
    "ResultPayload",
    "RoundPayload",
    "build_round_payload",
    "classify_fixture",
    "discover_round",
    "fixture_cancelled",
    "pack_u32",
    "unpack_u32",
]
