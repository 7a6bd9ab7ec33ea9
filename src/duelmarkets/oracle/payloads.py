"""ResultPayload / RoundPayload - big-endian u32 word encodings exchanged with the oracle.

ResultPayload: [outcome, homeTeamId, awayTeamId]
RoundPayload:  [isTournamentEnd, lastIndex, fixtureId_0..n, timestamp_0..n]; empty round = [0, 0]
"""

from __future__ import annotations

import struct
from typing import Sequence

from pydantic import BaseModel, Field

from duelmarkets.errors import MalformedOracleData

U32_MAX = 0xFFFFFFFF


def pack_u32(words: Sequence[int]) -> bytes:
    """Pack ints as big-endian u32 words. Out-of-range values are rejected, never truncated."""
    for i, value in enumerate(words):
        if not isinstance(value, int) or isinstance(value, bool):
            raise MalformedOracleData(f"word {i} is not an integer: {value!r}")
        if value < 0 or value > U32_MAX:
            raise MalformedOracleData(f"value too big for 4 bytes at index {i}: {value}")
    return struct.pack(f">{len(words)}I", *words)


def unpack_u32(data: bytes) -> list[int]:
    if len(data) % 4 != 0:
        raise MalformedOracleData(f"payload length {len(data)} is not a multiple of 4")
    return list(struct.unpack(f">{len(data) // 4}I", data))


class ResultPayload(BaseModel):
    """Resolved match: outcome index plus the two team ids."""

    outcome: int
    home_team_id: int
    away_team_id: int

    def words(self) -> list[int]:
        return [self.outcome, self.home_team_id, self.away_team_id]

    def encode(self) -> bytes:
        return pack_u32(self.words())

    @classmethod
    def decode(cls, data: bytes) -> ResultPayload:
        words = unpack_u32(data)
        if len(words) != 3:
            raise MalformedOracleData(f"result payload needs 3 words, got {len(words)}")
        return cls(outcome=words[0], home_team_id=words[1], away_team_id=words[2])


class RoundPayload(BaseModel):
    """Most recent round's fixtures, sorted by kickoff."""

    is_tournament_end: int = 0
    last_index: int = 0
    fixture_ids: list[int] = Field(default_factory=list)
    timestamps: list[int] = Field(default_factory=list)

    @property
    def empty(self) -> bool:
        return not self.fixture_ids

    def words(self) -> list[int]:
        return [self.is_tournament_end, self.last_index, *self.fixture_ids, *self.timestamps]

    def encode(self) -> bytes:
        return pack_u32(self.words())

    @classmethod
    def decode(cls, data: bytes) -> RoundPayload:
        words = unpack_u32(data)
        if len(words) < 2:
            raise MalformedOracleData(f"round payload needs at least 2 words, got {len(words)}")
        is_end, last_index, rest = words[0], words[1], words[2:]
        if not rest:
            return cls(is_tournament_end=is_end, last_index=last_index)
        count = last_index + 1
        if len(rest) != 2 * count:
            raise MalformedOracleData(
                f"round payload lastIndex={last_index} needs {2 * count} entries, got {len(rest)}"
            )
        return cls(
            is_tournament_end=is_end,
            last_index=last_index,
            fixture_ids=rest[:count],
            timestamps=rest[count:],
        )
