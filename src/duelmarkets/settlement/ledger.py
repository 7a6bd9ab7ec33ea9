"""Per-market append-only ledger. Sequence numbers start at 0 and never repeat."""

from __future__ import annotations

from typing import Any, Iterator

from duelmarkets.models import LedgerEntry, LedgerKind


class MarketLedger:
    """Totally ordered history of one market's committed mutations."""

    __slots__ = ("market_id", "_entries")

    def __init__(self, market_id: str) -> None:
        self.market_id = market_id
        self._entries: list[LedgerEntry] = []

    def append(self, kind: LedgerKind, timestamp: int, **fields: Any) -> LedgerEntry:
        entry = LedgerEntry(
            market_id=self.market_id,
            seq=len(self._entries),
            kind=kind,
            timestamp=timestamp,
            **fields,
        )
        self._entries.append(entry)
        return entry

    def entries(self) -> list[LedgerEntry]:
        return list(self._entries)

    @property
    def next_seq(self) -> int:
        return len(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[LedgerEntry]:
        return iter(list(self._entries))
