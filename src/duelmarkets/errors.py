"""Typed failures raised by pricing, settlement and oracle components."""

from __future__ import annotations


class MarketError(Exception):
    """Base class for all market-core failures."""

    retryable: bool = False


class InvalidParameter(MarketError, ValueError):
    """Bad input to a pure component (b <= 0, N < 2, negative amounts...)."""


class MarketNotFound(MarketError, KeyError):
    """No market with the given id in this engine."""

    def __str__(self) -> str:
        return Exception.__str__(self)


class MarketNotOpen(MarketError):
    """Trade or halt attempted on a market that no longer accepts trades."""


class MarketNotLocked(MarketError):
    """Resolution attempted while the market is still open for trading."""


class MarketAlreadyResolved(MarketError):
    """Market (or fixture) already carries a different terminal result."""


class MarketNotResolved(MarketError):
    """Redemption attempted before the market reached Resolved or Voided."""


class OutcomeOutOfRange(MarketError):
    """Outcome index outside [0, N)."""


class InsufficientOutstandingShares(MarketError):
    """Sell amount exceeds the market's outstanding or the trader's held shares."""


class SlippageExceeded(MarketError):
    """Recomputed cost or proceeds crossed the caller's bound."""


class ResolutionWindowExpired(MarketError):
    """Resolution arrived after the resolution deadline; the market is voided."""


class AlreadyRedeemed(MarketError):
    """Position was already redeemed (spent)."""


class NoPosition(MarketError):
    """Trader holds no position in the market."""


class RoundInProgress(MarketError):
    """Next tournament round requested while the current round has open fixtures."""


class UnresolvableEvent(MarketError):
    """Event has no final result yet. Transient: the caller may retry the same query."""

    retryable = True


class MalformedOracleData(MarketError):
    """Oracle payload is missing a field or holds a value outside the u32 domain."""


class LedgerMismatch(MarketError):
    """Replayed ledger entry does not reproduce its recorded value."""
