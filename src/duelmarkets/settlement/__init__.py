from duelmarkets.settlement.engine import SettlementEngine
from duelmarkets.settlement.ledger import MarketLedger

__all__ = ["MarketLedger", "SettlementEngine"]
