"""One-sided quoting strategy."""

from .models import (
    DecisionAction,
    RiskLevel,
    StrategyState,
    StrategyStatistics,
    SymbolQuoteState,
    TradingDecision,
)
from .one_sided_quoting import OneSidedQuotingStrategy
from .settings import QuotingSettings

__all__ = [
    "DecisionAction",
    "OneSidedQuotingStrategy",
    "QuotingSettings",
    "RiskLevel",
    "StrategyState",
    "StrategyStatistics",
    "SymbolQuoteState",
    "TradingDecision",
]
