"""Data models for the quoting strategy."""

from dataclasses import dataclass
from decimal import Decimal
from enum import Enum

from hypermaker.models.trading import OrderSide, OrderType, Signal


class StrategyState(Enum):
    """Global run state of the strategy."""

    STOPPED = "stopped"
    RUNNING = "running"


class SymbolQuoteState(Enum):
    """Per-symbol quoting state."""

    IDLE = "idle"
    QUOTING = "quoting"


class DecisionAction(Enum):
    """Action chosen by the trading decision."""

    BUY = "BUY"
    SELL = "SELL"
    HOLD = "HOLD"


class RiskLevel(Enum):
    """Advisory risk classification of a decision."""

    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"


@dataclass(frozen=True)
class TradingDecision:
    """Result of evaluating a signal against the market.

    Attributes:
        symbol: Symbol the decision applies to.
        action: BUY, SELL or HOLD.
        side: Order side (None for HOLD).
        size: Quote size (zero for HOLD).
        price: Quote price (zero for HOLD).
        order_type: Order type to submit.
        reason: Why the decision was made (or why it holds).
        risk_level: Advisory risk classification.
        signal: Signal that produced the decision.
    """

    symbol: str
    action: DecisionAction
    side: OrderSide | None
    size: Decimal
    price: Decimal
    order_type: OrderType
    reason: str
    risk_level: RiskLevel
    signal: Signal | None = None

    @property
    def is_hold(self) -> bool:
        return self.action == DecisionAction.HOLD


@dataclass
class StrategyStatistics:
    """Running statistics of the strategy.

    Attributes:
        is_running: Whether the strategy is RUNNING.
        active_orders: Number of resting orders.
        positions: Number of open positions in the risk manager.
        quotes_placed: Orders submitted successfully.
        quotes_cancelled: Orders confirmed cancelled.
        fills: Orders completely filled.
        fill_rate: fills / quotes_placed (zero before any quote).
        avg_time_to_fill_seconds: Mean time from submission to complete fill.
        total_rebates: Maker rebates earned on fills.
    """

    is_running: bool
    active_orders: int
    positions: int
    quotes_placed: int
    quotes_cancelled: int
    fills: int
    fill_rate: Decimal
    avg_time_to_fill_seconds: float
    total_rebates: Decimal
