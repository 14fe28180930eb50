"""Data models for risk management."""

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from enum import Enum

from hypermaker.models.trading import OrderSide, Position
from hypermaker.risk.settings import RiskSettings


ZERO = Decimal("0")


class AlertLevel(Enum):
    """Severity of a risk alert, in escalating order."""

    WARNING = "WARNING"
    CRITICAL = "CRITICAL"
    EMERGENCY = "EMERGENCY"


class AlertType(Enum):
    """Limit or condition that produced a risk alert."""

    DAILY_LOSS_LIMIT = "DAILY_LOSS_LIMIT"
    DRAWDOWN_LIMIT = "DRAWDOWN_LIMIT"
    CONCENTRATION_RISK = "CONCENTRATION_RISK"
    CORRELATION_RISK = "CORRELATION_RISK"
    POSITION_TIMEOUT = "POSITION_TIMEOUT"
    EMERGENCY_STOP_LOSS = "EMERGENCY_STOP_LOSS"
    MANUAL_STOP = "MANUAL_STOP"


class RecommendedAction(Enum):
    """Action recommended to the owner of the alert."""

    REDUCE_RISK = "REDUCE_RISK"
    REDUCE_POSITION = "REDUCE_POSITION"
    DIVERSIFY_POSITIONS = "DIVERSIFY_POSITIONS"
    EMERGENCY_STOP = "EMERGENCY_STOP"


class RiskStatus(Enum):
    """Overall health reported by the risk summary."""

    HEALTHY = "HEALTHY"
    WARNING = "WARNING"
    CRITICAL = "CRITICAL"
    EMERGENCY = "EMERGENCY"


@dataclass(frozen=True)
class RiskLimits:
    """Snapshot of the limits enforced by the risk manager.

    Attributes:
        max_position_size: Absolute size limit per symbol.
        max_daily_loss: Daily loss that blocks trading.
        max_drawdown_percent: Drawdown percent that blocks trading.
        max_open_positions: Maximum open positions.
        position_timeout_minutes: Age at which a position is flagged.
        emergency_stop_loss_percent: Capital loss percent that forces a stop.
        concentration_limit: Max fraction of portfolio value per symbol.
    """

    max_position_size: Decimal
    max_daily_loss: Decimal
    max_drawdown_percent: Decimal
    max_open_positions: int
    position_timeout_minutes: float
    emergency_stop_loss_percent: Decimal
    concentration_limit: Decimal

    @classmethod
    def from_settings(cls, settings: RiskSettings) -> "RiskLimits":
        return cls(
            max_position_size=settings.max_position_size,
            max_daily_loss=settings.max_daily_loss,
            max_drawdown_percent=settings.max_drawdown_percent,
            max_open_positions=settings.max_open_positions,
            position_timeout_minutes=settings.position_timeout_minutes,
            emergency_stop_loss_percent=settings.emergency_stop_loss_percent,
            concentration_limit=settings.concentration_limit,
        )


@dataclass
class RiskMetrics:
    """Derived risk and performance metrics.

    Attributes:
        total_exposure: Sum of open position notionals.
        pending_exposure: Sum of resting order notionals.
        max_position_size: Configured per-symbol size limit.
        current_drawdown: Percent below the historical peak value.
        max_drawdown: Largest drawdown observed (never decreases).
        daily_pnl: Realized P&L of trades since start of day.
        daily_loss: Magnitude of a negative daily P&L, else zero.
        sharpe_ratio: Annualized Sharpe ratio of per-trade returns.
        win_rate: Fraction of closing trades with positive P&L.
        avg_win: Mean P&L of winning trades.
        avg_loss: Mean magnitude of losing trades.
        profit_factor: Gross profit / gross loss (zero without losses).
    """

    total_exposure: Decimal = ZERO
    pending_exposure: Decimal = ZERO
    max_position_size: Decimal = ZERO
    current_drawdown: Decimal = ZERO
    max_drawdown: Decimal = ZERO
    daily_pnl: Decimal = ZERO
    daily_loss: Decimal = ZERO
    sharpe_ratio: Decimal = ZERO
    win_rate: Decimal = ZERO
    avg_win: Decimal = ZERO
    avg_loss: Decimal = ZERO
    profit_factor: Decimal = ZERO


@dataclass(frozen=True)
class RiskAlert:
    """A risk event emitted to subscribers. Never persisted.

    Attributes:
        id: Unique alert identifier.
        timestamp: When the alert was raised.
        level: WARNING, CRITICAL or EMERGENCY.
        alert_type: Condition that raised the alert.
        message: Human-readable description.
        value: Observed value.
        limit: Configured limit the value was compared against.
        action: Recommended action.
        symbol: Affected symbol, if the alert is symbol-specific.
    """

    id: str
    timestamp: datetime
    level: AlertLevel
    alert_type: AlertType
    message: str
    value: Decimal
    limit: Decimal
    action: RecommendedAction
    symbol: str | None = None


@dataclass
class Portfolio:
    """Portfolio state derived from the position set plus cash."""

    total_value: Decimal
    cash: Decimal
    positions: list[Position] = field(default_factory=list)
    unrealized_pnl: Decimal = ZERO
    realized_pnl: Decimal = ZERO
    total_fees: Decimal = ZERO
    total_rebates: Decimal = ZERO
    net_pnl: Decimal = ZERO


@dataclass(frozen=True)
class TradeRecord:
    """A processed fill kept in the rolling daily trade list.

    Attributes:
        timestamp: When the fill was processed.
        symbol: Filled symbol.
        side: Side of the fill.
        size: Filled size.
        price: Fill price.
        pnl: P&L realized by this fill (zero for opening fills).
        fees: Fees charged on the fill.
        rebates: Rebates earned on the fill.
        closing: Whether the fill reduced or reversed a position.
    """

    timestamp: datetime
    symbol: str
    side: OrderSide
    size: Decimal
    price: Decimal
    pnl: Decimal
    fees: Decimal = ZERO
    rebates: Decimal = ZERO
    closing: bool = False


@dataclass
class RiskSummary:
    """Snapshot for reporting."""

    status: RiskStatus
    metrics: RiskMetrics
    limits: RiskLimits
    open_positions: int
    pending_orders: int
    daily_trades: int
    emergency_stop: bool
