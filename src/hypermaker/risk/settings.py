"""Configuration for the risk manager."""

from decimal import Decimal

from pydantic import BaseModel, Field


class RiskSettings(BaseModel):
    """Settings for risk management.

    Attributes:
        initial_capital: Starting cash balance of the portfolio.
        max_position_size: Absolute size limit per symbol.
        max_daily_loss: Realized loss since start of day that halts trading.
        max_drawdown_percent: Drawdown from peak (percent) that halts trading.
        max_open_positions: Maximum number of symbols with open positions.
        position_timeout_minutes: Age after which an open position is flagged.
        risk_check_interval_seconds: Period of the risk-check cycle.
        emergency_stop_loss_percent: Loss of initial capital (percent) that
            triggers the emergency stop.
        concentration_limit: Maximum fraction of portfolio value in one symbol.
        correlation_limit_percent: Advisory limit on exposure to correlated
            symbols, as percent of portfolio value.
        correlated_symbols: Symbols treated as one correlated group.
        estimated_price: Placeholder price used for size caps when the caller
            has no live reference price.
        alert_cooldown_seconds: Minimum gap between repeated non-emergency
            alerts of the same kind. Zero disables suppression.
        drawdown_history_size: Maximum retained drawdown samples.
    """

    initial_capital: Decimal = Field(default=Decimal("10000"), gt=0)
    max_position_size: Decimal = Field(default=Decimal("10"), gt=0)
    max_daily_loss: Decimal = Field(default=Decimal("500"), gt=0)
    max_drawdown_percent: Decimal = Field(default=Decimal("5"), gt=0, le=100)
    max_open_positions: int = Field(default=10, ge=1)
    position_timeout_minutes: float = Field(default=30.0, gt=0)
    risk_check_interval_seconds: float = Field(default=1.0, gt=0)
    emergency_stop_loss_percent: Decimal = Field(default=Decimal("10"), gt=0, le=100)
    concentration_limit: Decimal = Field(default=Decimal("0.3"), gt=0, le=1)
    correlation_limit_percent: Decimal = Field(default=Decimal("70"), gt=0)
    correlated_symbols: list[str] = Field(
        default_factory=lambda: ["ETH", "BTC", "SOL", "AVAX", "MATIC"]
    )
    estimated_price: Decimal = Field(default=Decimal("2000"), gt=0)
    alert_cooldown_seconds: float = Field(default=60.0, ge=0)
    drawdown_history_size: int = Field(default=1000, ge=1)
