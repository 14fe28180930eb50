"""Risk limit evaluation and the emergency-stop latch."""

import logging
import time
import uuid
from datetime import datetime
from decimal import Decimal
from typing import Callable

from hypermaker.models.trading import Position, utc_now
from hypermaker.risk.models import (
    ZERO,
    AlertLevel,
    AlertType,
    Portfolio,
    RecommendedAction,
    RiskAlert,
    RiskLimits,
    RiskMetrics,
)
from hypermaker.risk.settings import RiskSettings


logger = logging.getLogger(__name__)

DAILY_LOSS_WARNING_RATIO = Decimal("0.8")
DRAWDOWN_WARNING_RATIO = Decimal("0.7")
CONCENTRATION_WARNING_RATIO = Decimal("0.8")


def build_alert(
    level: AlertLevel,
    alert_type: AlertType,
    message: str,
    value: Decimal,
    limit: Decimal,
    action: RecommendedAction,
    symbol: str | None = None,
    timestamp: datetime | None = None,
) -> RiskAlert:
    """Create a RiskAlert with a fresh id."""
    return RiskAlert(
        id=uuid.uuid4().hex,
        timestamp=timestamp or utc_now(),
        level=level,
        alert_type=alert_type,
        message=message,
        value=value,
        limit=limit,
        action=action,
        symbol=symbol,
    )


class EmergencyStop:
    """One-way latch. Only an explicit reset clears it."""

    def __init__(self):
        self._active = False
        self._reason: str | None = None
        self._triggered_at: datetime | None = None

    @property
    def is_active(self) -> bool:
        return self._active

    @property
    def reason(self) -> str | None:
        return self._reason

    @property
    def triggered_at(self) -> datetime | None:
        return self._triggered_at

    def trigger(self, reason: str) -> bool:
        """Set the latch. Returns False if it was already set."""
        if self._active:
            return False
        self._active = True
        self._reason = reason
        self._triggered_at = utc_now()
        return True

    def reset(self) -> bool:
        """Clear the latch. Returns False if it was not set."""
        if not self._active:
            return False
        self._active = False
        self._reason = None
        self._triggered_at = None
        return True


class RiskLimitEngine:
    """Compares portfolio state against limits and produces alerts.

    Repeated non-emergency alerts with the same type, symbol and level are
    suppressed for `alert_cooldown_seconds`. EMERGENCY alerts always pass.
    """

    def __init__(
        self,
        settings: RiskSettings,
        limits: RiskLimits,
        clock: Callable[[], float] = time.monotonic,
    ):
        self._settings = settings
        self._limits = limits
        self._clock = clock
        self._correlated = frozenset(settings.correlated_symbols)
        self._last_emitted: dict[tuple[AlertType, str | None, AlertLevel], float] = {}

    @property
    def limits(self) -> RiskLimits:
        return self._limits

    @limits.setter
    def limits(self, limits: RiskLimits) -> None:
        self._limits = limits

    def block_reason(
        self,
        symbol: str,
        portfolio: Portfolio,
        metrics: RiskMetrics,
        position: Position | None,
        open_positions: int,
    ) -> str | None:
        """Return why `symbol` may not trade, or None if it may."""
        limits = self._limits
        if metrics.daily_loss >= limits.max_daily_loss:
            return f"daily loss {metrics.daily_loss} >= limit {limits.max_daily_loss}"
        if metrics.current_drawdown >= limits.max_drawdown_percent:
            return (
                f"drawdown {metrics.current_drawdown:.2f}% >= limit "
                f"{limits.max_drawdown_percent}%"
            )
        if position is not None:
            if portfolio.total_value <= 0:
                return "portfolio value is not positive"
            concentration = position.notional / portfolio.total_value
            if concentration > limits.concentration_limit:
                return (
                    f"concentration {concentration:.2%} > limit "
                    f"{limits.concentration_limit:.2%}"
                )
        if open_positions >= limits.max_open_positions:
            return f"open positions {open_positions} >= limit {limits.max_open_positions}"
        return None

    def evaluate(
        self,
        portfolio: Portfolio,
        metrics: RiskMetrics,
        symbol: str | None = None,
    ) -> list[RiskAlert]:
        """Evaluate every limit. Concentration is limited to `symbol` if given."""
        alerts: list[RiskAlert] = []
        alerts.extend(self._check_daily_loss(metrics))
        alerts.extend(self._check_drawdown(metrics))
        alerts.extend(self._check_concentration(portfolio, symbol))
        alerts.extend(self._check_correlation(portfolio))
        alerts.extend(self._check_emergency_stop_loss(portfolio))
        return [alert for alert in alerts if self._should_emit(alert)]

    def position_timeout_alert(self, position: Position, now: datetime | None = None) -> RiskAlert:
        now = now or utc_now()
        age_minutes = Decimal(str(round((now - position.opened_at).total_seconds() / 60, 2)))
        timeout = Decimal(str(self._limits.position_timeout_minutes))
        return build_alert(
            AlertLevel.WARNING,
            AlertType.POSITION_TIMEOUT,
            f"Position {position.symbol} open for {age_minutes} minutes",
            value=age_minutes,
            limit=timeout,
            action=RecommendedAction.REDUCE_POSITION,
            symbol=position.symbol,
            timestamp=now,
        )

    def _check_daily_loss(self, metrics: RiskMetrics) -> list[RiskAlert]:
        limit = self._limits.max_daily_loss
        ratio = metrics.daily_loss / limit
        if ratio >= 1:
            return [build_alert(
                AlertLevel.CRITICAL,
                AlertType.DAILY_LOSS_LIMIT,
                f"Daily loss limit reached: {metrics.daily_loss}",
                value=metrics.daily_loss,
                limit=limit,
                action=RecommendedAction.REDUCE_RISK,
            )]
        if ratio >= DAILY_LOSS_WARNING_RATIO:
            return [build_alert(
                AlertLevel.WARNING,
                AlertType.DAILY_LOSS_LIMIT,
                f"Daily loss at {ratio:.0%} of limit: {metrics.daily_loss}",
                value=metrics.daily_loss,
                limit=limit,
                action=RecommendedAction.REDUCE_RISK,
            )]
        return []

    def _check_drawdown(self, metrics: RiskMetrics) -> list[RiskAlert]:
        limit = self._limits.max_drawdown_percent
        ratio = metrics.current_drawdown / limit
        if ratio >= 1:
            return [build_alert(
                AlertLevel.EMERGENCY,
                AlertType.DRAWDOWN_LIMIT,
                f"Maximum drawdown exceeded: {metrics.current_drawdown:.2f}%",
                value=metrics.current_drawdown,
                limit=limit,
                action=RecommendedAction.EMERGENCY_STOP,
            )]
        if ratio >= DRAWDOWN_WARNING_RATIO:
            return [build_alert(
                AlertLevel.WARNING,
                AlertType.DRAWDOWN_LIMIT,
                f"Drawdown approaching limit: {metrics.current_drawdown:.2f}%",
                value=metrics.current_drawdown,
                limit=limit,
                action=RecommendedAction.REDUCE_RISK,
            )]
        return []

    def _check_concentration(self, portfolio: Portfolio, symbol: str | None) -> list[RiskAlert]:
        if portfolio.total_value <= 0:
            return []
        limit = self._limits.concentration_limit
        alerts = []
        for position in portfolio.positions:
            if symbol is not None and position.symbol != symbol:
                continue
            concentration = position.notional / portfolio.total_value
            if concentration > limit * CONCENTRATION_WARNING_RATIO:
                alerts.append(build_alert(
                    AlertLevel.WARNING,
                    AlertType.CONCENTRATION_RISK,
                    f"High concentration in {position.symbol}: {concentration:.2%}",
                    value=concentration,
                    limit=limit,
                    action=RecommendedAction.REDUCE_POSITION,
                    symbol=position.symbol,
                ))
        return alerts

    def _check_correlation(self, portfolio: Portfolio) -> list[RiskAlert]:
        # Advisory only: the allowlist is treated as one correlated group
        if portfolio.total_value <= 0:
            return []
        exposure = sum(
            (p.notional for p in portfolio.positions if p.symbol in self._correlated),
            ZERO,
        )
        percent = exposure / portfolio.total_value * 100
        limit = self._settings.correlation_limit_percent
        if percent > limit:
            return [build_alert(
                AlertLevel.WARNING,
                AlertType.CORRELATION_RISK,
                f"High correlated exposure: {percent:.2f}%",
                value=percent,
                limit=limit,
                action=RecommendedAction.DIVERSIFY_POSITIONS,
            )]
        return []

    def _check_emergency_stop_loss(self, portfolio: Portfolio) -> list[RiskAlert]:
        initial = self._settings.initial_capital
        loss_percent = (initial - portfolio.total_value) / initial * 100
        limit = self._limits.emergency_stop_loss_percent
        if loss_percent >= limit:
            return [build_alert(
                AlertLevel.EMERGENCY,
                AlertType.EMERGENCY_STOP_LOSS,
                f"Portfolio lost {loss_percent:.2f}% of initial capital",
                value=loss_percent,
                limit=limit,
                action=RecommendedAction.EMERGENCY_STOP,
            )]
        return []

    def _should_emit(self, alert: RiskAlert) -> bool:
        cooldown = self._settings.alert_cooldown_seconds
        if alert.level == AlertLevel.EMERGENCY or cooldown <= 0:
            return True

        key = (alert.alert_type, alert.symbol, alert.level)
        now = self._clock()
        last = self._last_emitted.get(key)
        if last is not None and now - last < cooldown:
            logger.debug(f"Suppressing repeated {alert.alert_type.value} alert")
            return False
        self._last_emitted[key] = now
        return True
