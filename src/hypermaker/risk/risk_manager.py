"""Risk manager: the single owner of position and portfolio state."""

import logging
import time
from dataclasses import fields, replace
from decimal import Decimal
from functools import partial
from typing import Any, Callable

from hypermaker.models.trading import Order, Position, utc_now
from hypermaker.risk.limits import EmergencyStop, RiskLimitEngine, build_alert
from hypermaker.risk.metrics import RiskMetricsCalculator
from hypermaker.risk.models import (
    ZERO,
    AlertLevel,
    AlertType,
    Portfolio,
    RecommendedAction,
    RiskAlert,
    RiskLimits,
    RiskMetrics,
    RiskStatus,
    RiskSummary,
    TradeRecord,
)
from hypermaker.risk.portfolio import PositionLedger
from hypermaker.risk.settings import RiskSettings
from hypermaker.scheduling.scheduler import Scheduler


logger = logging.getLogger(__name__)
audit_logger = logging.getLogger("hypermaker.audit")

RISK_CHECK_KEY = "risk:check"
TIMEOUT_KEY_PREFIX = "risk:timeout:"
POTENTIAL_LOSS_FRACTION = Decimal("0.1")

AlertCallback = Callable[[RiskAlert], Any]


class RiskManager:
    """Gates trading and tracks positions, portfolio and risk metrics.

    All position state changes go through `update_position` or
    `process_order_fill`. Limit breaches are reported to alert subscribers;
    EMERGENCY alerts also set the emergency-stop latch, which blocks all
    trading until `reset_emergency_stop` is called. The risk manager never
    cancels orders itself.

    Attributes:
        settings: Risk configuration the manager was built from.
    """

    def __init__(
        self,
        settings: RiskSettings,
        scheduler: Scheduler | None = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        """Initialize the risk manager.

        Args:
            settings: Risk configuration.
            scheduler: Scheduler for the risk-check cycle and position
                timeouts. Without one, timers are not armed.
            clock: Monotonic clock used for alert suppression.
        """
        self.settings = settings
        self._scheduler = scheduler
        self._limits = RiskLimits.from_settings(settings)
        self._ledger = PositionLedger(settings.initial_capital)
        self._calculator = RiskMetricsCalculator(
            settings.initial_capital, settings.drawdown_history_size
        )
        self._engine = RiskLimitEngine(settings, self._limits, clock=clock)
        self._emergency = EmergencyStop()
        self._pending_orders: dict[str, Order] = {}
        self._metrics = RiskMetrics(max_position_size=self._limits.max_position_size)

        self._alert_callbacks: list[AlertCallback] = []
        self._emergency_stop_callbacks: list[AlertCallback] = []
        self._emergency_reset_callbacks: list[Callable[[], Any]] = []

    # Subscriptions

    def add_alert_callback(self, callback: AlertCallback) -> None:
        """Add a callback invoked with every emitted alert.

        Args:
            callback: Function that takes a RiskAlert. Exceptions it raises
                are logged and do not reach the risk manager.
        """
        self._alert_callbacks.append(callback)

    def add_emergency_stop_callback(self, callback: AlertCallback) -> None:
        """Add a callback invoked with the alert that set the emergency stop."""
        self._emergency_stop_callbacks.append(callback)

    def add_emergency_reset_callback(self, callback: Callable[[], Any]) -> None:
        """Add a callback invoked when the emergency stop is cleared."""
        self._emergency_reset_callbacks.append(callback)

    # Monitoring

    def start_monitoring(self) -> None:
        """Register the periodic risk check with the scheduler."""
        if self._scheduler is None:
            raise RuntimeError("RiskManager has no scheduler")
        self._scheduler.call_every(
            RISK_CHECK_KEY,
            self.settings.risk_check_interval_seconds,
            self.perform_risk_check,
        )
        logger.info(
            f"Risk monitoring started (every {self.settings.risk_check_interval_seconds}s)"
        )

    def stop_monitoring(self) -> None:
        """Remove the risk check and every position-timeout timer."""
        if self._scheduler is None:
            return
        self._scheduler.cancel(RISK_CHECK_KEY)
        self._scheduler.cancel_prefix(TIMEOUT_KEY_PREFIX)
        logger.info("Risk monitoring stopped")

    def perform_risk_check(self) -> list[RiskAlert]:
        """Run one risk-check cycle and return the alerts it emitted."""
        try:
            now = utc_now()
            self._metrics = self._calculator.calculate(
                self._ledger.portfolio,
                list(self._pending_orders.values()),
                self._limits.max_position_size,
                now=now,
                record_history=True,
            )
            alerts = self._engine.evaluate(self._ledger.portfolio, self._metrics)
            self._emit_alerts(alerts)
            self._calculator.prune(now)
            return alerts
        except Exception:
            logger.exception("Risk check failed")
            return []

    # Trading gate

    def can_trade(self, symbol: str) -> bool:
        """Return True if new orders for `symbol` are allowed."""
        if self._emergency.is_active:
            logger.debug(f"Trading blocked for {symbol}: emergency stop active")
            return False

        reason = self._engine.block_reason(
            symbol,
            self._ledger.portfolio,
            self._metrics,
            self._ledger.get(symbol),
            len(self._ledger),
        )
        if reason:
            logger.debug(f"Trading blocked for {symbol}: {reason}")
            return False
        return True

    def get_max_position_size(
        self,
        symbol: str,
        requested_size: Decimal,
        reference_price: Decimal | None = None,
    ) -> Decimal:
        """Return the largest size that may be added to `symbol`.

        The tightest of the absolute size limit, the concentration cap and
        the remaining daily-loss budget (assuming a 10% adverse move on the
        requested notional). Without `reference_price`, the configured
        `estimated_price` approximation is used.
        """
        price = reference_price if reference_price and reference_price > 0 else self.settings.estimated_price
        position = self._ledger.get(symbol)
        current_size = position.size if position else ZERO

        max_size = self._limits.max_position_size - current_size

        concentration_value = self._ledger.portfolio.total_value * self._limits.concentration_limit
        max_size = min(max_size, concentration_value / price)

        potential_loss = requested_size * price * POTENTIAL_LOSS_FRACTION
        remaining_budget = self._limits.max_daily_loss - self._metrics.daily_loss
        if potential_loss > remaining_budget:
            max_size = min(max_size, remaining_budget / (price * POTENTIAL_LOSS_FRACTION))

        return max(max_size, ZERO)

    # Position state

    def update_position(self, position: Position) -> None:
        """Replace the ledger entry for a symbol. Size zero removes it."""
        previous = self._ledger.get(position.symbol)
        stored = self._ledger.set_position(position)
        if stored is None:
            self._cancel_timeout(position.symbol)
        else:
            self._arm_timeout(position.symbol)

        self._refresh_metrics()
        self._check_symbol(position.symbol)

        audit_logger.info(
            f"POSITION {position.symbol}: "
            f"{self._describe(previous)} -> {self._describe(stored)}"
        )

    def mark_to_market(self, symbol: str, price: Decimal) -> None:
        """Revalue an open position at a live price."""
        if self._ledger.mark(symbol, price) is not None:
            self._refresh_metrics()

    def force_close_position(self, symbol: str) -> Position | None:
        """Stop tracking a position without trading it."""
        position = self._ledger.remove(symbol)
        if position is None:
            return None
        self._cancel_timeout(symbol)
        self._refresh_metrics()
        logger.warning(f"Force-closed position tracking for {symbol}")
        audit_logger.info(f"FORCE_CLOSE {symbol}: {self._describe(position)}")
        return replace(position)

    # Orders

    def add_pending_order(self, order: Order) -> None:
        """Track a resting order as pending exposure.

        Args:
            order: Order accepted by the exchange. Re-adding an id replaces
                the tracked order.
        """
        self._pending_orders[order.id] = order
        self._refresh_metrics()
        audit_logger.info(
            f"PENDING_ADD {order.id} {order.symbol} {order.side.value} "
            f"{order.amount} @ {order.price}"
        )

    def remove_pending_order(self, order_id: str) -> None:
        """Stop tracking a pending order. Unknown ids are ignored.

        Args:
            order_id: Exchange order ID.
        """
        order = self._pending_orders.pop(order_id, None)
        if order is None:
            return
        self._refresh_metrics()
        audit_logger.info(f"PENDING_REMOVE {order_id} {order.symbol}")

    def process_order_fill(
        self,
        order: Order,
        fill_price: Decimal,
        fill_size: Decimal,
        fees: Decimal | None = None,
        rebates: Decimal | None = None,
    ) -> Position | None:
        """Apply a fill of `order` to its symbol's position.

        Args:
            order: The order that was (partially) filled.
            fill_price: Execution price.
            fill_size: Size filled by this event.
            fees: Fees charged for this fill.
            rebates: Maker rebates earned for this fill.

        Returns:
            The position after the fill, or None if it is now flat.

        Raises:
            ValueError: If fill price or size is not positive.
        """
        fees = fees or ZERO
        rebates = rebates or ZERO
        now = utc_now()

        result = self._ledger.apply_fill(
            order.symbol, order.side, fill_price, fill_size,
            fees=fees, rebates=rebates, timestamp=now,
        )

        if result.position is None:
            self._cancel_timeout(order.symbol)
        elif not result.closing or result.reversed:
            self._arm_timeout(order.symbol)

        self._calculator.record_trade(TradeRecord(
            timestamp=now,
            symbol=order.symbol,
            side=order.side,
            size=fill_size,
            price=fill_price,
            pnl=result.realized_pnl,
            fees=fees,
            rebates=rebates,
            closing=result.closing,
        ))

        tracked = self._pending_orders.get(order.id)
        if tracked is not None and (order.is_filled or tracked.is_filled):
            del self._pending_orders[order.id]

        self._refresh_metrics()
        self._check_symbol(order.symbol)

        audit_logger.info(
            f"FILL {order.id} {order.symbol} {order.side.value} {fill_size} @ {fill_price} "
            f"pnl={result.realized_pnl} fees={fees} rebates={rebates} "
            f"-> {self._describe(result.position)}"
        )
        return replace(result.position) if result.position else None

    # Emergency stop

    @property
    def is_emergency_stop(self) -> bool:
        """Return True while the emergency-stop latch is set."""
        return self._emergency.is_active

    def trigger_emergency_stop(self, reason: str | RiskAlert) -> None:
        """Set the emergency-stop latch. A no-op if it is already set."""
        if isinstance(reason, RiskAlert):
            alert = reason
        else:
            alert = build_alert(
                AlertLevel.EMERGENCY,
                AlertType.MANUAL_STOP,
                reason,
                value=ZERO,
                limit=ZERO,
                action=RecommendedAction.EMERGENCY_STOP,
            )

        if not self._emergency.trigger(alert.message):
            logger.debug("Emergency stop already active")
            return

        logger.critical(f"EMERGENCY STOP triggered: {alert.message}")
        audit_logger.info(f"EMERGENCY_STOP {alert.alert_type.value}: {alert.message}")
        self._notify(self._emergency_stop_callbacks, alert)

    def reset_emergency_stop(self) -> None:
        """Clear the emergency-stop latch. A no-op if it is not set."""
        if not self._emergency.reset():
            return
        logger.warning("Emergency stop reset")
        audit_logger.info("EMERGENCY_RESET")
        self._notify(self._emergency_reset_callbacks)

    # Limits

    def update_risk_limits(self, **changes: Any) -> RiskLimits:
        """Replace limit values after validating them.

        The new values are checked against the same constraints as
        `RiskSettings`; nothing changes when validation fails.

        Args:
            **changes: New values keyed by `RiskLimits` field name.

        Returns:
            The limits now in force.

        Raises:
            TypeError: If a name is not a `RiskLimits` field.
            pydantic.ValidationError: If a value violates its constraint.
        """
        names = {f.name for f in fields(RiskLimits)}
        unknown = sorted(set(changes) - names)
        if unknown:
            raise TypeError(f"Unknown risk limit(s): {', '.join(unknown)}")

        current = {name: getattr(self._limits, name) for name in names}
        validated = RiskSettings.model_validate(
            {**self.settings.model_dump(), **current, **changes}
        )
        self._limits = RiskLimits.from_settings(validated)
        self._engine.limits = self._limits
        self._refresh_metrics()
        audit_logger.info(f"LIMITS_UPDATE {changes}")
        logger.info(f"Risk limits updated: {changes}")
        return self._limits

    # Queries

    def get_risk_limits(self) -> RiskLimits:
        """Return the limits in force."""
        return self._limits

    def get_risk_metrics(self) -> RiskMetrics:
        """Return a copy of the latest risk metrics."""
        return replace(self._metrics)

    def get_portfolio(self) -> Portfolio:
        """Return a copy of the current portfolio."""
        portfolio = self._ledger.portfolio
        return replace(portfolio, positions=[replace(p) for p in portfolio.positions])

    def get_position(self, symbol: str) -> Position | None:
        """Get the open position for a symbol.

        Args:
            symbol: Traded symbol.

        Returns:
            A copy of the position, or None if the symbol is flat.
        """
        position = self._ledger.get(symbol)
        return replace(position) if position else None

    def get_all_positions(self) -> list[Position]:
        """Return copies of every open position."""
        return [replace(p) for p in self._ledger.positions()]

    def get_pending_orders(self) -> list[Order]:
        """Return the orders currently tracked as pending."""
        return list(self._pending_orders.values())

    def get_risk_summary(self) -> RiskSummary:
        """Summarize current health for reporting."""
        return RiskSummary(
            status=self._status(),
            metrics=self.get_risk_metrics(),
            limits=self._limits,
            open_positions=len(self._ledger),
            pending_orders=len(self._pending_orders),
            daily_trades=len(self._calculator.daily_trades()),
            emergency_stop=self._emergency.is_active,
        )

    # Internals

    def _status(self) -> RiskStatus:
        if self._emergency.is_active:
            return RiskStatus.EMERGENCY
        metrics, limits = self._metrics, self._limits
        if (
            metrics.daily_loss >= limits.max_daily_loss
            or metrics.current_drawdown >= limits.max_drawdown_percent
        ):
            return RiskStatus.CRITICAL
        if (
            metrics.daily_loss >= limits.max_daily_loss * Decimal("0.8")
            or metrics.current_drawdown >= limits.max_drawdown_percent * Decimal("0.7")
        ):
            return RiskStatus.WARNING
        return RiskStatus.HEALTHY

    def _refresh_metrics(self) -> None:
        self._metrics = self._calculator.calculate(
            self._ledger.portfolio,
            list(self._pending_orders.values()),
            self._limits.max_position_size,
        )

    def _check_symbol(self, symbol: str) -> None:
        alerts = self._engine.evaluate(self._ledger.portfolio, self._metrics, symbol=symbol)
        self._emit_alerts(alerts)

    def _emit_alerts(self, alerts: list[RiskAlert]) -> None:
        for alert in alerts:
            log = {
                AlertLevel.WARNING: logger.warning,
                AlertLevel.CRITICAL: logger.error,
                AlertLevel.EMERGENCY: logger.critical,
            }[alert.level]
            log(f"Risk alert [{alert.level.value}] {alert.alert_type.value}: {alert.message}")
            audit_logger.info(
                f"ALERT {alert.id} {alert.level.value} {alert.alert_type.value} "
                f"value={alert.value} limit={alert.limit} symbol={alert.symbol}"
            )
            self._notify(self._alert_callbacks, alert)
            if alert.level == AlertLevel.EMERGENCY:
                self.trigger_emergency_stop(alert)

    def _notify(self, callbacks: list[Callable[..., Any]], *args: Any) -> None:
        for callback in list(callbacks):
            try:
                callback(*args)
            except Exception:
                logger.exception(f"Risk callback {callback!r} failed")

    def _arm_timeout(self, symbol: str) -> None:
        if self._scheduler is None:
            return
        self._scheduler.call_later(
            f"{TIMEOUT_KEY_PREFIX}{symbol}",
            self._limits.position_timeout_minutes * 60,
            partial(self._on_position_timeout, symbol),
        )

    def _cancel_timeout(self, symbol: str) -> None:
        if self._scheduler is not None:
            self._scheduler.cancel(f"{TIMEOUT_KEY_PREFIX}{symbol}")

    def _on_position_timeout(self, symbol: str) -> None:
        position = self._ledger.get(symbol)
        if position is None:
            return
        self._emit_alerts([self._engine.position_timeout_alert(position)])

    @staticmethod
    def _describe(position: Position | None) -> str:
        if position is None:
            return "FLAT"
        return f"{position.side.value} {position.size} @ {position.entry_price}"
