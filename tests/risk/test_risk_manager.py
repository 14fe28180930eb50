# tests/risk/test_risk_manager.py
"""Tests for RiskManager class."""

from decimal import Decimal
from unittest.mock import MagicMock

import pytest
from pydantic import ValidationError

from hypermaker.models import Order, OrderSide, OrderStatus, OrderType, Position
from hypermaker.risk import (
    AlertLevel,
    AlertType,
    RiskManager,
    RiskSettings,
    RiskStatus,
)
from hypermaker.scheduling import Scheduler


def make_order(side: OrderSide, amount: str, price: str = "2000", order_id: str = "o-1") -> Order:
    return Order(
        id=order_id,
        symbol="ETH",
        side=side,
        type=OrderType.LIMIT,
        amount=Decimal(amount),
        price=Decimal(price),
        status=OrderStatus.OPEN,
    )


@pytest.fixture
def scheduler(clock):
    return Scheduler(clock=clock)


@pytest.fixture
def manager(scheduler, clock):
    return RiskManager(RiskSettings(), scheduler=scheduler, clock=clock)


class TestRiskManagerInit:
    """Tests for RiskManager initialization."""

    def test_initial_state(self, manager):
        portfolio = manager.get_portfolio()

        assert portfolio.total_value == Decimal("10000")
        assert portfolio.cash == Decimal("10000")
        assert manager.get_all_positions() == []
        assert manager.is_emergency_stop is False
        assert manager.can_trade("ETH") is True

    def test_limits_from_settings(self):
        manager = RiskManager(RiskSettings(max_position_size=Decimal("3")))

        assert manager.get_risk_limits().max_position_size == Decimal("3")


class TestProcessOrderFill:
    """Tests for RiskManager.process_order_fill."""

    def test_reversal_credits_realized_pnl(self, manager):
        """Long 1 ETH @2000 then a 1.5 SELL @2100 flips to short 0.5 @2100."""
        manager.process_order_fill(make_order(OrderSide.BUY, "1"), Decimal("2000"), Decimal("1"))

        position = manager.process_order_fill(
            make_order(OrderSide.SELL, "1.5", "2100", "o-2"), Decimal("2100"), Decimal("1.5")
        )

        assert position.side is OrderSide.SELL
        assert position.size == Decimal("0.5")
        assert position.entry_price == Decimal("2100")
        assert manager.get_portfolio().realized_pnl == Decimal("100")
        assert manager.get_position("ETH").realized_pnl == Decimal("100")

    def test_flat_position_removed_with_timer(self, manager, scheduler):
        manager.process_order_fill(make_order(OrderSide.BUY, "1"), Decimal("2000"), Decimal("1"))
        assert "risk:timeout:ETH" in scheduler

        result = manager.process_order_fill(
            make_order(OrderSide.SELL, "1", order_id="o-2"), Decimal("2000"), Decimal("1")
        )

        assert result is None
        assert manager.get_position("ETH") is None
        assert "risk:timeout:ETH" not in scheduler

    def test_filled_order_dropped_from_pending(self, manager):
        order = make_order(OrderSide.BUY, "1")
        manager.add_pending_order(order)
        assert len(manager.get_pending_orders()) == 1

        order.filled = Decimal("1")
        order.status = OrderStatus.FILLED
        manager.process_order_fill(order, Decimal("2000"), Decimal("1"))

        assert manager.get_pending_orders() == []

    def test_partial_fill_keeps_pending(self, manager):
        order = make_order(OrderSide.BUY, "2")
        manager.add_pending_order(order)

        order.filled = Decimal("1")
        manager.process_order_fill(order, Decimal("2000"), Decimal("1"))

        assert len(manager.get_pending_orders()) == 1

    def test_non_positive_fill_raises(self, manager):
        with pytest.raises(ValueError):
            manager.process_order_fill(make_order(OrderSide.BUY, "1"), Decimal("2000"), Decimal("0"))

    def test_fees_and_rebates_accumulate(self, manager):
        manager.process_order_fill(
            make_order(OrderSide.BUY, "1"), Decimal("2000"), Decimal("1"),
            fees=Decimal("1"), rebates=Decimal("0.06"),
        )

        portfolio = manager.get_portfolio()
        assert portfolio.total_fees == Decimal("1")
        assert portfolio.total_rebates == Decimal("0.06")
        assert portfolio.cash == Decimal("9999.06")


class TestCanTrade:
    """Tests for the trading gate."""

    def test_daily_loss_limit_blocks(self):
        """A realized loss of 500 reaches the daily limit."""
        manager = RiskManager(RiskSettings(max_daily_loss=Decimal("500"), max_drawdown_percent=Decimal("50")))
        manager.process_order_fill(make_order(OrderSide.BUY, "1"), Decimal("2000"), Decimal("1"))
        manager.process_order_fill(
            make_order(OrderSide.SELL, "1", "1500", "o-2"), Decimal("1500"), Decimal("1")
        )

        assert manager.get_risk_metrics().daily_loss == Decimal("500")
        assert manager.can_trade("ETH") is False

    def test_concentration_blocks(self):
        """ETH notional 3500 in a portfolio worth 10000 is 35% > 30%."""
        manager = RiskManager(RiskSettings(initial_capital=Decimal("6500")))
        manager.update_position(Position(
            symbol="ETH", side=OrderSide.BUY, size=Decimal("1.75"),
            entry_price=Decimal("2000"), mark_price=Decimal("2000"),
        ))

        assert manager.get_portfolio().total_value == Decimal("10000")
        assert manager.can_trade("ETH") is False
        assert manager.can_trade("SOL") is True

    def test_max_open_positions_blocks(self):
        manager = RiskManager(RiskSettings(max_open_positions=1))
        manager.update_position(Position(
            symbol="SOL", side=OrderSide.BUY, size=Decimal("1"),
            entry_price=Decimal("100"), mark_price=Decimal("100"),
        ))

        assert manager.can_trade("ETH") is False

    def test_emergency_stop_blocks(self, manager):
        manager.trigger_emergency_stop("manual")

        assert manager.can_trade("ETH") is False


class TestMaxPositionSize:
    """Tests for get_max_position_size."""

    def test_absolute_limit(self, manager):
        manager.update_position(Position(
            symbol="ETH", side=OrderSide.BUY, size=Decimal("0.5"),
            entry_price=Decimal("100"), mark_price=Decimal("100"),
        ))

        size = manager.get_max_position_size("ETH", Decimal("1"), Decimal("100"))

        assert size == Decimal("9.5")

    def test_concentration_cap(self, manager):
        """30% of 10000 at 2000 caps the size at 1.5."""
        assert manager.get_max_position_size("ETH", Decimal("1"), Decimal("2000")) == Decimal("1.5")

    def test_estimated_price_fallback(self, manager):
        assert manager.get_max_position_size("ETH", Decimal("1")) == Decimal("1.5")

    def test_daily_loss_budget_cap(self):
        manager = RiskManager(RiskSettings(max_daily_loss=Decimal("100"), concentration_limit=Decimal("1")))

        # potential loss 5 x 1000 x 0.1 = 500 exceeds budget 100
        size = manager.get_max_position_size("ETH", Decimal("5"), Decimal("1000"))

        assert size == Decimal("1")


class TestEmergencyStop:
    """Tests for emergency stop trigger/reset."""

    def test_trigger_idempotent(self, manager):
        callback = MagicMock()
        manager.add_emergency_stop_callback(callback)

        manager.trigger_emergency_stop("first")
        manager.trigger_emergency_stop("second")

        callback.assert_called_once()
        alert = callback.call_args[0][0]
        assert alert.alert_type is AlertType.MANUAL_STOP
        assert alert.message == "first"
        assert manager.get_risk_summary().status is RiskStatus.EMERGENCY

    def test_reset_idempotent(self, manager):
        callback = MagicMock()
        manager.add_emergency_reset_callback(callback)

        manager.reset_emergency_stop()
        callback.assert_not_called()

        manager.trigger_emergency_stop("x")
        manager.reset_emergency_stop()
        manager.reset_emergency_stop()

        callback.assert_called_once_with()
        assert manager.can_trade("ETH") is True

    def test_callback_exception_does_not_propagate(self, manager):
        manager.add_emergency_stop_callback(MagicMock(side_effect=RuntimeError("boom")))
        healthy = MagicMock()
        manager.add_emergency_stop_callback(healthy)

        manager.trigger_emergency_stop("x")

        healthy.assert_called_once()
        assert manager.is_emergency_stop is True


class TestRiskCheck:
    """Tests for the risk-check cycle and alerts."""

    def test_start_monitoring_requires_scheduler(self):
        with pytest.raises(RuntimeError):
            RiskManager(RiskSettings()).start_monitoring()

    @pytest.mark.asyncio
    async def test_monitoring_runs_on_scheduler(self, manager, scheduler, clock):
        manager.start_monitoring()
        assert scheduler.next_deadline("risk:check") == 1.0
        clock.advance(1)

        assert await scheduler.tick() == 1
        assert manager._calculator.drawdown_history

        manager.stop_monitoring()
        assert "risk:check" not in scheduler

    def test_drawdown_emergency_triggers_stop(self):
        settings = RiskSettings(max_drawdown_percent=Decimal("5"), alert_cooldown_seconds=0)
        manager = RiskManager(settings)
        alerts = MagicMock()
        stops = MagicMock()
        manager.add_alert_callback(alerts)
        manager.add_emergency_stop_callback(stops)

        manager.process_order_fill(make_order(OrderSide.BUY, "1"), Decimal("2000"), Decimal("1"))
        manager.mark_to_market("ETH", Decimal("1300"))
        emitted = manager.perform_risk_check()

        assert any(a.level is AlertLevel.EMERGENCY for a in emitted)
        assert manager.is_emergency_stop is True
        stops.assert_called_once()
        assert alerts.call_count >= 1

    def test_risk_check_errors_are_contained(self, manager):
        manager._calculator.calculate = MagicMock(side_effect=RuntimeError("boom"))

        assert manager.perform_risk_check() == []

    @pytest.mark.asyncio
    async def test_position_timeout_emits_warning(self, manager, scheduler, clock):
        callback = MagicMock()
        manager.add_alert_callback(callback)
        manager.process_order_fill(make_order(OrderSide.BUY, "0.1"), Decimal("2000"), Decimal("0.1"))

        clock.advance(30 * 60)
        await scheduler.tick()

        alert = callback.call_args[0][0]
        assert alert.alert_type is AlertType.POSITION_TIMEOUT
        assert alert.level is AlertLevel.WARNING
        # timeout never closes the position
        assert manager.get_position("ETH") is not None


class TestQueries:
    """Tests for getters and limit updates."""

    def test_getters_return_copies(self, manager):
        manager.process_order_fill(make_order(OrderSide.BUY, "1"), Decimal("2000"), Decimal("1"))

        position = manager.get_position("ETH")
        position.size = Decimal("100")

        assert manager.get_position("ETH").size == Decimal("1")

    def test_update_risk_limits(self, manager):
        limits = manager.update_risk_limits(max_position_size=Decimal("2"))

        assert limits.max_position_size == Decimal("2")
        assert manager.get_risk_limits().max_position_size == Decimal("2")

    def test_update_unknown_limit_raises(self, manager):
        with pytest.raises(TypeError):
            manager.update_risk_limits(unknown=1)

    @pytest.mark.parametrize(
        "changes",
        [
            {"max_daily_loss": Decimal("0")},
            {"max_drawdown_percent": Decimal("-1")},
            {"concentration_limit": Decimal("1.5")},
            {"max_open_positions": "many"},
        ],
    )
    def test_invalid_limit_rejected(self, manager, changes):
        before = manager.get_risk_limits()

        with pytest.raises(ValidationError):
            manager.update_risk_limits(**changes)

        assert manager.get_risk_limits() == before

    def test_fill_after_rejected_limit_update(self, manager):
        with pytest.raises(ValidationError):
            manager.update_risk_limits(max_daily_loss=Decimal("0"))

        position = manager.process_order_fill(
            make_order(OrderSide.BUY, "1"), Decimal("2000"), Decimal("1")
        )

        assert position.size == Decimal("1")

    def test_limit_updates_accumulate(self, manager):
        manager.update_risk_limits(max_position_size=Decimal("2"))
        limits = manager.update_risk_limits(max_daily_loss=Decimal("100"))

        assert limits.max_position_size == Decimal("2")
        assert limits.max_daily_loss == Decimal("100")

    def test_remove_unknown_pending_is_noop(self, manager):
        manager.remove_pending_order("missing")

        assert manager.get_pending_orders() == []

    def test_force_close_position(self, manager, scheduler):
        manager.process_order_fill(make_order(OrderSide.BUY, "1"), Decimal("2000"), Decimal("1"))

        closed = manager.force_close_position("ETH")

        assert closed.size == Decimal("1")
        assert manager.get_position("ETH") is None
        assert "risk:timeout:ETH" not in scheduler
        assert manager.force_close_position("ETH") is None

    def test_summary_counts(self, manager):
        manager.add_pending_order(make_order(OrderSide.BUY, "1", order_id="p-1"))
        manager.process_order_fill(make_order(OrderSide.BUY, "1"), Decimal("2000"), Decimal("1"))

        summary = manager.get_risk_summary()

        assert summary.status is RiskStatus.HEALTHY
        assert summary.open_positions == 1
        assert summary.pending_orders == 1
        assert summary.daily_trades == 1
