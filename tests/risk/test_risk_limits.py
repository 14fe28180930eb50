# tests/risk/test_risk_limits.py
"""Tests for RiskLimitEngine and EmergencyStop."""

from datetime import timedelta
from decimal import Decimal

import pytest

from hypermaker.models import OrderSide, Position, utc_now
from hypermaker.risk.limits import EmergencyStop, RiskLimitEngine
from hypermaker.risk.models import (
    AlertLevel,
    AlertType,
    Portfolio,
    RiskLimits,
    RiskMetrics,
)
from hypermaker.risk.settings import RiskSettings


def eth_position(size: str, price: str = "2000") -> Position:
    return Position(symbol="ETH", side=OrderSide.BUY, size=Decimal(size),
                    entry_price=Decimal(price), mark_price=Decimal(price))


@pytest.fixture
def settings():
    return RiskSettings()


@pytest.fixture
def engine(settings, clock):
    return RiskLimitEngine(settings, RiskLimits.from_settings(settings), clock=clock)


class TestEmergencyStop:
    """Tests for the emergency-stop latch."""

    def test_trigger_is_idempotent(self):
        latch = EmergencyStop()

        assert latch.trigger("first") is True
        assert latch.trigger("second") is False
        assert latch.reason == "first"
        assert latch.triggered_at is not None

    def test_reset_when_not_set(self):
        latch = EmergencyStop()

        assert latch.reset() is False
        latch.trigger("x")
        assert latch.reset() is True
        assert latch.is_active is False


class TestBlockReason:
    """Tests for RiskLimitEngine.block_reason."""

    def test_allows_healthy_state(self, engine):
        portfolio = Portfolio(total_value=Decimal("10000"), cash=Decimal("10000"))

        assert engine.block_reason("ETH", portfolio, RiskMetrics(), None, 0) is None

    def test_daily_loss_blocks(self, engine):
        portfolio = Portfolio(total_value=Decimal("10000"), cash=Decimal("10000"))
        metrics = RiskMetrics(daily_loss=Decimal("500"))

        assert "daily loss" in engine.block_reason("ETH", portfolio, metrics, None, 0)

    def test_drawdown_blocks(self, engine):
        portfolio = Portfolio(total_value=Decimal("10000"), cash=Decimal("10000"))
        metrics = RiskMetrics(current_drawdown=Decimal("5"))

        assert "drawdown" in engine.block_reason("ETH", portfolio, metrics, None, 0)

    def test_concentration_blocks(self, engine):
        """35% of portfolio value in one symbol exceeds the 30% limit."""
        portfolio = Portfolio(total_value=Decimal("10000"), cash=Decimal("6500"))
        position = eth_position("1.75")

        reason = engine.block_reason("ETH", portfolio, RiskMetrics(), position, 1)

        assert "concentration" in reason

    def test_open_positions_block(self, engine):
        portfolio = Portfolio(total_value=Decimal("10000"), cash=Decimal("10000"))

        assert "open positions" in engine.block_reason("SOL", portfolio, RiskMetrics(), None, 10)


class TestEvaluate:
    """Tests for alert thresholds."""

    def _portfolio(self, total: str = "10000", positions=None) -> Portfolio:
        return Portfolio(total_value=Decimal(total), cash=Decimal(total), positions=positions or [])

    def test_daily_loss_warning_and_critical(self, engine):
        warning = engine.evaluate(self._portfolio(), RiskMetrics(daily_loss=Decimal("400")))
        critical = engine.evaluate(self._portfolio(), RiskMetrics(daily_loss=Decimal("500")))

        assert [(a.alert_type, a.level) for a in warning] == [(AlertType.DAILY_LOSS_LIMIT, AlertLevel.WARNING)]
        assert [(a.alert_type, a.level) for a in critical] == [(AlertType.DAILY_LOSS_LIMIT, AlertLevel.CRITICAL)]

    def test_drawdown_emergency(self, engine):
        alerts = engine.evaluate(self._portfolio(), RiskMetrics(current_drawdown=Decimal("5")))

        assert alerts[0].alert_type is AlertType.DRAWDOWN_LIMIT
        assert alerts[0].level is AlertLevel.EMERGENCY

    def test_drawdown_warning_at_seventy_percent(self, engine):
        alerts = engine.evaluate(self._portfolio(), RiskMetrics(current_drawdown=Decimal("3.5")))

        assert alerts[0].level is AlertLevel.WARNING

    def test_concentration_warning_above_eighty_percent_of_limit(self, engine):
        """25% concentration is above 0.8 x 30%."""
        position = eth_position("1.25")

        alerts = engine.evaluate(self._portfolio(positions=[position]), RiskMetrics(), symbol="ETH")

        assert [a.alert_type for a in alerts] == [AlertType.CONCENTRATION_RISK]
        assert alerts[0].symbol == "ETH"

    def test_correlation_warning(self, engine):
        positions = [
            eth_position("2"),
            Position(symbol="BTC", side=OrderSide.BUY, size=Decimal("0.1"),
                     entry_price=Decimal("60000"), mark_price=Decimal("60000")),
        ]

        alerts = engine.evaluate(self._portfolio(positions=positions), RiskMetrics(), symbol="SOL")

        assert AlertType.CORRELATION_RISK in [a.alert_type for a in alerts]

    def test_emergency_stop_loss(self, engine):
        alerts = engine.evaluate(self._portfolio(total="8900"), RiskMetrics())

        assert [(a.alert_type, a.level) for a in alerts] == [
            (AlertType.EMERGENCY_STOP_LOSS, AlertLevel.EMERGENCY)
        ]

    def test_repeated_warning_suppressed_within_cooldown(self, engine, clock):
        metrics = RiskMetrics(daily_loss=Decimal("400"))

        assert len(engine.evaluate(self._portfolio(), metrics)) == 1
        assert engine.evaluate(self._portfolio(), metrics) == []
        clock.advance(61)
        assert len(engine.evaluate(self._portfolio(), metrics)) == 1

    def test_emergency_never_suppressed(self, engine):
        metrics = RiskMetrics(current_drawdown=Decimal("6"))

        assert len(engine.evaluate(self._portfolio(), metrics)) == 1
        assert len(engine.evaluate(self._portfolio(), metrics)) == 1

    def test_position_timeout_alert(self, engine):
        position = eth_position("1")
        position.opened_at = utc_now() - timedelta(minutes=45)

        alert = engine.position_timeout_alert(position)

        assert alert.alert_type is AlertType.POSITION_TIMEOUT
        assert alert.level is AlertLevel.WARNING
        assert alert.value >= Decimal("45")
