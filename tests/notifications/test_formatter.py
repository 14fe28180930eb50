# tests/notifications/test_formatter.py
"""Tests for AlertFormatter."""

from decimal import Decimal

import pytest

from hypermaker.notifications import AlertFormatter
from hypermaker.risk.limits import build_alert
from hypermaker.risk.models import (
    AlertLevel,
    AlertType,
    RecommendedAction,
    RiskLimits,
    RiskMetrics,
    RiskStatus,
    RiskSummary,
)
from hypermaker.risk.settings import RiskSettings
from hypermaker.strategy.models import StrategyStatistics


@pytest.fixture
def formatter():
    return AlertFormatter()


class TestAlertFormatter:
    """Tests for message formatting."""

    def test_format_risk_alert(self, formatter):
        alert = build_alert(
            AlertLevel.WARNING,
            AlertType.CONCENTRATION_RISK,
            "High concentration in ETH: 26.00%",
            value=Decimal("0.26"),
            limit=Decimal("0.3"),
            action=RecommendedAction.REDUCE_POSITION,
            symbol="ETH",
        )

        message = formatter.format_risk_alert(alert)

        assert "⚠️ RISK ALERT: CONCENTRATION_RISK" in message
        assert "Symbol: ETH" in message
        assert "0.2600" in message
        assert "REDUCE_POSITION" in message

    def test_format_emergency_stop(self, formatter):
        alert = build_alert(
            AlertLevel.EMERGENCY,
            AlertType.MANUAL_STOP,
            "operator halt",
            value=Decimal("0"),
            limit=Decimal("0"),
            action=RecommendedAction.EMERGENCY_STOP,
        )

        message = formatter.format_emergency_stop(alert)

        assert "EMERGENCY STOP" in message
        assert "operator halt" in message

    def test_format_emergency_reset(self, formatter):
        assert "RESET" in formatter.format_emergency_reset()

    def test_format_status(self, formatter):
        summary = RiskSummary(
            status=RiskStatus.WARNING,
            metrics=RiskMetrics(daily_pnl=Decimal("-120.5"), current_drawdown=Decimal("3.6")),
            limits=RiskLimits.from_settings(RiskSettings()),
            open_positions=2,
            pending_orders=1,
            daily_trades=7,
            emergency_stop=False,
        )
        stats = StrategyStatistics(
            is_running=True,
            active_orders=1,
            positions=2,
            quotes_placed=4,
            quotes_cancelled=2,
            fills=1,
            fill_rate=Decimal("0.25"),
            avg_time_to_fill_seconds=12.0,
            total_rebates=Decimal("0.12"),
        )

        message = formatter.format_status(summary, stats)

        assert "STATUS - WARNING" in message
        assert "📉 Daily P&L: $-120.50" in message
        assert "Fills: 1/4 (25%)" in message
        assert "Strategy: RUNNING" in message
