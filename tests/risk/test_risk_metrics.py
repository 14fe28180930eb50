# tests/risk/test_risk_metrics.py
"""Tests for RiskMetricsCalculator."""

from datetime import datetime, timedelta, timezone
from decimal import Decimal

import pytest

from hypermaker.models import Order, OrderSide, OrderType
from hypermaker.risk.metrics import RiskMetricsCalculator
from hypermaker.risk.models import Portfolio, TradeRecord


NOW = datetime(2026, 3, 10, 12, 0, tzinfo=timezone.utc)


def make_trade(pnl: str, closing: bool = True, timestamp: datetime = NOW, price: str = "100") -> TradeRecord:
    return TradeRecord(
        timestamp=timestamp,
        symbol="ETH",
        side=OrderSide.SELL,
        size=Decimal("1"),
        price=Decimal(price),
        pnl=Decimal(pnl),
        closing=closing,
    )


@pytest.fixture
def calculator():
    return RiskMetricsCalculator(Decimal("10000"), history_size=3)


class TestDrawdown:
    """Tests for drawdown tracking."""

    def test_current_drawdown_from_peak(self, calculator):
        calculator.calculate(Portfolio(total_value=Decimal("12000"), cash=Decimal("12000")), [], Decimal("10"), now=NOW)
        metrics = calculator.calculate(
            Portfolio(total_value=Decimal("10800"), cash=Decimal("10800")), [], Decimal("10"), now=NOW
        )

        assert calculator.peak_value == Decimal("12000")
        assert metrics.current_drawdown == Decimal("10")

    def test_max_drawdown_is_monotone(self, calculator):
        """Recovering value lowers current drawdown but never max drawdown."""
        values = ["9000", "9500", "10000", "9800"]
        maxima = []
        for value in values:
            metrics = calculator.calculate(
                Portfolio(total_value=Decimal(value), cash=Decimal(value)), [], Decimal("10"), now=NOW
            )
            maxima.append(metrics.max_drawdown)

        assert maxima == sorted(maxima)
        assert maxima[-1] == Decimal("10")
        assert metrics.current_drawdown == Decimal("2")

    def test_history_is_bounded(self, calculator):
        portfolio = Portfolio(total_value=Decimal("10000"), cash=Decimal("10000"))
        for _ in range(5):
            calculator.calculate(portfolio, [], Decimal("10"), now=NOW, record_history=True)

        assert len(calculator.drawdown_history) == 3


class TestDailyPnl:
    """Tests for daily P&L and pruning."""

    def test_daily_loss_from_trades_today(self, calculator):
        yesterday = NOW - timedelta(days=1)
        calculator.record_trade(make_trade("-300"))
        calculator.record_trade(make_trade("100"))
        calculator.record_trade(make_trade("-1000", timestamp=yesterday))

        metrics = calculator.calculate(
            Portfolio(total_value=Decimal("10000"), cash=Decimal("10000")), [], Decimal("10"), now=NOW
        )

        assert metrics.daily_pnl == Decimal("-200")
        assert metrics.daily_loss == Decimal("200")

    def test_prune_drops_old_entries(self, calculator):
        calculator.record_trade(make_trade("1", timestamp=NOW - timedelta(hours=25)))
        calculator.record_trade(make_trade("1", timestamp=NOW - timedelta(hours=1)))

        calculator.prune(NOW)

        assert len(calculator.trades) == 1


class TestPerformance:
    """Tests for performance statistics."""

    def test_win_rate_and_profit_factor(self, calculator):
        for pnl in ["30", "10", "-20"]:
            calculator.record_trade(make_trade(pnl))
        calculator.record_trade(make_trade("0", closing=False))

        metrics = calculator.calculate(
            Portfolio(total_value=Decimal("10000"), cash=Decimal("10000")), [], Decimal("10"), now=NOW
        )

        assert metrics.win_rate == Decimal(2) / Decimal(3)
        assert metrics.avg_win == Decimal("20")
        assert metrics.avg_loss == Decimal("20")
        assert metrics.profit_factor == Decimal("2")
        assert metrics.sharpe_ratio != 0

    def test_no_losses_profit_factor_zero(self, calculator):
        calculator.record_trade(make_trade("10"))

        metrics = calculator.calculate(
            Portfolio(total_value=Decimal("10000"), cash=Decimal("10000")), [], Decimal("10"), now=NOW
        )

        assert metrics.profit_factor == 0
        assert metrics.sharpe_ratio == 0

    def test_pending_exposure(self, calculator):
        order = Order(id="1", symbol="ETH", side=OrderSide.BUY, type=OrderType.LIMIT,
                      amount=Decimal("2"), price=Decimal("2000"))

        metrics = calculator.calculate(
            Portfolio(total_value=Decimal("10000"), cash=Decimal("10000")), [order], Decimal("10"), now=NOW
        )

        assert metrics.pending_exposure == Decimal("4000")
