"""Calculator for risk and performance metrics."""

from collections import deque
from datetime import datetime, timedelta
from decimal import Decimal

from hypermaker.models.trading import Order, OrderType, utc_now
from hypermaker.risk.models import ZERO, Portfolio, RiskMetrics, TradeRecord


RETENTION = timedelta(hours=24)
TRADING_DAYS_PER_YEAR = Decimal(252)


class RiskMetricsCalculator:
    """Tracks drawdown history and the rolling trade list.

    The drawdown peak is the running maximum of the initial capital and
    every observed portfolio value, so `max_drawdown` never decreases.
    """

    def __init__(self, initial_capital: Decimal, history_size: int = 1000):
        self.peak_value = initial_capital
        self.max_drawdown = ZERO
        self._trades: list[TradeRecord] = []
        self._drawdown_history: deque[tuple[datetime, Decimal]] = deque(maxlen=history_size)

    @property
    def trades(self) -> list[TradeRecord]:
        return list(self._trades)

    @property
    def drawdown_history(self) -> list[tuple[datetime, Decimal]]:
        return list(self._drawdown_history)

    def record_trade(self, trade: TradeRecord) -> None:
        self._trades.append(trade)

    def daily_trades(self, now: datetime | None = None) -> list[TradeRecord]:
        """Return trades since the start of the current UTC day."""
        now = now or utc_now()
        start_of_day = now.replace(hour=0, minute=0, second=0, microsecond=0)
        return [t for t in self._trades if t.timestamp >= start_of_day]

    def calculate(
        self,
        portfolio: Portfolio,
        pending_orders: list[Order],
        max_position_size: Decimal,
        now: datetime | None = None,
        record_history: bool = False,
    ) -> RiskMetrics:
        """Recompute metrics from the current portfolio and trade list.

        Args:
            portfolio: Current portfolio snapshot.
            pending_orders: Orders resting on the exchange.
            max_position_size: Configured per-symbol size limit.
            now: Evaluation time (defaults to now).
            record_history: Append the drawdown sample to the bounded history.

        Returns:
            Freshly computed RiskMetrics.
        """
        now = now or utc_now()

        total_exposure = sum((p.notional for p in portfolio.positions), ZERO)
        pending_exposure = sum(
            (o.remaining * o.price for o in pending_orders
             if o.type == OrderType.LIMIT and o.price is not None and o.remaining),
            ZERO,
        )

        current_drawdown = self._update_drawdown(portfolio.total_value)
        if record_history:
            self._drawdown_history.append((now, current_drawdown))

        daily = self.daily_trades(now)
        daily_pnl = sum((t.pnl for t in daily), ZERO)
        daily_loss = -daily_pnl if daily_pnl < 0 else ZERO

        metrics = RiskMetrics(
            total_exposure=total_exposure,
            pending_exposure=pending_exposure,
            max_position_size=max_position_size,
            current_drawdown=current_drawdown,
            max_drawdown=self.max_drawdown,
            daily_pnl=daily_pnl,
            daily_loss=daily_loss,
        )
        self._apply_performance(metrics, [t for t in daily if t.closing])
        return metrics

    def prune(self, now: datetime | None = None) -> None:
        """Drop trades and drawdown samples older than 24 hours."""
        cutoff = (now or utc_now()) - RETENTION
        self._trades = [t for t in self._trades if t.timestamp >= cutoff]
        while self._drawdown_history and self._drawdown_history[0][0] < cutoff:
            self._drawdown_history.popleft()

    def _update_drawdown(self, current_value: Decimal) -> Decimal:
        if current_value > self.peak_value:
            self.peak_value = current_value
        if self.peak_value <= 0:
            return ZERO

        drawdown = (self.peak_value - current_value) / self.peak_value * 100
        drawdown = max(drawdown, ZERO)
        if drawdown > self.max_drawdown:
            self.max_drawdown = drawdown
        return drawdown

    def _apply_performance(self, metrics: RiskMetrics, closed: list[TradeRecord]) -> None:
        if not closed:
            return

        winners = [t.pnl for t in closed if t.pnl > 0]
        losers = [t.pnl for t in closed if t.pnl < 0]

        gross_profit = sum(winners, ZERO)
        gross_loss = abs(sum(losers, ZERO))

        metrics.win_rate = Decimal(len(winners)) / Decimal(len(closed))
        metrics.avg_win = gross_profit / len(winners) if winners else ZERO
        metrics.avg_loss = gross_loss / len(losers) if losers else ZERO
        metrics.profit_factor = gross_profit / gross_loss if gross_loss > 0 else ZERO
        metrics.sharpe_ratio = self._sharpe_ratio(closed)

    def _sharpe_ratio(self, closed: list[TradeRecord]) -> Decimal:
        """Annualized Sharpe ratio of per-trade returns on notional."""
        returns = [t.pnl / (t.price * t.size) for t in closed if t.price * t.size > 0]
        if len(returns) < 2:
            return ZERO

        avg_return = sum(returns, ZERO) / len(returns)
        variance = sum(((r - avg_return) ** 2 for r in returns), ZERO) / (len(returns) - 1)
        std_dev = variance.sqrt()

        if std_dev == 0:
            return ZERO

        return avg_return / std_dev * TRADING_DAYS_PER_YEAR.sqrt()
