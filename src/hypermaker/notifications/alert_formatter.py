"""Formats risk events for Telegram messages."""

from hypermaker.risk.models import AlertLevel, RiskAlert, RiskSummary
from hypermaker.strategy.models import StrategyStatistics


LEVEL_EMOJI = {
    AlertLevel.WARNING: "⚠️",
    AlertLevel.CRITICAL: "🔴",
    AlertLevel.EMERGENCY: "🚨",
}


class AlertFormatter:
    """Formats risk and strategy data into readable Telegram messages."""

    def format_risk_alert(self, alert: RiskAlert) -> str:
        """Format a risk alert."""
        emoji = LEVEL_EMOJI[alert.level]
        symbol_line = f"\n🪙 Symbol: {alert.symbol}" if alert.symbol else ""

        return f"""{emoji} RISK ALERT: {alert.alert_type.value}

📛 Level: {alert.level.value}{symbol_line}
📊 Value: {alert.value:.4f} (limit {alert.limit:.4f})
🛠 Action: {alert.action.value}

📝 {alert.message}"""

    def format_emergency_stop(self, alert: RiskAlert) -> str:
        """Format an emergency-stop notification."""
        return f"""🛑 EMERGENCY STOP

⚠️ Reason: {alert.message}
🔒 Quoting halted and orders cancelled
🔑 Manual reset required"""

    def format_emergency_reset(self) -> str:
        return "✅ EMERGENCY STOP RESET\n\nTrading may resume after restart of quoting."

    def format_status(self, summary: RiskSummary, stats: StrategyStatistics) -> str:
        """Format a combined risk and strategy status report."""
        metrics = summary.metrics
        pnl_emoji = "📈" if metrics.daily_pnl >= 0 else "📉"
        running = "RUNNING" if stats.is_running else "STOPPED"

        return f"""📊 STATUS - {summary.status.value}

🤖 Strategy: {running}
📦 Open positions: {summary.open_positions}
📝 Active quotes: {stats.active_orders}
{pnl_emoji} Daily P&L: ${metrics.daily_pnl:+,.2f}
📉 Drawdown: {metrics.current_drawdown:.2f}% (max {metrics.max_drawdown:.2f}%)
✅ Fills: {stats.fills}/{stats.quotes_placed} ({stats.fill_rate:.0%})
💰 Rebates: ${stats.total_rebates:,.4f}"""
