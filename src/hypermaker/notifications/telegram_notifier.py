"""Telegram notification sender."""

import logging

from telegram import Bot

from hypermaker.risk.models import RiskAlert, RiskSummary
from hypermaker.strategy.models import StrategyStatistics

from .alert_formatter import AlertFormatter
from .models import Notification, NotificationType
from .settings import NotificationSettings

logger = logging.getLogger(__name__)


class TelegramNotifier:
    """Sends risk notifications via Telegram.

    Delivery failures are logged and reported as False; they never
    propagate to the caller.
    """

    def __init__(
        self,
        settings: NotificationSettings,
        formatter: AlertFormatter,
    ):
        """Initialize the notifier.

        Args:
            settings: Notification settings.
            formatter: Formatter for message text.
        """
        self._settings = settings
        self._formatter = formatter
        self._bot: Bot | None = None

    @property
    def is_enabled(self) -> bool:
        """Check if notifications are enabled and configured."""
        return self._settings.enabled and self._settings.is_configured

    async def start(self) -> None:
        """Initialize the Telegram bot."""
        if not self.is_enabled:
            logger.info("Telegram notifications disabled")
            return

        self._bot = Bot(token=self._settings.telegram_token)
        logger.info("Telegram notifier started")

    async def stop(self) -> None:
        """Shutdown the bot gracefully."""
        self._bot = None
        logger.info("Telegram notifier stopped")

    async def send(self, notification: Notification) -> bool:
        """Send a notification.

        Args:
            notification: The notification to send.

        Returns:
            True if sent successfully, False otherwise.
        """
        if not self.is_enabled:
            return False

        if self._bot is None:
            logger.warning("Bot not initialized, cannot send notification")
            return False

        if notification.notification_type.value not in self._settings.notification_types:
            logger.debug(f"Notification type {notification.notification_type.value} not enabled")
            return False

        try:
            await self._bot.send_message(
                chat_id=self._settings.chat_id,
                text=notification.message,
            )
            logger.info(f"Sent {notification.notification_type.value} notification")
            return True
        except Exception as e:
            logger.error(f"Failed to send notification: {e}")
            return False

    async def send_risk_alert(self, alert: RiskAlert) -> bool:
        """Send a risk alert if its level is enabled."""
        if alert.level.value not in self._settings.alert_levels:
            logger.debug(f"Alert level {alert.level.value} not enabled")
            return False
        return await self.send(
            Notification(
                notification_type=NotificationType.RISK_ALERT,
                message=self._formatter.format_risk_alert(alert),
                symbol=alert.symbol,
            )
        )

    async def send_emergency_stop(self, alert: RiskAlert) -> bool:
        return await self.send(
            Notification(
                notification_type=NotificationType.EMERGENCY_STOP,
                message=self._formatter.format_emergency_stop(alert),
            )
        )

    async def send_emergency_reset(self) -> bool:
        return await self.send(
            Notification(
                notification_type=NotificationType.EMERGENCY_RESET,
                message=self._formatter.format_emergency_reset(),
            )
        )

    async def send_status(self, summary: RiskSummary, stats: StrategyStatistics) -> bool:
        """Send a status report.

        Args:
            summary: Current risk summary.
            stats: Current strategy statistics.

        Returns:
            True if sent successfully.
        """
        return await self.send(
            Notification(
                notification_type=NotificationType.STATUS,
                message=self._formatter.format_status(summary, stats),
            )
        )
