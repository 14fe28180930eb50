# tests/notifications/test_notifier.py
"""Tests for TelegramNotifier."""

from decimal import Decimal
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from hypermaker.notifications import (
    AlertFormatter,
    Notification,
    NotificationSettings,
    NotificationType,
    TelegramNotifier,
)
from hypermaker.risk.limits import build_alert
from hypermaker.risk.models import AlertLevel, AlertType, RecommendedAction


def make_alert(level: AlertLevel = AlertLevel.CRITICAL):
    return build_alert(
        level,
        AlertType.DAILY_LOSS_LIMIT,
        "Daily loss limit reached",
        value=Decimal("500"),
        limit=Decimal("500"),
        action=RecommendedAction.REDUCE_RISK,
    )


@pytest.fixture
def settings():
    return NotificationSettings(telegram_token="test_token", chat_id="12345")


@pytest.fixture
def notifier(settings):
    return TelegramNotifier(settings=settings, formatter=AlertFormatter())


class TestTelegramNotifierInit:
    """Tests for TelegramNotifier initialization."""

    def test_init_with_settings(self, settings, notifier):
        """Notifier initializes with settings and no bot."""
        assert notifier._settings == settings
        assert notifier._bot is None
        assert notifier.is_enabled is True

    def test_is_enabled_false_when_disabled(self):
        settings = NotificationSettings(enabled=False, telegram_token="token", chat_id="1")

        assert TelegramNotifier(settings=settings, formatter=AlertFormatter()).is_enabled is False

    def test_is_enabled_false_when_not_configured(self):
        """is_enabled returns False when token/chat_id missing."""
        notifier = TelegramNotifier(settings=NotificationSettings(), formatter=AlertFormatter())

        assert notifier.is_enabled is False


class TestTelegramNotifierLifecycle:
    """Tests for start/stop."""

    @pytest.mark.asyncio
    async def test_start_creates_bot(self, notifier):
        with patch("hypermaker.notifications.telegram_notifier.Bot") as mock_bot:
            await notifier.start()

        mock_bot.assert_called_once_with(token="test_token")
        assert notifier._bot is not None

    @pytest.mark.asyncio
    async def test_start_skipped_when_disabled(self):
        notifier = TelegramNotifier(settings=NotificationSettings(), formatter=AlertFormatter())

        with patch("hypermaker.notifications.telegram_notifier.Bot") as mock_bot:
            await notifier.start()

        mock_bot.assert_not_called()

    @pytest.mark.asyncio
    async def test_stop_clears_bot(self, notifier):
        notifier._bot = MagicMock()

        await notifier.stop()

        assert notifier._bot is None


class TestTelegramNotifierSend:
    """Tests for sending notifications."""

    @pytest.mark.asyncio
    async def test_send_success(self, notifier):
        notifier._bot = MagicMock()
        notifier._bot.send_message = AsyncMock()

        result = await notifier.send(Notification(NotificationType.STATUS, "hello"))

        assert result is True
        notifier._bot.send_message.assert_awaited_once_with(chat_id="12345", text="hello")

    @pytest.mark.asyncio
    async def test_send_failure_returns_false(self, notifier):
        notifier._bot = MagicMock()
        notifier._bot.send_message = AsyncMock(side_effect=Exception("network down"))

        result = await notifier.send(Notification(NotificationType.STATUS, "hello"))

        assert result is False

    @pytest.mark.asyncio
    async def test_send_without_bot(self, notifier):
        assert await notifier.send(Notification(NotificationType.STATUS, "hello")) is False

    @pytest.mark.asyncio
    async def test_disabled_type_not_sent(self):
        settings = NotificationSettings(
            telegram_token="t", chat_id="1", notification_types=["risk_alert"]
        )
        notifier = TelegramNotifier(settings=settings, formatter=AlertFormatter())
        notifier._bot = MagicMock()
        notifier._bot.send_message = AsyncMock()

        assert await notifier.send(Notification(NotificationType.STATUS, "x")) is False
        notifier._bot.send_message.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_risk_alert_level_filter(self, notifier):
        notifier._bot = MagicMock()
        notifier._bot.send_message = AsyncMock()

        assert await notifier.send_risk_alert(make_alert(AlertLevel.WARNING)) is False
        assert await notifier.send_risk_alert(make_alert(AlertLevel.CRITICAL)) is True

        text = notifier._bot.send_message.call_args.kwargs["text"]
        assert "DAILY_LOSS_LIMIT" in text

    @pytest.mark.asyncio
    async def test_emergency_stop_and_reset(self, notifier):
        notifier._bot = MagicMock()
        notifier._bot.send_message = AsyncMock()

        assert await notifier.send_emergency_stop(make_alert(AlertLevel.EMERGENCY)) is True
        assert await notifier.send_emergency_reset() is True

        assert notifier._bot.send_message.await_count == 2
