"""Notifications module for risk alerts via Telegram."""

from .alert_formatter import AlertFormatter
from .models import Notification, NotificationType
from .settings import NotificationSettings
from .telegram_notifier import TelegramNotifier

__all__ = [
    "AlertFormatter",
    "Notification",
    "NotificationSettings",
    "NotificationType",
    "TelegramNotifier",
]
