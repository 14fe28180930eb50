"""Settings for notifications module."""

from pydantic import BaseModel, computed_field


class NotificationSettings(BaseModel):
    """Configuration for Telegram notifications.

    Attributes:
        enabled: Whether notifications are enabled.
        telegram_token: Bot token from BotFather.
        chat_id: Telegram chat ID to send messages to.
        alert_levels: Risk alert levels that are forwarded.
        notification_types: Which notification types to send.
    """

    enabled: bool = True
    telegram_token: str = ""
    chat_id: str = ""

    alert_levels: list[str] = ["CRITICAL", "EMERGENCY"]

    notification_types: list[str] = [
        "risk_alert",
        "emergency_stop",
        "emergency_reset",
        "status",
    ]

    @computed_field
    @property
    def is_configured(self) -> bool:
        """Check if Telegram credentials are configured."""
        return bool(self.telegram_token and self.chat_id)
