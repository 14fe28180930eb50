"""Data models for notifications."""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum

from hypermaker.models.trading import utc_now


class NotificationType(Enum):
    """Type of notification to send."""

    RISK_ALERT = "risk_alert"
    EMERGENCY_STOP = "emergency_stop"
    EMERGENCY_RESET = "emergency_reset"
    STATUS = "status"


@dataclass
class Notification:
    """A notification to be sent via Telegram.

    Attributes:
        notification_type: Type of notification.
        message: Pre-formatted message text.
        symbol: Symbol (if applicable).
        timestamp: When the notification was created.
    """

    notification_type: NotificationType
    message: str
    symbol: str | None = None
    timestamp: datetime = field(default_factory=utc_now)
