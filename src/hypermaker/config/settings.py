# src/hypermaker/config/settings.py
from pathlib import Path

import yaml
from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from hypermaker.exchange.settings import PaperExchangeSettings
from hypermaker.market.settings import MarketFeedSettings
from hypermaker.notifications.settings import NotificationSettings
from hypermaker.orchestrator.settings import OrchestratorSettings
from hypermaker.risk.settings import RiskSettings
from hypermaker.signals.settings import SignalSettings
from hypermaker.strategy.settings import QuotingSettings


class SystemConfig(BaseModel):
    name: str = "Hypermaker"
    version: str = "1.0.0"
    mode: str = "paper"


class LoggingConfig(BaseModel):
    """Settings for log output.

    Attributes:
        level: Root log level.
        format: Format of console records.
        date_format: Timestamp format of console records.
        audit_log_path: File receiving the `hypermaker.audit` records.
        audit_max_bytes: Size at which the audit file rotates.
        audit_backup_count: Rotated audit files kept.
    """

    level: str = "INFO"
    format: str = "[%(asctime)s] %(levelname)s: %(message)s"
    date_format: str = "%Y-%m-%d %H:%M:%S"
    audit_log_path: str = "logs/audit.log"
    audit_max_bytes: int = Field(default=5_000_000, ge=1024)
    audit_backup_count: int = Field(default=5, ge=0)


class TelegramConfig(BaseSettings):
    model_config = SettingsConfigDict(env_prefix="TELEGRAM_")

    bot_token: str = ""
    chat_id: str = ""


class Settings(BaseModel):
    system: SystemConfig = Field(default_factory=SystemConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)
    risk_settings: RiskSettings = Field(default_factory=RiskSettings)
    quoting: QuotingSettings = Field(default_factory=QuotingSettings)
    signals: SignalSettings = Field(default_factory=SignalSettings)
    paper_exchange: PaperExchangeSettings = Field(default_factory=PaperExchangeSettings)
    market_feed: MarketFeedSettings = Field(default_factory=MarketFeedSettings)
    notifications: NotificationSettings = Field(default_factory=NotificationSettings)
    orchestrator: OrchestratorSettings = Field(default_factory=OrchestratorSettings)
    telegram: TelegramConfig = Field(default_factory=TelegramConfig)

    @classmethod
    def from_yaml(cls, path: Path) -> "Settings":
        """Load settings from YAML file with env var overrides."""
        with open(path) as f:
            data = yaml.safe_load(f) or {}

        telegram = TelegramConfig()
        settings = cls(**data, telegram=telegram)

        # Credentials from the environment fill in what the YAML leaves empty
        notifications = settings.notifications
        if not notifications.telegram_token and telegram.bot_token:
            notifications = notifications.model_copy(update={"telegram_token": telegram.bot_token})
        if not notifications.chat_id and telegram.chat_id:
            notifications = notifications.model_copy(update={"chat_id": telegram.chat_id})
        settings.notifications = notifications
        return settings
