"""Application settings loaded from YAML and the environment."""

from .settings import LoggingConfig, Settings, SystemConfig, TelegramConfig

__all__ = ["LoggingConfig", "Settings", "SystemConfig", "TelegramConfig"]
