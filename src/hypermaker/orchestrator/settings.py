"""Configuration for the trading bot."""

from pydantic import BaseModel, Field


class OrchestratorSettings(BaseModel):
    """Settings for TradingBot."""

    scheduler_resolution_seconds: float = Field(default=0.1, gt=0)
    feed_reconnect_delay_seconds: float = Field(default=5.0, ge=0)
    status_interval_seconds: float = Field(default=300.0, ge=0)
    shutdown_timeout_seconds: float = Field(default=10.0, gt=0)
