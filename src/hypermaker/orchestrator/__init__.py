"""Orchestrator module for running the trading bot."""

from .models import BotState
from .settings import OrchestratorSettings
from .trading_bot import TradingBot

__all__ = [
    "BotState",
    "OrchestratorSettings",
    "TradingBot",
]
