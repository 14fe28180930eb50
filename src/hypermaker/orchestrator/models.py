"""Data models for the trading bot."""

from enum import Enum


class BotState(Enum):
    """State of the trading bot."""

    STOPPED = "stopped"
    RUNNING = "running"
    STOPPING = "stopping"
