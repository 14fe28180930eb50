"""Directional signal generation from market data."""

from .settings import SignalSettings
from .signal_generator import ComponentSignal, SignalGenerator

__all__ = ["ComponentSignal", "SignalGenerator", "SignalSettings"]
