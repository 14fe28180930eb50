"""Market-data feeds."""

from .feed import MarketDataFeed, MarketEvent
from .settings import MarketFeedSettings
from .simulated_feed import SimulatedMarketFeed

__all__ = [
    "MarketDataFeed",
    "MarketEvent",
    "MarketFeedSettings",
    "SimulatedMarketFeed",
]
