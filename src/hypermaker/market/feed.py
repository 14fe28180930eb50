"""Abstract market-data feed."""

from abc import ABC, abstractmethod
from typing import AsyncIterator, Union

from hypermaker.models.market import MarketData, OrderBook, Trade


MarketEvent = Union[MarketData, OrderBook, Trade]


class MarketDataFeed(ABC):
    """Abstract base class for market-data feeds."""

    def __init__(self, name: str):
        self._name = name
        self._connected = False
        self._symbols: list[str] = []

    @property
    def name(self) -> str:
        return self._name

    @property
    def is_connected(self) -> bool:
        return self._connected

    @property
    def symbols(self) -> list[str]:
        return list(self._symbols)

    async def subscribe(self, symbols: list[str]) -> None:
        """Add symbols to the subscription set."""
        for symbol in symbols:
            if symbol not in self._symbols:
                self._symbols.append(symbol)

    @abstractmethod
    async def connect(self) -> None:
        """Establish connection to the data source."""
        pass

    @abstractmethod
    async def disconnect(self) -> None:
        """Close connection to the data source."""
        pass

    @abstractmethod
    async def stream(self) -> AsyncIterator[MarketEvent]:
        """Stream market events for subscribed symbols.

        Yields:
            MarketData, OrderBook or Trade objects as they arrive.
        """
        pass
