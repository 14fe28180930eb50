"""Abstract exchange client contract used by the quoting strategy."""

from abc import ABC, abstractmethod
from decimal import Decimal

from hypermaker.models.trading import Order, OrderSide, OrderType, Position


class ExchangeError(Exception):
    """Raised when an exchange call fails (network, auth or rejection)."""


class ExchangeClient(ABC):
    """Abstract base class for exchange clients.

    Implementations raise ExchangeError on failure. Callers do not retry.
    """

    def __init__(self, name: str):
        self._name = name
        self._connected = False

    @property
    def name(self) -> str:
        return self._name

    @property
    def is_connected(self) -> bool:
        return self._connected

    @abstractmethod
    async def connect(self) -> None:
        """Establish the exchange session."""
        pass

    @abstractmethod
    async def disconnect(self) -> None:
        """Close the exchange session."""
        pass

    @abstractmethod
    async def place_order(
        self,
        symbol: str,
        side: OrderSide,
        order_type: OrderType,
        amount: Decimal,
        price: Decimal | None = None,
        client_order_id: str | None = None,
    ) -> Order:
        """Submit an order and return it as acknowledged by the exchange."""
        pass

    @abstractmethod
    async def cancel_order(self, order_id: str, symbol: str) -> bool:
        """Cancel an order. Returns True only if the cancel was confirmed."""
        pass

    @abstractmethod
    async def get_order(self, order_id: str, symbol: str) -> Order:
        """Return the current state of an order."""
        pass

    @abstractmethod
    async def get_positions(self) -> list[Position]:
        """Return all open positions."""
        pass

    @abstractmethod
    async def get_open_orders(self, symbol: str | None = None) -> list[Order]:
        """Return non-terminal orders, optionally for one symbol."""
        pass
