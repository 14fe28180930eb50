"""Market data models delivered by the market-data feed."""

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal

from hypermaker.models.trading import OrderSide, utc_now


@dataclass(frozen=True)
class OrderBookLevel:
    """A single price level of the order book."""

    price: Decimal
    size: Decimal
    orders: int = 1


@dataclass
class OrderBook:
    """Level-2 order book snapshot. Bids descend, asks ascend."""

    symbol: str
    bids: list[OrderBookLevel]
    asks: list[OrderBookLevel]
    timestamp: datetime = field(default_factory=utc_now)
    sequence: int = 0

    @property
    def best_bid(self) -> Decimal | None:
        return self.bids[0].price if self.bids else None

    @property
    def best_ask(self) -> Decimal | None:
        return self.asks[0].price if self.asks else None


@dataclass
class MarketData:
    """Top-of-book snapshot for a symbol.

    Attributes:
        symbol: Symbol (e.g., "ETH").
        bid: Best bid price.
        ask: Best ask price.
        bid_size: Size resting at the best bid.
        ask_size: Size resting at the best ask.
        spread: ask - bid.
        mid_price: (bid + ask) / 2.
        price: Last traded price (mid when unknown).
        timestamp: Snapshot time.
    """

    symbol: str
    bid: Decimal
    ask: Decimal
    bid_size: Decimal
    ask_size: Decimal
    spread: Decimal
    mid_price: Decimal
    price: Decimal
    timestamp: datetime = field(default_factory=utc_now)

    @classmethod
    def from_quotes(
        cls,
        symbol: str,
        bid: Decimal,
        ask: Decimal,
        bid_size: Decimal = Decimal("0"),
        ask_size: Decimal = Decimal("0"),
        price: Decimal | None = None,
        timestamp: datetime | None = None,
    ) -> "MarketData":
        """Build a snapshot, deriving spread and mid price."""
        mid = (bid + ask) / 2
        return cls(
            symbol=symbol,
            bid=bid,
            ask=ask,
            bid_size=bid_size,
            ask_size=ask_size,
            spread=ask - bid,
            mid_price=mid,
            price=price if price is not None else mid,
            timestamp=timestamp or utc_now(),
        )

    @classmethod
    def from_order_book(cls, book: OrderBook) -> "MarketData | None":
        """Derive a top-of-book snapshot, or None for a one-sided book."""
        if not book.bids or not book.asks:
            return None
        return cls.from_quotes(
            symbol=book.symbol,
            bid=book.bids[0].price,
            ask=book.asks[0].price,
            bid_size=book.bids[0].size,
            ask_size=book.asks[0].size,
            timestamp=book.timestamp,
        )


@dataclass(frozen=True)
class Trade:
    """A public trade print. `side` is the aggressor side."""

    id: str
    symbol: str
    price: Decimal
    size: Decimal
    side: OrderSide
    timestamp: datetime = field(default_factory=utc_now)
