"""Shared market and trading data models."""

from .market import MarketData, OrderBook, OrderBookLevel, Trade
from .trading import (
    Direction,
    Order,
    OrderSide,
    OrderStatus,
    OrderType,
    Position,
    Signal,
    utc_now,
)

__all__ = [
    "Direction",
    "MarketData",
    "Order",
    "OrderBook",
    "OrderBookLevel",
    "OrderSide",
    "OrderStatus",
    "OrderType",
    "Position",
    "Signal",
    "Trade",
    "utc_now",
]
