"""Random-walk market simulator implementing the MarketDataFeed contract."""

import asyncio
import logging
from decimal import ROUND_CEILING, ROUND_FLOOR, Decimal
from typing import AsyncIterator

import numpy as np

from hypermaker.market.feed import MarketDataFeed, MarketEvent
from hypermaker.market.settings import MarketFeedSettings
from hypermaker.models.market import MarketData, OrderBook, OrderBookLevel, Trade
from hypermaker.models.trading import OrderSide, utc_now


logger = logging.getLogger(__name__)

SIZE_STEP = Decimal("0.001")


class SimulatedMarketFeed(MarketDataFeed):
    """Generates order books, top-of-book snapshots and trades.

    Each step moves every subscribed symbol's mid price by a normally
    distributed log return, rebuilds a synthetic book around it and, with
    `trade_probability`, prints a random aggressor trade at the touch.
    """

    def __init__(self, settings: MarketFeedSettings | None = None):
        super().__init__("simulated")
        self._settings = settings or MarketFeedSettings()
        self._rng = np.random.default_rng(self._settings.seed)
        self._mids: dict[str, float] = {}
        self._sequence = 0
        self._trade_ids = 0

    async def connect(self) -> None:
        self._connected = True
        logger.info("Simulated market feed connected")

    async def disconnect(self) -> None:
        self._connected = False
        logger.info("Simulated market feed disconnected")

    async def stream(self) -> AsyncIterator[MarketEvent]:
        while self._connected:
            for symbol in self.symbols:
                for event in self.step(symbol):
                    yield event
            await asyncio.sleep(self._settings.tick_interval_seconds)

    def step(self, symbol: str) -> list[MarketEvent]:
        """Advance one symbol by one tick and return the generated events."""
        mid = self._next_mid(symbol)
        book = self._build_book(symbol, mid)
        events: list[MarketEvent] = [book]

        market_data = MarketData.from_order_book(book)
        if market_data is not None:
            events.append(market_data)
            if self._rng.random() < self._settings.trade_probability:
                events.append(self._random_trade(market_data))
        return events

    def _next_mid(self, symbol: str) -> float:
        if symbol not in self._mids:
            start = self._settings.initial_prices.get(symbol, self._settings.default_price)
            self._mids[symbol] = float(start)
        change = self._rng.normal(0, self._settings.volatility)
        self._mids[symbol] *= float(np.exp(change))
        return self._mids[symbol]

    def _build_book(self, symbol: str, mid: float) -> OrderBook:
        tick = self._settings.tick_size
        half_spread = Decimal(str(mid * self._settings.spread_bps / 20000))
        mid_dec = Decimal(str(round(mid, 8)))

        best_bid = ((mid_dec - half_spread) / tick).to_integral_value(ROUND_FLOOR) * tick
        best_ask = ((mid_dec + half_spread) / tick).to_integral_value(ROUND_CEILING) * tick
        if best_ask <= best_bid:
            best_ask = best_bid + tick

        bids = [
            OrderBookLevel(price=best_bid - tick * i, size=self._level_size())
            for i in range(self._settings.depth)
        ]
        asks = [
            OrderBookLevel(price=best_ask + tick * i, size=self._level_size())
            for i in range(self._settings.depth)
        ]

        self._sequence += 1
        return OrderBook(
            symbol=symbol,
            bids=bids,
            asks=asks,
            timestamp=utc_now(),
            sequence=self._sequence,
        )

    def _level_size(self) -> Decimal:
        factor = Decimal(str(round(self._rng.uniform(0.5, 1.5), 3)))
        return (self._settings.level_size * factor).quantize(SIZE_STEP)

    def _random_trade(self, market_data: MarketData) -> Trade:
        side = OrderSide.BUY if self._rng.random() < 0.5 else OrderSide.SELL
        raw_size = self._rng.exponential(float(self._settings.level_size) * 0.2)
        size = max(Decimal(str(round(raw_size, 3))), SIZE_STEP)
        self._trade_ids += 1
        return Trade(
            id=f"sim-{self._trade_ids}",
            symbol=market_data.symbol,
            price=market_data.ask if side == OrderSide.BUY else market_data.bid,
            size=size,
            side=side,
            timestamp=market_data.timestamp,
        )
