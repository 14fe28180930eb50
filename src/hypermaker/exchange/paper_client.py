"""In-memory exchange that fills resting quotes against simulated market data."""

import itertools
import logging
from collections import OrderedDict
from dataclasses import replace
from decimal import Decimal

from hypermaker.exchange.base import ExchangeClient, ExchangeError
from hypermaker.exchange.settings import PaperExchangeSettings
from hypermaker.models.market import MarketData
from hypermaker.models.trading import (
    Order,
    OrderSide,
    OrderStatus,
    OrderType,
    Position,
    utc_now,
)
from hypermaker.risk.portfolio import PositionLedger


logger = logging.getLogger(__name__)


class PaperExchangeClient(ExchangeClient):
    """Paper trading exchange.

    Limit orders rest until the market crosses them: a buy fills when the
    best ask trades at or below its price, a sell when the best bid trades
    at or above it. Resting fills are maker fills and earn the rebate. Market
    orders fill immediately at the opposite touch and pay the taker fee.

    Only open orders are scanned on market updates. Filled and cancelled
    orders move to a bounded history that still serves `get_order`.

    Calls can be made to fail with `fail_next` for testing error paths.
    Orders are returned as copies, so callers see state changes only by
    querying again.
    """

    def __init__(self, settings: PaperExchangeSettings | None = None):
        super().__init__("paper")
        self._settings = settings or PaperExchangeSettings()
        self._ids = itertools.count(1)
        self._orders: dict[str, Order] = {}
        self._closed: OrderedDict[str, Order] = OrderedDict()
        self._quotes: dict[str, MarketData] = {}
        self._ledger = PositionLedger(Decimal("0"))
        self._failures: dict[str, ExchangeError] = {}

    async def connect(self) -> None:
        self._connected = True
        logger.info("Paper exchange connected")

    async def disconnect(self) -> None:
        self._connected = False
        logger.info("Paper exchange disconnected")

    def fail_next(self, operation: str, error: ExchangeError | None = None) -> None:
        """Make the next call to `operation` (e.g. "place_order") raise."""
        self._failures[operation] = error or ExchangeError(f"Injected {operation} failure")

    def seed_position(self, position: Position) -> None:
        """Install a starting position."""
        self._ledger.set_position(position)

    async def place_order(
        self,
        symbol: str,
        side: OrderSide,
        order_type: OrderType,
        amount: Decimal,
        price: Decimal | None = None,
        client_order_id: str | None = None,
    ) -> Order:
        self._check("place_order")
        if amount <= 0:
            raise ExchangeError(f"Order amount must be positive, got {amount}")
        if order_type == OrderType.LIMIT and (price is None or price <= 0):
            raise ExchangeError("Limit orders require a positive price")

        order = Order(
            id=f"{self._settings.order_id_prefix}-{next(self._ids)}",
            symbol=symbol,
            side=side,
            type=order_type,
            amount=amount,
            price=price,
            status=OrderStatus.OPEN,
            maker=order_type == OrderType.LIMIT,
            client_order_id=client_order_id or "",
        )

        if order_type == OrderType.MARKET:
            quote = self._quotes.get(symbol)
            if quote is None:
                raise ExchangeError(f"No market for {symbol}")
            touch = quote.ask if side == OrderSide.BUY else quote.bid
            self._fill(order, touch, maker=False)
            self._retire(order)
        else:
            self._orders[order.id] = order

        logger.debug(f"Paper order {order.id}: {side.value} {amount} {symbol} @ {price}")
        return replace(order)

    async def cancel_order(self, order_id: str, symbol: str) -> bool:
        self._check("cancel_order")
        order = self._orders.get(order_id)
        if order is None or order.symbol != symbol:
            return False
        order.status = OrderStatus.CANCELLED
        order.updated_at = utc_now()
        self._retire(order)
        return True

    async def get_order(self, order_id: str, symbol: str) -> Order:
        self._check("get_order")
        order = self._orders.get(order_id) or self._closed.get(order_id)
        if order is None or order.symbol != symbol:
            raise ExchangeError(f"Unknown order {order_id} for {symbol}")
        return replace(order)

    async def get_positions(self) -> list[Position]:
        self._check("get_positions")
        return [replace(p) for p in self._ledger.positions()]

    async def get_open_orders(self, symbol: str | None = None) -> list[Order]:
        self._check("get_open_orders")
        return [
            replace(o)
            for o in self._orders.values()
            if symbol is None or o.symbol == symbol
        ]

    def update_market(self, market_data: MarketData) -> list[Order]:
        """Record the latest quote and fill any resting orders it crosses."""
        self._quotes[market_data.symbol] = market_data
        self._ledger.mark(market_data.symbol, market_data.mid_price)

        filled = []
        for order in list(self._orders.values()):
            if order.symbol != market_data.symbol:
                continue
            if (
                (order.side == OrderSide.BUY and market_data.ask <= order.price)
                or (order.side == OrderSide.SELL and market_data.bid >= order.price)
            ):
                self._fill(order, order.price, maker=True)
                self._retire(order)
                filled.append(replace(order))
        return filled

    def _fill(self, order: Order, price: Decimal, maker: bool) -> None:
        size = order.remaining
        notional = size * price
        rebate = notional * self._settings.maker_rebate_rate if maker else Decimal("0")
        fee = Decimal("0") if maker else notional * self._settings.taker_fee_rate

        previous = order.filled
        order.filled = previous + size
        order.remaining = order.amount - order.filled
        order.avg_fill_price = (
            ((order.avg_fill_price or price) * previous + price * size) / order.filled
        )
        order.rebates += rebate
        order.fees += fee
        order.status = OrderStatus.FILLED
        order.updated_at = utc_now()

        self._ledger.apply_fill(order.symbol, order.side, price, size, fees=fee, rebates=rebate)
        logger.info(
            f"Paper fill {order.id}: {order.side.value} {size} {order.symbol} @ {price} "
            f"({'maker' if maker else 'taker'})"
        )

    def _retire(self, order: Order) -> None:
        self._orders.pop(order.id, None)
        self._closed[order.id] = order
        while len(self._closed) > self._settings.closed_order_history:
            self._closed.popitem(last=False)

    def _check(self, operation: str) -> None:
        if not self._connected:
            raise ExchangeError("Paper exchange is not connected")
        error = self._failures.pop(operation, None)
        if error is not None:
            raise error
