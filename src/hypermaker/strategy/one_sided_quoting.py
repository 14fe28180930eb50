"""One-sided quoting strategy: at most one resting maker order per symbol."""

import asyncio
import itertools
import logging
import time
from dataclasses import replace
from decimal import ROUND_DOWN, Decimal
from typing import Callable

from hypermaker.exchange.base import ExchangeClient, ExchangeError
from hypermaker.models.market import MarketData, OrderBook
from hypermaker.models.trading import (
    Direction,
    Order,
    OrderSide,
    OrderStatus,
    OrderType,
    Signal,
)
from hypermaker.risk.models import AlertLevel, RiskAlert
from hypermaker.risk.risk_manager import RiskManager
from hypermaker.scheduling.scheduler import Scheduler
from hypermaker.strategy.models import (
    DecisionAction,
    RiskLevel,
    StrategyState,
    StrategyStatistics,
    SymbolQuoteState,
    TradingDecision,
)
from hypermaker.strategy.pricing import (
    assess_risk_level,
    calculate_quote_price,
    calculate_quote_size,
    total_aggressiveness,
)
from hypermaker.strategy.settings import QuotingSettings


logger = logging.getLogger(__name__)

SWEEP_KEY = "strategy:sweep"
ZERO = Decimal("0")


class OneSidedQuotingStrategy:
    """Maintains a bid-only or ask-only maker quote per symbol.

    The side follows the latest signal direction. Every requote cancels the
    existing order before placing a new one, and a symbol is only treated as
    free once the cancel is confirmed or the order is known to be terminal.
    Requote requests for one symbol are serialized: a request arriving while
    a cycle runs schedules exactly one follow-up cycle.

    EMERGENCY risk alerts and the risk manager's emergency stop halt the
    strategy and cancel every resting order.
    """

    def __init__(
        self,
        settings: QuotingSettings,
        exchange: ExchangeClient,
        risk_manager: RiskManager,
        scheduler: Scheduler | None = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self._settings = settings
        self._exchange = exchange
        self._risk_manager = risk_manager
        self._scheduler = scheduler
        self._clock = clock

        self._state = StrategyState.STOPPED
        self._active_orders: dict[str, Order] = {}
        self._market_data: dict[str, MarketData] = {}
        self._order_books: dict[str, OrderBook] = {}
        self._signals: dict[str, Signal] = {}
        self._last_requote: dict[str, float] = {}
        self._cycles: dict[str, asyncio.Event] = {}
        self._requote_pending: set[str] = set()
        self._tasks: set[asyncio.Task] = set()
        self._client_ids = itertools.count(1)

        self._quotes_placed = 0
        self._quotes_cancelled = 0
        self._fills = 0
        self._fill_seconds: list[float] = []
        self._total_rebates = ZERO

        risk_manager.add_alert_callback(self._on_risk_alert)
        risk_manager.add_emergency_stop_callback(self._on_emergency_stop)

    @property
    def state(self) -> StrategyState:
        return self._state

    @property
    def is_running(self) -> bool:
        return self._state == StrategyState.RUNNING

    def get_symbol_state(self, symbol: str) -> SymbolQuoteState:
        if symbol in self._active_orders:
            return SymbolQuoteState.QUOTING
        return SymbolQuoteState.IDLE

    def get_active_orders(self) -> dict[str, Order]:
        return {symbol: replace(order) for symbol, order in self._active_orders.items()}

    # Lifecycle

    async def start(self) -> None:
        """Reload positions, clear orphan orders and begin quoting.

        Raises:
            RuntimeError: If the strategy is already running.
            ExchangeError: If positions cannot be loaded. The strategy
                stays STOPPED.
        """
        if self._state == StrategyState.RUNNING:
            raise RuntimeError("Strategy already running")

        logger.info("Starting one-sided quoting strategy")
        positions = await self._exchange.get_positions()
        for position in positions:
            self._risk_manager.update_position(position)
        logger.info(f"Loaded {len(positions)} positions from exchange")

        if self._settings.cancel_orphan_orders_on_start:
            await self._cancel_orphan_orders()

        self._state = StrategyState.RUNNING
        if self._scheduler is not None:
            self._scheduler.call_every(
                SWEEP_KEY,
                self._settings.quote_update_frequency_ms / 1000,
                self.sweep,
            )
        logger.info(f"Quoting strategy running for {', '.join(self._settings.symbols)}")

    async def stop(self) -> None:
        """Halt quoting and cancel every active order.

        Safe to call repeatedly. A failed cancel for one symbol does not
        prevent cancels for the others. Cancels started by emergency
        handling are awaited before returning.
        """
        if self._state == StrategyState.STOPPED and not self._active_orders and not self._tasks:
            return

        logger.info("Stopping one-sided quoting strategy")
        self._halt()
        await self.cancel_all_orders()
        await self.wait_for_pending_tasks()
        logger.info("Quoting strategy stopped")

    async def cancel_all_orders(self) -> list[str]:
        """Cancel every active order concurrently. Returns symbols left quoting."""
        symbols = list(self._active_orders)
        if not symbols:
            return []

        results = await asyncio.gather(
            *(self._retract(symbol) for symbol in symbols),
            return_exceptions=True,
        )

        remaining = []
        for symbol, result in zip(symbols, results):
            if isinstance(result, BaseException):
                logger.error(f"Cancel failed for {symbol}: {result}")
                remaining.append(symbol)
            elif not result:
                logger.warning(f"Cancel for {symbol} not confirmed, order still tracked")
                remaining.append(symbol)
        return remaining

    # Event inputs

    async def on_market_data(self, market_data: MarketData) -> None:
        """Record a snapshot and requote if the symbol is due."""
        symbol = market_data.symbol
        self._market_data[symbol] = market_data
        self._risk_manager.mark_to_market(symbol, market_data.mid_price)

        if not self.is_running or symbol not in self._settings.symbols:
            return
        last = self._last_requote.get(symbol)
        elapsed_ms = (self._clock() - last) * 1000 if last is not None else None
        if elapsed_ms is None or elapsed_ms >= self._settings.quote_update_frequency_ms:
            await self.update_quotes(symbol)

    def on_order_book(self, order_book: OrderBook) -> None:
        self._order_books[order_book.symbol] = order_book

    async def process_signal(self, signal: Signal) -> None:
        """Store the latest signal and requote when it is actionable.

        Signals below the confidence threshold still requote a QUOTING
        symbol, so a weakening signal retracts the resting order.
        """
        self._signals[signal.symbol] = signal
        if not self.is_running or signal.symbol not in self._settings.symbols:
            return
        if (
            signal.confidence >= self._settings.confidence_threshold
            or self.get_symbol_state(signal.symbol) == SymbolQuoteState.QUOTING
        ):
            await self.update_quotes(signal.symbol)

    async def sweep(self) -> None:
        """Reconcile orders and requote every configured symbol."""
        if not self.is_running:
            return
        await self.reconcile_orders()
        for symbol in self._settings.symbols:
            await self.update_quotes(symbol)

    # Requote cycle

    async def update_quotes(self, symbol: str) -> None:
        """Run one cancel-then-place cycle for `symbol`, coalescing requests."""
        if symbol in self._cycles:
            self._requote_pending.add(symbol)
            return

        done = self._cycles[symbol] = asyncio.Event()
        try:
            while True:
                self._requote_pending.discard(symbol)
                await self._requote(symbol)
                if symbol not in self._requote_pending or not self.is_running:
                    break
        finally:
            del self._cycles[symbol]
            self._requote_pending.discard(symbol)
            done.set()

    async def _retract(self, symbol: str) -> bool:
        """Cancel the symbol's order once no other cycle is running for it."""
        while symbol in self._cycles:
            await self._cycles[symbol].wait()

        done = self._cycles[symbol] = asyncio.Event()
        try:
            return await self._cancel_symbol(symbol)
        finally:
            del self._cycles[symbol]
            done.set()

    async def _requote(self, symbol: str) -> None:
        self._last_requote[symbol] = self._clock()
        if not self.is_running:
            return

        if symbol in self._active_orders and not await self._cancel_symbol(symbol):
            logger.warning(f"Skipping requote for {symbol}: previous order not confirmed cancelled")
            return

        signal = self._signals.get(symbol)
        market_data = self._market_data.get(symbol)
        if signal is None or market_data is None:
            return

        decision = self.generate_trading_decision(
            signal, market_data, self._order_books.get(symbol)
        )
        if decision.is_hold:
            logger.debug(f"HOLD {symbol}: {decision.reason}")
            return
        if not self.is_running:
            return

        await self._place(decision)

    def generate_trading_decision(
        self,
        signal: Signal,
        market_data: MarketData,
        order_book: OrderBook | None = None,
    ) -> TradingDecision:
        """Turn a signal and market snapshot into a BUY, SELL or HOLD decision.

        Args:
            signal: Latest signal for the symbol.
            market_data: Latest top-of-book snapshot.
            order_book: Latest order book, preferred for reference prices.

        Returns:
            TradingDecision. HOLD decisions carry the reason in `reason`.
        """
        symbol = signal.symbol
        if signal.direction == Direction.NEUTRAL:
            return self._hold(signal, "neutral signal")
        if signal.confidence < self._settings.confidence_threshold:
            return self._hold(
                signal,
                f"confidence {signal.confidence} below threshold "
                f"{self._settings.confidence_threshold}",
            )

        side = OrderSide.BUY if signal.direction == Direction.LONG else OrderSide.SELL
        best_bid = market_data.bid
        best_ask = market_data.ask
        if order_book is not None:
            if order_book.best_bid is not None:
                best_bid = order_book.best_bid
            if order_book.best_ask is not None:
                best_ask = order_book.best_ask

        price = calculate_quote_price(
            side,
            best_bid,
            best_ask,
            market_data.mid_price,
            market_data.spread,
            total_aggressiveness(self._settings.aggressiveness_factor, signal.confidence),
            self._settings.tick_size_for(symbol),
        )
        size = self._quote_size(signal, market_data)

        reason = self._validate(symbol, size, price, market_data)
        if reason:
            return self._hold(signal, reason, RiskLevel.HIGH)

        return TradingDecision(
            symbol=symbol,
            action=DecisionAction.BUY if side == OrderSide.BUY else DecisionAction.SELL,
            side=side,
            size=size,
            price=price,
            order_type=OrderType.LIMIT,
            reason=f"{signal.direction.value} signal ({signal.confidence:.2f} confidence): {signal.reason}",
            risk_level=assess_risk_level(
                signal.confidence,
                size,
                self._settings.max_position_size,
                market_data.spread,
                market_data.mid_price,
            ),
            signal=signal,
        )

    def _quote_size(self, signal: Signal, market_data: MarketData) -> Decimal:
        max_size = self._settings.max_position_size
        size = calculate_quote_size(
            self._settings.base_order_size, signal.confidence, signal.strength
        )

        position = self._risk_manager.get_position(signal.symbol)
        current = position.size if position else ZERO
        size = min(
            size,
            max_size - current,
            self._risk_manager.get_max_position_size(signal.symbol, size, market_data.mid_price),
        )
        size = max(ZERO, min(size, max_size))
        return (size / self._settings.size_step).to_integral_value(ROUND_DOWN) * self._settings.size_step

    def _validate(
        self, symbol: str, size: Decimal, price: Decimal, market_data: MarketData
    ) -> str | None:
        if size < self._settings.min_order_size:
            return f"size {size} below minimum {self._settings.min_order_size}"
        if price <= 0:
            return f"invalid price {price}"
        if market_data.mid_price <= 0:
            return "invalid mid price"
        spread_percent = market_data.spread / market_data.mid_price * 100
        if spread_percent > self._settings.max_spread_percent:
            return f"spread {spread_percent:.3f}% above {self._settings.max_spread_percent}%"
        if not self._risk_manager.can_trade(symbol):
            return "risk manager denied trading"
        return None

    def _hold(self, signal: Signal, reason: str, risk_level: RiskLevel = RiskLevel.LOW) -> TradingDecision:
        return TradingDecision(
            symbol=signal.symbol,
            action=DecisionAction.HOLD,
            side=None,
            size=ZERO,
            price=ZERO,
            order_type=OrderType.LIMIT,
            reason=reason,
            risk_level=risk_level,
            signal=signal,
        )

    # Orders

    async def _place(self, decision: TradingDecision) -> Order | None:
        symbol = decision.symbol
        try:
            order = await self._exchange.place_order(
                symbol,
                decision.side,
                decision.order_type,
                decision.size,
                decision.price,
                client_order_id=f"hm-{symbol}-{next(self._client_ids)}",
            )
        except ExchangeError as e:
            logger.error(f"Order placement failed for {symbol}: {e}")
            return None

        self._active_orders[symbol] = order
        self._risk_manager.add_pending_order(order)
        self._quotes_placed += 1
        logger.info(
            f"Quoted {symbol}: {order.side.value} {order.amount} @ {order.price} "
            f"[{decision.risk_level.value}] ({order.id})"
        )

        if not self.is_running:
            logger.warning(f"Strategy stopped while placing {order.id}, cancelling")
            if not await self._cancel_symbol(symbol):
                logger.error(f"Could not cancel {order.id} placed during stop")
        return order

    async def _cancel_symbol(self, symbol: str) -> bool:
        """Cancel the symbol's order. Returns True once the symbol is free."""
        order = self._active_orders.get(symbol)
        if order is None:
            return True

        confirmed = False
        try:
            confirmed = await self._exchange.cancel_order(order.id, symbol)
        except ExchangeError as e:
            logger.warning(f"Cancel of {order.id} failed: {e}")

        if confirmed:
            self._release(symbol, order)
            self._quotes_cancelled += 1
            logger.debug(f"Cancelled {order.id} for {symbol}")
            return True

        try:
            current = await self._exchange.get_order(order.id, symbol)
        except ExchangeError as e:
            logger.warning(f"Status lookup of {order.id} failed: {e}")
            return False

        self._apply_fills(order, current)
        if current.status.is_terminal:
            self._release(symbol, order)
            if current.status == OrderStatus.CANCELLED:
                self._quotes_cancelled += 1
            return True
        return False

    async def reconcile_orders(self) -> None:
        """Apply fills reported by the exchange and drop terminal orders."""
        if not self._active_orders:
            return
        try:
            open_orders = {o.id: o for o in await self._exchange.get_open_orders()}
        except ExchangeError as e:
            logger.warning(f"Order reconciliation failed: {e}")
            return

        for symbol, tracked in list(self._active_orders.items()):
            current = open_orders.get(tracked.id)
            if current is None:
                try:
                    current = await self._exchange.get_order(tracked.id, symbol)
                except ExchangeError as e:
                    logger.warning(f"Status lookup of {tracked.id} failed: {e}")
                    continue
            if self._active_orders.get(symbol) is not tracked:
                continue

            self._apply_fills(tracked, current)
            if current.status.is_terminal:
                self._release(symbol, tracked)

    def _apply_fills(self, tracked: Order, current: Order) -> None:
        """Forward the fill delta between `tracked` and `current` to risk."""
        delta = current.filled - tracked.filled
        if delta > 0:
            if tracked.filled > 0 and tracked.avg_fill_price is not None and current.avg_fill_price is not None:
                price = (
                    current.avg_fill_price * current.filled
                    - tracked.avg_fill_price * tracked.filled
                ) / delta
            else:
                price = current.avg_fill_price or tracked.price
            fees = current.fees - tracked.fees
            rebates = current.rebates - tracked.rebates

            tracked.filled = current.filled
            tracked.remaining = current.remaining
            tracked.avg_fill_price = current.avg_fill_price
            tracked.fees = current.fees
            tracked.rebates = current.rebates
            tracked.status = current.status
            tracked.updated_at = current.updated_at

            try:
                self._risk_manager.process_order_fill(
                    tracked, price, delta, fees=fees, rebates=rebates
                )
            except ValueError as e:
                logger.error(f"Rejected fill for {tracked.id}: {e}")

            self._total_rebates += rebates
            if tracked.is_filled:
                self._fills += 1
                self._fill_seconds.append(
                    (current.updated_at - tracked.created_at).total_seconds()
                )
            logger.info(f"Fill {tracked.id}: {delta} {tracked.symbol} @ {price}")
        else:
            tracked.status = current.status

    def _release(self, symbol: str, order: Order) -> None:
        if self._active_orders.get(symbol) is order:
            del self._active_orders[symbol]
        self._risk_manager.remove_pending_order(order.id)

    async def _cancel_orphan_orders(self) -> None:
        for symbol in self._settings.symbols:
            try:
                orders = await self._exchange.get_open_orders(symbol)
            except ExchangeError as e:
                logger.warning(f"Could not list open orders for {symbol}: {e}")
                continue
            for order in orders:
                try:
                    await self._exchange.cancel_order(order.id, symbol)
                    logger.info(f"Cancelled orphan order {order.id} for {symbol}")
                except ExchangeError as e:
                    logger.warning(f"Could not cancel orphan order {order.id}: {e}")

    # Risk events

    def _on_risk_alert(self, alert: RiskAlert) -> None:
        if alert.level == AlertLevel.EMERGENCY:
            logger.critical(f"Emergency risk alert, halting quoting: {alert.message}")
            self._emergency_halt()
        elif alert.level == AlertLevel.CRITICAL:
            logger.error(f"Critical risk alert (no automatic reduction): {alert.message}")
        else:
            logger.warning(f"Risk alert: {alert.message}")

    def _on_emergency_stop(self, alert: RiskAlert) -> None:
        logger.critical(f"Emergency stop received: {alert.message}")
        self._emergency_halt()

    def _emergency_halt(self) -> None:
        self._halt()
        # An EMERGENCY alert also arrives as an emergency stop; cancel once
        if not self._active_orders or self._tasks:
            return
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            logger.error("No running event loop, active orders were not cancelled")
            return
        task = loop.create_task(self.cancel_all_orders())
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    def _halt(self) -> None:
        self._state = StrategyState.STOPPED
        if self._scheduler is not None:
            self._scheduler.cancel(SWEEP_KEY)

    async def wait_for_pending_tasks(self) -> None:
        """Wait for cancel tasks spawned by emergency handling."""
        if self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    # Reporting

    def get_statistics(self) -> StrategyStatistics:
        fill_rate = (
            Decimal(self._fills) / Decimal(self._quotes_placed)
            if self._quotes_placed
            else ZERO
        )
        avg_fill = (
            sum(self._fill_seconds) / len(self._fill_seconds) if self._fill_seconds else 0.0
        )
        return StrategyStatistics(
            is_running=self.is_running,
            active_orders=len(self._active_orders),
            positions=len(self._risk_manager.get_all_positions()),
            quotes_placed=self._quotes_placed,
            quotes_cancelled=self._quotes_cancelled,
            fills=self._fills,
            fill_rate=fill_rate,
            avg_time_to_fill_seconds=avg_fill,
            total_rebates=self._total_rebates,
        )
