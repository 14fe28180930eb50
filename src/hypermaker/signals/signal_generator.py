"""Signal generator combining momentum, book imbalance and order flow."""

import logging
from collections import deque
from dataclasses import dataclass, replace
from decimal import Decimal
from typing import Callable

from hypermaker.models.market import MarketData, OrderBook, Trade
from hypermaker.models.trading import Direction, OrderSide, Signal, utc_now
from hypermaker.signals.settings import SignalSettings


logger = logging.getLogger(__name__)

ZERO = Decimal("0")
ONE = Decimal("1")


@dataclass(frozen=True)
class ComponentSignal:
    """Output of a single indicator component."""

    direction: Direction
    confidence: Decimal
    strength: Decimal
    reason: str


NEUTRAL_COMPONENT = ComponentSignal(Direction.NEUTRAL, ZERO, ZERO, "no data")


def _clamp(value: Decimal, low: Decimal = ZERO, high: Decimal = ONE) -> Decimal:
    return max(low, min(high, value))


class SignalGenerator:
    """Turns market events into directional signals per symbol.

    Prices come from MarketData mid prices, imbalance from the latest order
    book and order flow from public trades. A signal is emitted when its
    confidence reaches `min_confidence`. A directional signal that fades
    below it is re-emitted once as NEUTRAL so subscribers can retract quotes.
    Each emission supersedes the previous one for its symbol.
    """

    def __init__(self, settings: SignalSettings | None = None):
        self._settings = settings or SignalSettings()
        self._prices: dict[str, deque[Decimal]] = {}
        self._trades: dict[str, deque[Trade]] = {}
        self._books: dict[str, OrderBook] = {}
        self._latest: dict[str, Signal] = {}
        self._history_size = self._settings.max_history
        self._callbacks: list[Callable[[Signal], None]] = []

    @property
    def min_history(self) -> int:
        return max(self._settings.momentum_periods) + 1

    def add_callback(self, callback: Callable[[Signal], None]) -> None:
        """Add a callback to be called for each emitted signal."""
        self._callbacks.append(callback)

    def get_latest_signal(self, symbol: str) -> Signal | None:
        return self._latest.get(symbol)

    def process_order_book(self, book: OrderBook) -> None:
        self._books[book.symbol] = book

    def process_trade(self, trade: Trade) -> None:
        trades = self._trades.setdefault(trade.symbol, deque(maxlen=self._history_size))
        trades.append(trade)

    def process_market_data(self, market_data: MarketData) -> Signal | None:
        """Record a price and emit a signal if one qualifies."""
        prices = self._prices.setdefault(market_data.symbol, deque(maxlen=self._history_size))
        prices.append(market_data.mid_price)

        signal = self.generate_signal(market_data.symbol)
        if signal is None:
            return None
        if signal.confidence < self._settings.min_confidence:
            previous = self._latest.get(signal.symbol)
            if previous is None or previous.direction == Direction.NEUTRAL:
                return None
            # Faded below the gate: retract the previous directional signal once
            signal = replace(
                signal,
                direction=Direction.NEUTRAL,
                reason=f"signal faded ({signal.reason})",
            )

        self._latest[signal.symbol] = signal
        logger.debug(
            f"Signal {signal.symbol}: {signal.direction.value} "
            f"confidence={signal.confidence:.3f} strength={signal.strength:.3f}"
        )
        for callback in list(self._callbacks):
            try:
                callback(signal)
            except Exception:
                logger.exception(f"Signal callback {callback!r} failed")
        return signal

    def generate_signal(self, symbol: str) -> Signal | None:
        """Compute a smoothed signal, or None without enough price history."""
        prices = self._prices.get(symbol)
        if not prices or len(prices) < self.min_history:
            return None

        momentum = self.momentum_component(list(prices))
        imbalance = self.imbalance_component(self._books.get(symbol))
        order_flow = self.order_flow_component(list(self._trades.get(symbol, ())))

        combined = self.combine(
            [
                (momentum, self._settings.momentum_weight),
                (imbalance, self._settings.imbalance_weight),
                (order_flow, self._settings.order_flow_weight),
            ]
        )
        smoothed = self._smooth(symbol, combined)

        return Signal(
            symbol=symbol,
            direction=smoothed.direction,
            confidence=_clamp(smoothed.confidence),
            strength=_clamp(smoothed.strength),
            reason=smoothed.reason,
            timestamp=utc_now(),
            indicators={
                "momentum": momentum.strength,
                "imbalance": imbalance.strength,
                "order_flow": order_flow.strength,
            },
        )

    def momentum_component(self, prices: list[Decimal]) -> ComponentSignal:
        """Weighted percent change over each lookback (shorter weighs more)."""
        current = prices[-1]
        weighted = ZERO
        total_weight = ZERO
        for index, period in enumerate(self._settings.momentum_periods):
            if len(prices) <= period:
                continue
            past = prices[-1 - period]
            if past <= 0:
                continue
            weight = ONE / (index + 1)
            weighted += (current - past) / past * 100 * weight
            total_weight += weight

        if total_weight == 0:
            return NEUTRAL_COMPONENT

        momentum = weighted / total_weight
        score = _clamp(abs(momentum) / self._settings.momentum_full_confidence_percent)
        threshold = self._settings.momentum_threshold_percent
        if momentum > threshold:
            direction = Direction.LONG
        elif momentum < -threshold:
            direction = Direction.SHORT
        else:
            direction = Direction.NEUTRAL
        return ComponentSignal(direction, score, score, f"momentum {momentum:.3f}%")

    def imbalance_component(self, book: OrderBook | None) -> ComponentSignal:
        """Bid versus ask volume over the top levels of the book."""
        if book is None:
            return NEUTRAL_COMPONENT
        depth = self._settings.book_depth
        bid_volume = sum((level.size for level in book.bids[:depth]), ZERO)
        ask_volume = sum((level.size for level in book.asks[:depth]), ZERO)
        total = bid_volume + ask_volume
        if total == 0:
            return NEUTRAL_COMPONENT

        imbalance = (bid_volume - ask_volume) / total
        threshold = self._settings.imbalance_threshold
        if imbalance > threshold:
            direction = Direction.LONG
        elif imbalance < -threshold:
            direction = Direction.SHORT
        else:
            direction = Direction.NEUTRAL
        score = _clamp(abs(imbalance))
        return ComponentSignal(direction, score, score, f"book imbalance {imbalance:.2f}")

    def order_flow_component(self, trades: list[Trade]) -> ComponentSignal:
        """Net aggressive buy versus sell volume over recent trades."""
        recent = trades[-self._settings.order_flow_window:]
        if not recent:
            return NEUTRAL_COMPONENT

        avg_size = sum((t.size for t in recent), ZERO) / len(recent)
        cutoff = avg_size * self._settings.aggressive_size_multiplier
        aggressive = [t for t in recent if t.size > cutoff]
        buy_volume = sum((t.size for t in aggressive if t.side == OrderSide.BUY), ZERO)
        sell_volume = sum((t.size for t in aggressive if t.side == OrderSide.SELL), ZERO)
        total = buy_volume + sell_volume
        if total == 0:
            return NEUTRAL_COMPONENT

        flow = (buy_volume - sell_volume) / total
        threshold = self._settings.order_flow_threshold
        if flow > threshold:
            direction = Direction.LONG
        elif flow < -threshold:
            direction = Direction.SHORT
        else:
            direction = Direction.NEUTRAL
        score = _clamp(abs(flow))
        return ComponentSignal(direction, score, score, f"order flow {flow:.2f}")

    def combine(self, components: list[tuple[ComponentSignal, Decimal]]) -> ComponentSignal:
        """Weight component scores into one direction, confidence and strength."""
        long_score = ZERO
        short_score = ZERO
        total_weight = ZERO
        reasons = []
        for component, weight in components:
            score = component.confidence * component.strength * weight
            if component.direction == Direction.LONG:
                long_score += score
            elif component.direction == Direction.SHORT:
                short_score += score
            total_weight += weight
            if component.direction != Direction.NEUTRAL:
                reasons.append(component.reason)

        total_score = long_score + short_score
        if total_score == 0 or total_weight == 0:
            return ComponentSignal(Direction.NEUTRAL, ZERO, ZERO, "no directional components")

        net_score = long_score - short_score
        strength = total_score / total_weight
        confidence = strength * abs(net_score) / total_score

        threshold = self._settings.combine_threshold
        if net_score > threshold:
            direction = Direction.LONG
        elif net_score < -threshold:
            direction = Direction.SHORT
        else:
            direction = Direction.NEUTRAL

        return ComponentSignal(
            direction,
            _clamp(confidence),
            _clamp(strength),
            "; ".join(reasons) or "mixed components",
        )

    def _smooth(self, symbol: str, new: ComponentSignal) -> ComponentSignal:
        previous = self._latest.get(symbol)
        if previous is None:
            return new

        keep = self._settings.signal_smoothing
        confidence = previous.confidence * keep + new.confidence * (ONE - keep)
        strength = previous.strength * keep + new.strength * (ONE - keep)

        direction = previous.direction
        if new.confidence > previous.confidence * self._settings.direction_change_factor:
            direction = new.direction
        return ComponentSignal(direction, confidence, strength, new.reason)
