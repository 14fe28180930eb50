"""Trading data models shared by the strategy, risk manager and exchange."""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from decimal import Decimal
from enum import Enum


def utc_now() -> datetime:
    """Return the current time as an aware UTC datetime."""
    return datetime.now(timezone.utc)


def _require_finite(name: str, value: Decimal) -> None:
    if not value.is_finite():
        raise ValueError(f"{name} must be a finite number, got {value}")


class Direction(Enum):
    """Directional label of a trading signal."""

    LONG = "LONG"
    SHORT = "SHORT"
    NEUTRAL = "NEUTRAL"


class OrderSide(Enum):
    """Side of an order or position (buy = long, sell = short)."""

    BUY = "buy"
    SELL = "sell"

    @property
    def opposite(self) -> "OrderSide":
        return OrderSide.SELL if self is OrderSide.BUY else OrderSide.BUY


class OrderType(Enum):
    """Supported order types."""

    MARKET = "market"
    LIMIT = "limit"


class OrderStatus(Enum):
    """Lifecycle status of an order."""

    PENDING = "pending"
    OPEN = "open"
    PARTIALLY_FILLED = "partially_filled"
    FILLED = "filled"
    CANCELLED = "cancelled"
    REJECTED = "rejected"
    EXPIRED = "expired"

    @property
    def is_terminal(self) -> bool:
        """Return True if the order can no longer change."""
        return self in (
            OrderStatus.FILLED,
            OrderStatus.CANCELLED,
            OrderStatus.REJECTED,
            OrderStatus.EXPIRED,
        )


@dataclass
class Order:
    """An order submitted to the exchange.

    Attributes:
        id: Exchange order ID.
        symbol: Traded symbol (e.g., "ETH").
        side: Buy or sell.
        type: Market or limit.
        amount: Total order size.
        price: Limit price (None for market orders).
        status: Current lifecycle status.
        filled: Cumulative filled size.
        remaining: Size still resting on the book.
        avg_fill_price: Average price of the filled portion.
        fees: Cumulative fees paid on this order.
        rebates: Cumulative maker rebates earned on this order.
        maker: Whether the order provides liquidity.
        client_order_id: Caller-assigned identifier.
        created_at: Submission time.
        updated_at: Last status change.
    """

    id: str
    symbol: str
    side: OrderSide
    type: OrderType
    amount: Decimal
    price: Decimal | None = None
    status: OrderStatus = OrderStatus.PENDING
    filled: Decimal = Decimal("0")
    remaining: Decimal | None = None
    avg_fill_price: Decimal | None = None
    fees: Decimal = Decimal("0")
    rebates: Decimal = Decimal("0")
    maker: bool = True
    client_order_id: str = ""
    created_at: datetime = field(default_factory=utc_now)
    updated_at: datetime = field(default_factory=utc_now)

    def __post_init__(self) -> None:
        _require_finite("amount", self.amount)
        if self.amount <= 0:
            raise ValueError(f"Order amount must be positive, got {self.amount}")
        if self.price is not None:
            _require_finite("price", self.price)
        if self.remaining is None:
            self.remaining = self.amount - self.filled

    @property
    def notional(self) -> Decimal:
        """Order value at its limit price (zero for market orders)."""
        return self.amount * self.price if self.price is not None else Decimal("0")

    @property
    def is_filled(self) -> bool:
        return self.status is OrderStatus.FILLED or self.filled >= self.amount


@dataclass
class Position:
    """An open position in one symbol.

    Attributes:
        symbol: Traded symbol.
        side: BUY for long, SELL for short.
        size: Absolute position size (never negative).
        entry_price: Size-weighted average entry price.
        mark_price: Latest mark price.
        unrealized_pnl: Profit/loss of the open size at the mark price.
        realized_pnl: Profit/loss realized by reducing or reversing.
        fees: Fees accumulated on this position.
        rebates: Rebates accumulated on this position.
        opened_at: When the position was opened.
    """

    symbol: str
    side: OrderSide
    size: Decimal
    entry_price: Decimal
    mark_price: Decimal
    unrealized_pnl: Decimal = Decimal("0")
    realized_pnl: Decimal = Decimal("0")
    fees: Decimal = Decimal("0")
    rebates: Decimal = Decimal("0")
    opened_at: datetime = field(default_factory=utc_now)

    def __post_init__(self) -> None:
        for name in ("size", "entry_price", "mark_price"):
            value = getattr(self, name)
            _require_finite(name, value)
            if value < 0:
                raise ValueError(f"Position {name} cannot be negative, got {value}")

    @property
    def notional(self) -> Decimal:
        """Position value at the mark price."""
        return self.size * self.mark_price

    @property
    def is_long(self) -> bool:
        return self.side is OrderSide.BUY

    def pnl_at(self, price: Decimal, size: Decimal | None = None) -> Decimal:
        """Profit/loss of closing `size` (default: all) at `price`."""
        close_size = self.size if size is None else size
        if self.is_long:
            return (price - self.entry_price) * close_size
        return (self.entry_price - price) * close_size


@dataclass(frozen=True)
class Signal:
    """Directional trading signal for one symbol.

    Attributes:
        symbol: Symbol the signal applies to.
        direction: LONG, SHORT or NEUTRAL.
        confidence: Confidence in [0, 1].
        strength: Strength in [0, 1].
        reason: Human-readable explanation.
        timestamp: When the signal was produced.
        indicators: Component values that produced the signal.
    """

    symbol: str
    direction: Direction
    confidence: Decimal
    strength: Decimal
    reason: str = ""
    timestamp: datetime = field(default_factory=utc_now)
    indicators: dict[str, Decimal] = field(default_factory=dict)

    def __post_init__(self) -> None:
        for name in ("confidence", "strength"):
            value = getattr(self, name)
            _require_finite(name, value)
            if not Decimal("0") <= value <= Decimal("1"):
                raise ValueError(f"Signal {name} must be within [0, 1], got {value}")
