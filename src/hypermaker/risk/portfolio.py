"""Position ledger: cash, open positions and the fill-application algorithm."""

from dataclasses import dataclass, replace
from datetime import datetime
from decimal import Decimal

from hypermaker.models.trading import OrderSide, Position, utc_now
from hypermaker.risk.models import ZERO, Portfolio


@dataclass(frozen=True)
class FillResult:
    """Outcome of applying one fill to the ledger.

    Attributes:
        position: Position after the fill, or None if it was closed.
        realized_pnl: P&L realized by this fill.
        closing: Whether the fill reduced or reversed an existing position.
        reversed: Whether the position flipped side.
    """

    position: Position | None
    realized_pnl: Decimal
    closing: bool = False
    reversed: bool = False


class PositionLedger:
    """Owns positions and cash. Every mutation recomputes the portfolio."""

    def __init__(self, initial_capital: Decimal):
        self.initial_capital = initial_capital
        self.cash = initial_capital
        self.realized_pnl = ZERO
        self.total_fees = ZERO
        self.total_rebates = ZERO
        self._positions: dict[str, Position] = {}
        self._portfolio = Portfolio(total_value=initial_capital, cash=initial_capital)

    def __contains__(self, symbol: str) -> bool:
        return symbol in self._positions

    def __len__(self) -> int:
        return len(self._positions)

    @property
    def portfolio(self) -> Portfolio:
        return self._portfolio

    def get(self, symbol: str) -> Position | None:
        return self._positions.get(symbol)

    def positions(self) -> list[Position]:
        return list(self._positions.values())

    def set_position(self, position: Position) -> Position | None:
        """Store a copy of `position`; zero size removes the symbol."""
        if position.size == 0:
            self._positions.pop(position.symbol, None)
            self._recompute()
            return None

        stored = replace(position)
        stored.unrealized_pnl = stored.pnl_at(stored.mark_price)
        self._positions[stored.symbol] = stored
        self._recompute()
        return stored

    def remove(self, symbol: str) -> Position | None:
        position = self._positions.pop(symbol, None)
        if position is not None:
            self._recompute()
        return position

    def mark(self, symbol: str, price: Decimal) -> Position | None:
        """Update mark price and unrealized P&L of an open position."""
        position = self._positions.get(symbol)
        if position is None:
            return None
        position.mark_price = price
        position.unrealized_pnl = position.pnl_at(price)
        self._recompute()
        return position

    def apply_fill(
        self,
        symbol: str,
        side: OrderSide,
        price: Decimal,
        size: Decimal,
        fees: Decimal = ZERO,
        rebates: Decimal = ZERO,
        timestamp: datetime | None = None,
    ) -> FillResult:
        """Apply a fill and return the resulting position state.

        Same-side fills average the entry price by size. Opposite-side fills
        at least as large as the position realize P&L on the whole position
        and flip it (the remainder opens at the fill price). Smaller opposite
        fills realize P&L on the fill size and keep the entry price.

        Raises:
            ValueError: If price or size is non-positive or not finite.
        """
        if not price.is_finite() or price <= 0:
            raise ValueError(f"Fill price must be positive, got {price}")
        if not size.is_finite() or size <= 0:
            raise ValueError(f"Fill size must be positive, got {size}")

        timestamp = timestamp or utc_now()
        existing = self._positions.get(symbol)
        realized = ZERO
        closing = False
        reversed_side = False

        if existing is None:
            position = Position(
                symbol=symbol,
                side=side,
                size=size,
                entry_price=price,
                mark_price=price,
                opened_at=timestamp,
            )
            self._positions[symbol] = position
        elif existing.side == side:
            position = existing
            new_size = position.size + size
            position.entry_price = (
                position.entry_price * position.size + price * size
            ) / new_size
            position.size = new_size
        elif size >= existing.size:
            position = existing
            realized = position.pnl_at(price)
            closing = True
            remainder = size - position.size
            position.realized_pnl += realized
            if remainder == 0:
                del self._positions[symbol]
                position = None
            else:
                reversed_side = True
                position.side = side
                position.size = remainder
                position.entry_price = price
                position.opened_at = timestamp
        else:
            position = existing
            realized = position.pnl_at(price, size)
            closing = True
            position.size -= size
            position.realized_pnl += realized

        if position is not None:
            position.fees += fees
            position.rebates += rebates
            position.mark_price = price
            position.unrealized_pnl = position.pnl_at(price)

        self.realized_pnl += realized
        self.total_fees += fees
        self.total_rebates += rebates
        self.cash += realized + rebates - fees
        self._recompute()

        return FillResult(
            position=position,
            realized_pnl=realized,
            closing=closing,
            reversed=reversed_side,
        )

    def _recompute(self) -> None:
        positions = list(self._positions.values())
        notional = sum((p.notional for p in positions), ZERO)
        unrealized = sum((p.unrealized_pnl for p in positions), ZERO)
        self._portfolio = Portfolio(
            total_value=self.cash + notional + unrealized,
            cash=self.cash,
            positions=[replace(p) for p in positions],
            unrealized_pnl=unrealized,
            realized_pnl=self.realized_pnl,
            total_fees=self.total_fees,
            total_rebates=self.total_rebates,
            net_pnl=self.realized_pnl + unrealized + self.total_rebates - self.total_fees,
        )
