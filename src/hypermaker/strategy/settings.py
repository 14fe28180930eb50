"""Configuration for the one-sided quoting strategy."""

from decimal import Decimal

from pydantic import BaseModel, Field


class QuotingSettings(BaseModel):
    """Settings for one-sided quoting.

    Attributes:
        symbols: Symbols quoted by the strategy.
        max_position_size: Absolute position size the strategy may build.
        base_order_size: Quote size before confidence/strength scaling.
        min_order_size: Smallest size worth quoting.
        size_step: Quote sizes are rounded down to this increment.
        confidence_threshold: Minimum signal confidence to quote.
        aggressiveness_factor: Base fraction of the spread to improve by.
        quote_update_frequency_ms: Minimum time between requotes of a symbol,
            also the period of the sweep over all symbols.
        max_spread_percent: Widest spread (percent of mid) still quoted.
        tick_sizes: Price increment per symbol.
        default_tick_size: Price increment for unlisted symbols.
        cancel_orphan_orders_on_start: Cancel open orders left by a previous
            run before quoting.
    """

    symbols: list[str] = Field(default_factory=lambda: ["ETH", "BTC"])
    max_position_size: Decimal = Field(default=Decimal("10"), gt=0)
    base_order_size: Decimal = Field(default=Decimal("1"), gt=0)
    min_order_size: Decimal = Field(default=Decimal("0.01"), gt=0)
    size_step: Decimal = Field(default=Decimal("0.001"), gt=0)
    confidence_threshold: Decimal = Field(default=Decimal("0.7"), ge=0, le=1)
    aggressiveness_factor: Decimal = Field(default=Decimal("0.5"), ge=0, le=1)
    quote_update_frequency_ms: int = Field(default=1000, ge=1)
    max_spread_percent: Decimal = Field(default=Decimal("1"), gt=0)
    tick_sizes: dict[str, Decimal] = Field(
        default_factory=lambda: {
            "ETH": Decimal("0.01"),
            "BTC": Decimal("0.01"),
            "SOL": Decimal("0.001"),
        }
    )
    default_tick_size: Decimal = Field(default=Decimal("0.01"), gt=0)
    cancel_orphan_orders_on_start: bool = True

    def tick_size_for(self, symbol: str) -> Decimal:
        return self.tick_sizes.get(symbol, self.default_tick_size)
