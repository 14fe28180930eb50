"""Configuration for the simulated market feed."""

from decimal import Decimal

from pydantic import BaseModel, Field


class MarketFeedSettings(BaseModel):
    """Settings for the random-walk market simulator.

    Attributes:
        initial_prices: Starting mid price per symbol.
        default_price: Starting mid price for symbols not listed above.
        volatility: Standard deviation of the per-tick log return.
        spread_bps: Quoted spread in basis points of mid.
        depth: Number of book levels per side.
        level_size: Mean size per book level.
        tick_size: Price increment of generated quotes.
        trade_probability: Chance of a public trade per symbol per tick.
        tick_interval_seconds: Delay between simulation steps.
        seed: Random seed (None for non-deterministic runs).
    """

    initial_prices: dict[str, Decimal] = Field(
        default_factory=lambda: {"ETH": Decimal("2000"), "BTC": Decimal("60000")}
    )
    default_price: Decimal = Field(default=Decimal("100"), gt=0)
    volatility: float = Field(default=0.0005, ge=0)
    spread_bps: float = Field(default=2.0, gt=0)
    depth: int = Field(default=5, ge=1)
    level_size: Decimal = Field(default=Decimal("5"), gt=0)
    tick_size: Decimal = Field(default=Decimal("0.01"), gt=0)
    trade_probability: float = Field(default=0.5, ge=0, le=1)
    tick_interval_seconds: float = Field(default=0.5, gt=0)
    seed: int | None = None
