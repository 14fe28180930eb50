"""Configuration for signal generation."""

from decimal import Decimal

from pydantic import BaseModel, Field


class SignalSettings(BaseModel):
    """Settings for the signal generator.

    Attributes:
        momentum_periods: Lookbacks (in ticks) of the momentum component.
        momentum_threshold_percent: Minimum weighted momentum for a direction.
        momentum_full_confidence_percent: Momentum that maps to confidence 1.
        book_depth: Book levels summed by the imbalance component.
        imbalance_threshold: Minimum bid/ask volume imbalance for a direction.
        order_flow_window: Number of recent trades considered.
        aggressive_size_multiplier: Trades larger than this multiple of the
            average size count as aggressive.
        order_flow_threshold: Minimum aggressive flow imbalance for a direction.
        momentum_weight: Weight of the momentum component.
        imbalance_weight: Weight of the book-imbalance component.
        order_flow_weight: Weight of the order-flow component.
        combine_threshold: Net weighted score needed for LONG/SHORT.
        signal_smoothing: Weight of the previous signal when smoothing.
        direction_change_factor: New confidence must exceed the previous one
            by this factor to flip direction.
        min_confidence: Signals below this confidence are not emitted.
        max_history: Maximum prices and trades kept per symbol.
    """

    momentum_periods: list[int] = Field(default_factory=lambda: [5, 15, 30])
    momentum_threshold_percent: Decimal = Field(default=Decimal("0.02"), ge=0)
    momentum_full_confidence_percent: Decimal = Field(default=Decimal("0.2"), gt=0)
    book_depth: int = Field(default=5, ge=1)
    imbalance_threshold: Decimal = Field(default=Decimal("0.3"), ge=0, le=1)
    order_flow_window: int = Field(default=20, ge=1)
    aggressive_size_multiplier: Decimal = Field(default=Decimal("1.5"), gt=0)
    order_flow_threshold: Decimal = Field(default=Decimal("0.3"), ge=0, le=1)
    momentum_weight: Decimal = Field(default=Decimal("0.5"), ge=0)
    imbalance_weight: Decimal = Field(default=Decimal("0.3"), ge=0)
    order_flow_weight: Decimal = Field(default=Decimal("0.2"), ge=0)
    combine_threshold: Decimal = Field(default=Decimal("0.1"), ge=0)
    signal_smoothing: Decimal = Field(default=Decimal("0.3"), ge=0, le=1)
    direction_change_factor: Decimal = Field(default=Decimal("1.2"), ge=1)
    min_confidence: Decimal = Field(default=Decimal("0.6"), ge=0, le=1)
    max_history: int = Field(default=1000, ge=10)
