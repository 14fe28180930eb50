"""Quote price, size and risk-level calculations."""

from decimal import ROUND_CEILING, ROUND_FLOOR, ROUND_HALF_UP, Decimal

from hypermaker.models.trading import OrderSide
from hypermaker.strategy.models import RiskLevel


ZERO = Decimal("0")
ONE = Decimal("1")
HALF = Decimal("0.5")
MID_MARGIN = Decimal("0.1")


def _clamp(value: Decimal, low: Decimal, high: Decimal) -> Decimal:
    return max(low, min(high, value))


def round_to_tick(price: Decimal, tick_size: Decimal, rounding: str = ROUND_HALF_UP) -> Decimal:
    """Round a price to a multiple of `tick_size` (half-up by default)."""
    return (price / tick_size).quantize(ONE, rounding=rounding) * tick_size


def total_aggressiveness(base: Decimal, confidence: Decimal) -> Decimal:
    """Base aggressiveness plus half the signal confidence, within [0, 1]."""
    return _clamp(base + confidence * HALF, ZERO, ONE)


def calculate_quote_price(
    side: OrderSide,
    best_bid: Decimal,
    best_ask: Decimal,
    mid_price: Decimal,
    spread: Decimal,
    aggressiveness: Decimal,
    tick_size: Decimal,
) -> Decimal:
    """Compute a passive quote price that never crosses the mid.

    Buys rest `spread * aggressiveness / 2` below the best bid and at least
    10% of the spread below mid. Sells mirror this above the best ask.

    Args:
        side: Quote side.
        best_bid: Reference best bid.
        best_ask: Reference best ask.
        mid_price: Current mid price.
        spread: Current spread.
        aggressiveness: Total aggressiveness in [0, 1].
        tick_size: Price increment.

    Returns:
        The tick-rounded quote price.
    """
    offset = spread * aggressiveness * HALF
    if side == OrderSide.BUY:
        bound = mid_price - spread * MID_MARGIN
        price = round_to_tick(min(best_bid - offset, bound), tick_size)
        if price > bound:
            price = round_to_tick(bound, tick_size, ROUND_FLOOR)
    else:
        bound = mid_price + spread * MID_MARGIN
        price = round_to_tick(max(best_ask + offset, bound), tick_size)
        if price < bound:
            price = round_to_tick(bound, tick_size, ROUND_CEILING)
    return price


def calculate_quote_size(base_size: Decimal, confidence: Decimal, strength: Decimal) -> Decimal:
    """Scale the base size by signal confidence and strength."""
    confidence_multiplier = _clamp(confidence, HALF, ONE)
    strength_multiplier = _clamp(strength + HALF, HALF, Decimal("1.5"))
    return base_size * confidence_multiplier * strength_multiplier


def assess_risk_level(
    confidence: Decimal,
    size: Decimal,
    max_position_size: Decimal,
    spread: Decimal,
    mid_price: Decimal,
) -> RiskLevel:
    """Score a decision from confidence, size ratio and spread width."""
    score = 0
    if confidence < Decimal("0.7"):
        score += 1
    if confidence < HALF:
        score += 1

    size_ratio = size / max_position_size if max_position_size > 0 else ONE
    if size_ratio > HALF:
        score += 1
    if size_ratio > Decimal("0.8"):
        score += 1

    if mid_price > 0:
        spread_percent = spread / mid_price * 100
        if spread_percent > HALF:
            score += 1
        if spread_percent > ONE:
            score += 1

    if score <= 1:
        return RiskLevel.LOW
    if score <= 3:
        return RiskLevel.MEDIUM
    return RiskLevel.HIGH
