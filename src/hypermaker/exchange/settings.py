"""Configuration for the paper exchange."""

from decimal import Decimal

from pydantic import BaseModel, Field


class PaperExchangeSettings(BaseModel):
    """Settings for the simulated exchange.

    Attributes:
        maker_rebate_rate: Rebate credited on maker fills, as a fraction of notional.
        taker_fee_rate: Fee charged on taker fills, as a fraction of notional.
        order_id_prefix: Prefix of generated order ids.
        closed_order_history: Filled or cancelled orders kept for lookups.
    """

    maker_rebate_rate: Decimal = Field(default=Decimal("0.00003"), ge=0)
    taker_fee_rate: Decimal = Field(default=Decimal("0.00035"), ge=0)
    order_id_prefix: str = "paper"
    closed_order_history: int = Field(default=1000, ge=1)
