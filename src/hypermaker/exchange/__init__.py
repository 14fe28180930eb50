"""Exchange client contract and the paper implementation."""

from .base import ExchangeClient, ExchangeError
from .paper_client import PaperExchangeClient
from .settings import PaperExchangeSettings

__all__ = [
    "ExchangeClient",
    "ExchangeError",
    "PaperExchangeClient",
    "PaperExchangeSettings",
]
