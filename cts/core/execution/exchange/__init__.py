"""交易所接口"""

from .base import ExchangeClient
from .huobi import HuobiClient

__all__ = [
    "ExchangeClient",
    "HuobiClient",
]
