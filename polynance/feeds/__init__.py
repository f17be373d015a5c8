from polynance.feeds.polynance_api import PolynanceApi
from polynance.feeds.resolver import InstrumentResolver, is_slug

__all__ = [
    "PolynanceApi",
    "InstrumentResolver",
    "is_slug",
]
