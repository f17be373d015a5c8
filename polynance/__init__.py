"""Polynance: trade Polymarket YES/NO position tokens from Python."""

from polynance.client import PolynanceClient
from polynance.exceptions import (
    ConfigError,
    ErrorCode,
    PolynanceApiError,
    PolynanceError,
    UnsupportedProviderError,
)
from polynance.execution.models import ExecutionResult, TradeIntent
from polynance.models import Exchange, PositionToken

__all__ = [
    "PolynanceClient",
    "ConfigError",
    "ErrorCode",
    "PolynanceApiError",
    "PolynanceError",
    "UnsupportedProviderError",
    "ExecutionResult",
    "TradeIntent",
    "Exchange",
    "PositionToken",
]
