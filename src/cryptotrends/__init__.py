"""Cryptotrends package root."""

from cryptotrends.exceptions import (ConfigError, CryptoTrendsError,
                                     TransportError)
from cryptotrends.types import ChartKind, CurrencyCode, Selection

__all__ = [
    "ChartKind",
    "ConfigError",
    "CryptoTrendsError",
    "CurrencyCode",
    "Selection",
    "TransportError",
]
