"""Cryptotrends exception hierarchy.

All package-specific exceptions derive from :class:`CryptoTrendsError` so
callers can catch every pipeline-related error uniformly.
"""

from __future__ import annotations


class CryptoTrendsError(Exception):
    """Base class for cryptotrends exceptions.

    Derived exceptions should extend this class so that callers can catch all
    package-specific errors uniformly.
    """


class ConfigError(CryptoTrendsError):
    """Raised when configuration files or parameters are invalid."""


class TransportError(CryptoTrendsError):
    """Raised when retrieving market data fails.

    Covers network failures, non-2xx responses, timeouts and payloads that do
    not match the expected response schema.

    :param message: Human-readable description of the failure.
    :param asset_id: Asset whose retrieval failed, if known.
    """

    def __init__(self, message: str, asset_id: str | None = None) -> None:
        super().__init__(message)
        self.asset_id = asset_id


class SelectionError(CryptoTrendsError):
    """Raised when a selection transition receives invalid input."""


class ConversionError(CryptoTrendsError):
    """Raised when an exchange conversion cannot be computed."""


__all__ = [
    "CryptoTrendsError",
    "ConfigError",
    "TransportError",
    "SelectionError",
    "ConversionError",
]
