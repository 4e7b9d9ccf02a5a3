"""Market data clients and asset registry."""

from cryptotrends.data.registry import UNKNOWN_LABEL, KnownAssetRegistry
from cryptotrends.data.sources import (CoinGeckoClient, CSVMarketDataClient,
                                       MarketDataClient,
                                       resolve_market_data_client)

__all__ = [
    "MarketDataClient",
    "CoinGeckoClient",
    "CSVMarketDataClient",
    "resolve_market_data_client",
    "KnownAssetRegistry",
    "UNKNOWN_LABEL",
]
