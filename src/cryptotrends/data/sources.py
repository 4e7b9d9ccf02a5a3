"""Market data clients for fetching historical market-cap series.

This module provides an abstract client interface and concrete
implementations for the CoinGecko HTTP API and local CSV files.
"""

from __future__ import annotations

import asyncio
import csv
import logging
from abc import ABC, abstractmethod
from pathlib import Path
from typing import TYPE_CHECKING, Any

import aiohttp
from pydantic import ValidationError

from cryptotrends.exceptions import TransportError
from cryptotrends.types import (AbsoluteWindow, CurrencyCode, KnownAsset,
                                MarketChartResponse, RawSample,
                                RelativeWindow, TimeWindow)

if TYPE_CHECKING:
    from cryptotrends.types import TrendsConfig

logger = logging.getLogger(__name__)

MS_PER_DAY = 24 * 60 * 60 * 1000


class MarketDataClient(ABC):
    """Abstract base class for market data clients.

    All client implementations must inherit from this class and implement
    the `get_series` coroutine.
    """

    @abstractmethod
    async def get_series(
        self,
        asset_id: str,
        currency: CurrencyCode,
        window: TimeWindow,
    ) -> list[RawSample]:
        """Fetch the market-cap history of one asset.

        :param asset_id: Asset to fetch (e.g. "bitcoin").
        :param currency: Quote currency for the values.
        :param window: Relative day count or absolute epoch-second range.
        :returns: Samples in ascending timestamp order.
        :raises TransportError: If retrieval fails or the payload is malformed.
        """
        ...

    async def close(self) -> None:
        """Release any held resources. No-op by default."""
        return None


class CoinGeckoClient(MarketDataClient):
    """Client for the public CoinGecko v3 API.

    :param source_params: Optional parameters for configuring the client.
        - base_url: API root (default: public v3 endpoint)
        - timeout: Per-request timeout in seconds (default: 30)
        - api_key: Demo API key sent as ``x-cg-demo-api-key``
    :param session: Externally managed aiohttp session to reuse.
    """

    DEFAULT_BASE_URL = "https://api.coingecko.com/api/v3"

    def __init__(
        self,
        source_params: dict[str, Any] | None = None,
        session: aiohttp.ClientSession | None = None,
    ) -> None:
        self.params = source_params or {}
        self.base_url = str(self.params.get("base_url", self.DEFAULT_BASE_URL)).rstrip("/")
        self.timeout = float(self.params.get("timeout", 30))
        self.api_key = self.params.get("api_key")
        self._session = session
        self._owns_session = session is None

    def _headers(self) -> dict[str, str]:
        headers = {"Accept": "application/json"}
        if self.api_key:
            headers["x-cg-demo-api-key"] = str(self.api_key)
        return headers

    def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(
                timeout=aiohttp.ClientTimeout(total=self.timeout),
                headers=self._headers(),
            )
            self._owns_session = True
        return self._session

    async def close(self) -> None:
        if self._owns_session and self._session is not None and not self._session.closed:
            await self._session.close()
        self._session = None

    @staticmethod
    def build_request(
        asset_id: str,
        currency: CurrencyCode,
        window: TimeWindow,
    ) -> tuple[str, dict[str, str]]:
        """Translate a window into the endpoint path and query parameters.

        :returns: Tuple of (path relative to base URL, query parameters).
        """
        vs_currency = CurrencyCode(currency).value
        if isinstance(window, AbsoluteWindow):
            return (
                f"/coins/{asset_id}/market_chart/range",
                {
                    "vs_currency": vs_currency,
                    "from": str(window.start_epoch_seconds),
                    "to": str(window.end_epoch_seconds),
                },
            )
        return (
            f"/coins/{asset_id}/market_chart",
            {"vs_currency": vs_currency, "days": str(window.days)},
        )

    async def _get_json(self, path: str, params: dict[str, str], asset_id: str | None) -> Any:
        url = f"{self.base_url}{path}"
        logger.debug("GET %s params=%s", url, params)
        session = self._get_session()
        try:
            async with session.get(
                url,
                params=params,
                headers=self._headers(),
                timeout=aiohttp.ClientTimeout(total=self.timeout),
            ) as response:
                if response.status != 200:
                    body = await response.text()
                    raise TransportError(
                        f"Market data request failed with status {response.status}: {body[:200]}",
                        asset_id=asset_id,
                    )
                return await response.json(content_type=None)
        except TransportError:
            raise
        except asyncio.TimeoutError as e:
            raise TransportError(
                f"Market data request timed out after {self.timeout}s", asset_id=asset_id
            ) from e
        except (aiohttp.ClientError, ValueError) as e:
            raise TransportError(f"Market data request failed: {e}", asset_id=asset_id) from e

    async def get_series(
        self,
        asset_id: str,
        currency: CurrencyCode,
        window: TimeWindow,
    ) -> list[RawSample]:
        path, params = self.build_request(asset_id, currency, window)
        payload = await self._get_json(path, params, asset_id)
        try:
            chart = MarketChartResponse.model_validate(payload)
            return chart.market_cap_samples()
        except ValidationError as e:
            raise TransportError(
                f"Malformed market chart payload for '{asset_id}': {e.error_count()} error(s)",
                asset_id=asset_id,
            ) from e
        except (ValueError, OverflowError) as e:
            # Non-finite timestamps pass float validation but not int()
            raise TransportError(
                f"Malformed market chart payload for '{asset_id}': {e}", asset_id=asset_id
            ) from e

    async def list_markets(
        self,
        currency: CurrencyCode = CurrencyCode.USD,
        per_page: int = 100,
    ) -> list[KnownAsset]:
        """Fetch known assets ordered by market cap, descending.

        :param currency: Currency for ``current_price`` and ``market_cap``.
        :param per_page: Number of assets to return.
        :raises TransportError: If retrieval fails or the payload is malformed.
        """
        params = {
            "vs_currency": CurrencyCode(currency).value,
            "order": "market_cap_desc",
            "per_page": str(per_page),
            "page": "1",
        }
        payload = await self._get_json("/coins/markets", params, None)
        if not isinstance(payload, list):
            raise TransportError("Malformed markets payload: expected a list")
        try:
            return [KnownAsset.model_validate(entry) for entry in payload]
        except ValidationError as e:
            raise TransportError(f"Malformed markets payload: {e.error_count()} error(s)") from e


class CSVMarketDataClient(MarketDataClient):
    """Client that replays market-cap history from a CSV file.

    Expected CSV format (default columns):
    - asset_id: Asset identifier
    - currency: Quote currency code (optional column; rows match any currency
      when absent)
    - timestamp: Unix milliseconds
    - market_cap: Market capitalisation

    Relative windows are anchored at the asset's latest sample in the file so
    that replays are deterministic.

    :param source_params: Required parameters:
        - file_path: Path to the CSV file.
        Optional parameters:
        - asset_col, currency_col, timestamp_col, value_col: Column names
        - delimiter: CSV delimiter (default: ",")
    """

    def __init__(self, source_params: dict[str, Any] | None = None) -> None:
        self.params = source_params or {}
        self.file_path = self.params.get("file_path")
        if not self.file_path:
            raise TransportError("CSVMarketDataClient requires 'file_path' in source_params")

        self.asset_col = self.params.get("asset_col", "asset_id")
        self.currency_col = self.params.get("currency_col", "currency")
        self.timestamp_col = self.params.get("timestamp_col", "timestamp")
        self.value_col = self.params.get("value_col", "market_cap")
        self.delimiter = self.params.get("delimiter", ",")

    def _read_rows(self, asset_id: str, currency: CurrencyCode) -> list[RawSample]:
        path = Path(self.file_path)
        if not path.exists():
            raise TransportError(f"CSV file not found: {self.file_path}", asset_id=asset_id)

        samples: list[RawSample] = []
        try:
            with open(path, newline="", encoding="utf-8") as f:
                reader = csv.DictReader(f, delimiter=self.delimiter)
                for row in reader:
                    if row.get(self.asset_col) != asset_id:
                        continue
                    row_currency = row.get(self.currency_col)
                    if row_currency and row_currency.lower() != currency.value:
                        continue
                    try:
                        samples.append(
                            RawSample(
                                timestamp_ms=int(row[self.timestamp_col]),
                                value=float(row[self.value_col]),
                            )
                        )
                    except (KeyError, TypeError, ValueError) as e:
                        raise TransportError(
                            f"Failed to parse row {row}: {e}", asset_id=asset_id
                        ) from e
        except csv.Error as e:
            raise TransportError(f"CSV parsing error: {e}", asset_id=asset_id) from e
        except OSError as e:
            raise TransportError(f"Failed to read CSV file: {e}", asset_id=asset_id) from e

        return sorted(samples, key=lambda s: s.timestamp_ms)

    async def get_series(
        self,
        asset_id: str,
        currency: CurrencyCode,
        window: TimeWindow,
    ) -> list[RawSample]:
        samples = await asyncio.to_thread(self._read_rows, asset_id, CurrencyCode(currency))
        if not samples:
            return []

        if isinstance(window, RelativeWindow):
            end_ms = samples[-1].timestamp_ms
            start_ms = end_ms - window.days * MS_PER_DAY
        else:
            start_ms = window.start_epoch_seconds * 1000
            end_ms = window.end_epoch_seconds * 1000

        return [s for s in samples if start_ms <= s.timestamp_ms <= end_ms]


def resolve_market_data_client(config: TrendsConfig) -> MarketDataClient:
    """Construct a market data client from configuration.

    :param config: TrendsConfig with data_source and source_params.
    :returns: MarketDataClient instance for the specified type.
    :raises TransportError: If data_source type is unrecognized.
    """
    source_type = config.data_source.lower()

    if source_type == "coingecko":
        return CoinGeckoClient(config.source_params)
    elif source_type == "csv":
        return CSVMarketDataClient(config.source_params)
    else:
        raise TransportError(
            f"Unrecognized data source type: '{config.data_source}'. "
            f"Supported types: coingecko, csv"
        )
