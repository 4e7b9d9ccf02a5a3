"""Shared fixtures for cryptotrends tests."""

from __future__ import annotations

import asyncio

import pytest

from cryptotrends.data.registry import KnownAssetRegistry
from cryptotrends.data.sources import MarketDataClient
from cryptotrends.exceptions import TransportError
from cryptotrends.types import (CurrencyCode, KnownAsset, RawSample,
                                TimeWindow)

DAY_MS = 24 * 60 * 60 * 1000
START_MS = 1_704_067_200_000  # 2024-01-01T00:00:00Z


def make_samples(count: int, base: float = 1_000.0, start_ms: int = START_MS) -> list[RawSample]:
    """Daily samples with linearly increasing values."""
    return [
        RawSample(timestamp_ms=start_ms + i * DAY_MS, value=base + i)
        for i in range(count)
    ]


class FakeMarketDataClient(MarketDataClient):
    """In-memory client recording calls, with optional failures and delays.

    ``failures`` raise TransportError; ``crashes`` raise the given exception.
    """

    def __init__(
        self,
        data: dict[str, list[RawSample]] | None = None,
        failures: set[str] | None = None,
        delays: dict[str, float] | None = None,
        crashes: dict[str, Exception] | None = None,
    ) -> None:
        self.data = data or {}
        self.failures = failures or set()
        self.delays = delays or {}
        self.crashes = crashes or {}
        self.calls: list[tuple[str, CurrencyCode, TimeWindow]] = []
        self.closed = False

    async def get_series(
        self,
        asset_id: str,
        currency: CurrencyCode,
        window: TimeWindow,
    ) -> list[RawSample]:
        self.calls.append((asset_id, currency, window))
        delay = self.delays.get(asset_id)
        if delay:
            await asyncio.sleep(delay)
        if asset_id in self.failures:
            raise TransportError("simulated transport failure", asset_id=asset_id)
        if asset_id in self.crashes:
            raise self.crashes[asset_id]
        return list(self.data.get(asset_id, []))

    async def close(self) -> None:
        self.closed = True


@pytest.fixture
def fake_client_cls() -> type[FakeMarketDataClient]:
    """The fake client class, for tests needing custom behaviour."""
    return FakeMarketDataClient


@pytest.fixture
def samples_factory():
    """Factory for daily sample sequences."""
    return make_samples


@pytest.fixture
def market_data() -> dict[str, list[RawSample]]:
    """Thirty days of samples for bitcoin and ethereum."""
    return {
        "bitcoin": make_samples(30, base=800_000_000_000.0),
        "ethereum": make_samples(30, base=300_000_000_000.0),
    }


@pytest.fixture
def client(market_data: dict[str, list[RawSample]]) -> FakeMarketDataClient:
    """Fake client serving ``market_data``."""
    return FakeMarketDataClient(market_data)


@pytest.fixture
def registry() -> KnownAssetRegistry:
    """Registry with a few well-known assets."""
    return KnownAssetRegistry(
        [
            KnownAsset(id="bitcoin", name="Bitcoin", symbol="btc", current_price=40_000.0),
            KnownAsset(id="ethereum", name="Ethereum", symbol="eth", current_price=2_000.0),
            KnownAsset(id="cardano", name="Cardano", symbol="ada", current_price=0.5),
        ]
    )
