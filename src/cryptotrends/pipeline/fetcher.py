"""Concurrent per-asset retrieval for a selection.

All retrievals of one selection are issued together and joined before the
axis and projection are built. Each retrieval fills its own outcome slot.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Callable

from pydantic import Field

from cryptotrends.data.registry import KnownAssetRegistry
from cryptotrends.data.sources import MarketDataClient
from cryptotrends.exceptions import TransportError
from cryptotrends.types import (AssetId, DataSeries, FetchPhase, FrozenModel,
                                RawSample, Selection)

logger = logging.getLogger(__name__)

# Series colors, assigned by selection position modulo palette length
PALETTE: tuple[str, ...] = (
    "rgba(54, 162, 235, 1)",
    "rgba(255, 99, 132, 1)",
    "rgba(255, 206, 86, 1)",
    "rgba(75, 192, 192, 1)",
    "rgba(153, 102, 255, 1)",
    "rgba(255, 159, 64, 1)",
)

PhaseListener = Callable[[FetchPhase], None]


def color_for(index: int) -> str:
    """Palette color for the asset at ``index`` in the selection."""
    return PALETTE[index % len(PALETTE)]


class SeriesOutcome(FrozenModel):
    """Settled result of one asset's retrieval.

    Exactly one of ``series`` and ``error`` is set.

    :param asset_id: Asset the retrieval was for.
    :param series: Normalized series on success.
    :param samples: Raw samples backing the series.
    :param error: Failure description on error.
    """

    asset_id: AssetId
    series: DataSeries | None = None
    samples: list[RawSample] = Field(default_factory=list)
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


class FetchResult(FrozenModel):
    """Joined retrieval of a whole selection.

    :param series: One series per selected asset, in selection order.
    :param samples: Raw samples keyed by asset id.
    """

    series: list[DataSeries]
    samples: dict[str, list[RawSample]]


class SeriesFetcher:
    """Fan-out fetcher turning a selection into per-asset series.

    :param client: Market data client used for every retrieval.
    :param registry: Known assets used to resolve display labels.
    :param timeout: Optional bound in seconds on the whole fan-out.
    """

    def __init__(
        self,
        client: MarketDataClient,
        registry: KnownAssetRegistry | None = None,
        timeout: float | None = None,
    ) -> None:
        self.client = client
        self.registry = registry or KnownAssetRegistry()
        self.timeout = timeout

    async def _fetch_one(self, selection: Selection, index: int) -> SeriesOutcome:
        asset_id = selection.asset_ids[index]
        try:
            samples = await self.client.get_series(
                asset_id, selection.currency, selection.window
            )
        except TransportError as e:
            logger.warning("Retrieval failed for %s: %s", asset_id, e)
            return SeriesOutcome(asset_id=asset_id, error=str(e))
        except Exception as e:
            logger.exception("Unexpected error retrieving %s", asset_id)
            return SeriesOutcome(asset_id=asset_id, error=f"{type(e).__name__}: {e}")

        series = DataSeries(
            asset_id=asset_id,
            display_label=self.registry.label_for(asset_id),
            values=[sample.value for sample in samples],
            color=color_for(index),
        )
        return SeriesOutcome(asset_id=asset_id, series=series, samples=samples)

    async def fetch_settled(self, selection: Selection) -> list[SeriesOutcome]:
        """Retrieve every selected asset concurrently and wait for all to settle.

        :param selection: Selection to fetch.
        :returns: One outcome per asset, in selection order.
        :raises TransportError: If the fan-out exceeds ``timeout``.
        """
        logger.info(
            "Fetching %d asset(s) in %s for %s",
            len(selection.asset_ids),
            selection.currency.value,
            selection.window,
        )
        gathered = asyncio.gather(
            *(self._fetch_one(selection, i) for i in range(len(selection.asset_ids)))
        )
        try:
            if self.timeout is None:
                outcomes = await gathered
            else:
                outcomes = await asyncio.wait_for(gathered, timeout=self.timeout)
        except asyncio.TimeoutError as e:
            raise TransportError(
                f"Market data retrieval timed out after {self.timeout}s"
            ) from e
        return list(outcomes)

    async def fetch(
        self,
        selection: Selection,
        on_phase: PhaseListener | None = None,
    ) -> FetchResult:
        """Retrieve all selected assets, failing as a whole on any error.

        :param selection: Selection to fetch.
        :param on_phase: Receives LOADING, then COMPLETE, ERROR or EMPTY.
        :returns: Joined series and raw samples; empty for an empty selection.
        :raises TransportError: If any retrieval fails; no partial result.
        """
        if selection.is_empty:
            if on_phase:
                on_phase(FetchPhase.EMPTY)
            return FetchResult(series=[], samples={})

        if on_phase:
            on_phase(FetchPhase.LOADING)
        try:
            outcomes = await self.fetch_settled(selection)
            failed = [o for o in outcomes if not o.ok]
            if failed:
                first = failed[0]
                raise TransportError(
                    f"Retrieval failed for '{first.asset_id}': {first.error}",
                    asset_id=first.asset_id,
                )
        except TransportError:
            if on_phase:
                on_phase(FetchPhase.ERROR)
            raise

        logger.info("Fetched %d series", len(outcomes))
        if on_phase:
            on_phase(FetchPhase.COMPLETE)
        return FetchResult(
            series=[o.series for o in outcomes if o.series is not None],
            samples={str(o.asset_id): o.samples for o in outcomes},
        )


__all__ = [
    "PALETTE",
    "color_for",
    "SeriesOutcome",
    "FetchResult",
    "SeriesFetcher",
]
