"""Pipeline orchestration: fetch, align, project.

``build_projection`` is the pure form of the pipeline, a function of a
selection and a market data client. ``TrendPipeline`` wraps it for an
interactive caller: it reports lifecycle states, converts retrieval failures
into an error state and discards results of superseded invocations.
"""

from __future__ import annotations

import logging
from typing import Callable

from cryptotrends.data.registry import KnownAssetRegistry
from cryptotrends.data.sources import MarketDataClient
from cryptotrends.exceptions import TransportError
from cryptotrends.pipeline.axis import build_axis, reference_position
from cryptotrends.pipeline.fetcher import FetchResult, SeriesFetcher
from cryptotrends.pipeline.projection import project
from cryptotrends.types import (ChartKind, FetchPhase, PipelineState,
                                Projection, Selection)

logger = logging.getLogger(__name__)

StateListener = Callable[[PipelineState], None]

ERROR_MESSAGE = "Could not load data"


def axis_for(selection: Selection, result: FetchResult, reference_index: int = 0) -> list[str]:
    """Axis labels taken from the reference asset's raw samples.

    Only the reference asset is consulted, so other series may hold a
    different number of values than the axis has labels.
    """
    if selection.is_empty:
        return []
    ref = reference_position(len(selection.asset_ids), reference_index)
    return build_axis(result.samples.get(str(selection.asset_ids[ref]), []))


async def build_projection(
    selection: Selection,
    client: MarketDataClient,
    registry: KnownAssetRegistry | None = None,
    reference_index: int = 0,
    timeout: float | None = None,
) -> Projection | None:
    """Run the whole pipeline once.

    :param selection: Assets, currency, window and chart kind.
    :param client: Market data client.
    :param registry: Known assets for display labels.
    :param reference_index: Position of the axis reference asset.
    :param timeout: Optional bound in seconds on the fan-out.
    :returns: Projection for ``selection.chart_kind``; None for an empty
        selection.
    :raises TransportError: If any retrieval fails.
    """
    if selection.is_empty:
        return None
    fetcher = SeriesFetcher(client, registry, timeout)
    result = await fetcher.fetch(selection)
    labels = axis_for(selection, result, reference_index)
    return project(result.series, labels, selection.chart_kind)


class TrendPipeline:
    """Stateful front end publishing pipeline states to a listener.

    Every call to :meth:`run` starts a new generation. A result that arrives
    after a newer generation has started is dropped at the join point.

    :param client: Market data client.
    :param registry: Known assets for display labels.
    :param on_state: Receives every published state.
    :param reference_index: Position of the axis reference asset.
    :param timeout: Optional bound in seconds on each fan-out.
    """

    def __init__(
        self,
        client: MarketDataClient,
        registry: KnownAssetRegistry | None = None,
        on_state: StateListener | None = None,
        reference_index: int = 0,
        timeout: float | None = None,
    ) -> None:
        self.fetcher = SeriesFetcher(client, registry, timeout)
        self.on_state = on_state
        self.reference_index = reference_index
        self._generation = 0

    @property
    def generation(self) -> int:
        return self._generation

    def _publish(self, state: PipelineState) -> PipelineState:
        if self.on_state is not None:
            self.on_state(state)
        return state

    def _is_stale(self, token: int) -> bool:
        return token != self._generation

    async def run(self, selection: Selection) -> PipelineState | None:
        """Fetch, align and project for a selection.

        :param selection: Current selection.
        :returns: Final state, or None if a newer invocation superseded this one.
        """
        self._generation += 1
        token = self._generation

        if selection.is_empty:
            logger.debug("Empty selection, generation %d", token)
            return self._publish(PipelineState(generation=token, phase=FetchPhase.EMPTY))

        self._publish(PipelineState(generation=token, phase=FetchPhase.LOADING))

        try:
            result = await self.fetcher.fetch(selection)
        except TransportError as e:
            if self._is_stale(token):
                logger.debug("Discarding failed stale generation %d", token)
                return None
            logger.warning("Pipeline generation %d aborted: %s", token, e)
            return self._publish(
                PipelineState(
                    generation=token,
                    phase=FetchPhase.ERROR,
                    error=f"{ERROR_MESSAGE}: {e}",
                )
            )

        if self._is_stale(token):
            logger.debug(
                "Discarding stale generation %d (current %d)", token, self._generation
            )
            return None

        labels = axis_for(selection, result, self.reference_index)
        return self._publish(
            PipelineState(
                generation=token,
                phase=FetchPhase.COMPLETE,
                projection=project(result.series, labels, selection.chart_kind),
                labels=labels,
                series=result.series,
            )
        )

    @staticmethod
    def reproject(state: PipelineState, chart_kind: ChartKind | str) -> PipelineState:
        """Reshape a completed state for another chart kind without refetching."""
        if state.phase is not FetchPhase.COMPLETE:
            return state
        return state.model_copy(
            update={"projection": project(state.series, state.labels, chart_kind)}
        )


__all__ = ["axis_for", "build_projection", "TrendPipeline", "ERROR_MESSAGE"]
