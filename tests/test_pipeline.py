"""Tests for pipeline orchestration."""

import asyncio

import pytest

from cryptotrends.exceptions import TransportError
from cryptotrends.pipeline.runner import (ERROR_MESSAGE, TrendPipeline,
                                          axis_for, build_projection)
from cryptotrends.types import (ChartKind, FetchPhase, RadarProjection,
                                Selection, SnapshotProjection,
                                TimeSeriesProjection)


@pytest.fixture
def selection() -> Selection:
    return Selection(asset_ids=("bitcoin", "ethereum"))


class TestBuildProjection:
    """Scenarios for the pure pipeline function."""

    @pytest.mark.asyncio
    async def test_line_scenario(self, client, registry, selection) -> None:
        """bitcoin + ethereum over 30 days gives two series and a short axis."""
        result = await build_projection(selection.with_relative_days(30), client, registry)

        assert isinstance(result, TimeSeriesProjection)
        assert len(result.series) == 2
        assert 1 <= len(result.labels) <= 15

    @pytest.mark.asyncio
    async def test_doughnut_scenario(self, client, registry, selection) -> None:
        """Switching to doughnut gives one latest value per asset."""
        result = await build_projection(selection.with_chart_kind("doughnut"), client, registry)

        assert isinstance(result, SnapshotProjection)
        assert result.labels == ["Bitcoin", "Ethereum"]
        assert result.latest_values == [800_000_000_029.0, 300_000_000_029.0]

    @pytest.mark.asyncio
    async def test_radar_scenario(self, client, registry, selection) -> None:
        """Radar gives one single-value series per asset."""
        result = await build_projection(selection.with_chart_kind("radar"), client, registry)

        assert isinstance(result, RadarProjection)
        assert len(result.series) == 2
        assert all(len(s.values) == 1 for s in result.series)

    @pytest.mark.asyncio
    @pytest.mark.parametrize("kind", list(ChartKind))
    async def test_empty_selection_is_none(self, client, registry, kind) -> None:
        """No assets means no projection, for every chart kind."""
        result = await build_projection(Selection(chart_kind=kind), client, registry)

        assert result is None
        assert client.calls == []

    @pytest.mark.asyncio
    async def test_transport_failure_propagates(
        self, fake_client_cls, market_data, registry, selection
    ) -> None:
        """A simulated transport error fails the whole invocation."""
        client = fake_client_cls(market_data, failures={"bitcoin"})

        with pytest.raises(TransportError):
            await build_projection(selection, client, registry)

    @pytest.mark.asyncio
    async def test_idempotent(self, client, registry, selection) -> None:
        """Identical selection and data give identical projections."""
        first = await build_projection(selection, client, registry)
        second = await build_projection(selection, client, registry)

        assert first == second
        assert first.model_dump() == second.model_dump()


class TestAxisReference:
    """The axis is driven by a single reference asset."""

    @pytest.mark.asyncio
    async def test_axis_follows_first_asset(
        self, fake_client_cls, samples_factory, registry
    ) -> None:
        """Series of other lengths do not change the axis."""
        client = fake_client_cls(
            {"bitcoin": samples_factory(7), "ethereum": samples_factory(30)}
        )
        result = await build_projection(
            Selection(asset_ids=("bitcoin", "ethereum")), client, registry
        )

        assert len(result.labels) == 7
        assert len(result.series[1].values) == 30

    @pytest.mark.asyncio
    async def test_reference_index_selects_other_asset(
        self, fake_client_cls, samples_factory, registry
    ) -> None:
        """reference_index picks which asset drives the axis."""
        client = fake_client_cls(
            {"bitcoin": samples_factory(7), "ethereum": samples_factory(30)}
        )
        result = await build_projection(
            Selection(asset_ids=("bitcoin", "ethereum")), client, registry, reference_index=1
        )

        assert len(result.labels) == 15

    def test_axis_for_empty_selection(self) -> None:
        """An empty selection has no axis."""
        from cryptotrends.pipeline.fetcher import FetchResult

        assert axis_for(Selection(), FetchResult(series=[], samples={})) == []


class TestTrendPipeline:
    """Tests for the stateful pipeline front end."""

    @pytest.mark.asyncio
    async def test_publishes_loading_then_complete(self, client, registry, selection) -> None:
        """A successful run publishes LOADING then COMPLETE."""
        states = []
        pipeline = TrendPipeline(client, registry, on_state=states.append)

        final = await pipeline.run(selection)

        assert [s.phase for s in states] == [FetchPhase.LOADING, FetchPhase.COMPLETE]
        assert states[0].loading and states[0].projection is None
        assert final is states[-1]
        assert isinstance(final.projection, TimeSeriesProjection)
        assert final.labels == final.projection.labels

    @pytest.mark.asyncio
    async def test_empty_selection_state(self, client, registry) -> None:
        """An empty selection is a distinct, non-error terminal state."""
        states = []
        pipeline = TrendPipeline(client, registry, on_state=states.append)

        final = await pipeline.run(Selection())

        assert final.phase is FetchPhase.EMPTY
        assert final.projection is None
        assert final.error is None
        assert [s.phase for s in states] == [FetchPhase.EMPTY]

    @pytest.mark.asyncio
    async def test_failure_becomes_error_state(
        self, fake_client_cls, market_data, registry, selection
    ) -> None:
        """Retrieval failures are converted to an error state."""
        client = fake_client_cls(market_data, failures={"ethereum"})
        pipeline = TrendPipeline(client, registry)

        final = await pipeline.run(selection)

        assert final.phase is FetchPhase.ERROR
        assert final.projection is None
        assert final.series == []
        assert final.error.startswith(ERROR_MESSAGE)

    @pytest.mark.asyncio
    async def test_unexpected_client_error_becomes_error_state(
        self, fake_client_cls, market_data, registry
    ) -> None:
        """Non-transport exceptions from a client still end in the error state."""
        client = fake_client_cls(market_data, crashes={"bitcoin": RuntimeError("boom")})
        states = []
        pipeline = TrendPipeline(client, registry, on_state=states.append)

        final = await pipeline.run(Selection(asset_ids=("bitcoin",)))

        assert [s.phase for s in states] == [FetchPhase.LOADING, FetchPhase.ERROR]
        assert final is states[-1]
        assert final.error.startswith(ERROR_MESSAGE)
        assert "RuntimeError: boom" in final.error

    @pytest.mark.asyncio
    async def test_removing_last_asset_yields_empty(self, client, registry) -> None:
        """Removing the only asset gives the empty state, not an error."""
        pipeline = TrendPipeline(client, registry)
        selection = Selection(asset_ids=("bitcoin",))

        assert (await pipeline.run(selection)).phase is FetchPhase.COMPLETE
        assert (await pipeline.run(selection.remove_asset("bitcoin"))).phase is FetchPhase.EMPTY

    @pytest.mark.asyncio
    async def test_generation_increments(self, client, registry, selection) -> None:
        """Each run gets a new generation token."""
        pipeline = TrendPipeline(client, registry)

        first = await pipeline.run(selection)
        second = await pipeline.run(selection)

        assert (first.generation, second.generation) == (1, 2)
        assert pipeline.generation == 2
        assert first.projection == second.projection

    @pytest.mark.asyncio
    async def test_superseded_run_is_discarded(
        self, fake_client_cls, market_data, registry
    ) -> None:
        """A slow run finishing after a newer one publishes nothing."""
        client = fake_client_cls(market_data, delays={"bitcoin": 0.1})
        states = []
        pipeline = TrendPipeline(client, registry, on_state=states.append)

        slow = asyncio.create_task(pipeline.run(Selection(asset_ids=("bitcoin",))))
        await asyncio.sleep(0)
        fast = await pipeline.run(Selection(asset_ids=("ethereum",)))
        stale = await slow

        assert stale is None
        assert fast.phase is FetchPhase.COMPLETE
        assert fast.generation == 2
        completed = [s for s in states if s.phase is FetchPhase.COMPLETE]
        assert [s.generation for s in completed] == [2]

    @pytest.mark.asyncio
    async def test_superseded_failure_is_discarded(
        self, fake_client_cls, market_data, registry
    ) -> None:
        """A stale failure does not overwrite a newer result."""
        client = fake_client_cls(
            market_data, failures={"bitcoin"}, delays={"bitcoin": 0.1}
        )
        states = []
        pipeline = TrendPipeline(client, registry, on_state=states.append)

        slow = asyncio.create_task(pipeline.run(Selection(asset_ids=("bitcoin",))))
        await asyncio.sleep(0)
        await pipeline.run(Selection(asset_ids=("ethereum",)))

        assert await slow is None
        assert all(s.phase is not FetchPhase.ERROR for s in states)

    @pytest.mark.asyncio
    async def test_reproject_without_refetch(self, client, registry, selection) -> None:
        """Changing chart kind reshapes the existing data."""
        pipeline = TrendPipeline(client, registry)
        state = await pipeline.run(selection)
        calls = len(client.calls)

        doughnut = pipeline.reproject(state, ChartKind.DOUGHNUT)

        assert isinstance(doughnut.projection, SnapshotProjection)
        assert doughnut.projection.labels == ["Bitcoin", "Ethereum"]
        assert len(client.calls) == calls

    @pytest.mark.asyncio
    async def test_reproject_leaves_error_state(
        self, fake_client_cls, market_data, registry, selection
    ) -> None:
        """Non-complete states are returned unchanged."""
        client = fake_client_cls(market_data, failures={"bitcoin"})
        state = await TrendPipeline(client, registry).run(selection)

        assert TrendPipeline.reproject(state, "radar") is state
