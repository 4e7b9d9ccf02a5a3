"""Core type definitions for the market-cap trend pipeline.

All data models use Pydantic BaseModel for automatic validation, JSON
serialization, and better error messages.
"""

from __future__ import annotations

import math
from datetime import date, datetime, timezone
from enum import Enum
from typing import Annotated, Any, Literal, NewType, Union

from pydantic import (BaseModel, ConfigDict, Field, ValidationError,
                      field_validator, model_validator)

from cryptotrends.exceptions import SelectionError

# Type aliases for domain-specific identifiers
AssetId = NewType("AssetId", str)


# ---------------------------------------------------------------------------
# Base Configuration
# ---------------------------------------------------------------------------


class FrozenModel(BaseModel):
    """Base model with frozen (immutable) configuration."""

    model_config = ConfigDict(frozen=True)


# ---------------------------------------------------------------------------
# Enumerations
# ---------------------------------------------------------------------------


class CurrencyCode(str, Enum):
    """Quote currencies supported by the market data source."""

    USD = "usd"
    EUR = "eur"
    GBP = "gbp"
    JPY = "jpy"
    INR = "inr"
    BTC = "btc"
    ETH = "eth"


class ChartKind(str, Enum):
    """Chart projections the pipeline can shape data for."""

    LINE = "line"
    BAR = "bar"
    DOUGHNUT = "doughnut"
    POLAR_AREA = "polarArea"
    RADAR = "radar"

    @property
    def is_time_series(self) -> bool:
        return self in (ChartKind.LINE, ChartKind.BAR)

    @property
    def is_snapshot(self) -> bool:
        return self in (ChartKind.DOUGHNUT, ChartKind.POLAR_AREA)


class FetchPhase(str, Enum):
    """Lifecycle phase reported by the pipeline to its caller."""

    LOADING = "loading"
    COMPLETE = "complete"
    ERROR = "error"
    EMPTY = "empty"


# ---------------------------------------------------------------------------
# Time Windows
# ---------------------------------------------------------------------------

# Relative range buttons and the day counts they request
RANGE_BUTTONS: dict[str, int] = {
    "1D": 1,
    "1W": 7,
    "1M": 30,
    "6M": 180,
    "1Y": 365,
}


def date_to_epoch_seconds(value: date | datetime | str) -> int:
    """Convert a date-only input to whole Unix seconds at UTC midnight.

    :param value: ``date``, ``datetime`` or ``YYYY-MM-DD`` string.
    :returns: Seconds since the epoch, floored.
    :raises ValueError: If the string is not a valid date.
    """
    if isinstance(value, str):
        value = date.fromisoformat(value.strip()[:10])
    if isinstance(value, datetime):
        dt = value if value.tzinfo else value.replace(tzinfo=timezone.utc)
    else:
        dt = datetime(value.year, value.month, value.day, tzinfo=timezone.utc)
    return int(dt.timestamp() // 1)


class RelativeWindow(FrozenModel):
    """The last ``days`` days up to now.

    :param days: Number of days to request (positive).
    """

    kind: Literal["relative"] = "relative"
    days: int = Field(gt=0)


class AbsoluteWindow(FrozenModel):
    """Explicit Unix time range.

    :param start_epoch_seconds: Range start in whole seconds.
    :param end_epoch_seconds: Range end in whole seconds, after the start.
    """

    kind: Literal["absolute"] = "absolute"
    start_epoch_seconds: int
    end_epoch_seconds: int

    @model_validator(mode="after")
    def _check_order(self) -> AbsoluteWindow:
        if self.start_epoch_seconds >= self.end_epoch_seconds:
            raise ValueError("window start must be before window end")
        return self

    @classmethod
    def from_dates(
        cls,
        start: date | datetime | str,
        end: date | datetime | str,
    ) -> AbsoluteWindow:
        """Build a window from date-only inputs floored to whole seconds."""
        return cls(
            start_epoch_seconds=date_to_epoch_seconds(start),
            end_epoch_seconds=date_to_epoch_seconds(end),
        )


TimeWindow = Annotated[
    Union[RelativeWindow, AbsoluteWindow], Field(discriminator="kind")
]


# ---------------------------------------------------------------------------
# Market Data Types
# ---------------------------------------------------------------------------


class RawSample(FrozenModel):
    """Single sample as returned by the market data source.

    :param timestamp_ms: Sample time in Unix milliseconds.
    :param value: Market capitalisation at that time.
    """

    timestamp_ms: int
    value: float


class MarketChartResponse(FrozenModel):
    """Validated ``market_chart`` payload.

    Each entry is a ``[timestamp_ms, value]`` pair. Only ``market_caps`` is
    required; the other series are accepted when present. A null market cap
    is a gap in the series and becomes NaN.
    """

    market_caps: list[tuple[float, float | None]]
    prices: list[tuple[float, float | None]] = Field(default_factory=list)
    total_volumes: list[tuple[float, float | None]] = Field(default_factory=list)

    def market_cap_samples(self) -> list[RawSample]:
        """Market-cap samples in ascending timestamp order."""
        samples = [
            RawSample(timestamp_ms=int(ts), value=math.nan if value is None else float(value))
            for ts, value in self.market_caps
        ]
        return sorted(samples, key=lambda s: s.timestamp_ms)


class KnownAsset(FrozenModel):
    """Registry entry describing a market asset.

    :param id: Stable asset identifier (e.g. ``bitcoin``).
    :param name: Human-readable name used as display label.
    :param symbol: Ticker symbol (e.g. ``btc``).
    :param current_price: Latest price in the registry's base currency.
    :param market_cap: Latest market capitalisation.
    """

    id: AssetId
    name: str
    symbol: str = ""
    current_price: float | None = None
    market_cap: float | None = None


class DataSeries(FrozenModel):
    """Per-asset value sequence aligned with the shared label axis.

    :param asset_id: Asset the values belong to.
    :param display_label: Human-readable label for legends.
    :param values: Ordered values, one per sample.
    :param color: Palette color assigned by selection position.
    """

    asset_id: AssetId
    display_label: str
    values: list[float] = Field(default_factory=list)
    color: str = ""


# ---------------------------------------------------------------------------
# Selection
# ---------------------------------------------------------------------------


class Selection(FrozenModel):
    """Immutable user selection driving one pipeline invocation.

    Transition methods return a new ``Selection`` and leave the receiver
    untouched.

    :param asset_ids: Selected assets in insertion order, unique.
    :param currency: Quote currency for fetched values.
    :param window: Relative or absolute time window.
    :param chart_kind: Active chart projection.
    """

    asset_ids: tuple[AssetId, ...] = ()
    currency: CurrencyCode = CurrencyCode.USD
    window: TimeWindow = Field(default_factory=lambda: RelativeWindow(days=30))
    chart_kind: ChartKind = ChartKind.LINE

    @field_validator("asset_ids", mode="before")
    @classmethod
    def _dedupe(cls, value: Any) -> Any:
        if isinstance(value, (list, tuple)):
            return tuple(dict.fromkeys(value))
        return value

    @property
    def is_empty(self) -> bool:
        return not self.asset_ids

    def add_asset(self, asset_id: str) -> Selection:
        """Append an asset; adding one already present is a no-op."""
        if not asset_id or asset_id in self.asset_ids:
            return self
        return self.model_copy(
            update={"asset_ids": self.asset_ids + (AssetId(asset_id),)}
        )

    def remove_asset(self, asset_id: str) -> Selection:
        """Remove exactly one entry for ``asset_id`` if present."""
        if asset_id not in self.asset_ids:
            return self
        remaining = list(self.asset_ids)
        remaining.remove(AssetId(asset_id))
        return self.model_copy(update={"asset_ids": tuple(remaining)})

    def with_currency(self, currency: str | CurrencyCode) -> Selection:
        try:
            code = CurrencyCode(str(getattr(currency, "value", currency)).lower())
        except ValueError as e:
            raise SelectionError(f"Unsupported currency: '{currency}'") from e
        return self.model_copy(update={"currency": code})

    def with_chart_kind(self, chart_kind: str | ChartKind) -> Selection:
        try:
            kind = ChartKind(chart_kind)
        except ValueError as e:
            raise SelectionError(f"Unsupported chart kind: '{chart_kind}'") from e
        return self.model_copy(update={"chart_kind": kind})

    def with_relative_days(self, days: int) -> Selection:
        """Select a relative range, clearing any explicit date range."""
        try:
            window = RelativeWindow(days=days)
        except ValidationError as e:
            raise SelectionError(f"Relative range must be a positive day count: {days}") from e
        return self.model_copy(update={"window": window})

    def with_range_button(self, code: str) -> Selection:
        """Select a relative range by its button code (``1D`` .. ``1Y``)."""
        days = RANGE_BUTTONS.get(code.upper())
        if days is None:
            raise SelectionError(
                f"Unknown range '{code}'. Valid options: {list(RANGE_BUTTONS)}"
            )
        return self.with_relative_days(days)

    def with_date_range(
        self,
        start: date | datetime | str,
        end: date | datetime | str,
    ) -> Selection:
        """Select an explicit date range, clearing the relative range."""
        try:
            window = AbsoluteWindow.from_dates(start, end)
        except (ValidationError, ValueError) as e:
            raise SelectionError(f"Invalid date range {start!r} to {end!r}: {e}") from e
        return self.model_copy(update={"window": window})


# ---------------------------------------------------------------------------
# Projections
# ---------------------------------------------------------------------------


class TimeSeriesProjection(FrozenModel):
    """Line/bar shape: shared time axis plus one series per asset."""

    chart_kind: ChartKind
    labels: list[str]
    series: list[DataSeries]


class SnapshotProjection(FrozenModel):
    """Doughnut/polar-area shape: latest value per asset.

    ``labels`` are the assets' display labels, not the time axis.
    """

    chart_kind: ChartKind
    labels: list[str]
    latest_values: list[float]
    colors: list[str] = Field(default_factory=list)


class RadarProjection(FrozenModel):
    """Radar shape: one single-value series per asset."""

    chart_kind: ChartKind = ChartKind.RADAR
    labels: list[str]
    series: list[DataSeries]


Projection = Union[TimeSeriesProjection, SnapshotProjection, RadarProjection]


class PipelineState(FrozenModel):
    """Output contract published to the rendering surface.

    :param generation: Invocation token this state belongs to.
    :param phase: Current lifecycle phase.
    :param projection: Shaped data, or None while loading, on error or when
        the selection is empty.
    :param labels: Shared time axis of the aggregated data.
    :param series: Aggregated per-asset series.
    :param error: User-visible error message when ``phase`` is ERROR.
    """

    generation: int
    phase: FetchPhase
    projection: Projection | None = None
    labels: list[str] = Field(default_factory=list)
    series: list[DataSeries] = Field(default_factory=list)
    error: str | None = None

    @property
    def loading(self) -> bool:
        return self.phase is FetchPhase.LOADING


# ---------------------------------------------------------------------------
# Configuration Types
# ---------------------------------------------------------------------------


class TrendsConfig(FrozenModel):
    """Configuration for a trends run.

    :param selection: Initial selection.
    :param data_source: Market data source type (``coingecko`` or ``csv``).
    :param source_params: Provider-specific parameters.
    :param known_assets: Static registry entries.
    :param reference_index: Position of the asset whose samples drive the axis.
    :param log_level: Logging level.
    """

    selection: Selection
    data_source: str = "coingecko"
    source_params: dict[str, Any] = Field(default_factory=dict)
    known_assets: list[KnownAsset] = Field(default_factory=list)
    reference_index: int = 0
    log_level: str = "INFO"


# ---------------------------------------------------------------------------
# Exports
# ---------------------------------------------------------------------------

__all__ = [
    # Type aliases
    "AssetId",
    # Base models
    "FrozenModel",
    # Enumerations
    "CurrencyCode",
    "ChartKind",
    "FetchPhase",
    # Time windows
    "RANGE_BUTTONS",
    "date_to_epoch_seconds",
    "RelativeWindow",
    "AbsoluteWindow",
    "TimeWindow",
    # Market data
    "RawSample",
    "MarketChartResponse",
    "KnownAsset",
    "DataSeries",
    # Selection
    "Selection",
    # Projections
    "TimeSeriesProjection",
    "SnapshotProjection",
    "RadarProjection",
    "Projection",
    "PipelineState",
    # Configuration
    "TrendsConfig",
]
