"""Chart projections derived from aggregated series.

Every projection yields raw numeric magnitudes; currency symbols and compact
notation belong to the presentation layer.
"""

from __future__ import annotations

import math
from typing import Sequence

from cryptotrends.types import (ChartKind, DataSeries, Projection,
                                RadarProjection, SnapshotProjection,
                                TimeSeriesProjection)


def latest_value(series: DataSeries) -> float:
    """Last value of a series, 0 when the series is empty."""
    if not series.values:
        return 0.0
    value = series.values[-1]
    return 0.0 if math.isnan(value) else value


def snapshot(series: Sequence[DataSeries], chart_kind: ChartKind) -> SnapshotProjection:
    """Latest value per asset, labelled by asset display label."""
    return SnapshotProjection(
        chart_kind=chart_kind,
        labels=[s.display_label for s in series],
        latest_values=[latest_value(s) for s in series],
        colors=[s.color for s in series],
    )


def radar(series: Sequence[DataSeries]) -> RadarProjection:
    """Re-wrap the snapshot so each asset becomes a one-value series."""
    current = snapshot(series, ChartKind.RADAR)
    return RadarProjection(
        labels=current.labels,
        series=[
            DataSeries(
                asset_id=s.asset_id,
                display_label=s.display_label,
                values=[value],
                color=s.color,
            )
            for s, value in zip(series, current.latest_values)
        ],
    )


def project(
    series: Sequence[DataSeries] | None,
    axis: Sequence[str],
    chart_kind: ChartKind | str,
) -> Projection | None:
    """Shape aggregated series for a chart kind.

    :param series: Aggregated per-asset series.
    :param axis: Shared time axis labels.
    :param chart_kind: Target chart kind.
    :returns: Projection for the chart kind, or None when there is no data.
    """
    if not series:
        return None

    kind = ChartKind(chart_kind)
    if kind.is_time_series:
        return TimeSeriesProjection(chart_kind=kind, labels=list(axis), series=list(series))
    if kind.is_snapshot:
        return snapshot(series, kind)
    return radar(series)


__all__ = ["latest_value", "snapshot", "radar", "project"]
