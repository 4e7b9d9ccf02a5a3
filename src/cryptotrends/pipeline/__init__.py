"""Aggregation and projection pipeline."""

from cryptotrends.pipeline.axis import (MAX_AXIS_LABELS, build_axis,
                                        downsample, downsample_step,
                                        format_date_label)
from cryptotrends.pipeline.fetcher import (PALETTE, FetchResult,
                                           SeriesFetcher, SeriesOutcome,
                                           color_for)
from cryptotrends.pipeline.projection import (latest_value, project, radar,
                                              snapshot)
from cryptotrends.pipeline.runner import (TrendPipeline, axis_for,
                                          build_projection)

__all__ = [
    # Axis
    "MAX_AXIS_LABELS",
    "build_axis",
    "downsample",
    "downsample_step",
    "format_date_label",
    # Fetcher
    "PALETTE",
    "FetchResult",
    "SeriesFetcher",
    "SeriesOutcome",
    "color_for",
    # Projection
    "latest_value",
    "project",
    "radar",
    "snapshot",
    # Runner
    "TrendPipeline",
    "axis_for",
    "build_projection",
]
