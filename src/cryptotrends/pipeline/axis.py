"""Shared label axis construction.

The axis is derived from one reference asset's raw timestamps and thinned to
a fixed label limit so its density stays legible for any window length.
"""

from __future__ import annotations

import math
from datetime import datetime, timezone
from typing import Callable, Sequence, TypeVar

from cryptotrends.types import RawSample

MAX_AXIS_LABELS = 15

T = TypeVar("T")


def format_date_label(timestamp_ms: int) -> str:
    """Render a millisecond timestamp as a ``M/D/YYYY`` date label (UTC)."""
    dt = datetime.fromtimestamp(timestamp_ms / 1000, tz=timezone.utc)
    return f"{dt.month}/{dt.day}/{dt.year}"


def downsample_step(raw_count: int, max_labels: int = MAX_AXIS_LABELS) -> int:
    """Stride that keeps at most ``max_labels`` items; never below 1."""
    if raw_count <= 0:
        return 1
    return max(1, math.ceil(raw_count / max_labels))


def downsample(items: Sequence[T], max_labels: int = MAX_AXIS_LABELS) -> list[T]:
    """Keep every ``step``-th item, starting with the first, in order."""
    step = downsample_step(len(items), max_labels)
    return list(items[::step])


def build_axis(
    reference_samples: Sequence[RawSample],
    max_labels: int = MAX_AXIS_LABELS,
    formatter: Callable[[int], str] = format_date_label,
) -> list[str]:
    """Build the shared, down-sampled date label axis.

    :param reference_samples: Raw samples of the reference asset.
    :param max_labels: Maximum number of labels.
    :param formatter: Converts a millisecond timestamp to a label.
    :returns: At most ``max_labels`` labels; empty when there are no samples.
    """
    raw_labels = [formatter(sample.timestamp_ms) for sample in reference_samples]
    return downsample(raw_labels, max_labels)


def reference_position(asset_count: int, reference_index: int = 0) -> int:
    """Clamp the configured reference asset position into the selection."""
    if asset_count <= 0:
        raise ValueError("no assets to choose an axis reference from")
    return min(max(reference_index, 0), asset_count - 1)


__all__ = [
    "MAX_AXIS_LABELS",
    "format_date_label",
    "downsample_step",
    "downsample",
    "build_axis",
    "reference_position",
]
