"""Bounded session time series (e.g. total-shares trend, price-ratio trend).

``record`` is the append/evict law: append the new sample, then keep only the
newest ``max_length`` points in their original order. It never deduplicates.
``SessionSeriesStore`` persists one parquet file per metric between runs.
"""

from __future__ import annotations

import re
from pathlib import Path
from typing import Sequence

import pandas as pd

from . import config as cfg
from . import protocol_constants as const
from .models import SessionSamplePoint

SERIES_COLUMNS = ["timestamp", "value"]


def to_millis(unix_seconds: int) -> int:
    """Sample timestamp (unix millis) for a clock reading in seconds."""
    return int(unix_seconds) * const.MILLIS_PER_SECOND


def record(
    series: Sequence[SessionSamplePoint],
    new_value: float,
    now: int,
    max_length: int = const.SESSION_SERIES_MAX_LENGTH,
) -> list[SessionSamplePoint]:
    """Return ``series`` plus a sample at ``now`` (unix millis), front-truncated."""
    if max_length <= 0:
        raise ValueError("max_length must be positive")
    updated = [*series, SessionSamplePoint(timestamp=int(now), value=float(new_value))]
    if len(updated) > max_length:
        updated = updated[-max_length:]
    return updated


def series_frame(series: Sequence[SessionSamplePoint]) -> pd.DataFrame:
    """Chart-ready frame with a UTC ``ts`` column alongside raw millis."""
    frame = pd.DataFrame(
        [(point.timestamp, point.value) for point in series], columns=SERIES_COLUMNS
    )
    frame["ts"] = pd.to_datetime(frame["timestamp"], unit="ms", utc=True)
    return frame


class SessionSeriesStore:
    """Per-metric persisted series, each bounded independently."""

    def __init__(
        self,
        directory: Path | None = None,
        *,
        max_length: int = const.SESSION_SERIES_MAX_LENGTH,
    ):
        self.directory = directory or cfg.SESSION_SERIES_DIR
        self.max_length = max_length

    def _path(self, metric: str) -> Path:
        sanitized = re.sub(r"[^a-z0-9_]+", "_", metric.lower()).strip("_")
        if not sanitized:
            raise ValueError(f"invalid metric name: {metric!r}")
        return self.directory / f"{sanitized}.parquet"

    def load(self, metric: str) -> list[SessionSamplePoint]:
        path = self._path(metric)
        if not path.exists():
            return []
        cached = pd.read_parquet(path)
        if cached.empty:
            return []
        return [
            SessionSamplePoint(timestamp=int(ts), value=float(value))
            for ts, value in zip(cached["timestamp"], cached["value"])
        ]

    def save(self, metric: str, series: Sequence[SessionSamplePoint]) -> None:
        frame = pd.DataFrame(
            {
                "timestamp": pd.Series([p.timestamp for p in series], dtype="int64"),
                "value": pd.Series([p.value for p in series], dtype="float64"),
            }
        )
        path = self._path(metric)
        path.parent.mkdir(parents=True, exist_ok=True)
        frame.to_parquet(path, index=False)

    def record(self, metric: str, new_value: float, now: int) -> list[SessionSamplePoint]:
        """Load, append via ``record`` and persist; returns the updated series."""
        updated = record(self.load(metric), new_value, now, self.max_length)
        self.save(metric, updated)
        return updated
