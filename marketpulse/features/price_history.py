"""Market price history adapters.

Prediction-market price endpoints return history as ``{"t": <unix
seconds>, "p": <price>}`` points.  Fed straight to the correlation
engine, ``t`` would be picked up as the value, so these helpers rename
the fields to ``timestamp`` (milliseconds) and ``price``.

``synchronize_series`` puts several histories on one shared time axis
for overlay charts and side-by-side comparison:
  - union of all timestamps, sorted
  - exact value where a series has one
  - linear interpolation in time between surrounding points
  - back-fill before a series starts, forward-fill after it ends
"""

from __future__ import annotations

import logging
from typing import Any, Iterable, Mapping

import numpy as np
import pandas as pd

from marketpulse.constants import PRICE_FIELD, TIMESTAMP_FIELD

logger = logging.getLogger(__name__)

_MS_PER_SECOND: int = 1000


def history_to_points(history: Iterable[Mapping[str, Any]] | None) -> list[dict[str, Any]]:
    """Convert ``{t, p}`` price history into timestamp-sorted records.

    Points missing ``t`` or ``p`` are skipped.
    """
    points: list[dict[str, Any]] = []
    skipped = 0
    for item in history or []:
        try:
            t = float(item["t"])
            p = float(item["p"])
        except (KeyError, TypeError, ValueError):
            skipped += 1
            continue
        points.append({TIMESTAMP_FIELD: int(round(t * _MS_PER_SECOND)), PRICE_FIELD: p})

    if skipped:
        logger.debug("history_to_points: skipped %d malformed points", skipped)

    points.sort(key=lambda pt: pt[TIMESTAMP_FIELD])
    return points


def _as_series(points: Iterable[Mapping[str, Any]]) -> pd.Series:
    """Index a record list by timestamp; duplicate timestamps keep the first."""
    frame = pd.DataFrame(list(points))
    if frame.empty or TIMESTAMP_FIELD not in frame.columns:
        return pd.Series(dtype=float)

    value_cols = [c for c in frame.columns if c != TIMESTAMP_FIELD]
    if not value_cols:
        return pd.Series(dtype=float)
    col = PRICE_FIELD if PRICE_FIELD in value_cols else value_cols[0]

    series = pd.Series(
        pd.to_numeric(frame[col], errors="coerce").to_numpy(dtype=float),
        index=pd.to_numeric(frame[TIMESTAMP_FIELD], errors="coerce"),
    ).dropna()
    series = series[series.index.notna()]
    return series[~series.index.duplicated(keep="first")].sort_index()


def synchronize_series(
    series_map: Mapping[str, Iterable[Mapping[str, Any]]],
) -> pd.DataFrame:
    """Align several point series onto the union of their timestamps.

    Parameters
    ----------
    series_map:
        ``{name: points}`` where points are ``{timestamp, price}`` records
        (see ``history_to_points``).

    Returns
    -------
    DataFrame indexed by ``timestamp`` with one float column per name.
    A series with no usable points is an all-NaN column.
    """
    per_series = {name: _as_series(points) for name, points in series_map.items()}
    if not per_series:
        return pd.DataFrame()

    all_ts = sorted(set().union(*(s.index for s in per_series.values())))
    index = pd.Index(all_ts, name=TIMESTAMP_FIELD)

    columns: dict[str, np.ndarray] = {}
    for name, series in per_series.items():
        if series.empty:
            columns[name] = np.full(len(index), np.nan)
            continue
        # np.interp clamps outside the known range, which is the
        # back-fill / forward-fill behaviour at the edges.
        columns[name] = np.interp(
            index.to_numpy(dtype=float),
            series.index.to_numpy(dtype=float),
            series.to_numpy(dtype=float),
        )

    frame = pd.DataFrame(columns, index=index)
    logger.debug(
        "Synchronized %d series onto %d timestamps", len(columns), len(index),
    )
    return frame


def to_points(frame: pd.DataFrame, column: str) -> list[dict[str, Any]]:
    """Turn one synchronized column back into engine-ready records."""
    if column not in frame.columns:
        raise KeyError(f"Column not in frame: {column}")
    values = frame[column].dropna()
    return [
        {TIMESTAMP_FIELD: ts.item() if hasattr(ts, "item") else ts,
         PRICE_FIELD: float(v)}
        for ts, v in values.items()
    ]
