"""Lagged cross-correlation engine.

Scores how strongly two time series co-move, allowing for a time offset
between them.  The score is the maximum absolute Pearson correlation
found over a symmetric lag sweep, expressed as a percentage in
``[0, 100]``.

Pipeline per call:
  1. **Extraction** -- pull one number out of every record (``value``
     first, else the first numeric non-timestamp field, else 0).
  2. **Alignment** -- truncate both series to the shorter length.
  3. **Standardization** -- z-score each series with the population
     standard deviation; a constant series becomes all zeros.
  4. **Lag sweep** -- shift series B by every lag in
     ``[-max_lag, +max_lag]`` (zero-padded, fixed length) and compute
     Pearson correlation against A.  Means are recomputed per lag, so
     the zero padding moves the local mean away from zero.
  5. **Selection** -- keep the lag with the largest absolute
     correlation; earlier lags win exact ties.

Lag convention: a positive lag compares A at time ``t`` with B at time
``t + lag``, so the best lag is ``+k`` when B trails A by ``k`` samples.

The engine is pure and never raises on bad data: empty input, short
alignment, zero variance and non-finite values all score 0.

Top-level entry points:
    ``cross_correlation_score(series_a, series_b, max_lag=10)``
    ``analyze_cross_correlation(series_a, series_b, max_lag=10)``
"""

from __future__ import annotations

import logging
import numbers
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any, Iterable, Sequence

import numpy as np
import pandas as pd

from marketpulse.constants import (
    DEFAULT_MAX_LAG,
    MIN_ALIGNED_OBSERVATIONS,
    SCORE_SCALE,
    TIMESTAMP_FIELD,
    VALUE_FIELD,
)

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Result container
# ---------------------------------------------------------------------------


@dataclass
class CrossCorrelationResult:
    """Outcome of one lagged cross-correlation analysis."""

    # Max |r| over all lags, as a percentage in [0, 100]
    score: float = 0.0

    # Signed correlation at the best lag
    best_correlation: float = 0.0

    # None when no lag produced a non-zero correlation
    best_lag: int | None = None

    max_lag: int = DEFAULT_MAX_LAG
    n_aligned: int = 0

    # {lag: r} in sweep order
    lag_correlations: dict[int, float] = field(default_factory=dict)

    available: bool = True
    error: str = ""

    def to_dict(self) -> dict[str, Any]:
        return {
            "available": self.available,
            "error": self.error,
            "score": round(self.score, 6),
            "best_correlation": round(self.best_correlation, 6),
            "best_lag": self.best_lag,
            "max_lag": self.max_lag,
            "n_aligned": self.n_aligned,
            "lag_correlations": {
                str(lag): round(r, 6) for lag, r in self.lag_correlations.items()
            },
        }


# ---------------------------------------------------------------------------
# Extraction and alignment
# ---------------------------------------------------------------------------


def _is_number(val: Any) -> bool:
    """True for real numbers (int, float, numpy scalars), False for bools."""
    return isinstance(val, numbers.Real) and not isinstance(val, (bool, np.bool_))


def _to_float(val: Any) -> float:
    """Convert a real number to float; out-of-range values become +/-inf."""
    try:
        return float(val)
    except OverflowError:
        return float("inf") if val > 0 else float("-inf")


def _extract_one(record: Any) -> float:
    if not isinstance(record, Mapping):
        return 0.0

    value = record.get(VALUE_FIELD)
    if _is_number(value):
        return _to_float(value)

    for key, val in record.items():
        if key != TIMESTAMP_FIELD and _is_number(val):
            return _to_float(val)
    return 0.0


def extract_values(records: Iterable[Any] | pd.DataFrame) -> np.ndarray:
    """Extract one number per record, preserving order.

    Parameters
    ----------
    records:
        Sequence of mappings (time-series points).  A DataFrame is read
        row by row with its columns in order.

    Returns
    -------
    1-D float array, one entry per record.  Records without a numeric
    field contribute 0.
    """
    if isinstance(records, pd.DataFrame):
        records = records.to_dict("records")
    if records is None:
        return np.zeros(0)
    return np.array([_extract_one(r) for r in records], dtype=float)


def align_lengths(
    values_a: Sequence[float], values_b: Sequence[float],
) -> tuple[np.ndarray, np.ndarray]:
    """Truncate both series to the shorter length, keeping the head."""
    a = np.asarray(values_a, dtype=float)
    b = np.asarray(values_b, dtype=float)
    n = min(len(a), len(b))
    return a[:n], b[:n]


# ---------------------------------------------------------------------------
# Statistics
# ---------------------------------------------------------------------------


def standardize(values: Sequence[float]) -> np.ndarray:
    """Z-score normalize with the population standard deviation.

    A constant series (zero spread) maps to all zeros.
    """
    arr = np.asarray(values, dtype=float)
    if arr.size == 0:
        return arr.copy()

    mu = arr.mean()
    sigma = np.sqrt(np.mean((arr - mu) ** 2))
    if sigma == 0 or np.all(arr == arr[0]):
        return np.zeros_like(arr)
    return (arr - mu) / sigma


def shift_series(series: Sequence[float], lag: int) -> np.ndarray:
    """Shift *series* by *lag* samples with zero padding, keeping its length.

    Positive lag drops the head and pads zeros at the end; negative lag
    pads zeros at the start and drops the tail.
    """
    arr = np.asarray(series, dtype=float)
    n = len(arr)
    k = min(abs(lag), n)
    if lag > 0:
        return np.concatenate([arr[k:], np.zeros(k)])
    if lag < 0:
        return np.concatenate([np.zeros(k), arr[: n - k]])
    return arr.copy()


def pearson_correlation(x: Sequence[float], y: Sequence[float]) -> float:
    """Pearson correlation of two equal-length series.

    Returns 0 for mismatched or empty inputs and when either series has
    no spread.
    """
    x = np.asarray(x, dtype=float)
    y = np.asarray(y, dtype=float)
    if len(x) != len(y) or len(x) == 0:
        return 0.0

    dx = x - x.mean()
    dy = y - y.mean()
    numerator = float(np.sum(dx * dy))
    denominator = float(np.sqrt(np.sum(dx * dx) * np.sum(dy * dy)))
    if denominator == 0:
        return 0.0
    return numerator / denominator


def select_best_lag(correlations: Mapping[int, float]) -> tuple[int | None, float]:
    """Pick the lag with the largest absolute correlation.

    Lags are scanned in ascending order and the incumbent is only
    replaced on a strictly larger magnitude, so the most negative lag
    wins ties.  Returns ``(None, 0.0)`` if nothing beats zero.
    """
    best_lag: int | None = None
    best_r = 0.0
    for lag in sorted(correlations):
        r = correlations[lag]
        if abs(r) > abs(best_r):
            best_lag, best_r = lag, r
    return best_lag, best_r


def lag_sweep(
    standardized_a: np.ndarray,
    standardized_b: np.ndarray,
    max_lag: int,
) -> dict[int, float]:
    """Correlate A against B shifted by every lag in ``[-max_lag, max_lag]``."""
    return {
        lag: pearson_correlation(standardized_a, shift_series(standardized_b, lag))
        for lag in range(-max_lag, max_lag + 1)
    }


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def analyze_cross_correlation(
    series_a: Iterable[Any] | pd.DataFrame,
    series_b: Iterable[Any] | pd.DataFrame,
    max_lag: int = DEFAULT_MAX_LAG,
) -> CrossCorrelationResult:
    """Run the full lagged cross-correlation analysis.

    Parameters
    ----------
    series_a, series_b:
        Time-series records (mappings with a numeric field), or
        DataFrames of them.  Lengths may differ.
    max_lag:
        Largest lag tested on each side of zero.  A negative value
        tests no lags.

    Returns
    -------
    CrossCorrelationResult.  ``available`` is False (and the score 0)
    when the inputs are too short or not finite.
    """
    max_lag = int(max_lag)
    result = CrossCorrelationResult(max_lag=max_lag)

    values_a, values_b = align_lengths(
        extract_values(series_a), extract_values(series_b),
    )
    n = len(values_a)
    result.n_aligned = n

    if n < MIN_ALIGNED_OBSERVATIONS:
        result.available = False
        result.error = (
            f"Need at least {MIN_ALIGNED_OBSERVATIONS} aligned observations "
            f"(got {n})"
        )
        logger.debug("Cross-correlation skipped: %s", result.error)
        return result

    if not (np.all(np.isfinite(values_a)) and np.all(np.isfinite(values_b))):
        result.available = False
        result.error = "Series contain non-finite values"
        logger.warning("Cross-correlation skipped: %s", result.error)
        return result

    if max_lag < 0:
        logger.debug("Negative max_lag=%d; no lags tested", max_lag)

    result.lag_correlations = lag_sweep(
        standardize(values_a), standardize(values_b), max_lag,
    )
    result.best_lag, result.best_correlation = select_best_lag(
        result.lag_correlations,
    )
    result.score = abs(result.best_correlation) * SCORE_SCALE

    logger.debug(
        "Cross-correlation: n=%d, max_lag=%d, best_lag=%s, r=%.4f, score=%.2f",
        n, max_lag, result.best_lag, result.best_correlation, result.score,
    )
    return result


def cross_correlation_score(
    series_a: Iterable[Any] | pd.DataFrame,
    series_b: Iterable[Any] | pd.DataFrame,
    max_lag: int = DEFAULT_MAX_LAG,
) -> float:
    """Return the lag-maximized absolute correlation as a 0-100 score."""
    return analyze_cross_correlation(series_a, series_b, max_lag).score
