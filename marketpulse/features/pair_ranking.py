"""Rank candidate series by co-movement with a target series.

Used by the sentiment sweep: one market price series is scored against
many news-sentiment series (or vice versa) and the strongest pairs are
surfaced first.
"""

from __future__ import annotations

import logging
from typing import Any, Iterable, Mapping

import pandas as pd

from marketpulse.config_loader import get_setting
from marketpulse.constants import DEFAULT_MAX_LAG
from marketpulse.models.cross_correlation import analyze_cross_correlation
from marketpulse.models.score_cache import CorrelationCache

logger = logging.getLogger(__name__)

RANKING_COLUMNS: list[str] = ["name", "score", "best_lag", "correlation", "n_aligned"]


def rank_candidates(
    target: Iterable[Any] | pd.DataFrame,
    candidates: Mapping[str, Iterable[Any] | pd.DataFrame],
    *,
    max_lag: int | None = None,
    cache: CorrelationCache | None = None,
    target_key: str | None = None,
    use_names_as_keys: bool = False,
    top_n: int | None = None,
) -> pd.DataFrame:
    """Score every candidate against *target* and sort by score.

    Parameters
    ----------
    target:
        Reference time-series records (series A).
    candidates:
        ``{name: records}`` scored as series B.
    max_lag:
        Lag bound; defaults to ``cross_correlation.max_lag`` in config.
    cache:
        Optional result cache.  Cached rows are identical to fresh ones.
    target_key:
        Cache identity for the target; defaults to a content fingerprint.
    use_names_as_keys:
        Use candidate names as cache identities instead of content
        fingerprints.  Only safe while a name always maps to the same
        data within the cache TTL.
    top_n:
        Keep only the strongest *top_n* rows.

    Returns
    -------
    DataFrame with ``RANKING_COLUMNS``, highest score first; equal
    scores keep input order.
    """
    if max_lag is None:
        max_lag = get_setting("cross_correlation", "max_lag", DEFAULT_MAX_LAG)

    if not isinstance(target, pd.DataFrame):
        target = list(target or [])

    rows: list[dict[str, Any]] = []
    for name, series in candidates.items():
        if cache is not None:
            if not use_names_as_keys and not isinstance(series, pd.DataFrame):
                series = list(series or [])
            result = cache.get_or_analyze(
                target, series, max_lag,
                key_a=target_key,
                key_b=name if use_names_as_keys else None,
            )
        else:
            result = analyze_cross_correlation(target, series, max_lag)
        if not result.available:
            logger.debug("Candidate %s not scored: %s", name, result.error)

        rows.append({
            "name": name,
            "score": result.score,
            "best_lag": result.best_lag,
            "correlation": result.best_correlation,
            "n_aligned": result.n_aligned,
        })

    ranking = pd.DataFrame(rows, columns=RANKING_COLUMNS)
    if ranking.empty:
        logger.info("Pair ranking: no candidates")
        return ranking

    ranking = ranking.sort_values("score", ascending=False, kind="stable")
    if top_n is not None:
        ranking = ranking.head(max(int(top_n), 0))
    ranking = ranking.reset_index(drop=True)

    logger.info(
        "Pair ranking: %d candidates scored (max_lag=%d), top=%s (%.2f)",
        len(rows), max_lag, ranking.iloc[0]["name"] if len(ranking) else None,
        ranking.iloc[0]["score"] if len(ranking) else 0.0,
    )
    return ranking
