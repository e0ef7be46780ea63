"""Tests for marketpulse.features.pair_ranking."""

from __future__ import annotations

import numpy as np
import pandas as pd
import pytest

from marketpulse.features.pair_ranking import RANKING_COLUMNS, rank_candidates
from marketpulse.models.score_cache import CorrelationCache


def _points(values, field: str = "sentiment") -> list[dict]:
    return [{"timestamp": i, field: float(v)} for i, v in enumerate(values)]


@pytest.fixture
def target() -> list[dict]:
    rng = np.random.RandomState(3)
    return _points(np.cumsum(rng.randn(40)), field="price")


@pytest.fixture
def candidates(target) -> dict[str, list[dict]]:
    prices = [p["price"] for p in target]
    rng = np.random.RandomState(11)
    return {
        "flat": _points([0.5] * 40),
        "mirror": _points([-v for v in prices]),
        "noise": _points(rng.randn(40)),
        "tiny": _points([1.0]),
    }


def test_ranking_orders_by_score(target, candidates):
    ranking = rank_candidates(target, candidates, max_lag=3)

    assert list(ranking.columns) == RANKING_COLUMNS
    assert ranking.iloc[0]["name"] == "mirror"
    assert ranking.iloc[0]["score"] == pytest.approx(100.0)
    assert ranking.iloc[0]["correlation"] == pytest.approx(-1.0)
    assert list(ranking["score"]) == sorted(ranking["score"], reverse=True)


def test_degenerate_candidates_score_zero(target, candidates):
    ranking = rank_candidates(target, candidates, max_lag=3).set_index("name")
    assert ranking.loc["flat", "score"] == 0.0
    assert ranking.loc["tiny", "score"] == 0.0
    assert ranking.loc["tiny", "n_aligned"] == 1


def test_ties_keep_input_order(target, candidates):
    ranking = rank_candidates(target, candidates, max_lag=3)
    zero_rows = ranking[ranking["score"] == 0.0]["name"].tolist()
    assert zero_rows == ["flat", "tiny"]


def test_top_n(target, candidates):
    ranking = rank_candidates(target, candidates, max_lag=3, top_n=2)
    assert len(ranking) == 2
    assert ranking.index.tolist() == [0, 1]


def test_empty_candidates(target):
    ranking = rank_candidates(target, {})
    assert ranking.empty
    assert list(ranking.columns) == RANKING_COLUMNS


def test_default_max_lag_from_config(target, candidates):
    explicit = rank_candidates(target, candidates, max_lag=10)
    default = rank_candidates(target, candidates)
    assert explicit["score"].tolist() == pytest.approx(default["score"].tolist())


def test_cache_reused_across_calls(target, candidates):
    cache = CorrelationCache(max_entries=16, ttl_seconds=0)
    fresh = rank_candidates(target, candidates, max_lag=3)
    first = rank_candidates(target, candidates, max_lag=3, cache=cache, target_key="mkt")
    second = rank_candidates(target, candidates, max_lag=3, cache=cache, target_key="mkt")

    assert cache.stats()["hits"] == len(candidates)
    pd.testing.assert_frame_equal(first, fresh)
    pd.testing.assert_frame_equal(second, fresh)


def test_names_as_cache_keys(target, candidates):
    cache = CorrelationCache(max_entries=16, ttl_seconds=0)
    rank_candidates(
        target, candidates, max_lag=3, cache=cache,
        target_key="mkt", use_names_as_keys=True,
    )
    assert ("mkt", "mirror", 3) in cache
    assert len(cache) == len(candidates)


def test_changed_data_under_same_name_is_rescored():
    cache = CorrelationCache(max_entries=16, ttl_seconds=0)
    target = _points(range(20), field="price")

    first = rank_candidates(target, {"q": _points(range(20))}, max_lag=2, cache=cache)
    second = rank_candidates(target, {"q": _points([3.0] * 20)}, max_lag=2, cache=cache)

    assert first.iloc[0]["score"] == pytest.approx(100.0)
    assert second.iloc[0]["score"] == 0.0
    assert cache.stats()["misses"] == 2
