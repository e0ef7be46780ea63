"""Memoization layer for cross-correlation results.

Dashboards re-score the same (market, query) pairs on every refresh.
``CorrelationCache`` keeps recent results in memory, keyed by
``(series A identity, series B identity, max_lag)``, so that repeated
requests skip the lag sweep.  The engine itself stays stateless.

Series identity is either a caller-supplied key (market id, query
string) or a SHA-256 fingerprint of the records' content.

Storage is a ``cachetools.TTLCache`` (or ``LRUCache`` when expiry is
disabled) guarded by a lock.
"""

from __future__ import annotations

import hashlib
import json
import logging
import threading
import time
from typing import Any, Callable, Hashable, Iterable

import cachetools
import pandas as pd

from marketpulse.config_loader import get_setting
from marketpulse.constants import (
    CACHE_MAX_ENTRIES,
    CACHE_TTL_SECONDS,
    DEFAULT_MAX_LAG,
)
from marketpulse.models.cross_correlation import (
    CrossCorrelationResult,
    analyze_cross_correlation,
)

logger = logging.getLogger(__name__)

CacheKey = tuple[Hashable, Hashable, int]


# ---------------------------------------------------------------------------
# Series identity
# ---------------------------------------------------------------------------


def series_fingerprint(records: Iterable[Any] | pd.DataFrame) -> str:
    """Deterministic content hash for a sequence of time-series records.

    Keys are sorted before hashing; values that are not JSON-serialisable
    (timestamps, numpy scalars) are stringified.
    """
    if isinstance(records, pd.DataFrame):
        records = records.to_dict("records")
    raw = json.dumps(list(records or []), sort_keys=True, default=str)
    return hashlib.sha256(raw.encode()).hexdigest()


# ---------------------------------------------------------------------------
# Storage
# ---------------------------------------------------------------------------


class _EvictionCounter:
    """Counts capacity evictions (expiry does not go through popitem)."""

    evictions = 0

    def popitem(self):
        key, value = super().popitem()  # type: ignore[misc]
        self.evictions += 1
        logger.debug("Score cache evicted %s", key[:2])
        return key, value


class _LRUResults(_EvictionCounter, cachetools.LRUCache):
    pass


class _TTLResults(_EvictionCounter, cachetools.TTLCache):
    pass


# ---------------------------------------------------------------------------
# Cache
# ---------------------------------------------------------------------------


class CorrelationCache:
    """Thread-safe LRU cache of correlation results with optional expiry.

    Parameters
    ----------
    max_entries:
        Capacity before least-recently-used entries are evicted.
        Defaults to ``score_cache.max_entries`` from the global config.
    ttl_seconds:
        Age after which an entry is recomputed; 0 disables expiry.
        Defaults to ``score_cache.ttl_seconds`` from the global config.
    clock:
        Monotonic time source (injectable for tests).
    """

    def __init__(
        self,
        max_entries: int | None = None,
        ttl_seconds: float | None = None,
        *,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if max_entries is None:
            max_entries = get_setting("score_cache", "max_entries", CACHE_MAX_ENTRIES)
        if ttl_seconds is None:
            ttl_seconds = get_setting("score_cache", "ttl_seconds", CACHE_TTL_SECONDS)

        if max_entries < 1:
            raise ValueError(f"max_entries must be >= 1, got {max_entries}")
        if ttl_seconds < 0:
            raise ValueError(f"ttl_seconds must be >= 0, got {ttl_seconds}")

        self.max_entries = int(max_entries)
        self.ttl_seconds = float(ttl_seconds)
        if self.ttl_seconds > 0:
            self._entries: _EvictionCounter = _TTLResults(
                maxsize=self.max_entries, ttl=self.ttl_seconds, timer=clock,
            )
        else:
            self._entries = _LRUResults(maxsize=self.max_entries)
        self._lock = threading.Lock()
        self._hits = 0
        self._misses = 0

    # -- keys ---------------------------------------------------------------

    @staticmethod
    def make_key(
        series_a: Iterable[Any] | pd.DataFrame,
        series_b: Iterable[Any] | pd.DataFrame,
        max_lag: int = DEFAULT_MAX_LAG,
        *,
        key_a: Hashable | None = None,
        key_b: Hashable | None = None,
    ) -> CacheKey:
        """Build the cache key; explicit identities win over fingerprints."""
        id_a = key_a if key_a is not None else series_fingerprint(series_a)
        id_b = key_b if key_b is not None else series_fingerprint(series_b)
        return (id_a, id_b, int(max_lag))

    # -- lookup -------------------------------------------------------------

    def _purge(self) -> None:
        expire = getattr(self._entries, "expire", None)
        if expire is not None:
            expire()

    def get(self, key: CacheKey) -> CrossCorrelationResult | None:
        """Return a fresh cached result, or None."""
        with self._lock:
            result = self._entries.get(key)
            if result is None:
                self._misses += 1
                return None
            self._hits += 1
            return result

    def put(self, key: CacheKey, result: CrossCorrelationResult) -> None:
        """Store *result* under *key*, evicting the oldest entry if full."""
        with self._lock:
            self._entries[key] = result

    def get_or_analyze(
        self,
        series_a: Iterable[Any] | pd.DataFrame,
        series_b: Iterable[Any] | pd.DataFrame,
        max_lag: int = DEFAULT_MAX_LAG,
        *,
        key_a: Hashable | None = None,
        key_b: Hashable | None = None,
    ) -> CrossCorrelationResult:
        """Return the cached analysis for the pair, running it on a miss."""
        if key_a is None or key_b is None:
            # Fingerprinting may consume iterators; materialize first.
            series_a = series_a if isinstance(series_a, pd.DataFrame) else list(series_a or [])
            series_b = series_b if isinstance(series_b, pd.DataFrame) else list(series_b or [])

        key = self.make_key(series_a, series_b, max_lag, key_a=key_a, key_b=key_b)
        cached = self.get(key)
        if cached is not None:
            return cached

        result = analyze_cross_correlation(series_a, series_b, max_lag)
        self.put(key, result)
        return result

    def get_or_compute(
        self,
        series_a: Iterable[Any] | pd.DataFrame,
        series_b: Iterable[Any] | pd.DataFrame,
        max_lag: int = DEFAULT_MAX_LAG,
        *,
        key_a: Hashable | None = None,
        key_b: Hashable | None = None,
    ) -> float:
        """Return the cached 0-100 score for the pair, computing it on a miss."""
        return self.get_or_analyze(
            series_a, series_b, max_lag, key_a=key_a, key_b=key_b,
        ).score

    # -- maintenance --------------------------------------------------------

    def invalidate(self, key: CacheKey) -> bool:
        """Drop one entry; returns True if it was present."""
        with self._lock:
            return self._entries.pop(key, None) is not None

    def clear(self) -> None:
        with self._lock:
            # clear() may route through popitem; it is not an eviction.
            evictions = self._entries.evictions
            self._entries.clear()
            self._entries.evictions = evictions

    def stats(self) -> dict[str, int]:
        with self._lock:
            self._purge()
            return {
                "hits": self._hits,
                "misses": self._misses,
                "evictions": self._entries.evictions,
                "size": len(self._entries),
            }

    def __len__(self) -> int:
        with self._lock:
            self._purge()
            return len(self._entries)

    def __contains__(self, key: object) -> bool:
        with self._lock:
            return key in self._entries
