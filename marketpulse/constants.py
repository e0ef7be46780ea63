"""Global constants for the MarketPulse correlation engine."""

# ---------------------------------------------------------------------------
# Cross-correlation defaults
# ---------------------------------------------------------------------------
DEFAULT_MAX_LAG: int = 10

# Minimum aligned observations for a defined correlation.
MIN_ALIGNED_OBSERVATIONS: int = 2

# Correlation magnitude -> percentage.
SCORE_SCALE: float = 100.0

# ---------------------------------------------------------------------------
# Time-series record field names
# ---------------------------------------------------------------------------
TIMESTAMP_FIELD: str = "timestamp"
VALUE_FIELD: str = "value"

# Field name used when market price histories are adapted to records.
PRICE_FIELD: str = "price"

# ---------------------------------------------------------------------------
# Score cache defaults (overridden by config/global_config.yml)
# ---------------------------------------------------------------------------
CACHE_MAX_ENTRIES: int = 256
CACHE_TTL_SECONDS: float = 900.0
