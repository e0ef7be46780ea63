"""MarketPulse -- lagged co-movement scoring for prediction-market prices
and news-sentiment time series.

The core is a lagged Pearson cross-correlation engine that turns two
irregularly-sampled record sequences into a single 0-100 strength score.
Surrounding helpers adapt market price histories, memoize repeated
scores, and rank candidate series against a target.
"""

__version__ = "0.1.0"
