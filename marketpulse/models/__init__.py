"""Correlation modelling modules.

cross_correlation  -- lagged Pearson cross-correlation engine (0-100 score)
score_cache        -- LRU/TTL memoization of scores keyed by series identity
"""
