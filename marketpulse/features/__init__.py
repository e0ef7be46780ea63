"""Series preparation and batch scoring on top of the correlation engine.

price_history  -- {t, p} history adapters and multi-series synchronization
pair_ranking   -- rank candidate series against a target by score
"""
