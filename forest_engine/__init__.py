"""
Forest Engine: data-source resolution for the forest monitoring dashboard.

Resolves fire, deforestation, weather, biodiversity, satellite and
forest-region data from five public APIs through per-category fallback
chains (direct call, proxy, synthetic data) with TTL caching.
"""

__version__ = "1.0.0"
