"""Request cache: named cache storage, fetch strategies and lifecycle.

The cache is transient: it lives as long as the ``CacheStorage`` object,
and the only automatic eviction is the version purge on kernel activation.
"""

from page9.cache.lifecycle import CacheLifecycle, cache_name
from page9.cache.storage import Cache, CacheStorage
from page9.cache.strategies import STRATEGIES, StrategyContext, run_strategy

__all__ = [
    "STRATEGIES",
    "Cache",
    "CacheLifecycle",
    "CacheStorage",
    "StrategyContext",
    "cache_name",
    "run_strategy",
]
