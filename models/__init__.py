"""Data models for the translation cache.

This package contains dataclass definitions for configuration, cache records and statistics,
and the batches handed to the dispatcher.
"""

from __future__ import annotations

from models.cache_models import CacheRecord, CacheStatistics
from models.config_models import Cache, Config, General, Translation
from models.translation_models import Batch

__all__: list[str] = [
    "Batch",
    "Cache",
    "CacheRecord",
    "CacheStatistics",
    "Config",
    "General",
    "Translation",
]
