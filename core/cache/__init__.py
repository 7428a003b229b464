"""Translation cache package.

Provides the result cell, the persistent cache store, per-identity batch accumulation,
asynchronous dispatch, and the registry of shared cache instances.
"""

from __future__ import annotations

from core.cache.batcher import BatchAccumulator
from core.cache.cell import CellState, CellStateError, TranslationCell, TranslationFailedError
from core.cache.dispatcher import Dispatcher, DispatcherStoppedError
from core.cache.registry import CacheInstance, InstanceRegistry
from core.cache.store import (
    CacheClosedError,
    CacheStore,
    ConflictingEntryError,
    CorruptCacheError,
    Lookup,
    TranslationCacheError,
)

__all__: list[str] = [
    "BatchAccumulator",
    "CacheClosedError",
    "CacheInstance",
    "CacheStore",
    "CellState",
    "CellStateError",
    "ConflictingEntryError",
    "CorruptCacheError",
    "Dispatcher",
    "DispatcherStoppedError",
    "InstanceRegistry",
    "Lookup",
    "TranslationCacheError",
    "TranslationCell",
    "TranslationFailedError",
]
