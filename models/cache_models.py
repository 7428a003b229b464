"""Models for translation cache data.

Defines the persisted record pair and the usage statistics reported by a cache store.
"""

from __future__ import annotations

from dataclasses import dataclass

__all__: list[str] = [
    "CacheRecord",
    "CacheStatistics",
]


@dataclass(frozen=True)
class CacheRecord:
    """One original/translation pair as stored in a cache file.

    Attributes:
        original (str): Source text, newlines restored.
        translation (str): Translated text, newlines restored.
    """

    original: str
    translation: str


@dataclass
class CacheStatistics:
    """Cache usage statistics.

    Attributes:
        total_entries (int): Number of entries currently held in memory.
        hits (int): Lookups answered by an existing entry (resolved or still pending).
        misses (int): Lookups that created a new pending entry.
        fed_entries (int): Pairs inserted directly through feed().
        dispatched_batches (int): Batches resolved by the provider.
        failed_batches (int): Batches whose provider call failed.
    """

    total_entries: int = 0
    hits: int = 0
    misses: int = 0
    fed_entries: int = 0
    dispatched_batches: int = 0
    failed_batches: int = 0
