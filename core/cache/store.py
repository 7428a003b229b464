# ruff: noqa: SIM115
"""Translation cache store.

Holds the cells of one (source language, target language, directory) triple in memory and mirrors
every resolved pair into an append-only text file. Each record is two lines, original then
translation, with literal newlines replaced by a sentinel.
"""

from __future__ import annotations

import os
import threading
from dataclasses import replace
from typing import TYPE_CHECKING, ClassVar, NamedTuple, TextIO

from core.cache.cell import TranslationCell
from models.cache_models import CacheRecord, CacheStatistics
from utils.file_utils import PathUnusableError
from utils.logger_utils import LoggerUtils
from utils.string_utils import StringUtils

if TYPE_CHECKING:
    import logging
    from collections.abc import Iterable, Iterator, Sequence
    from pathlib import Path

__all__: list[str] = [
    "CacheClosedError",
    "CacheStore",
    "ConflictingEntryError",
    "CorruptCacheError",
    "Lookup",
    "TranslationCacheError",
]

logger: logging.Logger = LoggerUtils.get_logger(__name__)


class TranslationCacheError(Exception):
    """Base class of the cache errors."""


class CorruptCacheError(TranslationCacheError):
    """The cache file cannot be read or has an unpaired line."""


class ConflictingEntryError(TranslationCacheError):
    """A fed pair disagrees with the cached translation and overwriting was not allowed."""


class CacheClosedError(TranslationCacheError):
    """The store was detached from its instance and no longer serves lookups."""


class Lookup(NamedTuple):
    """Result of CacheStore.lookup_or_create().

    Attributes:
        cell (TranslationCell): The cached or newly created cell.
        hit (bool): True if the cell already existed, False if it was created by this lookup.
    """

    cell: TranslationCell
    hit: bool


class CacheStore:
    """In-memory cell map plus durable append log for one language pair and directory.

    One re-entrant lock serializes map mutation together with the file append paired with it,
    so the map and the file never disagree.

    Attributes:
        FILE_SUFFIX (ClassVar[str]): Extension of cache files.
        HIT_LOG_INTERVAL (ClassVar[int]): Log a hit summary every this many cache hits.
    """

    FILE_SUFFIX: ClassVar[str] = ".cache"
    HIT_LOG_INTERVAL: ClassVar[int] = 50

    def __init__(self, source_lang: str, target_lang: str, directory: Path) -> None:
        self.source_lang: str = source_lang
        self.target_lang: str = target_lang
        self.directory: Path = directory
        self.path: Path = directory / self.file_name(source_lang, target_lang)
        self._cells: dict[str, TranslationCell] | None = {}
        self._out: TextIO | None = None
        self._lock: threading.RLock = threading.RLock()
        self._stats: CacheStatistics = CacheStatistics()

    @classmethod
    def file_name(cls, source_lang: str, target_lang: str) -> str:
        """Build the cache file name, e.g. 'EN_FR.cache'."""
        return f"{source_lang.upper()}_{target_lang.upper()}{cls.FILE_SUFFIX}"

    @property
    def is_open(self) -> bool:
        return self._out is not None and not self._out.closed

    def __len__(self) -> int:
        with self._lock:
            return len(self._cells) if self._cells is not None else 0

    @property
    def statistics(self) -> CacheStatistics:
        with self._lock:
            total: int = len(self._cells) if self._cells is not None else 0
            return replace(self._stats, total_entries=total)

    def _map(self) -> dict[str, TranslationCell]:
        if self._cells is None:
            msg: str = f"Cache '{self.path.name}' has been detached"
            raise CacheClosedError(msg)
        return self._cells

    @staticmethod
    def read_records(path: Path) -> Iterator[CacheRecord]:
        """Parse a cache file into records.

        Args:
            path (Path): Cache file to read.

        Yields:
            CacheRecord: Each original/translation pair, newlines restored.

        Raises:
            CorruptCacheError: If the file cannot be read or ends with an unpaired line.
        """
        try:
            with path.open("r", encoding="utf-8", newline="") as f:
                content: str = f.read()
        except (OSError, UnicodeDecodeError) as err:
            msg: str = f"Cache file {path} could not be read"
            raise CorruptCacheError(msg) from err

        lines: list[str] = content.split("\n")
        if lines and lines[-1] == "":
            lines.pop()
        if len(lines) % 2 != 0:
            msg = f"The cache file structure appears to be corrupted: {path} ({len(lines)} lines)"
            raise CorruptCacheError(msg)

        for index in range(0, len(lines), 2):
            yield CacheRecord(
                original=StringUtils.restore_newlines(lines[index]),
                translation=StringUtils.restore_newlines(lines[index + 1]),
            )

    def load(self) -> int:
        """Load the cache file into memory. A missing file is an empty cache.

        Returns:
            int: Number of records read.

        Raises:
            CorruptCacheError: If the file is unreadable or malformed.
        """
        if not self.path.exists():
            logger.info("New cache file will be created: %s", self.path)
            return 0

        loaded: dict[str, TranslationCell] = {}
        count: int = 0
        for record in self.read_records(self.path):
            # Later records win; they come from an overwriting feed.
            loaded[StringUtils.normalize_key(record.original)] = TranslationCell.resolved(
                record.original, record.translation
            )
            count += 1

        with self._lock:
            self._map().update(loaded)
        logger.info("Loaded %d records (%d entries) from %s", count, len(loaded), self.path)
        return count

    def open(self) -> None:
        """Open the cache file for appending.

        Raises:
            PathUnusableError: If the file cannot be opened for writing.
        """
        with self._lock:
            if self.is_open:
                return
            try:
                self._out = self.path.open("a", encoding="utf-8", newline="\n")
            except OSError as err:
                msg: str = f"Could not open cache file {self.path}"
                raise PathUnusableError(msg) from err
        logger.debug("Cache file opened for append: %s", self.path)

    def get(self, original: str) -> TranslationCell | None:
        with self._lock:
            return self._map().get(StringUtils.normalize_key(original))

    def lookup_or_create(self, original: str) -> Lookup:
        """Find the cell for `original`, inserting a pending one on a miss.

        The pending cell is inserted before returning, so concurrent lookups of the same text share it.

        Returns:
            Lookup: The cell and whether it already existed.

        Raises:
            CacheClosedError: If the store has been detached.
        """
        key: str = StringUtils.normalize_key(original)
        with self._lock:
            cells: dict[str, TranslationCell] = self._map()
            cell: TranslationCell | None = cells.get(key)
            if cell is None:
                cell = TranslationCell.pending(original)
                cells[key] = cell
                self._stats.misses += 1
                return Lookup(cell, hit=False)

            self._stats.hits += 1
            if self._stats.hits % self.HIT_LOG_INTERVAL == 0:
                logger.info("%d strings served from cache '%s'", self._stats.hits, self.path.name)
            return Lookup(cell, hit=True)

    def feed(self, original: str, translation: str, *, overwrite: bool = False) -> bool:
        """Insert a known pair directly.

        Args:
            original (str): Source text. Sentinels are restored to newlines.
            translation (str): Translated text. Sentinels are restored to newlines.
            overwrite (bool): Replace a different cached translation instead of failing.

        Returns:
            bool: True if the pair was written, False if it was already cached.

        Raises:
            ConflictingEntryError: If a different translation is cached and `overwrite` is False.
            CacheClosedError: If the store has been detached.
        """
        original = StringUtils.restore_newlines(original)
        translation = StringUtils.restore_newlines(translation)
        key: str = StringUtils.normalize_key(original)

        with self._lock:
            cells: dict[str, TranslationCell] = self._map()
            entry: TranslationCell | None = cells.get(key)

            if entry is not None and not entry.is_done:
                # A batch holding this text is still in flight; the fed value settles it first.
                entry.resolve(translation)
                self._stats.fed_entries += 1
                self.append(entry.original, translation)
                return True

            if entry is not None and entry.is_resolved:
                cached: str = entry.try_get() or ""
                if cached.lower() == translation.lower():
                    return False
                if not overwrite:
                    self.flush()
                    msg: str = f'Key "[{original}]" already exists in cache as "[{cached}]", not "[{translation}]"'
                    raise ConflictingEntryError(msg)

            cells[key] = TranslationCell.resolved(original, translation)
            self._stats.fed_entries += 1
            self.append(original, translation)
            return True

    def append(self, original: str, translation: str) -> None:
        """Write one record to the cache file.

        Raises:
            CacheClosedError: If the file is not open.
        """
        with self._lock:
            self._write_pair(original, translation)
            self._require_out().flush()

    def _require_out(self) -> TextIO:
        if self._out is None or self._out.closed:
            msg: str = f"Cache file {self.path} is not open"
            raise CacheClosedError(msg)
        return self._out

    def _write_pair(self, original: str, translation: str) -> None:
        out: TextIO = self._require_out()
        out.write(StringUtils.escape_newlines(original) + "\n")
        out.write(StringUtils.escape_newlines(translation) + "\n")

    def resolve_batch(self, cells: Sequence[TranslationCell], translations: Sequence[str]) -> int:
        """Resolve a dispatched batch and append its pairs under one lock.

        Cells already settled, e.g. by a feed while the batch was in flight, keep their value and
        are not written again.

        Args:
            cells (Sequence[TranslationCell]): The batch cells, in submission order.
            translations (Sequence[str]): One translation per cell.

        Returns:
            int: Number of cells resolved and recorded.

        Raises:
            ValueError: If the two sequences differ in length.
        """
        if len(cells) != len(translations):
            msg: str = f"{len(translations)} translations for {len(cells)} cells"
            raise ValueError(msg)

        with self._lock:
            written: int = 0
            for cell, translation in zip(cells, translations, strict=True):
                if cell.is_done:
                    continue
                cell.resolve(translation)
                self._write_pair(cell.original, translation)
                written += 1
            if written:
                self._require_out().flush()
            self._stats.dispatched_batches += 1
        logger.debug("Recorded %d translated pairs in %s", written, self.path.name)
        return written

    def discard(self, cells: Iterable[TranslationCell]) -> int:
        """Drop failed cells from the map so a later request starts a fresh one.

        Only the exact cell objects given are removed.

        Returns:
            int: Number of entries removed.
        """
        removed: int = 0
        with self._lock:
            self._stats.failed_batches += 1
            if self._cells is None:
                return 0
            for cell in cells:
                if self._cells.get(cell.key) is cell:
                    del self._cells[cell.key]
                    removed += 1
        return removed

    def flush(self) -> None:
        """Push buffered records to durable storage."""
        with self._lock:
            if not self.is_open:
                return
            out: TextIO = self._require_out()
            out.flush()
            os.fsync(out.fileno())

    def detach(self) -> None:
        """Release the in-memory map; later lookups raise CacheClosedError."""
        with self._lock:
            self._cells = None
        logger.debug("Cache map detached: %s", self.path.name)

    def close(self) -> None:
        """Flush and close the cache file. Safe to call more than once."""
        with self._lock:
            if not self.is_open:
                return
            self.flush()
            self._require_out().close()
            self._out = None
        logger.info("Cache file closed: %s", self.path)
