"""Client handle for the translation cache.

A Translator binds one client identity (credential and application name) to the shared cache
instance of its language pair and directory, and submits cache misses for batched translation.
"""

from __future__ import annotations

import os
import threading
from pathlib import Path
from typing import TYPE_CHECKING, ClassVar, Self

from core.cache.cell import TranslationCell
from core.cache.store import CacheClosedError
from core.trans.interface import TransInterface, TranslateExceptionError
from utils.logger_utils import LoggerUtils
from utils.string_utils import StringUtils

if TYPE_CHECKING:
    import logging
    from types import TracebackType

    from core.cache.registry import CacheInstance, InstanceRegistry
    from core.cache.store import Lookup
    from models.cache_models import CacheStatistics

__all__: list[str] = ["Translator", "TranslatorSetupError"]

logger: logging.Logger = LoggerUtils.get_logger(__name__)


class TranslatorSetupError(Exception):
    """A Translator could not be constructed from the given arguments and configuration."""


class Translator:
    """Translate texts through the shared cache, batching misses per identity.

    Example:
        with Translator(registry, "en", "fr", key="...") as translator:
            cell = translator.translate("Hello")    # returns at once
            print(translator.translate_now("World"))  # waits for its batch

    Attributes:
        EMPTY (ClassVar[TranslationCell]): Resolved cell returned for blank text.
    """

    EMPTY: ClassVar[TranslationCell] = TranslationCell.resolved("", "")

    def __init__(
        self,
        registry: InstanceRegistry,
        source_lang: str,
        target_lang: str | None = None,
        *,
        key: str | None = None,
        app_name: str | None = None,
        directory: str | Path | None = None,
        relative: bool = False,
        engine: TransInterface | None = None,
    ) -> None:
        """Bind a new handle to the cache instance of its language pair and directory.

        Args:
            registry (InstanceRegistry): Registry shared by every handle of the application.
            source_lang (str): Source language code.
            target_lang (str | None): Target language code. Defaults to TRANSLATION.DEFAULT_TARGET.
            key (str | None): Provider credential. Defaults to TRANSLATION.DEFAULT_KEY, then the
                `<ENGINE>_API_OAUTH` environment variable.
            app_name (str | None): Application name mixed into the identity. Defaults to TRANSLATION.APP_NAME.
            directory (str | Path | None): Cache directory. Defaults to CACHE.DIRECTORY.
            relative (bool): Treat `directory` as relative to CACHE.DIRECTORY.
            engine (TransInterface | None): Provider to use instead of the configured engine.

        Raises:
            TranslatorSetupError: If a language, the credential or the directory is missing,
                or the engine cannot be created.
            PathUnusableError: If the cache directory cannot be used.
            CorruptCacheError: If the cache file is malformed.
        """
        config = registry.config
        self.registry: InstanceRegistry = registry
        self.source_lang: str = StringUtils.ensure_str(source_lang).strip()
        self.target_lang: str = StringUtils.ensure_str(target_lang or config.TRANSLATION.DEFAULT_TARGET).strip()
        if not self.source_lang or not self.target_lang:
            msg: str = "Source and target languages must be specified"
            raise TranslatorSetupError(msg)

        engine_name: str = engine.fetch_engine_name() if engine is not None else config.TRANSLATION.ENGINE
        auth_key: str = key or config.TRANSLATION.DEFAULT_KEY or os.getenv(f"{engine_name.upper()}_API_OAUTH", "")
        if not auth_key:
            msg = f"No credential given for engine '{engine_name}'"
            raise TranslatorSetupError(msg)

        self.app_name: str = app_name or config.TRANSLATION.APP_NAME
        self.identity: str = StringUtils.hash_identity(auth_key, self.app_name)
        self.directory: Path = self._select_directory(directory, relative, config.CACHE.DIRECTORY)

        if engine is None:
            try:
                engine = registry.trans_manager.get_engine(self.identity, auth_key)
            except TranslateExceptionError as err:
                msg = f"Translation engine '{engine_name}' is not usable"
                raise TranslatorSetupError(msg) from err
        self.provider: TransInterface = engine

        self._enabled: bool = True
        self._closed: bool = False
        self._lock: threading.Lock = threading.Lock()
        self.instance: CacheInstance = registry.acquire(self.source_lang, self.target_lang, self.directory, self)
        logger.info(
            "Translator ready: %s -> %s in %s (identity: %s)",
            self.source_lang,
            self.target_lang,
            self.directory,
            self.identity[:16],
        )

    @staticmethod
    def _select_directory(directory: str | Path | None, relative: bool, default: str) -> Path:
        if relative:
            if not directory or not default:
                msg: str = "A relative cache directory needs both a directory and CACHE.DIRECTORY"
                raise TranslatorSetupError(msg)
            return Path(default) / directory
        selected: str | Path | None = directory or default
        if not selected:
            msg = "No cache directory given and CACHE.DIRECTORY is not set"
            raise TranslatorSetupError(msg)
        return Path(selected)

    @property
    def is_enabled(self) -> bool:
        return self._enabled

    @property
    def is_closed(self) -> bool:
        return self._closed

    @property
    def statistics(self) -> CacheStatistics:
        return self.instance.store.statistics

    def enable(self) -> None:
        self._enabled = True

    def disable(self) -> None:
        """Return empty translations without touching the cache until enable() is called."""
        self._enabled = False

    def _require_open(self) -> None:
        if self._closed:
            msg: str = "Translator has been closed"
            raise CacheClosedError(msg)

    def _lookup(self, text: str) -> Lookup:
        self._require_open()
        result: Lookup = self.instance.store.lookup_or_create(text)
        if not result.hit:
            self.instance.batcher.submit(self.identity, result.cell, self.provider)
        return result

    def translate(self, text: str) -> TranslationCell:
        """Return the cell for `text` without waiting.

        A miss queues the text for the next batch of this identity; the cell resolves once that batch
        has been translated.

        Raises:
            CacheClosedError: If this handle has been closed.
        """
        if not self._enabled:
            return TranslationCell.resolved(StringUtils.ensure_str(text), "")
        if StringUtils.is_blank(text):
            return self.EMPTY
        return self._lookup(text).cell

    def translate_now(self, text: str, timeout: float | None = None) -> TranslationCell:
        """Return the resolved cell for `text`, dispatching its batch at once if needed.

        Args:
            text (str): Text to translate.
            timeout (float | None): Seconds to wait. None waits without limit.

        Returns:
            TranslationCell: A resolved cell.

        Raises:
            TranslationFailedError: If the batch holding the text failed.
            TimeoutError: If `timeout` elapsed first.
            CacheClosedError: If this handle has been closed.
        """
        if not self._enabled or StringUtils.is_blank(text):
            return self.translate(text)

        cell: TranslationCell = self._lookup(text).cell
        if cell.is_resolved:
            return cell

        self.instance.batcher.force_flush(self.identity)
        # another identity may have queued the same text first
        self.instance.batcher.flush_containing(cell)
        cell.get(timeout=timeout)
        return cell

    def feed(self, original: str, translation: str, *, overwrite: bool = False) -> bool:
        """Insert a known translation pair. Blank inputs are ignored.

        Returns:
            bool: True if the pair was written to the cache.

        Raises:
            ConflictingEntryError: If another translation is cached and `overwrite` is False.
            CacheClosedError: If this handle has been closed.
        """
        if StringUtils.is_blank(original) or StringUtils.is_blank(translation):
            return False
        self._require_open()
        return self.instance.store.feed(original, translation, overwrite=overwrite)

    def flush(self) -> None:
        """Push the cache file buffer to disk."""
        self.instance.store.flush()

    def close(self) -> None:
        """Dispatch this identity's pending texts and release the cache instance. Idempotent.

        Closing the last handle of an instance waits for its in-flight batches.
        """
        with self._lock:
            if self._closed:
                return
            self._closed = True
        self.instance.batcher.force_flush(self.identity)
        self.registry.release(self.instance, self)
        logger.debug("Translator closed (identity: %s)", self.identity[:16])

    def __enter__(self) -> Self:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_value: BaseException | None,
        traceback: TracebackType | None,
    ) -> None:
        self.close()

    def __repr__(self) -> str:
        return (
            f"Translator(source_lang={self.source_lang!r}, target_lang={self.target_lang!r}, "
            f"directory={str(self.directory)!r}, enabled={self._enabled})"
        )
