"""Registry of shared cache instances.

An instance is the cache store of one (source language, target language, directory) triple,
together with its batch accumulator, its pending-dispatch counter and the handles using it.
Handles asking for the same triple share one instance.
"""

from __future__ import annotations

import threading
from typing import TYPE_CHECKING, Self, TypeAlias

from core.cache.batcher import BatchAccumulator
from core.cache.dispatcher import Dispatcher
from core.cache.store import CacheStore
from core.trans.manager import TransManager
from utils.file_utils import FileUtils
from utils.logger_utils import LoggerUtils

if TYPE_CHECKING:
    import logging
    from concurrent.futures import Future
    from pathlib import Path
    from types import TracebackType

    from models.config_models import Config
    from models.translation_models import Batch

__all__: list[str] = ["CacheInstance", "InstanceKey", "InstanceRegistry"]

logger: logging.Logger = LoggerUtils.get_logger(__name__)

InstanceKey: TypeAlias = "tuple[str, str, Path]"


class CacheInstance:
    """A cache store shared by every handle with the same language pair and directory.

    Attributes:
        store (CacheStore): The cache map and its durable log.
        batcher (BatchAccumulator): Per-identity accumulation of missed cells.
        users (set[object]): Handles currently using this instance.
    """

    def __init__(self, store: CacheStore, max_batch_chars: int, dispatcher: Dispatcher) -> None:
        self.store: CacheStore = store
        self.batcher: BatchAccumulator = BatchAccumulator(max_batch_chars, self._dispatch)
        self.users: set[object] = set()
        self._dispatcher: Dispatcher = dispatcher
        self._pending: int = 0
        self._drained: threading.Condition = threading.Condition()

    @property
    def key(self) -> InstanceKey:
        return (self.store.source_lang.upper(), self.store.target_lang.upper(), self.store.directory)

    @property
    def pending_dispatches(self) -> int:
        with self._drained:
            return self._pending

    def _dispatch(self, batch: Batch) -> Future[None]:
        return self._dispatcher.dispatch(batch, self)

    def begin_dispatch(self) -> None:
        with self._drained:
            self._pending += 1

    def end_dispatch(self) -> None:
        with self._drained:
            self._pending -= 1
            if self._pending <= 0:
                self._pending = 0
                self._drained.notify_all()

    def wait_drained(self, timeout: float | None = None) -> bool:
        """Block until no dispatch of this instance is in flight.

        Args:
            timeout (float | None): Seconds to wait. None waits without limit.

        Returns:
            bool: True if drained, False if the timeout elapsed first.
        """
        with self._drained:
            return self._drained.wait_for(lambda: self._pending == 0, timeout=timeout)

    def __repr__(self) -> str:
        return f"CacheInstance(key={self.key!r}, users={len(self.users)}, pending={self.pending_dispatches})"


class InstanceRegistry:
    """Deduplicates cache instances and manages their lifecycle.

    Built once by the host application and passed to every Translator. Owns the dispatcher that
    runs provider calls and the engine manager that creates providers.

    Example:
        with InstanceRegistry(ConfigLoader().config) as registry:
            with Translator(registry, "en", "fr") as translator:
                print(translator.translate_now("Hello"))
    """

    def __init__(self, config: Config, trans_manager: TransManager | None = None) -> None:
        self.config: Config = config
        self.trans_manager: TransManager = trans_manager or TransManager(config)
        self.dispatcher: Dispatcher = Dispatcher(config.CACHE.MAX_CONCURRENT_DISPATCHES)
        self._instances: dict[InstanceKey, CacheInstance] = {}
        self._lock: threading.Lock = threading.Lock()
        self._closed: bool = False
        self.dispatcher.start()

    @staticmethod
    def _key(source_lang: str, target_lang: str, directory: Path) -> InstanceKey:
        return (source_lang.upper(), target_lang.upper(), directory)

    @property
    def instances(self) -> list[CacheInstance]:
        with self._lock:
            return list(self._instances.values())

    def __len__(self) -> int:
        with self._lock:
            return len(self._instances)

    def find(self, source_lang: str, target_lang: str, directory: str | Path) -> CacheInstance | None:
        """Return the live instance for the triple, if any."""
        key: InstanceKey = self._key(source_lang, target_lang, FileUtils.resolve_path(directory))
        with self._lock:
            return self._instances.get(key)

    def acquire(self, source_lang: str, target_lang: str, directory: str | Path, handle: object) -> CacheInstance:
        """Register `handle` as a user of the instance for the triple, building the instance if needed.

        Args:
            source_lang (str): Source language code.
            target_lang (str): Target language code.
            directory (str | Path): Cache directory. Created if missing.
            handle (object): The handle that will use the instance.

        Returns:
            CacheInstance: The shared instance.

        Raises:
            PathUnusableError: If the directory cannot be created, read or written.
            CorruptCacheError: If the cache file is malformed.
            RuntimeError: If the registry has been closed.
        """
        with self._lock:
            if self._closed:
                msg: str = "InstanceRegistry has been closed"
                raise RuntimeError(msg)

            path: Path = FileUtils.ensure_directory(directory)
            key: InstanceKey = self._key(source_lang, target_lang, path)
            instance: CacheInstance | None = self._instances.get(key)
            if instance is None:
                store = CacheStore(source_lang, target_lang, path)
                store.load()
                store.open()
                instance = CacheInstance(store, self.config.CACHE.MAX_BATCH_CHARS, self.dispatcher)
                self._instances[key] = instance
                logger.info("Cache instance created: %s (%d entries)", store.path, len(store))

            instance.users.add(handle)
            logger.debug("Handle registered on %s (%d users)", instance.store.path.name, len(instance.users))
            return instance

    def release(self, instance: CacheInstance, handle: object) -> None:
        """Unregister `handle`. The last user detaches the cache, drains its dispatches and closes the log.

        The registry lock is held for the whole sequence, so an acquire of the same triple waits
        until the old instance is closed and then builds a fresh one from the file.
        """
        with self._lock:
            instance.users.discard(handle)
            if instance.users:
                return
            self._retire(instance)

    def _retire(self, instance: CacheInstance) -> None:
        """Detach, unregister, drain and close one instance. Caller holds the registry lock."""
        instance.store.detach()
        if self._instances.get(instance.key) is instance:
            del self._instances[instance.key]
        pending: int = instance.pending_dispatches
        if pending:
            logger.info("Waiting for %d dispatch(es) on '%s'", pending, instance.store.path.name)
        instance.wait_drained()
        instance.store.close()
        logger.info("Cache instance released: %s", instance.store.path)

    def close(self) -> None:
        """Flush every pending batch, retire every instance and stop the dispatcher. Idempotent."""
        with self._lock:
            if self._closed:
                return
            self._closed = True
            instances: list[CacheInstance] = list(self._instances.values())
            for instance in instances:
                instance.batcher.flush_all()
            for instance in instances:
                instance.users.clear()
                self._retire(instance)

        self.dispatcher.run(self.trans_manager.close())
        self.dispatcher.stop()
        logger.info("InstanceRegistry closed (%d instance(s))", len(instances))

    def __enter__(self) -> Self:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_value: BaseException | None,
        traceback: TracebackType | None,
    ) -> None:
        self.close()
