"""Asynchronous batch dispatcher.

Runs one asyncio event loop on a daemon thread. Each detached batch becomes a task on that loop;
a semaphore caps the number of provider calls in flight.
"""

from __future__ import annotations

import asyncio
import threading
from typing import TYPE_CHECKING, Any, TypeVar

from core.cache.cell import CellStateError, TranslationCell
from core.trans.interface import TranslateExceptionError, TranslationMismatchError
from utils.logger_utils import LoggerUtils

if TYPE_CHECKING:
    import logging
    from collections.abc import Coroutine
    from concurrent.futures import Future

    from core.cache.registry import CacheInstance
    from models.translation_models import Batch

__all__: list[str] = ["Dispatcher", "DispatcherStoppedError"]

logger: logging.Logger = LoggerUtils.get_logger(__name__)

T = TypeVar("T")


class DispatcherStoppedError(RuntimeError):
    """Work was submitted to a dispatcher whose loop is not running."""


class Dispatcher:
    """Executes provider calls for detached batches on a background event loop."""

    def __init__(self, max_concurrent: int) -> None:
        """Initialize the dispatcher. The loop thread starts with start().

        Args:
            max_concurrent (int): Largest number of provider calls running at once.

        Raises:
            ValueError: If max_concurrent is not positive.
        """
        if max_concurrent <= 0:
            msg: str = f"max_concurrent must be positive, got {max_concurrent}"
            raise ValueError(msg)
        self.max_concurrent: int = max_concurrent
        self._loop: asyncio.AbstractEventLoop | None = None
        self._thread: threading.Thread | None = None
        self._semaphore: asyncio.Semaphore | None = None
        self._tasks: set[asyncio.Task[None]] = set()
        self._lock: threading.Lock = threading.Lock()

    @property
    def is_running(self) -> bool:
        return self._loop is not None and self._loop.is_running()

    def start(self) -> None:
        """Start the event loop thread. Does nothing if already running."""
        with self._lock:
            if self._thread is not None:
                return
            loop: asyncio.AbstractEventLoop = asyncio.new_event_loop()
            started: threading.Event = threading.Event()

            def _run_loop() -> None:
                asyncio.set_event_loop(loop)
                self._semaphore = asyncio.Semaphore(self.max_concurrent)
                loop.call_soon(started.set)
                loop.run_forever()

            self._loop = loop
            self._thread = threading.Thread(target=_run_loop, name="TransCacheDispatcher", daemon=True)
            self._thread.start()
            started.wait()
        logger.debug("Dispatcher started (max concurrent: %d)", self.max_concurrent)

    def stop(self) -> None:
        """Wait for scheduled batches, then stop the loop and join its thread. Safe to call more than once."""
        with self._lock:
            loop: asyncio.AbstractEventLoop | None = self._loop
            thread: threading.Thread | None = self._thread
            if loop is None or thread is None:
                return
            self._loop = None
            self._thread = None

        asyncio.run_coroutine_threadsafe(self._wait_tasks(), loop).result()
        loop.call_soon_threadsafe(loop.stop)
        thread.join()
        loop.close()
        logger.debug("Dispatcher stopped")

    async def _wait_tasks(self) -> None:
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    def _require_loop(self) -> asyncio.AbstractEventLoop:
        loop: asyncio.AbstractEventLoop | None = self._loop
        if loop is None:
            msg: str = "Dispatcher is not running"
            raise DispatcherStoppedError(msg)
        return loop

    def run(self, coro: Coroutine[Any, Any, T]) -> T:
        """Run a coroutine on the dispatcher loop and wait for its result.

        Must not be called from the loop thread itself.
        """
        try:
            loop: asyncio.AbstractEventLoop = self._require_loop()
        except DispatcherStoppedError:
            coro.close()
            raise
        return asyncio.run_coroutine_threadsafe(coro, loop).result()

    def dispatch(self, batch: Batch, instance: CacheInstance) -> Future[None]:
        """Schedule a batch for translation. Returns without waiting.

        The instance's pending-dispatch counter is incremented here, in the caller's thread, so a
        concurrent drain cannot miss a batch that has been detached but not yet started.

        Args:
            batch (Batch): Detached batch.
            instance (CacheInstance): Instance owning the batch's cells.

        Returns:
            Future[None]: Completes when the batch has been resolved or failed.

        Raises:
            DispatcherStoppedError: If the loop is not running.
        """
        loop: asyncio.AbstractEventLoop = self._require_loop()
        instance.begin_dispatch()
        try:
            return asyncio.run_coroutine_threadsafe(self._track(batch, instance), loop)
        except RuntimeError as err:
            instance.end_dispatch()
            msg: str = "Dispatcher loop refused the batch"
            raise DispatcherStoppedError(msg) from err

    async def _track(self, batch: Batch, instance: CacheInstance) -> None:
        task: asyncio.Task[None] | None = asyncio.current_task()
        if task is not None:
            self._tasks.add(task)
        try:
            await self._run(batch, instance)
        finally:
            if task is not None:
                self._tasks.discard(task)

    async def _run(self, batch: Batch, instance: CacheInstance) -> None:
        semaphore: asyncio.Semaphore | None = self._semaphore
        try:
            if semaphore is None:
                await self._translate(batch, instance)
            else:
                async with semaphore:
                    await self._translate(batch, instance)
        except Exception as err:  # noqa: BLE001
            self._fail(batch, instance, err)
        finally:
            instance.end_dispatch()

    async def _translate(self, batch: Batch, instance: CacheInstance) -> None:
        store = instance.store
        texts: list[str] = batch.originals
        logger.debug(
            "Dispatching %d texts (%d chars) for identity %s: %s -> %s",
            len(texts),
            batch.char_count,
            batch.identity[:16],
            store.source_lang,
            store.target_lang,
        )
        results: list[str] = await batch.provider.translate_batch(texts, store.target_lang, store.source_lang)

        if len(results) != len(texts):
            msg: str = f"Provider returned {len(results)} translations for {len(texts)} texts"
            raise TranslationMismatchError(msg)

        recorded: int = await asyncio.to_thread(store.resolve_batch, batch.cells, results)
        logger.info(
            "Translated batch of %d texts for identity %s (%d newly cached)",
            len(texts),
            batch.identity[:16],
            recorded,
        )

    @staticmethod
    def _fail(batch: Batch, instance: CacheInstance, err: Exception) -> None:
        if isinstance(err, TranslateExceptionError):
            logger.error("Translation of batch for identity %s failed: %s", batch.identity[:16], err)
        else:
            logger.exception("Unexpected error while translating batch for identity %s", batch.identity[:16])

        failed: list[TranslationCell] = []
        for cell in batch.cells:
            try:
                cell.fail(err)
            except CellStateError:
                continue
            failed.append(cell)
        removed: int = instance.store.discard(failed)
        logger.warning(
            "%d cells marked failed, %d evicted from cache '%s'", len(failed), removed, instance.store.path.name
        )
