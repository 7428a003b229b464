"""Character-threshold batch accumulator.

Cache misses are collected per client identity and detached as one batch once their combined
length reaches the threshold, or when a flush is forced.
"""

from __future__ import annotations

import threading
from typing import TYPE_CHECKING, TypeAlias

from models.translation_models import Batch
from utils.logger_utils import LoggerUtils

if TYPE_CHECKING:
    import logging
    from collections.abc import Callable
    from concurrent.futures import Future

    from core.cache.cell import TranslationCell
    from core.trans.interface import TransInterface

__all__: list[str] = ["BatchAccumulator"]

logger: logging.Logger = LoggerUtils.get_logger(__name__)

DispatchCallback: TypeAlias = "Callable[[Batch], Future[None]]"


class _PendingSet:
    """Cells waiting for one identity. Guarded by its own lock."""

    def __init__(self) -> None:
        self.lock: threading.Lock = threading.Lock()
        self.cells: list[TranslationCell] = []
        self.char_count: int = 0
        self.provider: TransInterface | None = None

    def detach(self, identity: str) -> Batch | None:
        """Take every pending cell and reset the counter. Caller holds `lock`."""
        if not self.cells or self.provider is None:
            return None
        batch = Batch(identity=identity, provider=self.provider, cells=self.cells, char_count=self.char_count)
        self.cells = []
        self.char_count = 0
        return batch


class BatchAccumulator:
    """Groups newly missed cells per identity until a character threshold is crossed.

    Detaching a batch and resetting its counter happen under the identity's lock, so concurrent
    submissions never lose a cell or place one in two batches. The dispatch callback is invoked
    outside that lock.
    """

    def __init__(self, max_batch_chars: int, dispatch: DispatchCallback) -> None:
        """Initialize the accumulator.

        Args:
            max_batch_chars (int): Configured threshold. A provider with a lower ceiling lowers it.
            dispatch (DispatchCallback): Receives each detached batch; returns its completion future.

        Raises:
            ValueError: If max_batch_chars is not positive.
        """
        if max_batch_chars <= 0:
            msg: str = f"max_batch_chars must be positive, got {max_batch_chars}"
            raise ValueError(msg)
        self.max_batch_chars: int = max_batch_chars
        self._dispatch: DispatchCallback = dispatch
        self._pending: dict[str, _PendingSet] = {}
        self._table_lock: threading.Lock = threading.Lock()

    def _pending_set(self, identity: str) -> _PendingSet:
        with self._table_lock:
            pending: _PendingSet | None = self._pending.get(identity)
            if pending is None:
                pending = _PendingSet()
                self._pending[identity] = pending
            return pending

    def threshold_for(self, provider: TransInterface) -> int:
        """Effective threshold for a provider: the configured maximum capped by the provider's own."""
        try:
            return min(self.max_batch_chars, provider.max_batch_chars)
        except RuntimeError:
            # engine attributes not set (uninitialized engine)
            return self.max_batch_chars

    def submit(self, identity: str, cell: TranslationCell, provider: TransInterface) -> Future[None] | None:
        """Queue a missed cell and dispatch the identity's batch if the threshold is reached.

        Args:
            identity (str): Client identity that scopes the batch.
            cell (TranslationCell): Newly created pending cell.
            provider (TransInterface): Engine used for this identity's batches.

        Returns:
            Future[None] | None: Completion future of the dispatched batch, or None if still accumulating.
        """
        pending: _PendingSet = self._pending_set(identity)
        with pending.lock:
            if pending.provider is None:
                pending.provider = provider
            pending.cells.append(cell)
            pending.char_count += len(cell.original)
            batch: Batch | None = None
            if pending.char_count >= self.threshold_for(pending.provider):
                batch = pending.detach(identity)

        if batch is None:
            return None
        logger.debug(
            "Batch threshold reached for identity %s (%d cells, %d chars)",
            identity[:16],
            len(batch),
            batch.char_count,
        )
        return self._dispatch(batch)

    def force_flush(self, identity: str) -> Future[None] | None:
        """Dispatch whatever is pending for `identity`, even below the threshold.

        Returns:
            Future[None] | None: Completion future of the dispatched batch, or None if nothing was pending.
        """
        with self._table_lock:
            pending: _PendingSet | None = self._pending.get(identity)
        if pending is None:
            return None

        with pending.lock:
            batch: Batch | None = pending.detach(identity)
        if batch is None:
            return None
        logger.debug("Forced flush for identity %s (%d cells, %d chars)", identity[:16], len(batch), batch.char_count)
        return self._dispatch(batch)

    def flush_containing(self, cell: TranslationCell) -> Future[None] | None:
        """Force-flush the identity whose pending list holds `cell`, whoever submitted it.

        Returns:
            Future[None] | None: Completion future, or None if the cell is not waiting in any list.
        """
        with self._table_lock:
            candidates: list[tuple[str, _PendingSet]] = list(self._pending.items())

        for identity, pending in candidates:
            with pending.lock:
                if not any(queued is cell for queued in pending.cells):
                    continue
                batch: Batch | None = pending.detach(identity)
            if batch is not None:
                logger.debug("Flushed batch of identity %s holding '%s'", identity[:16], cell.original[:32])
                return self._dispatch(batch)
        return None

    def flush_all(self) -> list[Future[None]]:
        """Force-flush every identity.

        Returns:
            list[Future[None]]: Completion futures of the dispatched batches.
        """
        with self._table_lock:
            identities: list[str] = list(self._pending)
        futures: list[Future[None]] = []
        for identity in identities:
            future: Future[None] | None = self.force_flush(identity)
            if future is not None:
                futures.append(future)
        return futures

    def pending_cells(self, identity: str) -> list[TranslationCell]:
        with self._table_lock:
            pending: _PendingSet | None = self._pending.get(identity)
        if pending is None:
            return []
        with pending.lock:
            return list(pending.cells)

    def pending_chars(self, identity: str) -> int:
        with self._table_lock:
            pending: _PendingSet | None = self._pending.get(identity)
        if pending is None:
            return 0
        with pending.lock:
            return pending.char_count
