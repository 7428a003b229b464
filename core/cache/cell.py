"""One-shot result cell for a text pending translation.

A cell starts pending and is completed exactly once, either with its translation or with the error
that made its batch fail. Any number of threads may wait on it.
"""

from __future__ import annotations

import threading
from enum import Enum, auto
from typing import Self

from utils.string_utils import StringUtils

__all__: list[str] = [
    "CellState",
    "CellStateError",
    "TranslationCell",
    "TranslationFailedError",
]


class CellState(Enum):
    PENDING = auto()
    RESOLVED = auto()
    FAILED = auto()


class CellStateError(Exception):
    """A cell was completed more than once."""


class TranslationFailedError(Exception):
    """The batch holding the cell failed; the cause is chained."""


class TranslationCell:
    """A text and its eventually available translation.

    Equality and hashing use the case-insensitive original, matching the cache key.

    Example:
        cell = translator.translate("Hello")
        ...
        print(cell.get())  # blocks until the batch is translated
    """

    def __init__(self, original: str, translation: str | None = None) -> None:
        self._original: str = original
        self._translation: str | None = translation
        self._error: BaseException | None = None
        self._state: CellState = CellState.PENDING if translation is None else CellState.RESOLVED
        self._condition: threading.Condition = threading.Condition()

    @classmethod
    def pending(cls, original: str) -> Self:
        return cls(original)

    @classmethod
    def resolved(cls, original: str, translation: str) -> Self:
        return cls(original, StringUtils.ensure_str(translation))

    @property
    def original(self) -> str:
        return self._original

    @property
    def key(self) -> str:
        return StringUtils.normalize_key(self._original)

    @property
    def state(self) -> CellState:
        with self._condition:
            return self._state

    @property
    def is_resolved(self) -> bool:
        return self.state is CellState.RESOLVED

    @property
    def is_failed(self) -> bool:
        return self.state is CellState.FAILED

    @property
    def is_done(self) -> bool:
        return self.state is not CellState.PENDING

    def resolve(self, translation: str) -> None:
        """Complete the cell with its translation and wake every waiter.

        Raises:
            CellStateError: If the cell is already resolved or failed.
        """
        with self._condition:
            if self._state is not CellState.PENDING:
                msg: str = f"Cell for '{self._original[:32]}' is already {self._state.name.lower()}"
                raise CellStateError(msg)
            self._translation = StringUtils.ensure_str(translation)
            self._state = CellState.RESOLVED
            self._condition.notify_all()

    def fail(self, error: BaseException) -> None:
        """Complete the cell with an error and wake every waiter.

        Raises:
            CellStateError: If the cell is already resolved or failed.
        """
        with self._condition:
            if self._state is not CellState.PENDING:
                msg: str = f"Cell for '{self._original[:32]}' is already {self._state.name.lower()}"
                raise CellStateError(msg)
            self._error = error
            self._state = CellState.FAILED
            self._condition.notify_all()

    def try_get(self) -> str | None:
        """Return the translation, or None while pending or after a failure. Never blocks."""
        with self._condition:
            return self._translation if self._state is CellState.RESOLVED else None

    def get(self, timeout: float | None = None) -> str:
        """Block until the cell is complete and return the translation.

        Args:
            timeout (float | None): Seconds to wait. None waits without limit.

        Returns:
            str: The translated text.

        Raises:
            TranslationFailedError: If the batch holding this cell failed.
            TimeoutError: If `timeout` elapsed first.
        """
        with self._condition:
            if not self._condition.wait_for(lambda: self._state is not CellState.PENDING, timeout=timeout):
                msg: str = f"Translation of '{self._original[:32]}' still pending after {timeout} sec"
                raise TimeoutError(msg)
            if self._state is CellState.FAILED:
                msg = f"Translation of '{self._original[:32]}' failed"
                raise TranslationFailedError(msg) from self._error
            return StringUtils.ensure_str(self._translation)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, TranslationCell):
            return NotImplemented
        return self.key == other.key

    def __hash__(self) -> int:
        return hash(self.key)

    def __str__(self) -> str:
        return self.try_get() or ""

    def __repr__(self) -> str:
        return (
            f"TranslationCell(original={self._original!r}, translation={self.try_get()!r}, "
            f"state={self.state.name})"
        )
