"""Tests for TranslationCell."""

from __future__ import annotations

import threading

import pytest

from core.cache.cell import CellState, CellStateError, TranslationCell, TranslationFailedError


def test_pending_cell_is_unresolved() -> None:
    cell = TranslationCell.pending("Hello")

    assert cell.state is CellState.PENDING
    assert cell.is_resolved is False
    assert cell.is_done is False
    assert cell.try_get() is None
    assert str(cell) == ""


def test_resolved_cell_returns_translation_without_blocking() -> None:
    cell = TranslationCell.resolved("Hello", "Bonjour")

    assert cell.is_resolved is True
    assert cell.try_get() == "Bonjour"
    assert cell.get(timeout=0) == "Bonjour"
    assert str(cell) == "Bonjour"


def test_resolve_wakes_every_waiter() -> None:
    cell = TranslationCell.pending("Hello")
    results: list[str] = []
    lock = threading.Lock()

    def wait() -> None:
        value: str = cell.get(timeout=5)
        with lock:
            results.append(value)

    threads: list[threading.Thread] = [threading.Thread(target=wait) for _ in range(4)]
    for thread in threads:
        thread.start()
    cell.resolve("Bonjour")
    for thread in threads:
        thread.join(timeout=5)

    assert results == ["Bonjour"] * 4


def test_resolve_twice_raises() -> None:
    cell = TranslationCell.pending("Hello")
    cell.resolve("Bonjour")

    with pytest.raises(CellStateError):
        cell.resolve("Salut")
    assert cell.try_get() == "Bonjour"


def test_fail_releases_waiters_with_chained_cause() -> None:
    cell = TranslationCell.pending("Hello")
    cause = RuntimeError("provider down")
    cell.fail(cause)

    assert cell.is_failed is True
    assert cell.try_get() is None
    with pytest.raises(TranslationFailedError) as excinfo:
        cell.get()
    assert excinfo.value.__cause__ is cause


def test_fail_after_resolve_raises() -> None:
    cell = TranslationCell.resolved("Hello", "Bonjour")

    with pytest.raises(CellStateError):
        cell.fail(RuntimeError("late"))


def test_get_times_out_while_pending() -> None:
    cell = TranslationCell.pending("Hello")

    with pytest.raises(TimeoutError):
        cell.get(timeout=0.01)


def test_equality_ignores_case_of_original() -> None:
    assert TranslationCell.pending("Hello") == TranslationCell.resolved("HELLO", "Bonjour")
    assert hash(TranslationCell.pending("Hello")) == hash(TranslationCell.pending("hello"))
    assert TranslationCell.pending("Hello") != TranslationCell.pending("Goodbye")
