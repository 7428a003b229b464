"""Unit tests for core.trans.manager module."""

from __future__ import annotations

import asyncio
from typing import ClassVar

import pytest

from core.trans.interface import EngineAttributes, TransInterface, TranslateExceptionError
from core.trans.manager import TransManager
from models.config_models import Config


class DummyEngine(TransInterface):
    """Minimal translation engine for TransManager tests."""

    init_error: ClassVar[Exception | None] = None
    close_error: ClassVar[Exception | None] = None
    closed: ClassVar[int] = 0

    def __init__(self) -> None:
        super().__init__()
        self.auth_key: str | None = None

    @property
    def is_available(self) -> bool:
        return self.auth_key is not None

    @staticmethod
    def fetch_engine_name() -> str:
        return "manager_dummy"

    def initialize(self, config: Config, auth_key: str | None = None) -> None:
        _ = config
        err: Exception | None = type(self).init_error
        if err is not None:
            raise err
        self.engine_attributes = EngineAttributes(name=self.fetch_engine_name(), max_batch_chars=100)
        self.auth_key = auth_key

    async def translate_batch(self, contents: list[str], tgt_lang: str, src_lang: str | None = None) -> list[str]:
        _ = tgt_lang, src_lang
        return list(contents)

    async def close(self) -> None:
        type(self).closed += 1
        err: Exception | None = type(self).close_error
        if err is not None:
            raise err


@pytest.fixture(autouse=True)
def reset_dummy() -> None:
    DummyEngine.init_error = None
    DummyEngine.close_error = None
    DummyEngine.closed = 0


@pytest.fixture
def manager() -> TransManager:
    config = Config()
    config.TRANSLATION.ENGINE = "manager_dummy"
    return TransManager(config)


def test_engines_are_registered() -> None:
    names: list[str] = TransManager.fetch_engine_names()

    assert "deepl" in names
    assert "google_cloud" in names
    assert "manager_dummy" in names


def test_get_engine_creates_one_engine_per_identity(manager: TransManager) -> None:
    first: TransInterface = manager.get_engine("identity-a", "key-a")
    again: TransInterface = manager.get_engine("identity-a", "ignored")
    other: TransInterface = manager.get_engine("identity-b", "key-b")

    assert first is again
    assert first is not other
    assert isinstance(first, DummyEngine)
    assert first.auth_key == "key-a"
    assert first.max_batch_chars == 100


def test_get_engine_unknown_name_raises(manager: TransManager) -> None:
    with pytest.raises(TranslateExceptionError, match="Unknown"):
        manager.get_engine("identity", name="missing")


def test_get_engine_wraps_initialization_failure(manager: TransManager) -> None:
    DummyEngine.init_error = RuntimeError("no client")

    with pytest.raises(TranslateExceptionError) as excinfo:
        manager.get_engine("identity")
    assert isinstance(excinfo.value.__cause__, RuntimeError)


def test_close_closes_every_engine(manager: TransManager) -> None:
    manager.get_engine("identity-a")
    manager.get_engine("identity-b")
    DummyEngine.close_error = TranslateExceptionError("already closed")

    asyncio.run(manager.close())

    assert DummyEngine.closed == 2
    assert manager.get_engine("identity-a") is not None
