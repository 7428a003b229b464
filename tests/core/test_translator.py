"""Tests for the Translator client handle."""

from __future__ import annotations

import asyncio
import threading
from typing import TYPE_CHECKING

import pytest

from core.cache.cell import TranslationCell, TranslationFailedError
from core.cache.registry import CacheInstance, InstanceRegistry
from core.cache.store import CacheClosedError, ConflictingEntryError
from core.trans.interface import EngineAttributes, TransInterface, TranslateExceptionError
from core.translator import Translator, TranslatorSetupError
from models.config_models import Config
from utils.string_utils import StringUtils

if TYPE_CHECKING:
    from collections.abc import Callable, Generator
    from pathlib import Path


class ScriptedEngine(TransInterface):
    """Provider double that translates through a lookup table and counts calls."""

    def __init__(self, table: dict[str, str] | None = None, max_batch_chars: int = 10_000) -> None:
        super().__init__()
        self.engine_attributes = EngineAttributes(name="scripted", max_batch_chars=max_batch_chars)
        self.table: dict[str, str] = table or {}
        self.calls: list[list[str]] = []
        self.error: Exception | None = None
        self.gate: threading.Event = threading.Event()
        self.gate.set()

    @property
    def is_available(self) -> bool:
        return True

    @staticmethod
    def fetch_engine_name() -> str:
        return ""

    def initialize(self, config: Config, auth_key: str | None = None) -> None:
        _ = config, auth_key

    async def translate_batch(self, contents: list[str], tgt_lang: str, src_lang: str | None = None) -> list[str]:
        _ = src_lang
        self.calls.append(list(contents))
        await asyncio.to_thread(self.gate.wait, 5)
        if self.error is not None:
            raise self.error
        return [self.table.get(text, f"[{tgt_lang}] {text}") for text in contents]

    async def close(self) -> None:
        pass


@pytest.fixture
def registry() -> Generator[InstanceRegistry]:
    reg = InstanceRegistry(Config())
    yield reg
    reg.close()


@pytest.fixture
def make_translator(registry: InstanceRegistry, tmp_path: Path) -> Generator[Callable[..., Translator]]:
    created: list[Translator] = []

    def factory(engine: TransInterface, **kwargs) -> Translator:
        kwargs.setdefault("key", "secret")
        kwargs.setdefault("directory", tmp_path)
        translator = Translator(registry, "en", "fr", engine=engine, **kwargs)
        created.append(translator)
        return translator

    yield factory
    for translator in created:
        translator.close()


def _wait_idle(instance: CacheInstance) -> None:
    assert instance.wait_drained(timeout=5)


def test_hello_bonjour_scenario(make_translator: Callable[..., Translator], tmp_path: Path) -> None:
    engine = ScriptedEngine({"Hello": "Bonjour"})
    translator: Translator = make_translator(engine)

    cell: TranslationCell = translator.translate("Hello")

    assert cell.is_resolved is False
    translator.instance.batcher.force_flush(translator.identity)
    assert cell.get(timeout=5) == "Bonjour"
    _wait_idle(translator.instance)
    assert (tmp_path / "EN_FR.cache").read_text(encoding="utf-8") == "Hello\nBonjour\n"


def test_translate_does_not_block_below_threshold(make_translator: Callable[..., Translator]) -> None:
    engine = ScriptedEngine()
    translator: Translator = make_translator(engine)

    cell: TranslationCell = translator.translate("Hello")

    assert cell.try_get() is None
    assert engine.calls == []
    assert translator.instance.batcher.pending_chars(translator.identity) == 5


def test_threshold_triggers_one_dispatch(registry: InstanceRegistry, tmp_path: Path) -> None:
    registry.config.CACHE.MAX_BATCH_CHARS = 10
    engine = ScriptedEngine()
    with Translator(registry, "en", "fr", key="k", directory=tmp_path, engine=engine) as translator:
        cells: list[TranslationCell] = [translator.translate(text) for text in ("abcd", "efgh", "ijkl", "mn")]
        _wait_idle(translator.instance)

        assert engine.calls == [["abcd", "efgh", "ijkl"]]
        assert [cell.is_resolved for cell in cells] == [True, True, True, False]
        assert translator.instance.batcher.pending_chars(translator.identity) == 2


def test_translate_now_returns_resolved_cell(make_translator: Callable[..., Translator]) -> None:
    engine = ScriptedEngine({"Hello": "Bonjour"})
    translator: Translator = make_translator(engine)
    translator.translate("World")

    cell: TranslationCell = translator.translate_now("Hello")

    assert cell.is_resolved is True
    assert cell.try_get() == "Bonjour"
    assert engine.calls == [["World", "Hello"]]


def test_translate_now_flushes_batch_of_other_identity(make_translator: Callable[..., Translator]) -> None:
    engine = ScriptedEngine({"Hello": "Bonjour"})
    first: Translator = make_translator(engine, key="first")
    second: Translator = make_translator(engine, key="second")
    first.translate("Hello")

    cell: TranslationCell = second.translate_now("hello")

    assert first.instance is second.instance
    assert cell.get(timeout=5) == "Bonjour"


def test_translate_now_raises_when_batch_fails(make_translator: Callable[..., Translator]) -> None:
    engine = ScriptedEngine()
    engine.error = TranslateExceptionError("offline")
    translator: Translator = make_translator(engine)

    with pytest.raises(TranslationFailedError):
        translator.translate_now("Hello", timeout=5)

    _wait_idle(translator.instance)
    assert translator.instance.store.get("Hello") is None


def test_hit_does_not_call_provider(make_translator: Callable[..., Translator]) -> None:
    engine = ScriptedEngine()
    translator: Translator = make_translator(engine)
    translator.feed("Hello", "Bonjour")

    cell: TranslationCell = translator.translate("HELLO")

    assert cell.try_get() == "Bonjour"
    assert engine.calls == []
    assert translator.statistics.hits == 1


def test_blank_text_returns_shared_empty_cell(make_translator: Callable[..., Translator]) -> None:
    translator: Translator = make_translator(ScriptedEngine())

    assert translator.translate("") is Translator.EMPTY
    assert translator.translate("   ") is Translator.EMPTY
    assert translator.translate_now("\n") is Translator.EMPTY
    assert translator.statistics.misses == 0


def test_disabled_translator_skips_cache(make_translator: Callable[..., Translator]) -> None:
    translator: Translator = make_translator(ScriptedEngine())
    translator.disable()

    cell: TranslationCell = translator.translate("Hello")

    assert translator.is_enabled is False
    assert cell.try_get() == ""
    assert translator.instance.store.get("Hello") is None
    translator.enable()
    assert translator.translate("Hello").is_resolved is False


def test_feed_ignores_blank_and_reports_conflict(make_translator: Callable[..., Translator]) -> None:
    translator: Translator = make_translator(ScriptedEngine())

    assert translator.feed(" ", "x") is False
    assert translator.feed("Hello", "") is False
    assert translator.feed("Hello", "Bonjour") is True
    assert translator.feed("Hello", "Bonjour") is False
    with pytest.raises(ConflictingEntryError):
        translator.feed("Hello", "Salut")
    assert translator.feed("Hello", "Salut", overwrite=True) is True


def test_handles_share_fed_entries(make_translator: Callable[..., Translator]) -> None:
    engine = ScriptedEngine()
    first: Translator = make_translator(engine, key="first")
    second: Translator = make_translator(engine, key="second")

    first.feed("Hello", "Bonjour")

    assert second.translate("hello").try_get() == "Bonjour"
    assert engine.calls == []


def test_round_trip_after_close(registry: InstanceRegistry, tmp_path: Path) -> None:
    engine = ScriptedEngine()
    pairs: dict[str, str] = {f"text {index}": f"texte {index}" for index in range(20)}
    with Translator(registry, "en", "fr", key="k", directory=tmp_path, engine=engine) as writer:
        for original, translation in pairs.items():
            writer.feed(original, translation)

    with Translator(registry, "en", "fr", key="k", directory=tmp_path, engine=engine) as reader:
        assert all(reader.translate(original).try_get() == translation for original, translation in pairs.items())
    assert engine.calls == []


def test_close_drains_and_persists(registry: InstanceRegistry, tmp_path: Path) -> None:
    engine = ScriptedEngine({"Hello": "Bonjour"})
    engine.gate.clear()
    translator = Translator(registry, "en", "fr", key="k", directory=tmp_path, engine=engine)
    cell: TranslationCell = translator.translate("Hello")

    closed = threading.Event()

    def close() -> None:
        translator.close()
        closed.set()

    thread = threading.Thread(target=close)
    thread.start()
    assert closed.wait(timeout=0.1) is False
    engine.gate.set()
    thread.join(timeout=5)

    assert closed.is_set()
    assert cell.try_get() == "Bonjour"
    with Translator(registry, "en", "fr", key="k", directory=tmp_path, engine=engine) as reopened:
        assert reopened.translate("hello").try_get() == "Bonjour"


def test_closed_translator_rejects_requests(make_translator: Callable[..., Translator]) -> None:
    translator: Translator = make_translator(ScriptedEngine())
    translator.close()
    translator.close()

    assert translator.is_closed is True
    with pytest.raises(CacheClosedError):
        translator.translate("Hello")


def test_identity_combines_key_and_app_name(make_translator: Callable[..., Translator]) -> None:
    translator: Translator = make_translator(ScriptedEngine(), key="secret", app_name="Demo")

    assert translator.identity == StringUtils.hash_identity("secret", "Demo")


def test_defaults_come_from_config(registry: InstanceRegistry, tmp_path: Path) -> None:
    registry.config.TRANSLATION.DEFAULT_TARGET = "de"
    registry.config.TRANSLATION.DEFAULT_KEY = "from-config"
    registry.config.CACHE.DIRECTORY = str(tmp_path)
    engine = ScriptedEngine()

    with Translator(registry, "en", engine=engine) as translator:
        assert translator.target_lang == "de"
        assert translator.app_name == "TranslationSuite"
        assert translator.identity == StringUtils.hash_identity("from-config", "TranslationSuite")
        assert translator.instance.store.path == tmp_path / "EN_DE.cache"


def test_relative_directory_joins_configured_root(registry: InstanceRegistry, tmp_path: Path) -> None:
    registry.config.CACHE.DIRECTORY = str(tmp_path)

    with Translator(registry, "en", "fr", key="k", directory="sub", relative=True, engine=ScriptedEngine()) as t:
        assert t.instance.store.directory == tmp_path / "sub"


def test_setup_errors(registry: InstanceRegistry, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("_API_OAUTH", raising=False)
    engine = ScriptedEngine()

    with pytest.raises(TranslatorSetupError):
        Translator(registry, "en", "fr", directory=tmp_path, engine=engine)
    with pytest.raises(TranslatorSetupError):
        Translator(registry, "en", "fr", key="k", engine=engine)
    with pytest.raises(TranslatorSetupError):
        Translator(registry, "en", "fr", key="k", directory="sub", relative=True, engine=engine)
    with pytest.raises(TranslatorSetupError):
        Translator(registry, "", "fr", key="k", directory=tmp_path, engine=engine)
    assert len(registry) == 0


def test_unknown_engine_is_setup_error(registry: InstanceRegistry, tmp_path: Path) -> None:
    registry.config.TRANSLATION.ENGINE = "no_such_engine"

    with pytest.raises(TranslatorSetupError):
        Translator(registry, "en", "fr", key="k", directory=tmp_path)
