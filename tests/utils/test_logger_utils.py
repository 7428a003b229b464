from __future__ import annotations

import logging
import warnings
from logging.handlers import RotatingFileHandler
from typing import TYPE_CHECKING

import pytest

from models.config_models import General
from utils.logger_utils import DEFAULT_NAMESPACE, LoggerUtils

if TYPE_CHECKING:
    from collections.abc import Generator
    from pathlib import Path


@pytest.fixture
def fresh_logger(monkeypatch: pytest.MonkeyPatch) -> Generator[logging.Logger]:
    monkeypatch.setattr(LoggerUtils, "_instance", None)
    monkeypatch.setattr(warnings, "showwarning", warnings.showwarning)
    root: logging.Logger = logging.getLogger(DEFAULT_NAMESPACE)
    saved_handlers: list[logging.Handler] = list(root.handlers)
    saved_level: int = root.level
    yield root
    for handler in root.handlers:
        if handler not in saved_handlers:
            handler.close()
    root.handlers = saved_handlers
    root.setLevel(saved_level)


def test_get_logger_uses_namespace() -> None:
    assert LoggerUtils.get_logger("core.cache.store").name == f"{DEFAULT_NAMESPACE}.core.cache.store"
    assert LoggerUtils.get_logger().name == DEFAULT_NAMESPACE


def test_file_handler_receives_module_records(fresh_logger: logging.Logger, tmp_path: Path) -> None:
    log_file: Path = tmp_path / "transcache.log"

    utils = LoggerUtils(log_file, use_null_console=True)
    utils.set_level("DEBUG")
    LoggerUtils.get_logger("core.translator").debug("cache ready")
    for handler in fresh_logger.handlers:
        handler.flush()

    assert any(isinstance(handler, RotatingFileHandler) for handler in fresh_logger.handlers)
    assert "cache ready" in log_file.read_text(encoding="utf-8")
    assert LoggerUtils(log_file) is utils


def test_unknown_level_falls_back_to_info(fresh_logger: logging.Logger) -> None:
    utils = LoggerUtils("", use_null_console=True)

    utils.set_level("LOUD")  # type: ignore[arg-type]

    assert fresh_logger.level == logging.INFO


def test_warnings_are_routed_to_log(fresh_logger: logging.Logger, caplog: pytest.LogCaptureFixture) -> None:
    LoggerUtils("", use_null_console=True)

    with caplog.at_level(logging.WARNING, logger=DEFAULT_NAMESPACE):
        warnings.showwarning("old api", DeprecationWarning, "module.py", 3)

    assert "DeprecationWarning: old api" in caplog.text


def test_from_config_uses_general_section(fresh_logger: logging.Logger, tmp_path: Path) -> None:
    general = General(DEBUG=True, LOG_FILE=str(tmp_path / "debug.log"))

    utils: LoggerUtils = LoggerUtils.from_config(general, use_null_console=True)

    assert fresh_logger.level == logging.DEBUG
    assert LoggerUtils.from_config(General()) is utils
    assert sum(isinstance(handler, RotatingFileHandler) for handler in fresh_logger.handlers) == 1
