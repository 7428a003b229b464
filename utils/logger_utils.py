from __future__ import annotations

import logging
import sys
import warnings
from logging import Formatter, Handler, NullHandler, StreamHandler
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import TYPE_CHECKING, ClassVar, Final, Literal, Self, TextIO, TypeAlias

if TYPE_CHECKING:
    from models.config_models import General

__all__: list[str] = ["LoggerUtils"]

LevelType: TypeAlias = Literal[
    "NOTSET",
    "DEBUG",
    "INFO",
    "WARNING",
    "ERROR",
    "CRITICAL",
]

_LOG_FILE_SIZE: Final[int] = 2 * 1024 * 1024  # 2MB
_LOG_BACKUP_COUNT: Final[int] = 2

_CONSOLE_FORMAT: Final[str] = "%(levelname)s: %(message)s"
_FILE_FORMAT: Final[str] = "%(asctime)s %(levelname)-8s %(threadName)-20s %(name)-36s %(message)s"

DEFAULT_LOG_LEVEL: Final[int] = logging.INFO
DEFAULT_NAMESPACE: Final[str] = "TransCache"


class LoggerUtils:
    """Process-wide logging setup for the translation cache.

    Modules only call `get_logger(__name__)`. Handlers are attached once, when the host application
    creates the first instance (directly or through `from_config`); later instances are the same object
    and leave the handlers alone.

    Attributes:
        _namespace (str): Parent logger name of every module logger.
        _instance (LoggerUtils | None): The configured instance, if any.
    """

    _namespace: ClassVar[str] = DEFAULT_NAMESPACE
    _instance: ClassVar[Self | None] = None

    def __new__(cls, *args, **kwargs) -> Self:
        _ = args, kwargs
        if cls._instance is None:
            instance: Self = super().__new__(cls)
            instance._ready = False
            cls._instance = instance
        return cls._instance

    def __init__(self, filename: str | Path, *, use_null_console: bool = False, debug: bool = False) -> None:
        """Attach the console and file handlers.

        Args:
            filename (str | Path): Log file path. Blank disables file logging.
            use_null_console (bool): Discard console output, e.g. for windowed hosts without stderr.
            debug (bool): Start at DEBUG instead of INFO.
        """
        if self._ready:
            return

        self.namespace_logger: logging.Logger = logging.getLogger(self._namespace)
        self.namespace_logger.setLevel(logging.DEBUG if debug else DEFAULT_LOG_LEVEL)

        if use_null_console or sys.stderr is None:
            self._attach(NullHandler())
        else:
            self._attach(StreamHandler(sys.stderr), logging.WARNING, _CONSOLE_FORMAT)

        log_path: str = str(filename).strip()
        if log_path:
            self._attach_file(Path(log_path).expanduser().resolve())
        else:
            self.namespace_logger.info("No log file configured; file logging disabled")

        warnings.showwarning = self.warning_to_log
        self._ready: bool = True

    @classmethod
    def from_config(cls, general: General, *, use_null_console: bool = False) -> LoggerUtils:
        """Configure logging from the `[GENERAL]` section.

        Args:
            general (General): Provides `LOG_FILE` and `DEBUG`.
            use_null_console (bool): Discard console output.

        Returns:
            LoggerUtils: The process-wide instance.
        """
        return cls(general.LOG_FILE, use_null_console=use_null_console, debug=general.DEBUG)

    def _attach(self, handler: Handler, level: int = logging.NOTSET, fmt: str | None = None) -> None:
        if any(type(existing) is type(handler) for existing in self.namespace_logger.handlers):
            handler.close()
            self.namespace_logger.debug("%s already attached", type(handler).__name__)
            return
        handler.setLevel(level)
        if fmt is not None:
            handler.setFormatter(Formatter(fmt))
        self.namespace_logger.addHandler(handler)

    def _attach_file(self, path: Path) -> None:
        try:
            handler = RotatingFileHandler(
                filename=path,
                maxBytes=_LOG_FILE_SIZE,
                backupCount=_LOG_BACKUP_COUNT,
                encoding="utf-8",
            )
        except OSError as err:
            self.namespace_logger.error("Cannot open log file %s: %s", path, err)
            return
        self._attach(handler, logging.DEBUG, _FILE_FORMAT)

    def warning_to_log(
        self,
        message: Warning | str,
        category: type[Warning],
        filename: str,
        lineno: int,
        file: TextIO | None = None,
        line: str | None = None,
    ) -> None:
        """Replacement for `warnings.showwarning` that writes to the namespace logger."""
        _ = file, line
        self.namespace_logger.warning("%s:%d: %s: %s", filename, lineno, category.__name__, message)

    def set_level(self, level: LevelType) -> None:
        """Change the namespace level; unknown names reset it to INFO."""
        numeric: int | None = logging.getLevelNamesMapping().get(level.upper())
        if numeric is None:
            self.namespace_logger.warning("Unknown logging level '%s'; using INFO", level)
            numeric = DEFAULT_LOG_LEVEL
        self.namespace_logger.setLevel(numeric)

    @classmethod
    def get_logger(cls, name: str | None = None) -> logging.Logger:
        """Return `TransCache.<name>`, or the namespace logger itself when `name` is empty."""
        return logging.getLogger(f"{cls._namespace}.{name}" if name else cls._namespace)
